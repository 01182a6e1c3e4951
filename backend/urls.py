"""Root URL configuration."""
from __future__ import annotations

from django.urls import include, path

from backend.api.views import TrackerView

urlpatterns = [
    path("", TrackerView.as_view(), name="tracker-root"),
    path("api/", include("backend.api.urls")),
]
