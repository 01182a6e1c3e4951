"""API URL configuration."""
from __future__ import annotations

from django.urls import path

from backend.api.views import HealthView, TrackerView

urlpatterns = [
    path("", TrackerView.as_view(), name="tracker"),
    path("admin/health", HealthView.as_view(), name="admin-health"),
]
