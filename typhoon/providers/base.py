from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, List, Optional, TypeVar

import requests
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import ProviderSettings


logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

USER_AGENT = "TyphoonTracker/1.0 (weather monitoring)"

# errors raised while reading one record of an unexpectedly shaped payload
MALFORMED = (AttributeError, IndexError, KeyError, OverflowError, TypeError, ValueError)


class ProviderError(RuntimeError):
    """Base provider error."""


class NetworkError(ProviderError):
    """Timeouts, connection failures and HTTP error statuses."""


class QuotaExceeded(NetworkError):
    """Raised when a provider reports a quota/usage limit issue."""


class ParseError(ProviderError):
    """The provider answered but the payload has an unexpected shape."""


class ConfigError(ProviderError):
    """The provider is disabled or has no usable API key."""


@dataclass
class RequestConfig:
    timeout: Optional[float] = None
    retries: int = 2
    backoff_factor: float = 0.3
    status_forcelist: Iterable[int] = (429, 500, 502, 503, 504)


def deadline_after(seconds: Optional[float]) -> Optional[float]:
    """Return a monotonic deadline ``seconds`` from now."""
    if seconds is None:
        return None
    return time.monotonic() + seconds


def remaining_seconds(deadline: Optional[float]) -> Optional[float]:
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())


def fan_out(
    func: Callable[[T], R],
    items: Iterable[T],
    *,
    deadline: Optional[float] = None,
    max_workers: int = 8,
    label: str = "probe",
) -> List[R]:
    """Run ``func`` over ``items`` concurrently and collect what succeeds.

    Results keep the order of ``items``. An item whose call raises
    :class:`ProviderError` is logged and skipped. When ``deadline`` passes,
    calls still running are abandoned and the completed ones are returned.
    """
    items = list(items)
    if not items:
        return []
    executor = ThreadPoolExecutor(max_workers=min(max_workers, len(items)))
    try:
        futures = [executor.submit(func, item) for item in items]
        done, pending = wait(futures, timeout=remaining_seconds(deadline))
        if pending:
            logger.warning("Deadline reached, abandoning %d of %d %s calls", len(pending), len(items), label)
        results: List[R] = []
        for item, future in zip(items, futures):
            if future not in done:
                continue
            try:
                results.append(future.result())
            except ProviderError as exc:
                logger.warning("%s %s failed: %s", label, item, exc)
        return results
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


class HTTPProvider:
    """Base class that adds retry/timeouts for HTTP providers."""

    name = "provider"
    default_timeout = 10.0
    requires_key = False
    headers: dict = {"Accept": "application/json", "User-Agent": USER_AGENT}

    def __init__(
        self,
        settings: Optional[ProviderSettings] = None,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        self.settings = settings or ProviderSettings()
        self.request_config = request_config or RequestConfig()
        self.session = session or self._build_session(self.request_config)
        # calls bounded by a deadline get a single attempt
        self.deadline_session = session or self._build_session(replace(self.request_config, retries=0))
        self._log = logging.getLogger(self.__class__.__name__)

    @property
    def timeout(self) -> float:
        return self.settings.timeout or self.request_config.timeout or self.default_timeout

    @property
    def api_key(self) -> Optional[str]:
        return self.settings.api_key

    @property
    def is_available(self) -> bool:
        try:
            self.ensure_configured()
        except ConfigError:
            return False
        return True

    def ensure_configured(self) -> None:
        if not self.settings.enabled:
            raise ConfigError(f"{self.name} is disabled")
        if self.requires_key and not self.settings.has_key:
            raise ConfigError(f"{self.name} API key is not configured")

    def _build_session(self, config: RequestConfig) -> requests.Session:
        session = requests.Session()
        retry = 0
        if config.retries:
            retry = Retry(
                total=config.retries,
                backoff_factor=config.backoff_factor,
                status_forcelist=tuple(config.status_forcelist),
                raise_on_status=False,
            )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def _handle_response(self, response: Response, allow_not_found: bool = False) -> Optional[Response]:
        if response.status_code == 404 and allow_not_found:
            self._log.info("Provider returned 404 for %s", response.url)
            return None
        if response.status_code == 429:
            self._log.warning("Quota exceeded: %s", response.text[:200])
            raise QuotaExceeded("quota exceeded")
        if response.status_code >= 400:
            self._log.error("Provider returned %s: %s", response.status_code, response.text[:200])
            raise NetworkError(f"HTTP {response.status_code}")
        return response

    def _session_for(self, deadline: Optional[float]) -> requests.Session:
        return self.session if deadline is None else self.deadline_session

    def _request(
        self,
        method: str,
        url: str,
        *,
        deadline: Optional[float] = None,
        allow_not_found: bool = False,
        **kwargs: Any,
    ) -> Optional[Response]:
        timeout = self.timeout
        remaining = remaining_seconds(deadline)
        if remaining is not None:
            if remaining <= 0:
                raise NetworkError("deadline exceeded")
            timeout = min(timeout, remaining)
        headers = dict(self.headers)
        headers.update(kwargs.pop("headers", None) or {})
        try:
            response = self._session_for(deadline).request(method, url, timeout=timeout, headers=headers, **kwargs)
        except requests.Timeout as exc:
            self._log.error("Request to %s timed out", url)
            raise NetworkError("timeout") from exc
        except requests.RequestException as exc:
            self._log.error("Request to %s failed: %s", url, exc)
            raise NetworkError("request failed") from exc
        return self._handle_response(response, allow_not_found=allow_not_found)

    def _json(self, response: Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            self._log.error("Failed to decode JSON from %s", response.url)
            raise ParseError("invalid json") from exc

    def fetch_storms(self, region: str = "PH", deadline: Optional[float] = None) -> list:
        """Return the tropical cyclones this provider currently reports."""
        return []


__all__ = [
    "ConfigError",
    "HTTPProvider",
    "MALFORMED",
    "NetworkError",
    "ParseError",
    "ProviderError",
    "QuotaExceeded",
    "RequestConfig",
    "USER_AGENT",
    "deadline_after",
    "fan_out",
    "remaining_seconds",
]
