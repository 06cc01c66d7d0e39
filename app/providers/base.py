"""
Base class for metadata provider clients
"""
import random
import threading
import time
from typing import Any, Dict, List, Optional

import requests
import structlog

from constants import LIFECYCLE_FINISHED, LIFECYCLE_UPCOMING
from exceptions import UnsupportedKindException, UpstreamFetchException
from settings import load_settings
from utils import now_utc, sanitize_sensitive_data

logger = structlog.get_logger("providers")


def release_fields(value: Optional[str]) -> Dict[str, Any]:
    """'2021-04-09' / '2021-04' / '2021' -> releaseYear + releasePeriod"""
    if not value or not isinstance(value, str):
        return {}
    parts = value[:10].split("-")
    try:
        year = int(parts[0])
    except ValueError:
        return {}
    period = {"year": year}
    if len(parts) > 1 and parts[1].isdigit():
        period["month"] = int(parts[1])
    return {"releaseYear": year, "releasePeriod": period}


def lifecycle_from_release_date(value: Optional[str]) -> str:
    """Titles released in the future are upcoming, everything else finished"""
    if not value or not isinstance(value, str):
        return LIFECYCLE_FINISHED
    if value[:10] > now_utc().strftime("%Y-%m-%d"):
        return LIFECYCLE_UPCOMING
    return LIFECYCLE_FINISHED


class ProviderAdapter:
    """
    Shared HTTP plumbing: one requests.Session per adapter, bounded timeout,
    retries with exponential backoff and jitter on connection errors,
    429 and 5xx, and a minimum interval between calls.
    """

    name = None
    media_kinds = ()
    user_agent = "MediaTrack metadata cache"

    def __init__(self, base_url: str, api_key: str = None, timeout: float = 10, max_attempts: int = 3,
                 backoff_base: float = 1.0, min_interval: float = 0.25):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.max_attempts = max(1, int(max_attempts))
        self.backoff_base = backoff_base
        self.min_interval = min_interval
        self.last_request_time = 0
        self._rate_lock = threading.Lock()
        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        })

    @classmethod
    def from_settings(cls, settings=None):
        settings = settings or load_settings()
        http = settings.get("http", {})
        provider = settings.get("providers", {}).get(cls.name, {})
        return cls(
            base_url=provider["base_url"],
            api_key=provider.get("api_key") or None,
            timeout=http.get("timeout", 10),
            max_attempts=http.get("max_attempts", 3),
            backoff_base=http.get("backoff_base", 1.0),
            min_interval=provider.get("min_interval", http.get("min_interval", 0.25)),
            **cls.extra_options(provider),
        )

    @classmethod
    def extra_options(cls, provider_settings: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    def supports(self, media_kind: str) -> bool:
        return media_kind in self.media_kinds

    def require_kind(self, media_kind: str):
        if not self.supports(media_kind):
            raise UnsupportedKindException(media_kind, provider=self.name)

    def _rate_limit(self):
        """Ensure we don't exceed rate limits, adapters are shared between request threads"""
        with self._rate_lock:
            elapsed = time.time() - self.last_request_time
            if elapsed < self.min_interval:
                time.sleep(self.min_interval - elapsed)
            self.last_request_time = time.time()

    def _backoff(self, attempt: int, retry_after: str = None):
        delay = self.backoff_base * (2 ** attempt)
        if retry_after and retry_after.strip().isdigit():
            delay = max(delay, float(retry_after))
        time.sleep(delay + random.uniform(0.0, delay * 0.25))

    def _request_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        params = {k: v for k, v in (params or {}).items() if v not in (None, "")}

        response = None
        for attempt in range(self.max_attempts):
            self._rate_limit()
            try:
                response = self.session.get(url, params=params, timeout=self.timeout)
            except requests.RequestException as e:
                if attempt < self.max_attempts - 1:
                    logger.info("provider_retry", provider=self.name, path=path, attempt=attempt + 1, error=str(e))
                    self._backoff(attempt)
                    continue
                raise UpstreamFetchException(self.name, f"request failed: {e}") from e

            if response.status_code == 200:
                break

            retryable = response.status_code == 429 or 500 <= response.status_code < 600
            if retryable and attempt < self.max_attempts - 1:
                logger.info("provider_retry", provider=self.name, path=path, attempt=attempt + 1,
                            http_status=response.status_code)
                self._backoff(attempt, response.headers.get("Retry-After"))
                continue

            logger.debug("provider_request_failed", provider=self.name, path=path,
                         params=sanitize_sensitive_data(params))
            raise UpstreamFetchException(self.name, f"HTTP {response.status_code}",
                                         http_status=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamFetchException(self.name, "non-JSON response", http_status=response.status_code) from e

        if not isinstance(payload, dict):
            raise UpstreamFetchException(self.name, "unexpected JSON shape")
        return payload

    def search(self, query: str, media_kind: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def get_by_id(self, external_id: str, media_kind: str) -> Dict[str, Any]:
        raise NotImplementedError

    def to_essential(self, raw: Dict[str, Any], media_kind: str) -> Dict[str, Any]:
        """Map a raw provider item onto canonical essential data field names"""
        raise NotImplementedError

    def external_id(self, raw: Dict[str, Any]) -> Optional[str]:
        value = raw.get("id")
        return str(value) if value is not None else None
