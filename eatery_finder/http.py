"""HTTP client with retry/backoff and request counters."""
from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = (429, 500, 502, 503, 504)


@dataclass
class RequestMetrics:
    network_search: int = 0
    network_details: int = 0
    failed_details: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def inc_network(self, kind: str) -> None:
        with self._lock:
            if kind == "search":
                self.network_search += 1
            elif kind == "details":
                self.network_details += 1
            else:
                raise ValueError(f"Unknown request kind: {kind}")

    def inc_failed_details(self) -> None:
        with self._lock:
            self.failed_details += 1

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return {
                "places_search": self.network_search,
                "places_details": self.network_details,
                "failed_details": self.failed_details,
            }


class HttpClient:
    def __init__(
        self,
        timeout: int = 20,
        retry_max: int = 3,
        backoff_base: float = 0.5,
        backoff_max: float = 8.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.retry_max = retry_max
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.session = session or requests.Session()

    def get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        for attempt in range(1, self.retry_max + 1):
            try:
                resp = self.session.get(url, params=params, timeout=self.timeout)
            except requests.RequestException:
                if attempt >= self.retry_max:
                    raise
                self._sleep_backoff(attempt)
                continue

            status = resp.status_code
            if status == 200:
                try:
                    return resp.json()
                except ValueError:
                    logger.error("Non-JSON response from %s", url)
                    raise

            if status in RETRYABLE_STATUSES:
                logger.warning("HTTP %s from %s (attempt %s)", status, url, attempt)
                if attempt >= self.retry_max:
                    resp.raise_for_status()
                if not self._sleep_retry_after(resp):
                    self._sleep_backoff(attempt)
                continue

            # Non-retryable
            logger.error("HTTP %s from %s", status, url)
            resp.raise_for_status()

        raise RuntimeError("Unexpected HTTP retry loop exit")

    def _sleep_backoff(self, attempt: int) -> None:
        base = min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)
        jitter = random.uniform(0, self.backoff_base)
        time.sleep(base + jitter)

    def _sleep_retry_after(self, resp: requests.Response) -> bool:
        retry_after = resp.headers.get("Retry-After")
        if not retry_after:
            return False
        try:
            delay = float(retry_after)
        except ValueError:
            return False
        delay = max(0.0, min(delay, self.backoff_max))
        time.sleep(delay)
        return True
