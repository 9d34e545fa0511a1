"""Gemini client with a safe no-op fallback.

Building a client without GEMINI_API_KEY never hard-fails: callers get a
NoopGeminiClient that answers with empty text. Transport and HTTP failures
raise GeminiApiError with the status code and status text in the message so
the retry classifier can tell transient errors apart.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from . import config
from .config import Settings
from .models import Coordinate

logger = logging.getLogger(__name__)

AUTH_STATUSES = {"UNAUTHENTICATED", "PERMISSION_DENIED"}


class GeminiApiError(RuntimeError):
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        status: Optional[str] = None,
        auth_error: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.status = status
        self.auth_error = auth_error

    @property
    def is_auth_error(self) -> bool:
        return self.auth_error or self.status_code in (401, 403) or self.status in AUTH_STATUSES


def is_auth_failure(status_code: Optional[int], status: Optional[str], detail: str) -> bool:
    """Classify on the raw error body; the redacted message may no longer contain the marker."""
    if status_code in (401, 403) or status in AUTH_STATUSES:
        return True
    return "api key not valid" in (detail or "").lower()


@dataclass(frozen=True)
class GeminiResponse:
    text: str
    grounding_chunks: List[Dict[str, Any]] = field(default_factory=list)
    model: str = ""


class BaseGeminiClient:
    def generate_content(
        self,
        prompt_text: str,
        location: Optional[Coordinate] = None,
        thinking_budget: Optional[int] = None,
    ) -> GeminiResponse:
        raise NotImplementedError


class NoopGeminiClient(BaseGeminiClient):
    def __init__(self, reason: str = "skipped_no_api_key") -> None:
        self.reason = reason

    def generate_content(
        self,
        prompt_text: str,
        location: Optional[Coordinate] = None,
        thinking_budget: Optional[int] = None,
    ) -> GeminiResponse:
        logger.info("Gemini call skipped: %s", self.reason)
        return GeminiResponse(text="", model="noop")


class GeminiClient(BaseGeminiClient):
    def __init__(
        self,
        api_key: str,
        model: str = config.DEFAULT_GEMINI_MODEL,
        timeout_seconds: int = config.GEMINI_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> BaseGeminiClient:
        if not settings.gemini_api_key:
            return NoopGeminiClient("skipped_no_api_key")
        return cls(api_key=settings.gemini_api_key, model=settings.gemini_model)

    def _redact(self, text: str) -> str:
        if not text:
            return text
        redacted = text.replace(self.api_key, "[REDACTED]")
        redacted = re.sub(r"(key=)[^&\s()]+", r"\1[REDACTED]", redacted)
        return redacted

    def build_payload(
        self,
        prompt_text: str,
        location: Optional[Coordinate] = None,
        thinking_budget: Optional[int] = None,
    ) -> Dict[str, Any]:
        generation_config: Dict[str, Any] = {"temperature": config.GEMINI_TEMPERATURE}
        if thinking_budget is not None:
            generation_config["thinkingConfig"] = {"thinkingBudget": int(thinking_budget)}
        # responseMimeType cannot be combined with grounding tools
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt_text}]}],
            "tools": [{"googleMaps": {}}],
            "generationConfig": generation_config,
        }
        if location is not None:
            payload["toolConfig"] = {
                "retrievalConfig": {
                    "latLng": {"latitude": location.latitude, "longitude": location.longitude}
                }
            }
        return payload

    def generate_content(
        self,
        prompt_text: str,
        location: Optional[Coordinate] = None,
        thinking_budget: Optional[int] = None,
    ) -> GeminiResponse:
        url = f"{config.GEMINI_API_URL_TEMPLATE.format(model=self.model)}?key={self.api_key}"
        payload = self.build_payload(prompt_text, location=location, thinking_budget=thinking_budget)
        try:
            resp = self.session.post(url, json=payload, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise GeminiApiError(self._redact(f"service unavailable (request_error): {exc}")) from None

        if resp.status_code >= 400:
            status, detail = _error_details(resp)
            message = f"HTTP {resp.status_code}"
            if status:
                message += f" {status}"
            if detail:
                message += f": {detail}"
            raise GeminiApiError(
                self._redact(message),
                status_code=resp.status_code,
                status=status,
                auth_error=is_auth_failure(resp.status_code, status, detail),
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise GeminiApiError(self._redact(f"non_json_response: {exc}")) from None
        return parse_generate_content_response(data, model=self.model)


def _error_details(resp: requests.Response) -> tuple[Optional[str], str]:
    try:
        body = resp.json()
    except ValueError:
        return None, (resp.text or "")[:300]
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return None, json.dumps(body, ensure_ascii=False)[:300]
    return error.get("status"), str(error.get("message") or "")


def parse_generate_content_response(data: Dict[str, Any], model: str = "") -> GeminiResponse:
    candidates = data.get("candidates") or []
    if not candidates:
        return GeminiResponse(text="", model=model)
    candidate = candidates[0] or {}
    parts = (candidate.get("content") or {}).get("parts") or []
    text = "".join(
        p["text"] for p in parts if isinstance(p.get("text"), str) and not p.get("thought")
    )
    chunks = (candidate.get("groundingMetadata") or {}).get("groundingChunks") or []
    return GeminiResponse(text=text, grounding_chunks=list(chunks), model=model)
