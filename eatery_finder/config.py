"""Project configuration.

Keep API request shapes and tuning knobs centralized here. Credentials are
never read at import time; build a Settings object and pass it explicitly.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

# --- API endpoints ---

PLACES_TEXT_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/textsearch/json"
PLACES_DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"
PLACES_PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"
GEMINI_API_URL_TEMPLATE = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

# --- Places request shape ---

PLACES_DETAILS_FIELDS = "formatted_phone_number,website,email,opening_hours,types"
PLACES_MAX_RESULTS = 10
PLACES_DETAIL_WORKERS = 5
PLACES_MAX_PHOTOS = 3
PLACES_PHOTO_MAX_WIDTH = 400
PLACES_OK_STATUSES = {"OK", "ZERO_RESULTS"}

# --- Gemini ---

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
GEMINI_TIMEOUT_SECONDS = 90
GEMINI_THINKING_BUDGET = 8192
GEMINI_FAST_THINKING_BUDGET = 0
GEMINI_TEMPERATURE = 0.2

# --- Retry (generative backend) ---

RETRY_MAX_ATTEMPTS = 4
RETRY_BASE_DELAY_SECONDS = 1.0

# --- HTTP (structured backend) ---

HTTP_TIMEOUT_SECONDS = 20
HTTP_RETRY_MAX = 3
HTTP_BACKOFF_BASE = 0.5
HTTP_BACKOFF_MAX = 8.0

# --- Aggregation ---

MERGE_MAX_DISTANCE_KM = 1.0
ENRICHMENT_MAX_WORKERS = 5

# --- Outputs ---

OUTPUT_DIR = "out"
SUMMARY_TOP_N = 10


@dataclass(frozen=True)
class Settings:
    google_places_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL

    @classmethod
    def from_env(cls) -> "Settings":
        places_key = os.environ.get("GOOGLE_PLACES_API_KEY") or os.environ.get("GOOGLE_MAPS_API_KEY")
        gemini_key = os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")
        model = (os.environ.get("GEMINI_MODEL") or "").strip() or DEFAULT_GEMINI_MODEL
        return cls(
            google_places_api_key=(places_key or "").strip() or None,
            gemini_api_key=(gemini_key or "").strip() or None,
            gemini_model=model,
        )
