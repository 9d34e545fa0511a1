"""Gemini-backed place search: prompt, JSON extraction and validation.

The model is grounded with Google Maps and asked for a fenced JSON array.
Grounding tools rule out a response schema, so the array has to be dug out
of free-form text. Every entity must carry numeric coordinates; anything
that cannot be checked against the search radius is dropped here.
"""
from __future__ import annotations

import json
import logging
import math
import re
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from . import config
from .categories import describe_categories
from .gemini_client import BaseGeminiClient, GeminiApiError
from .geo import is_valid_coordinate
from .models import Citation, Coordinate, MenuItem, Place, ProviderResult, SearchRequest
from .providers import PlaceProvider
from .retry import with_retry

logger = logging.getLogger(__name__)

ANALYSIS_ERROR_NAME = "Analysis Error"
ANALYSIS_ERROR_DESCRIPTION = (
    "The AI conducted the research but the data structure was malformed. Please try again."
)

_JSON_FENCE_RE = re.compile(r"```json[ \t]*\n?(.*?)```", re.DOTALL | re.IGNORECASE)
_ANY_FENCE_RE = re.compile(r"```(.*?)```", re.DOTALL)
_FENCE_LANG_RE = re.compile(r"^[A-Za-z0-9_+-]*[ \t]*\n")
_FENCE_MARKER_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_LIST_KEYS = ("places", "restaurants", "results")

PROMPT_TEMPLATE = """\
Use Google Maps to search for {category_query} within {radius}km radius from coordinates: {lat}, {lon}.

CRITICAL REQUIREMENTS:
1. Use the Google Maps search tool to find places near the specified coordinates
2. Only return establishments that match the requested category: {categories}
3. If searching for "Resort/Hotel", do NOT include cafes, coffee shops, or restaurants
4. If searching for "Coffee", do NOT include hotels or resorts
5. Each result MUST include latitude and longitude coordinates from Google Maps
6. Filter results to only include places within {radius}km from the center point

For each establishment found, extract:
1. Name, address, and exact coordinates (latitude, longitude) from Google Maps
2. Contact information: phone numbers and emails (check their websites/social media if found)
3. Rating and review information
4. Delivery platform presence: check if listed on "GrabFood" or "ShopeeFood" (if applicable)
5. Menu items (if applicable): complete menu with names, prices, categories, descriptions

Output Format:
You must output strictly valid JSON inside a code block ```json ... ```.
The JSON structure must be a list of objects with these REQUIRED fields:
- name (string)
- address (string)
- latitude (number) - REQUIRED: exact latitude from Google Maps
- longitude (number) - REQUIRED: exact longitude from Google Maps
- description (string: professional business summary)
- email (string | null)
- phone (string | null)
- menu (array of objects with: name, price (optional), description (optional), category (optional))
- platforms (array of strings: e.g. ["GrabFood", "ShopeeFood"])
- rating (string | null: e.g. "4.5/5")

Do not include markdown text outside the JSON block.
"""


def build_search_prompt(categories: List[str], radius_km: float, location: Coordinate) -> str:
    return PROMPT_TEMPLATE.format(
        category_query=describe_categories(categories),
        categories=", ".join(categories),
        radius=f"{float(radius_km):g}",
        lat=location.latitude,
        lon=location.longitude,
    )


def _loads(candidate: str) -> Optional[Any]:
    candidate = (candidate or "").strip()
    if not candidate:
        return None
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return None


def extract_json_payload(text: str) -> Optional[Any]:
    """Best-effort extraction of the JSON payload from model output.

    Tried in order: a ```json fenced block, any fenced block, the whole text
    with fence markers stripped, and finally the outermost [...] slice.
    """
    if not text or not text.strip():
        return None

    match = _JSON_FENCE_RE.search(text)
    if match:
        parsed = _loads(match.group(1))
        if parsed is not None:
            return parsed
        logger.debug("```json block present but not parseable")

    for block in _ANY_FENCE_RE.findall(text):
        parsed = _loads(_FENCE_LANG_RE.sub("", block, count=1))
        if parsed is not None:
            return parsed

    parsed = _loads(_FENCE_MARKER_RE.sub("", text))
    if parsed is not None:
        return parsed

    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end > start:
        parsed = _loads(text[start : end + 1])
        if parsed is not None:
            return parsed

    logger.warning("Could not parse JSON structure from Gemini response")
    return None


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(out):
        return None
    return out


def _opt_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    if not text or text.lower() in {"null", "none", "n/a"}:
        return None
    return text


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    out: List[str] = []
    for item in value:
        text = _opt_str(item)
        if text and text not in out:
            out.append(text)
    return out


def parse_menu(value: Any) -> List[MenuItem]:
    items: List[MenuItem] = []
    if not isinstance(value, list):
        return items
    for raw in value:
        if isinstance(raw, str):
            if raw.strip():
                items.append(MenuItem(name=raw.strip()))
            continue
        if not isinstance(raw, dict):
            continue
        name = _opt_str(raw.get("name"))
        if not name:
            continue
        items.append(
            MenuItem(
                name=name,
                price=_opt_str(raw.get("price")),
                description=_opt_str(raw.get("description")),
                category=_opt_str(raw.get("category")),
            )
        )
    return items


def parse_place_item(item: Dict[str, Any]) -> Optional[Place]:
    name = _opt_str(item.get("name"))
    if not name:
        return None
    lat = _coerce_float(item.get("latitude"))
    lon = _coerce_float(item.get("longitude"))
    if lat is None or lon is None:
        logger.warning("Place %s missing coordinates, skipping", name)
        return None
    if not is_valid_coordinate(lat, lon):
        logger.warning("Place %s has out-of-range coordinates %s,%s, skipping", name, lat, lon)
        return None

    price_level = _coerce_float(item.get("priceLevel"))
    hours = _str_list(item.get("openingHours"))
    return Place(
        name=name,
        address=_opt_str(item.get("address")) or "",
        description=_opt_str(item.get("description")) or "",
        location=Coordinate(latitude=lat, longitude=lon),
        rating=_opt_str(item.get("rating")),
        price_level=int(price_level) if price_level is not None else None,
        opening_hours=hours or None,
        phone=_opt_str(item.get("phone")),
        email=_opt_str(item.get("email")),
        website=_opt_str(item.get("website")),
        menu=parse_menu(item.get("menu")),
        menu_highlights=_str_list(item.get("menuHighlights")),
        platforms=_str_list(item.get("platforms")),
    )


def parse_places_payload(payload: Any) -> Optional[List[Place]]:
    """Map a decoded payload to places; None when it has no list of entities."""
    items = payload
    if isinstance(payload, dict):
        items = next((payload[k] for k in _LIST_KEYS if isinstance(payload.get(k), list)), None)
    if not isinstance(items, list):
        return None
    places: List[Place] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        place = parse_place_item(item)
        if place is not None:
            places.append(place)
    return places


def extract_citations(grounding_chunks: Iterable[Dict[str, Any]]) -> List[Citation]:
    citations: List[Citation] = []
    for chunk in grounding_chunks or []:
        if not isinstance(chunk, dict):
            continue
        source = chunk.get("web") or chunk.get("maps")
        if not isinstance(source, dict):
            continue
        uri = source.get("uri")
        title = source.get("title")
        if uri and title:
            citations.append(Citation(uri=uri, title=title))
    return citations


def analysis_error_place() -> Place:
    return Place(
        name=ANALYSIS_ERROR_NAME,
        address="N/A",
        description=ANALYSIS_ERROR_DESCRIPTION,
    )


class GenerativeSearchProvider(PlaceProvider):
    name = "gemini"

    def __init__(
        self,
        client: BaseGeminiClient,
        max_attempts: int = config.RETRY_MAX_ATTEMPTS,
        base_delay: float = config.RETRY_BASE_DELAY_SECONDS,
        thinking_budget: int = config.GEMINI_THINKING_BUDGET,
        fast_thinking_budget: int = config.GEMINI_FAST_THINKING_BUDGET,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.thinking_budget = thinking_budget
        self.fast_thinking_budget = fast_thinking_budget
        self.sleep = sleep

    def search(self, request: SearchRequest) -> ProviderResult:
        prompt = build_search_prompt(request.categories, request.radius_km, request.location)
        budget = self.thinking_budget if request.thinking_mode else self.fast_thinking_budget

        attempts = []

        def call():
            attempts.append(1)
            return self.client.generate_content(prompt, location=request.location, thinking_budget=budget)

        try:
            response = with_retry(
                call,
                max_attempts=self.max_attempts,
                base_delay=self.base_delay,
                sleep=self.sleep,
                label="Gemini generateContent",
            )
        except GeminiApiError as exc:
            raise GeminiApiError(
                f"Gemini API Error: {exc}", exc.status_code, exc.status, auth_error=exc.is_auth_error
            ) from exc

        counts = {"gemini_generate": len(attempts)}
        citations = extract_citations(response.grounding_chunks)
        payload = extract_json_payload(response.text)
        places = parse_places_payload(payload) if payload is not None else None
        if places is None:
            if response.text.strip():
                logger.error("Gemini returned %s chars of unusable output", len(response.text))
                return ProviderResult(
                    places=[analysis_error_place()], citations=citations, malformed=True, request_counts=counts
                )
            return ProviderResult(citations=citations, request_counts=counts)

        logger.info("Gemini found %s establishments with coordinates", len(places))
        return ProviderResult(places=places, citations=citations, request_counts=counts)
