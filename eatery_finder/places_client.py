"""Google Places client (Text Search + Place Details) and response mapping."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import requests

from . import config
from .http import HttpClient, RequestMetrics
from .models import Coordinate, Place, ProviderResult, SearchRequest
from .providers import PlaceProvider

logger = logging.getLogger(__name__)


class PlacesClient:
    def __init__(
        self,
        http_client: HttpClient,
        api_key: Optional[str],
        max_results: int = config.PLACES_MAX_RESULTS,
        detail_workers: int = config.PLACES_DETAIL_WORKERS,
        max_photos: int = config.PLACES_MAX_PHOTOS,
        metrics: Optional[RequestMetrics] = None,
    ) -> None:
        self.http = http_client
        self.api_key = api_key
        # details are fetched per result, so this caps cost as well as output
        self.max_results = max(0, min(int(max_results), config.PLACES_MAX_RESULTS))
        self.detail_workers = max(1, int(detail_workers))
        self.max_photos = max_photos
        self.metrics = metrics or RequestMetrics()

    def search_nearby(self, location: Coordinate, query: str, radius_m: int = 5000) -> List[Place]:
        if not self.api_key:
            logger.warning("Google Places API key not set, skipping Places search")
            return []

        params = {
            "query": query,
            "location": f"{location.latitude},{location.longitude}",
            "radius": str(int(radius_m)),
            "key": self.api_key,
        }
        try:
            self.metrics.inc_network("search")
            response = self.http.get_json(config.PLACES_TEXT_SEARCH_URL, params)
        except (requests.RequestException, ValueError) as exc:
            logger.error("Error fetching Google Places data: %s", _redact(str(exc), self.api_key))
            return []

        status = response.get("status")
        if status not in config.PLACES_OK_STATUSES:
            logger.error("Google Places API error: %s", status)
            return []

        results = [r for r in response.get("results") or [] if isinstance(r, dict)][: self.max_results]
        if not results:
            return []

        with ThreadPoolExecutor(max_workers=min(self.detail_workers, len(results))) as pool:
            details = list(pool.map(self._fetch_details_safe, results))

        places: List[Place] = []
        for raw, detail in zip(results, details):
            try:
                place = parse_place_result(raw, detail, api_key=self.api_key, max_photos=self.max_photos)
            except (TypeError, ValueError, AttributeError) as exc:
                logger.warning("Skipping malformed Places result %s: %s", raw.get("place_id"), exc)
                continue
            if place is not None:
                places.append(place)
        logger.info("Google Places returned %s candidates for %r", len(places), query)
        return places

    def fetch_details(self, place_id: str) -> Optional[Dict[str, Any]]:
        params = {
            "place_id": place_id,
            "fields": config.PLACES_DETAILS_FIELDS,
            "key": self.api_key,
        }
        self.metrics.inc_network("details")
        response = self.http.get_json(config.PLACES_DETAILS_URL, params)
        if response.get("status") != "OK":
            logger.debug("Details status %s for %s", response.get("status"), place_id)
            return None
        return response.get("result") or {}

    def _fetch_details_safe(self, raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        place_id = raw.get("place_id")
        if not place_id:
            return None
        try:
            return self.fetch_details(place_id)
        except (requests.RequestException, ValueError) as exc:
            self.metrics.inc_failed_details()
            logger.warning(
                "Failed to get details for place %s: %s", place_id, _redact(str(exc), self.api_key)
            )
            return None


class PlacesSearchProvider(PlaceProvider):
    name = "google_places"

    def __init__(self, client: PlacesClient) -> None:
        self.client = client

    def search(self, request: SearchRequest) -> ProviderResult:
        radius_m = int(round(float(request.radius_km) * 1000))
        before = self.client.metrics.snapshot()
        places = self.client.search_nearby(request.location, request.query_text, radius_m)
        after = self.client.metrics.snapshot()
        counts = {key: after[key] - before.get(key, 0) for key in after}
        return ProviderResult(places=places, request_counts=counts)


def _redact(text: str, api_key: Optional[str]) -> str:
    if not text or not api_key:
        return text
    return text.replace(api_key, "[REDACTED]")


def build_photo_url(photo_reference: str, api_key: str, max_width: int = config.PLACES_PHOTO_MAX_WIDTH) -> str:
    query = urlencode({"maxwidth": max_width, "photo_reference": photo_reference, "key": api_key})
    return f"{config.PLACES_PHOTO_URL}?{query}"


def format_rating(rating: Any, user_ratings_total: Any) -> Optional[str]:
    if rating is None:
        return None
    try:
        value = float(rating)
    except (TypeError, ValueError):
        return None
    if not value:
        return None
    try:
        count = int(user_ratings_total or 0)
    except (TypeError, ValueError):
        count = 0
    return f"{value:.1f}/5 ({count} reviews)"


# Adapter/mapper for Places response fields

def parse_place_result(
    raw: Dict[str, Any],
    details: Optional[Dict[str, Any]] = None,
    api_key: Optional[str] = None,
    max_photos: int = config.PLACES_MAX_PHOTOS,
) -> Optional[Place]:
    name = raw.get("name")
    if not name:
        return None
    details = details or {}
    address = raw.get("formatted_address") or ""

    location = None
    geometry_loc = (raw.get("geometry") or {}).get("location") or {}
    lat = geometry_loc.get("lat")
    lng = geometry_loc.get("lng")
    if lat is not None and lng is not None:
        location = Coordinate(latitude=float(lat), longitude=float(lng))

    photos: List[str] = []
    if api_key:
        for photo in (raw.get("photos") or [])[:max_photos]:
            ref = photo.get("photo_reference")
            if ref:
                photos.append(build_photo_url(ref, api_key))

    hours = (details.get("opening_hours") or {}).get("weekday_text") or (
        (raw.get("opening_hours") or {}).get("weekday_text")
    )
    price_level = raw.get("price_level")

    return Place(
        name=name,
        address=address,
        description=f"Restaurant located at {address}",
        provider_id=raw.get("place_id"),
        location=location,
        rating=format_rating(raw.get("rating"), raw.get("user_ratings_total")),
        price_level=int(price_level) if price_level is not None else None,
        opening_hours=list(hours) if hours else None,
        phone=details.get("formatted_phone_number") or raw.get("formatted_phone_number"),
        email=details.get("email"),
        website=details.get("website") or raw.get("website"),
        place_types=list(details.get("types") or raw.get("types") or []),
        photos=photos or None,
    )
