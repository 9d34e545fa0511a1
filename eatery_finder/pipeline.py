"""Pipeline orchestration: fan out, filter, merge, enrich, rank."""
from __future__ import annotations

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from . import config
from .categories import matches_category
from .config import Settings
from .enrichment import DeliveryPlatformEnricher, EnrichmentStatus, default_enrichers
from .gemini_client import GeminiApiError, GeminiClient
from .generative_search import GenerativeSearchProvider
from .geo import distance_km, within_radius
from .http import HttpClient
from .models import Citation, Coordinate, Place, ProviderResult, SearchRequest, SearchResult
from .places_client import PlacesClient, PlacesSearchProvider
from .providers import NoopProvider, PlaceProvider

logger = logging.getLogger(__name__)


class SearchError(RuntimeError):
    """The single labelled error surfaced to callers of search()."""


def filter_candidates(places: Iterable[Place], request: SearchRequest) -> List[Place]:
    kept: List[Place] = []
    for place in places:
        if place.location is None or not place.location.is_valid():
            logger.debug("Dropping %s: no usable coordinates", place.name)
            continue
        dist = distance_km(request.location, place.location)
        if dist > request.radius_km:
            logger.debug("Dropping %s: %.2fkm > %.2fkm", place.name, dist, request.radius_km)
            continue
        if not matches_category(place.place_types, request.categories):
            continue
        kept.append(place)
    return kept


def normalize_name(name: Optional[str]) -> str:
    return " ".join((name or "").casefold().split())


def names_match(a: str, b: str) -> bool:
    na = normalize_name(a)
    nb = normalize_name(b)
    if not na or not nb:
        return False
    return na in nb or nb in na


def find_counterpart(
    place: Place,
    candidates: Sequence[Place],
    max_distance_km: Optional[float] = config.MERGE_MAX_DISTANCE_KM,
) -> Optional[Place]:
    """First candidate whose name contains, or is contained by, the place name.

    Same-named branches further apart than ``max_distance_km`` are not
    merged. Pass None to match on names alone.
    """
    for candidate in candidates:
        if not names_match(place.name, candidate.name):
            continue
        if (
            max_distance_km is not None
            and place.location is not None
            and candidate.location is not None
            and distance_km(place.location, candidate.location) > max_distance_km
        ):
            logger.debug("Name match %r/%r rejected: too far apart", place.name, candidate.name)
            continue
        return candidate
    return None


def merge_places(structured: Place, generative: Place) -> Place:
    """Structured identity, location and contact; generative narrative and menu."""
    return dataclasses.replace(
        structured,
        description=generative.description or structured.description,
        email=structured.email or generative.email,
        menu=list(generative.menu),
        menu_highlights=list(generative.menu_highlights),
        platforms=list(structured.platforms),
    )


def is_listed(candidate: Place, existing: Iterable[Place]) -> bool:
    name = (candidate.name or "").lower()
    address = (candidate.address or "").lower()
    for place in existing:
        if (place.name or "").lower() == name:
            return True
        if address and place.address and address in place.address.lower():
            return True
    return False


def sort_by_rating(places: Iterable[Place]) -> List[Place]:
    return sorted(places, key=lambda p: p.rating_value(), reverse=True)


def union_citations(*groups: Iterable[Citation]) -> List[Citation]:
    out: List[Citation] = []
    seen = set()
    for group in groups:
        for citation in group:
            key = (citation.uri, citation.title)
            if key in seen:
                continue
            seen.add(key)
            out.append(citation)
    return out


def enrich_place(place: Place, enrichers: Sequence[DeliveryPlatformEnricher]) -> Tuple[Place, List[str]]:
    statuses: List[str] = []
    for enricher in enrichers:
        try:
            result = enricher.enrich(place)
        except Exception as exc:
            logger.warning("Failed to enrich %s with %s: %s", place.name, type(enricher).__name__, exc)
            statuses.append(EnrichmentStatus.UNCHANGED.value)
            continue
        place = result.place
        statuses.append(result.status.value)
    return place, statuses


def _enrich_all(
    places: List[Place],
    enrichers: Sequence[DeliveryPlatformEnricher],
    counts: Dict[str, int],
    max_workers: int,
) -> List[Place]:
    if not places or not enrichers:
        return list(places)
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(places)))) as pool:
        results = list(pool.map(lambda p: enrich_place(p, enrichers), places))
    out: List[Place] = []
    for place, statuses in results:
        out.append(place)
        for status in statuses:
            counts[status] = counts.get(status, 0) + 1
    return out


def _query_generative(provider: PlaceProvider, request: SearchRequest) -> ProviderResult:
    try:
        return provider.search(request)
    except GeminiApiError as exc:
        if exc.is_auth_error:
            raise
        logger.warning("Gemini API failed, continuing with Places data only: %s", exc)
    except Exception as exc:
        logger.warning("Generative search failed, continuing with Places data only: %s", exc)
    return ProviderResult()


def find_eateries(
    request: SearchRequest,
    structured: PlaceProvider,
    generative: PlaceProvider,
    enrichers: Optional[Sequence[DeliveryPlatformEnricher]] = None,
    concurrent: bool = True,
    max_workers: int = config.ENRICHMENT_MAX_WORKERS,
    merge_max_distance_km: Optional[float] = config.MERGE_MAX_DISTANCE_KM,
) -> SearchResult:
    if enrichers is None:
        enrichers = default_enrichers()

    if concurrent:
        with ThreadPoolExecutor(max_workers=2) as pool:
            structured_future = pool.submit(structured.search, request)
            generative_future = pool.submit(_query_generative, generative, request)
            structured_result = structured_future.result()
            generative_result = generative_future.result()
    else:
        structured_result = structured.search(request)
        generative_result = _query_generative(generative, request)

    notices: List[str] = []
    if generative_result.malformed:
        notices.extend(f"{p.name}: {p.description}" for p in generative_result.places)

    structured_places = filter_candidates(structured_result.places, request)
    generative_places = filter_candidates(generative_result.places, request)
    logger.info(
        "Candidates within %.2fkm: structured %s/%s, generative %s/%s",
        request.radius_km,
        len(structured_places),
        len(structured_result.places),
        len(generative_places),
        len(generative_result.places),
    )

    merged: List[Place] = []
    consumed: List[Place] = []
    for place in structured_places:
        counterpart = find_counterpart(place, generative_places, merge_max_distance_km)
        if counterpart is None:
            merged.append(place)
            continue
        consumed.append(counterpart)
        merged.append(merge_places(place, counterpart))

    counts: Dict[str, int] = {}
    merged = _enrich_all(merged, enrichers, counts, max_workers)

    extras: List[Place] = []
    for place in generative_places:
        if any(place is c for c in consumed) or is_listed(place, merged + extras):
            continue
        extras.append(place)
    merged.extend(_enrich_all(extras, enrichers, counts, max_workers))

    final = [p for p in merged if within_radius(request.location, p.location, request.radius_km)]
    if len(final) != len(merged):
        logger.warning("Final radius check dropped %s places", len(merged) - len(final))

    citations = union_citations(structured_result.citations, generative_result.citations)
    request_counts = dict(structured_result.request_counts)
    for key, value in generative_result.request_counts.items():
        request_counts[key] = request_counts.get(key, 0) + value
    return SearchResult(
        places=sort_by_rating(final),
        citations=citations,
        notices=notices,
        enrichment=counts,
        request_counts=request_counts,
    )


def build_providers(settings: Settings) -> Tuple[PlaceProvider, PlaceProvider]:
    if settings.google_places_api_key:
        http_client = HttpClient(
            timeout=config.HTTP_TIMEOUT_SECONDS,
            retry_max=config.HTTP_RETRY_MAX,
            backoff_base=config.HTTP_BACKOFF_BASE,
            backoff_max=config.HTTP_BACKOFF_MAX,
        )
        structured: PlaceProvider = PlacesSearchProvider(
            PlacesClient(http_client, settings.google_places_api_key)
        )
    else:
        logger.warning("Google Places API key not set, structured search disabled")
        structured = NoopProvider("google_places")
    generative = GenerativeSearchProvider(GeminiClient.from_settings(settings))
    return structured, generative


def search(
    categories: Iterable[str],
    radius_km: float,
    location: Coordinate,
    thinking_mode: bool = False,
    settings: Optional[Settings] = None,
    structured: Optional[PlaceProvider] = None,
    generative: Optional[PlaceProvider] = None,
    enrichers: Optional[Sequence[DeliveryPlatformEnricher]] = None,
    concurrent: bool = True,
) -> SearchResult:
    """Validate a search, run the pipeline, and label any failure as SearchError."""
    unique: List[str] = []
    for category in categories or []:
        category = (category or "").strip()
        if category and category not in unique:
            unique.append(category)
    request = SearchRequest(
        categories=unique,
        radius_km=radius_km,
        location=location,
        thinking_mode=bool(thinking_mode),
    )
    try:
        request.validate()
    except ValueError as exc:
        raise SearchError(f"Invalid search request: {exc}") from exc

    if structured is None or generative is None:
        default_structured, default_generative = build_providers(settings or Settings.from_env())
        structured = structured or default_structured
        generative = generative or default_generative

    try:
        return find_eateries(
            request,
            structured,
            generative,
            enrichers=enrichers,
            concurrent=concurrent,
        )
    except GeminiApiError as exc:
        message = str(exc)
        if not message.startswith("Gemini API Error"):
            message = f"Gemini API Error: {message}"
        raise SearchError(message) from exc
    except Exception as exc:
        logger.exception("Search failed")
        raise SearchError(f"Search failed: {exc}") from exc
