"""Delivery-platform enrichment (GrabFood, ShopeeFood).

Neither platform has a public API. The default lookups only build a search
URL and report the place as unavailable, so enrichment leaves places
unchanged until a real lookup is plugged in. Enrichment never raises: a
failing lookup yields an UNCHANGED result carrying the error text.
"""
from __future__ import annotations

import dataclasses
import enum
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional
from urllib.parse import quote

from .models import Place

logger = logging.getLogger(__name__)

GRABFOOD_SEARCH_URL = "https://food.grab.com/vn/en/search?q={query}"
SHOPEEFOOD_SEARCH_URL = "https://shopee.vn/food/search?q={query}"


@dataclass(frozen=True)
class PlatformLookup:
    available: bool
    url: Optional[str] = None
    platform_tag: Optional[str] = None


class EnrichmentStatus(str, enum.Enum):
    ENRICHED = "enriched"
    UNCHANGED = "unchanged"
    NOT_APPLICABLE = "not_applicable"


@dataclass(frozen=True)
class EnrichmentResult:
    place: Place
    status: EnrichmentStatus
    error: Optional[str] = None


Lookup = Callable[[str, str], PlatformLookup]


class DeliveryPlatformEnricher:
    def __init__(
        self,
        platform: str,
        search_url_template: str,
        query_suffix: str,
        lookup: Optional[Lookup] = None,
    ) -> None:
        self.platform = platform
        self.search_url_template = search_url_template
        self.query_suffix = query_suffix
        self._lookup = lookup or self.stub_lookup

    def search_url(self, name: str, address: str) -> str:
        query = " ".join(p for p in (name, address, self.query_suffix) if p)
        return self.search_url_template.format(query=quote(query))

    def stub_lookup(self, name: str, address: str) -> PlatformLookup:
        # TODO: replace with a partner API or scraping-service lookup
        return PlatformLookup(available=False, url=self.search_url(name, address))

    def lookup(self, name: str, address: str) -> PlatformLookup:
        return self._lookup(name, address)

    def enrich(self, place: Place) -> EnrichmentResult:
        try:
            info = self.lookup(place.name, place.address)
        except Exception as exc:
            logger.warning("Failed to enrich %s with %s: %s", place.name, self.platform, exc)
            return EnrichmentResult(place=place, status=EnrichmentStatus.UNCHANGED, error=str(exc))

        if not info.available or not info.url:
            return EnrichmentResult(place=place, status=EnrichmentStatus.NOT_APPLICABLE)

        tag = info.platform_tag or self.platform
        platforms = list(place.platforms)
        if tag not in platforms:
            platforms.append(tag)
        platform_urls = dict(place.platform_urls)
        platform_urls[tag] = info.url
        enriched = dataclasses.replace(place, platforms=platforms, platform_urls=platform_urls)
        return EnrichmentResult(place=enriched, status=EnrichmentStatus.ENRICHED)


class GrabFoodEnricher(DeliveryPlatformEnricher):
    def __init__(self, lookup: Optional[Lookup] = None) -> None:
        super().__init__("GrabFood", GRABFOOD_SEARCH_URL, "grab food vietnam", lookup=lookup)


class ShopeeFoodEnricher(DeliveryPlatformEnricher):
    def __init__(self, lookup: Optional[Lookup] = None) -> None:
        super().__init__("ShopeeFood", SHOPEEFOOD_SEARCH_URL, "shopee food vietnam", lookup=lookup)


def default_enrichers() -> List[DeliveryPlatformEnricher]:
    return [GrabFoodEnricher(), ShopeeFoodEnricher()]
