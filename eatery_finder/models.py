"""Domain types shared by the providers and the aggregation pipeline."""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .geo import is_valid_coordinate

_RATING_PREFIX_RE = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+))")


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def is_valid(self) -> bool:
        return is_valid_coordinate(self.latitude, self.longitude)

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class MenuItem:
    name: str
    price: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name}
        for key in ("price", "description", "category"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out


@dataclass
class Place:
    """One physical establishment, possibly fused from several sources.

    ``menu_highlights`` is the deprecated flat menu; display code should use
    ``menu`` whenever it is non-empty. ``place_types`` only feeds the category
    filter and is left out of ``to_dict``.
    """

    name: str
    address: str
    description: str = ""
    provider_id: Optional[str] = None
    location: Optional[Coordinate] = None
    rating: Optional[str] = None
    price_level: Optional[int] = None
    opening_hours: Optional[List[str]] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    menu: List[MenuItem] = field(default_factory=list)
    menu_highlights: List[str] = field(default_factory=list)
    platforms: List[str] = field(default_factory=list)
    platform_urls: Dict[str, str] = field(default_factory=dict)
    place_types: Optional[List[str]] = None
    photos: Optional[List[str]] = None

    def rating_value(self) -> float:
        if not self.rating:
            return 0.0
        head = str(self.rating).split("/", 1)[0]
        match = _RATING_PREFIX_RE.match(head)
        if not match:
            return 0.0
        try:
            return float(match.group(1))
        except ValueError:
            return 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "description": self.description,
            "provider_id": self.provider_id,
            "latitude": self.location.latitude if self.location else None,
            "longitude": self.location.longitude if self.location else None,
            "rating": self.rating,
            "price_level": self.price_level,
            "opening_hours": list(self.opening_hours) if self.opening_hours is not None else None,
            "phone": self.phone,
            "email": self.email,
            "website": self.website,
            "menu": [item.to_dict() for item in self.menu],
            "menu_highlights": list(self.menu_highlights),
            "platforms": list(self.platforms),
            "platform_urls": dict(self.platform_urls),
            "photos": list(self.photos) if self.photos is not None else None,
        }


@dataclass(frozen=True)
class Citation:
    uri: str
    title: str

    def to_dict(self) -> Dict[str, str]:
        return {"uri": self.uri, "title": self.title}


@dataclass(frozen=True)
class SearchRequest:
    categories: List[str]
    radius_km: float
    location: Coordinate
    thinking_mode: bool = False

    def validate(self) -> None:
        if not self.categories or not any((c or "").strip() for c in self.categories):
            raise ValueError("At least one category is required")
        try:
            radius = float(self.radius_km)
        except (TypeError, ValueError):
            raise ValueError(f"radius_km must be a number, got {self.radius_km!r}") from None
        if not math.isfinite(radius) or radius <= 0:
            raise ValueError(f"radius_km must be a positive finite number, got {self.radius_km!r}")
        if self.location is None or not self.location.is_valid():
            raise ValueError(f"Location is out of range: {self.location!r}")

    @property
    def query_text(self) -> str:
        return " or ".join(self.categories)


@dataclass
class ProviderResult:
    places: List[Place] = field(default_factory=list)
    citations: List[Citation] = field(default_factory=list)
    malformed: bool = False
    request_counts: Dict[str, int] = field(default_factory=dict)


@dataclass
class SearchResult:
    places: List[Place] = field(default_factory=list)
    citations: List[Citation] = field(default_factory=list)
    notices: List[str] = field(default_factory=list)
    enrichment: Dict[str, int] = field(default_factory=dict)
    request_counts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "places": [p.to_dict() for p in self.places],
            "citations": [c.to_dict() for c in self.citations],
            "notices": list(self.notices),
            "enrichment": dict(self.enrichment),
            "requests": dict(self.request_counts),
        }
