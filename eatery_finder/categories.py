"""Category labels mapped to Google Places type tokens."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Set

logger = logging.getLogger(__name__)

FALLBACK_TYPE = "establishment"

CATEGORY_TYPES: Dict[str, List[str]] = {
    "Coffee": ["cafe", "coffee_shop"],
    "Restaurant": ["restaurant", "food", "meal_delivery", "meal_takeaway"],
    "Bistro": ["restaurant", "food"],
    "Street Food": ["food", "meal_takeaway", "street_food"],
    "Bakery": ["bakery", "food"],
    "Resort/Hotel": ["lodging", "resort", "hotel"],
}

CATEGORY_DESCRIPTIONS: Dict[str, str] = {
    "Coffee": "coffee shops, cafes, coffee houses",
    "Restaurant": "restaurants, dining establishments",
    "Bistro": "bistros, casual dining restaurants",
    "Street Food": "street food vendors, food stalls, street food establishments",
    "Bakery": "bakeries, pastry shops",
    "Resort/Hotel": "resorts, hotels, lodging establishments, accommodation facilities",
}


def type_tokens_for(category: str) -> Set[str]:
    return set(CATEGORY_TYPES.get(category, [FALLBACK_TYPE]))


def requested_type_tokens(categories: Iterable[str]) -> Set[str]:
    tokens: Set[str] = set()
    for category in categories:
        tokens.update(type_tokens_for(category))
    return tokens


def matches_category(place_types: Optional[Iterable[str]], categories: Iterable[str]) -> bool:
    """Permissive category check.

    A candidate without type tokens is kept: the text query already targeted
    the requested categories.
    """
    place_types = list(place_types or [])
    if not place_types:
        return True
    categories = list(categories)
    valid = requested_type_tokens(categories)
    if any(t in valid for t in place_types):
        return True
    logger.debug(
        "Place types [%s] don't match categories [%s]",
        ", ".join(place_types),
        ", ".join(categories),
    )
    return False


def describe_categories(categories: Iterable[str]) -> str:
    return " or ".join(CATEGORY_DESCRIPTIONS.get(c, c.lower()) for c in categories)
