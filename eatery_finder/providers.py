"""Common provider interface used by the aggregation pipeline."""
from __future__ import annotations

from .models import ProviderResult, SearchRequest


class PlaceProvider:
    name = "provider"

    def search(self, request: SearchRequest) -> ProviderResult:
        raise NotImplementedError


class NoopProvider(PlaceProvider):
    """Stands in for a provider whose credentials are not configured."""

    def __init__(self, name: str = "noop") -> None:
        self.name = name

    def search(self, request: SearchRequest) -> ProviderResult:
        return ProviderResult()
