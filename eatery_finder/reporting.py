"""Output reporting helpers."""
from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from . import config
from .geo import distance_km
from .models import Coordinate, SearchResult


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def atomic_write_text(path: str, text: str) -> None:
    """Replace ``path`` in one step via a sibling temp file."""
    target_dir = os.path.dirname(os.path.abspath(path))
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=target_dir, prefix=".results.", suffix=".tmp", delete=False
    ) as tmp:
        tmp_path = tmp.name
        try:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        except OSError:
            tmp.close()
            os.unlink(tmp_path)
            raise
    try:
        os.replace(tmp_path, path)
    except OSError:
        os.unlink(tmp_path)
        raise


def search_result_payload(
    result: SearchResult,
    center: Optional[Coordinate] = None,
    radius_km: Optional[float] = None,
    categories: Optional[List[str]] = None,
) -> Dict[str, Any]:
    payload = result.to_dict()
    if center is not None:
        for row, place in zip(payload["places"], result.places):
            row["distance_km"] = round(distance_km(center, place.location), 3) if place.location else None
    payload["request"] = {
        "categories": list(categories or []),
        "radius_km": radius_km,
        "center": center.to_dict() if center is not None else None,
    }
    payload["generated_at"] = utc_now_iso()
    return payload


def write_search_result_json(path: str, payload: Dict[str, Any]) -> None:
    atomic_write_text(path, json.dumps(payload, ensure_ascii=False, indent=2))


def render_summary(
    result: SearchResult,
    center: Optional[Coordinate] = None,
    top_n: int = config.SUMMARY_TOP_N,
) -> List[str]:
    lines = [f"Places found: {len(result.places)}"]
    for idx, place in enumerate(result.places[:top_n], start=1):
        parts = [f"{idx}. {place.name}"]
        if center is not None and place.location is not None:
            parts.append(f"{distance_km(center, place.location):.2f}km")
        parts.append(f"rating={place.rating or '-'}")
        if place.platforms:
            parts.append("platforms=" + ",".join(place.platforms))
        if place.menu:
            parts.append(f"menu_items={len(place.menu)}")
        lines.append(" | ".join(parts))
        if place.address:
            lines.append(f"   {place.address}")
    if len(result.places) > top_n:
        lines.append(f"... {len(result.places) - top_n} more")

    if result.citations:
        lines.append("Sources:")
        for citation in result.citations:
            lines.append(f"- {citation.title}: {citation.uri}")
    if result.notices:
        lines.append("Notices:")
        for notice in result.notices:
            lines.append(f"- {notice}")
    if result.enrichment:
        stats = ", ".join(f"{k}={v}" for k, v in sorted(result.enrichment.items()))
        lines.append(f"Enrichment: {stats}")
    if result.request_counts:
        stats = ", ".join(f"{k}={v}" for k, v in sorted(result.request_counts.items()))
        lines.append(f"Requests (network): {stats}")
    return lines
