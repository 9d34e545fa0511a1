"""CLI entrypoint."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv as _load_dotenv

from eatery_finder import config
from eatery_finder.config import Settings
from eatery_finder.geo import parse_google_maps_url
from eatery_finder.models import Coordinate
from eatery_finder.pipeline import SearchError, search
from eatery_finder.reporting import (
    ensure_dir,
    render_summary,
    search_result_payload,
    write_search_result_json,
)

logger = logging.getLogger(__name__)


def _repo_root() -> Path:
    return Path(__file__).resolve().parent


def load_env(path: str = ".env", root_dir: Optional[Path] = None) -> None:
    """Optionally load a repo-root .env file without overriding real env vars."""
    root = Path(root_dir) if root_dir else _repo_root()
    env_path = (root / path).resolve()
    if not env_path.exists():
        return
    _load_dotenv(dotenv_path=env_path, override=False)


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Find nearby eateries from Google Places and Gemini")
    parser.add_argument(
        "--categories",
        type=str,
        required=True,
        help="Comma-separated categories, e.g. 'Coffee,Bakery'",
    )
    parser.add_argument("--radius-km", type=float, required=True)
    parser.add_argument("--lat", type=float, default=None)
    parser.add_argument("--lon", type=float, default=None)
    parser.add_argument("--maps-url", type=str, default=None, help="Google Maps link to use as the center")
    parser.add_argument("--thinking", action="store_true", help="Let Gemini think longer before answering")
    parser.add_argument("--sequential", action="store_true", help="Query providers one after another")
    parser.add_argument("--out", type=str, default=None, help="Directory for results.json")
    parser.add_argument("--json", action="store_true", help="Print the JSON payload instead of a summary")
    parser.add_argument("--top", type=int, default=config.SUMMARY_TOP_N)
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def resolve_center(args: argparse.Namespace) -> Coordinate:
    if args.maps_url:
        coords = parse_google_maps_url(args.maps_url)
        if coords is None:
            raise ValueError(f"Could not read coordinates from --maps-url: {args.maps_url}")
        return Coordinate(latitude=coords[0], longitude=coords[1])
    if args.lat is None or args.lon is None:
        raise ValueError("Provide --lat and --lon, or --maps-url")
    return Coordinate(latitude=args.lat, longitude=args.lon)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    load_env()

    try:
        center = resolve_center(args)
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    categories = _split_csv(args.categories)
    try:
        result = search(
            categories,
            args.radius_km,
            center,
            thinking_mode=args.thinking,
            settings=Settings.from_env(),
            concurrent=not args.sequential,
        )
    except SearchError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    payload = search_result_payload(result, center=center, radius_km=args.radius_km, categories=categories)
    if args.out:
        ensure_dir(args.out)
        out_path = os.path.join(args.out, "results.json")
        write_search_result_json(out_path, payload)
        logger.info("Wrote %s", out_path)

    if args.json:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        for line in render_summary(result, center=center, top_n=args.top):
            print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
