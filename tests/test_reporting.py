import json

import pytest

from eatery_finder.models import Citation, Coordinate, Place, SearchResult
from eatery_finder.reporting import (
    atomic_write_text,
    render_summary,
    search_result_payload,
    write_search_result_json,
)

CENTER = Coordinate(10.0, 106.0)


def _result():
    return SearchResult(
        places=[
            Place(name="Sunrise Bakery", address="7 Nguyen Hue", location=Coordinate(10.003, 106.002), rating="4.8/5"),
            Place(name="Blue Sky Cafe", address="12 Le Loi", location=Coordinate(10.005, 106.0), platforms=["GrabFood"]),
        ],
        citations=[Citation("https://example.test", "Example")],
        notices=["Analysis Error: malformed"],
        enrichment={"not_applicable": 4},
        request_counts={"places_search": 1, "places_details": 2},
    )


def test_atomic_write_text(tmp_path):
    path = tmp_path / "atomic.txt"

    atomic_write_text(str(path), "first")
    assert path.read_text(encoding="utf-8") == "first"

    atomic_write_text(str(path), "second")
    assert path.read_text(encoding="utf-8") == "second"

    leftovers = [p for p in tmp_path.iterdir() if p.name != "atomic.txt"]
    assert not leftovers


def test_atomic_write_text_cleans_up_when_replace_fails(tmp_path):
    target = tmp_path / "results.json"
    target.mkdir()
    (target / "keep").write_text("x", encoding="utf-8")

    with pytest.raises(OSError):
        atomic_write_text(str(target), "{}")

    assert sorted(p.name for p in tmp_path.iterdir()) == ["results.json"]


def test_write_search_result_json(tmp_path):
    payload = search_result_payload(_result(), center=CENTER, radius_km=2.0, categories=["Coffee"])
    path = tmp_path / "results.json"

    write_search_result_json(str(path), payload)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["request"] == {
        "categories": ["Coffee"],
        "radius_km": 2.0,
        "center": {"latitude": 10.0, "longitude": 106.0},
    }
    assert [p["name"] for p in data["places"]] == ["Sunrise Bakery", "Blue Sky Cafe"]
    assert 0 < data["places"][0]["distance_km"] < 1
    assert data["citations"][0]["uri"] == "https://example.test"


def test_render_summary_lines():
    lines = render_summary(_result(), center=CENTER, top_n=1)
    assert lines[0] == "Places found: 2"
    assert lines[1].startswith("1. Sunrise Bakery | ")
    assert "rating=4.8/5" in lines[1]
    assert "... 1 more" in lines
    assert "- Example: https://example.test" in lines
    assert "- Analysis Error: malformed" in lines
    assert "Enrichment: not_applicable=4" in lines
    assert "Requests (network): places_details=2, places_search=1" in lines
