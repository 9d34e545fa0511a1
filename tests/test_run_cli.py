import json

import pytest

import run
from eatery_finder.models import Coordinate, Place, SearchResult
from eatery_finder.pipeline import SearchError


@pytest.fixture(autouse=True)
def no_dotenv(monkeypatch):
    monkeypatch.setattr(run, "load_env", lambda *a, **k: None)


def test_resolve_center_from_maps_url():
    args = run.parse_args(
        ["--categories", "Coffee", "--radius-km", "2", "--maps-url", "https://www.google.com/maps/@10.77,106.70,15z"]
    )
    assert run.resolve_center(args) == Coordinate(10.77, 106.70)


def test_resolve_center_requires_coordinates():
    args = run.parse_args(["--categories", "Coffee", "--radius-km", "2", "--lat", "10.0"])
    with pytest.raises(ValueError):
        run.resolve_center(args)


def test_main_writes_results_and_prints_summary(tmp_path, monkeypatch, capsys):
    captured = {}

    def fake_search(categories, radius_km, location, thinking_mode=False, settings=None, concurrent=True):
        captured.update(categories=categories, radius_km=radius_km, thinking_mode=thinking_mode, concurrent=concurrent)
        return SearchResult(places=[Place(name="Cafe", address="1 St", location=Coordinate(10.001, 106.0))])

    monkeypatch.setattr(run, "search", fake_search)

    code = run.main(
        [
            "--categories",
            "Coffee, Bakery",
            "--radius-km",
            "2",
            "--lat",
            "10.0",
            "--lon",
            "106.0",
            "--thinking",
            "--sequential",
            "--out",
            str(tmp_path),
        ]
    )

    assert code == 0
    assert captured == {"categories": ["Coffee", "Bakery"], "radius_km": 2.0, "thinking_mode": True, "concurrent": False}
    data = json.loads((tmp_path / "results.json").read_text(encoding="utf-8"))
    assert data["places"][0]["name"] == "Cafe"
    assert "Places found: 1" in capsys.readouterr().out


def test_main_reports_search_error(monkeypatch, capsys):
    def failing_search(*args, **kwargs):
        raise SearchError("Gemini API Error: HTTP 403 PERMISSION_DENIED")

    monkeypatch.setattr(run, "search", failing_search)

    code = run.main(["--categories", "Coffee", "--radius-km", "2", "--lat", "10", "--lon", "106"])

    assert code == 2
    assert "Gemini API Error" in capsys.readouterr().err
