import pytest

from eatery_finder.models import Citation, Coordinate, MenuItem, Place, SearchRequest, SearchResult


@pytest.mark.parametrize(
    "rating, expected",
    [
        ("4.5/5", 4.5),
        ("4.6/5 (120 reviews)", 4.6),
        ("4", 4.0),
        ("4.2 stars", 4.2),
        (".5/5", 0.5),
        ("N/A", 0.0),
        ("", 0.0),
        (None, 0.0),
    ],
)
def test_rating_value(rating, expected):
    assert Place(name="x", address="y", rating=rating).rating_value() == pytest.approx(expected)


def test_place_to_dict_omits_place_types():
    place = Place(
        name="Cafe",
        address="1 Street",
        location=Coordinate(10.0, 106.0),
        menu=[MenuItem(name="Latte", price="40k")],
        place_types=["cafe"],
    )
    data = place.to_dict()
    assert data["latitude"] == 10.0 and data["longitude"] == 106.0
    assert data["menu"] == [{"name": "Latte", "price": "40k"}]
    assert "place_types" not in data


def test_search_request_validation():
    SearchRequest(categories=["Coffee"], radius_km=0.5, location=Coordinate(0, 0)).validate()

    with pytest.raises(ValueError):
        SearchRequest(categories=[], radius_km=1, location=Coordinate(0, 0)).validate()
    with pytest.raises(ValueError):
        SearchRequest(categories=["Coffee"], radius_km="far", location=Coordinate(0, 0)).validate()
    with pytest.raises(ValueError):
        SearchRequest(categories=["Coffee"], radius_km=float("nan"), location=Coordinate(0, 0)).validate()
    with pytest.raises(ValueError, match="finite"):
        SearchRequest(categories=["Coffee"], radius_km=float("inf"), location=Coordinate(0, 0)).validate()
    with pytest.raises(ValueError):
        SearchRequest(categories=["Coffee"], radius_km=1, location=Coordinate(-90.5, 0)).validate()


def test_search_result_to_dict():
    result = SearchResult(
        places=[Place(name="A", address="B")],
        citations=[Citation("https://a.test", "A")],
        notices=["note"],
        enrichment={"not_applicable": 2},
    )
    data = result.to_dict()
    assert data["citations"] == [{"uri": "https://a.test", "title": "A"}]
    assert data["notices"] == ["note"]
    assert data["places"][0]["latitude"] is None
