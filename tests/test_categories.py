from eatery_finder.categories import (
    describe_categories,
    matches_category,
    requested_type_tokens,
    type_tokens_for,
)


def test_type_tokens_for_known_and_unknown():
    assert type_tokens_for("Coffee") == {"cafe", "coffee_shop"}
    assert type_tokens_for("Resort/Hotel") == {"lodging", "resort", "hotel"}
    assert type_tokens_for("Karaoke") == {"establishment"}


def test_requested_tokens_are_union():
    assert requested_type_tokens(["Coffee", "Bakery"]) == {"cafe", "coffee_shop", "bakery", "food"}


def test_matches_is_permissive_without_types():
    assert matches_category(None, ["Coffee"])
    assert matches_category([], ["Resort/Hotel"])


def test_matches_requires_intersection():
    assert matches_category(["cafe", "establishment"], ["Coffee"])
    assert not matches_category(["lodging"], ["Coffee"])
    assert matches_category(["lodging"], ["Coffee", "Resort/Hotel"])


def test_unknown_category_matches_generic_establishment():
    assert matches_category(["establishment"], ["Karaoke"])
    assert not matches_category(["cafe"], ["Karaoke"])


def test_describe_categories():
    text = describe_categories(["Coffee", "Night Market"])
    assert text == "coffee shops, cafes, coffee houses or night market"
