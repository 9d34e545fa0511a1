import json
from pathlib import Path

import pytest


def load_fixture(name):
    path = Path(__file__).parent / "fixtures" / name
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def places_fixture():
    return load_fixture("places_text_search.json")


@pytest.fixture
def gemini_fixture():
    return load_fixture("gemini_generate_content.json")
