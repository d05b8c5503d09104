"""
Shared fixtures: small synthetic corpora and geolocation logs.
"""

from __future__ import annotations

from typing import Callable

import pytest

from toporesolver.text import Corpus, Document, Sentence, Token, Toponym
from toporesolver.topo import Coordinate, Location, PointRegion, RectRegion


def point(loc_id: str, lat: float, lng: float, name: str | None = None, population: int = 0) -> Location:
    return Location(loc_id, name or loc_id, PointRegion(Coordinate.from_degrees(lat, lng)), population)


SPRINGFIELD = [
    point("spf-il", 39.80, -89.64, "Springfield"),
    point("spf-ma", 42.10, -72.59, "Springfield"),
    point("spf-mo", 37.21, -93.29, "Springfield"),
]
CAIRO = [
    point("cai-eg", 30.04, 31.24, "Cairo"),
    point("cai-il", 37.01, -89.18, "Cairo"),
]


@pytest.fixture
def make_location() -> Callable[..., Location]:
    return point


@pytest.fixture
def springfield_corpus() -> Corpus:
    """Two documents, each: Springfield, Springfield, Cairo."""
    docs = []
    for doc_id in ("d1", "d2"):
        tokens = [
            Token("Near"), Toponym("Springfield", SPRINGFIELD),
            Token("and"), Toponym("Springfield", SPRINGFIELD),
            Token("lies"), Toponym("Cairo", CAIRO),
        ]
        docs.append(Document(doc_id, [Sentence(tokens)]))
    return Corpus(docs)


@pytest.fixture
def paris_candidates() -> list[Location]:
    return [
        point("paris-fr", 48.85, 2.35, "Paris"),
        point("paris-near", 48.0, 2.0, "Paris"),
        point("paris-tx", 33.66, -95.56, "Paris"),
    ]


@pytest.fixture
def paris_corpora(paris_candidates) -> Callable[[int], tuple[Corpus, Corpus]]:
    """Gold and predicted copies of "I went to Paris France" with a given prediction."""

    def build(selected_idx: int, gold_idx: int = 0) -> tuple[Corpus, Corpus]:
        def corpus(toponym: Toponym) -> Corpus:
            tokens = [Token("I"), Token("went"), Token("to"), toponym, Token("France")]
            return Corpus([Document("doc1", [Sentence(tokens)])])

        gold = corpus(Toponym("Paris", paris_candidates, gold_idx=gold_idx))
        pred = corpus(Toponym("Paris", paris_candidates, selected_idx=selected_idx))
        return gold, pred

    return build


LOG_TEXT = """\
# Processing evaluation file 1
#   Document eval/d1 at (40.0,-90.0):
#   Predicted cell (at rank 1, neg-score 0.5): KdTreeCell(#3, 35.0,-95.0:45.0,-85.0, ...)
#   Predicted cell (at rank 2, neg-score 1.5): KdTreeCell(#7, 25.0,25.0:35.0,35.0, ...)
#   #1 close neighbor: (39.5,-89.5); at distance 12.0 km
#   Distance 80.0 km to predicted cell center at (39.9,-89.9)
#   Average distance from true to predicted center: 80.0 km
# Processing evaluation file 2
#   Document eval/d2 at (30.0,31.0):
#   Predicted cell (at rank 1, kl-div 0.2): GeoCell((25.0,25.0)-(35.0,35.0), ...)
#   Distance 10.0 km to predicted cell central point at (30.1,31.1)
#   Average distance from true to predicted center: 10.0 km
"""


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "geolocate.log"
    path.write_text(LOG_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def rect() -> Callable[..., RectRegion]:
    return RectRegion.from_degrees
