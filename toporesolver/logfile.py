"""
Parser for the log files written by a document-geolocation run.

Only `#`-prefixed lines are interpreted. Each one is classified into one of
the record kinds below; anything that matches none of the patterns is
ignored. A document's record is closed by its "Average distance" line.

Two historical formats exist for predicted-cell lines and both occur in
archived logs:

  new:  #   Predicted cell (at rank 1, neg-score 3.2): KdTreeCell(#12, 30.0,-100.0:35.0,-95.0, ...)
  old:  #   Predicted cell (at rank 1, kl-div 3.2): GeoCell((30.0,-100.0)-(35.0,-95.0), ...)

The remaining patterns are shared by both formats.
"""

from __future__ import annotations

import bz2
import gzip
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

import numpy as np

from toporesolver.topo import Coordinate, RectRegion

logger = logging.getLogger(__name__)

# ── Line patterns ─────────────────────────────────────────────────────
# These are matched against the whole line. Change them with care: each
# one has to accept lines from both log formats.

DOCUMENT_LINE_RE = re.compile(r".*Document (.*) at \(?(\S+?),(\S+?)\)?[: ].*")
PREDICTED_CELL_LINE_RE = re.compile(
    r".*  Predicted cell \(at rank ([0-9]+), (?:kl-div|neg-score) (\S+?)\): "
    r"[A-Za-z]+Cell\(#.*?, (\S+?),(\S+?):(\S+?),(\S+?),.*"
)
OLD_PREDICTED_CELL_LINE_RE = re.compile(
    r".*  Predicted cell \(at rank ([0-9]+), (?:kl-div|neg-score) (\S+?)\): "
    r"GeoCell\(\((\S+?),(\S+?)\)-\((\S+?),(\S+?)\).*"
)
NEIGHBOR_LINE_RE = re.compile(r".*  #([0-9]+) close neighbor: \(?(\S+?),(\S+?)\)?;.*")
PREDICTED_POINT_LINE_RE = re.compile(r".* to predicted cell (?:central point|center) at \((\S+?),(\S+?)\).*")
AVERAGE_DISTANCE_LINE_RE = re.compile(r".*  Average distance from .*")


# ── Line records ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class DocumentLine:
    doc_name: str
    true_coord: Coordinate


@dataclass(frozen=True)
class PredictedCellLine:
    rank: int
    score: float
    sw: Coordinate
    ne: Coordinate


@dataclass(frozen=True)
class NeighborLine:
    rank: int
    coord: Coordinate


@dataclass(frozen=True)
class PredictedPointLine:
    coord: Coordinate


@dataclass(frozen=True)
class AverageDistanceLine:
    pass


LogLine = Union[DocumentLine, PredictedCellLine, NeighborLine, PredictedPointLine, AverageDistanceLine]


def _coord(lat: str, lng: str) -> Coordinate:
    return Coordinate.from_degrees(float(lat), float(lng))


def classify_line(line: str) -> Optional[LogLine]:
    """Return the record a log line represents, or None if it is not one we read."""
    if not line.startswith("#"):
        return None
    try:
        m = DOCUMENT_LINE_RE.fullmatch(line)
        if m:
            name = m.group(1)
            if "/" in name:
                name = name[name.index("/") + 1:]
            return DocumentLine(name, _coord(m.group(2), m.group(3)))

        m = PREDICTED_CELL_LINE_RE.fullmatch(line) or OLD_PREDICTED_CELL_LINE_RE.fullmatch(line)
        if m:
            rank, score, swlat, swlng, nelat, nelng = m.groups()
            return PredictedCellLine(int(rank), float(score), _coord(swlat, swlng), _coord(nelat, nelng))

        m = NEIGHBOR_LINE_RE.fullmatch(line)
        if m:
            return NeighborLine(int(m.group(1)), _coord(m.group(2), m.group(3)))

        m = PREDICTED_POINT_LINE_RE.fullmatch(line)
        if m:
            return PredictedPointLine(_coord(m.group(1), m.group(2)))
    except ValueError:
        # A pattern matched but a number didn't parse: treat as unparsed
        return None

    if AVERAGE_DISTANCE_LINE_RE.fullmatch(line):
        return AverageDistanceLine()
    return None


# ── Per-document records ──────────────────────────────────────────────

@dataclass
class LogFileParseElement:
    doc_name: str
    true_coord: Coordinate
    pred_coord: Coordinate
    pred_cells: list[PredictedCellLine] = field(default_factory=list)
    neighbors: list[NeighborLine] = field(default_factory=list)

    def prob_dist_over_pred_cells(self, knn: int = -1) -> dict[RectRegion, float]:
        """
        Softmax over the top `knn` predicted cells (all when knn < 0):
        weight = exp(-score), normalized to sum to 1.

        Scores are shifted by their minimum before exponentiating, so
        neg-scores in the thousands stay representable.
        """
        cells = self.pred_cells if knn < 0 else self.pred_cells[:knn]
        if not cells:
            return {}
        scores = np.array([c.score for c in cells], dtype=np.float64)
        weights = np.exp(-(scores - scores.min()))
        weights /= weights.sum()
        dist: dict[RectRegion, float] = {}
        for cell, weight in zip(cells, weights):
            dist[RectRegion.from_coordinates(cell.sw, cell.ne)] = float(weight)
        return dist


def _open_text(path: Path):
    if path.suffix == ".bz2":
        return bz2.open(path, "rt", encoding="utf-8", errors="replace")
    if path.suffix == ".gz":
        return gzip.open(path, "rt", encoding="utf-8", errors="replace")
    return path.open("r", encoding="utf-8", errors="replace")


def parse_lines(lines: Iterable[str]) -> Iterator[LogFileParseElement]:
    doc_name: Optional[str] = None
    true_coord: Optional[Coordinate] = None
    pred_coord: Optional[Coordinate] = None
    cells: list[PredictedCellLine] = []
    neighbors: list[NeighborLine] = []

    for raw in lines:
        record = classify_line(raw.rstrip("\n"))
        if record is None:
            continue
        if isinstance(record, DocumentLine):
            doc_name, true_coord = record.doc_name, record.true_coord
            pred_coord = None
            cells, neighbors = [], []
        elif isinstance(record, PredictedCellLine):
            cells.append(record)
        elif isinstance(record, NeighborLine):
            neighbors.append(record)
        elif isinstance(record, PredictedPointLine):
            pred_coord = record.coord
        elif isinstance(record, AverageDistanceLine):
            if doc_name is None or true_coord is None or pred_coord is None or not cells:
                logger.warning("Skipping incomplete log record for document %r", doc_name)
                continue
            yield LogFileParseElement(doc_name, true_coord, pred_coord, cells, neighbors)
            cells, neighbors = [], []


def parse_log_file(path: str | Path) -> list[LogFileParseElement]:
    path = Path(path)
    with _open_text(path) as f:
        elements = list(parse_lines(f))
    logger.info("Parsed %d document records from %s", len(elements), path)
    return elements


def predicted_doc_coords(elements: Iterable[LogFileParseElement]) -> dict[str, Coordinate]:
    return {e.doc_name: e.pred_coord for e in elements}


def cell_distributions(elements: Iterable[LogFileParseElement], knn: int = -1) -> dict[str, dict[RectRegion, float]]:
    return {e.doc_name: e.prob_dist_over_pred_cells(knn) for e in elements}
