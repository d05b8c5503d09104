"""
Tests for the geolocation log parser, covering both predicted-cell formats.
"""

from __future__ import annotations

import bz2
import math

import pytest

from toporesolver.logfile import (
    AverageDistanceLine,
    DocumentLine,
    NeighborLine,
    PredictedCellLine,
    PredictedPointLine,
    cell_distributions,
    classify_line,
    parse_lines,
    parse_log_file,
    predicted_doc_coords,
)
from toporesolver.topo import Coordinate, RectRegion


class TestClassifyLine:
    def test_document_line_strips_directory(self):
        rec = classify_line("#   Document eval/d1 at (40.0,-90.0):")
        assert isinstance(rec, DocumentLine)
        assert rec.doc_name == "d1"
        assert rec.true_coord.lat_degrees == pytest.approx(40.0)
        assert rec.true_coord.lng_degrees == pytest.approx(-90.0)

    def test_new_predicted_cell(self):
        rec = classify_line(
            "#   Predicted cell (at rank 2, neg-score 1.5): KdTreeCell(#7, 25.0,25.0:35.0,35.0, ...)"
        )
        assert isinstance(rec, PredictedCellLine)
        assert rec.rank == 2
        assert rec.score == pytest.approx(1.5)
        assert rec.sw.lat_degrees == pytest.approx(25.0)
        assert rec.ne.lng_degrees == pytest.approx(35.0)

    def test_old_predicted_cell(self):
        rec = classify_line(
            "#   Predicted cell (at rank 1, kl-div 0.2): GeoCell((25.0,25.0)-(35.0,35.0), ...)"
        )
        assert isinstance(rec, PredictedCellLine)
        assert rec.rank == 1
        assert rec.sw.lat_degrees == pytest.approx(25.0)
        assert rec.ne.lat_degrees == pytest.approx(35.0)

    def test_neighbor(self):
        rec = classify_line("#   #1 close neighbor: (39.5,-89.5); at distance 12.0 km")
        assert isinstance(rec, NeighborLine)
        assert rec.rank == 1

    @pytest.mark.parametrize("line", [
        "#   Distance 80.0 km to predicted cell center at (39.9,-89.9)",
        "#   Distance 10.0 km to predicted cell central point at (39.9,-89.9)",
    ])
    def test_predicted_point(self, line):
        rec = classify_line(line)
        assert isinstance(rec, PredictedPointLine)
        assert rec.coord.lat_degrees == pytest.approx(39.9)

    def test_average_distance(self):
        rec = classify_line("#   Average distance from true to predicted center: 80.0 km")
        assert isinstance(rec, AverageDistanceLine)

    def test_unmarked_and_unknown_lines_ignored(self):
        assert classify_line("Document d1 at (1.0,2.0):") is None
        assert classify_line("# Processing evaluation file 1") is None

    def test_bad_number_is_unparsed(self):
        assert classify_line("#   Document d1 at (north,-90.0):") is None


class TestParseLogFile:
    def test_parses_both_records(self, log_file):
        elements = parse_log_file(log_file)
        assert [e.doc_name for e in elements] == ["d1", "d2"]
        assert len(elements[0].pred_cells) == 2
        assert len(elements[0].neighbors) == 1
        assert len(elements[1].pred_cells) == 1

    def test_predicted_doc_coords(self, log_file):
        coords = predicted_doc_coords(parse_log_file(log_file))
        assert coords["d2"].lat_degrees == pytest.approx(30.1)
        assert coords["d2"].lng_degrees == pytest.approx(31.1)

    def test_bz2_log(self, tmp_path, log_file):
        path = tmp_path / "geolocate.log.bz2"
        path.write_bytes(bz2.compress(log_file.read_bytes()))
        assert len(parse_log_file(path)) == 2

    def test_incomplete_record_skipped(self):
        lines = [
            "#   Document d1 at (40.0,-90.0):",
            "#   Distance 80.0 km to predicted cell center at (39.9,-89.9)",
            "#   Average distance from true to predicted center: 80.0 km",
        ]
        assert list(parse_lines(lines)) == []


class TestCellDistribution:
    def test_softmax_over_neg_scores(self, log_file):
        dists = cell_distributions(parse_log_file(log_file))
        d1 = dists["d1"]
        assert sum(d1.values()) == pytest.approx(1.0)
        a = RectRegion.from_coordinates(Coordinate.from_degrees(35.0, -95.0), Coordinate.from_degrees(45.0, -85.0))
        expected = math.exp(-0.5) / (math.exp(-0.5) + math.exp(-1.5))
        assert d1[a] == pytest.approx(expected)

    def test_knn_truncates(self, log_file):
        dists = cell_distributions(parse_log_file(log_file), knn=1)
        assert len(dists["d1"]) == 1
        assert list(dists["d1"].values()) == [pytest.approx(1.0)]

    @staticmethod
    def _record(first: float, second: float):
        lines = [
            "#   Document d1 at (40.0,-90.0):",
            f"#   Predicted cell (at rank 1, neg-score {first}): KdTreeCell(#3, 35.0,-95.0:45.0,-85.0, ...)",
            f"#   Predicted cell (at rank 2, neg-score {second}): KdTreeCell(#7, 25.0,25.0:35.0,35.0, ...)",
            "#   Distance 80.0 km to predicted cell center at (39.9,-89.9)",
            "#   Average distance from true to predicted center: 80.0 km",
        ]
        (element,) = parse_lines(lines)
        return element

    def test_large_neg_scores(self):
        dist = self._record(3000.0, 3001.0).prob_dist_over_pred_cells()
        assert len(dist) == 2
        expected = 1.0 / (1.0 + math.exp(-1.0))
        assert max(dist.values()) == pytest.approx(expected)
        assert sum(dist.values()) == pytest.approx(1.0)

    def test_large_negative_scores(self):
        dist = self._record(-800.0, -799.0).prob_dist_over_pred_cells()
        assert sorted(dist.values()) == [
            pytest.approx(1.0 - 1.0 / (1.0 + math.exp(-1.0))),
            pytest.approx(1.0 / (1.0 + math.exp(-1.0))),
        ]

    def test_shift_invariance(self):
        low = self._record(0.5, 1.5).prob_dist_over_pred_cells()
        high = self._record(2000.5, 2001.5).prob_dist_over_pred_cells()
        assert list(high.values()) == [pytest.approx(v) for v in low.values()]

    def test_knn_zero_is_empty(self, log_file):
        dists = cell_distributions(parse_log_file(log_file), knn=0)
        assert dists["d1"] == {}
