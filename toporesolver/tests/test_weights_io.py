"""
Tests for the binary weights file.
"""

from __future__ import annotations

import struct

import numpy as np
import pytest

from toporesolver.exceptions import WeightsFileError
from toporesolver.weights_io import normalize_weights, read_weights, write_weights


class TestNormalizeWeights:
    def test_sums_to_length(self):
        w = normalize_weights(np.array([1.0, 3.0]))
        assert w.sum() == pytest.approx(2.0)
        assert w.tolist() == pytest.approx([0.5, 1.5])

    def test_zero_sum_gives_ones(self):
        assert normalize_weights(np.zeros(3)).tolist() == [1.0, 1.0, 1.0]


class TestWeightsFile:
    def test_write_then_read(self, tmp_path):
        path = tmp_path / "w.bin"
        write_weights(path, [np.array([2.0, 2.0, 4.0]), None, np.array([0.0, 0.0])])
        records = read_weights(path, 3)
        assert records[0].tolist() == pytest.approx([0.75, 0.75, 1.5])
        assert len(records[1]) == 0
        assert records[2].tolist() == [1.0, 1.0]

    def test_big_endian_layout(self, tmp_path):
        path = tmp_path / "w.bin"
        write_weights(path, [np.array([1.0])])
        assert path.read_bytes() == struct.pack(">i", 1) + struct.pack(">d", 1.0)

    def test_clean_end_means_no_data(self, tmp_path):
        path = tmp_path / "w.bin"
        write_weights(path, [np.array([1.0, 1.0])])
        records = read_weights(path, 3)
        assert len(records) == 3
        assert len(records[0]) == 2
        assert len(records[1]) == 0 and len(records[2]) == 0

    def test_truncated_record_raises(self, tmp_path):
        path = tmp_path / "w.bin"
        path.write_bytes(struct.pack(">i", 3) + struct.pack(">d", 1.0))
        with pytest.raises(WeightsFileError):
            read_weights(path, 1)

    def test_truncated_count_raises(self, tmp_path):
        path = tmp_path / "w.bin"
        path.write_bytes(b"\x00\x00")
        with pytest.raises(WeightsFileError):
            read_weights(path, 1)

    def test_negative_count_raises(self, tmp_path):
        path = tmp_path / "w.bin"
        path.write_bytes(struct.pack(">i", -1))
        with pytest.raises(WeightsFileError):
            read_weights(path, 1)
