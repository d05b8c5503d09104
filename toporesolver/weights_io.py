"""
Binary per-type weight distributions handed from ProbabilisticResolver to
WeightedMinDistResolver.

Layout (big-endian), one record per lexicon index in insertion order:

    int32    n            number of candidates, 0 = no data for this type
    float64  w[0..n-1]    normalized weights (sum to n)
"""

from __future__ import annotations

import logging
import struct
from pathlib import Path
from typing import BinaryIO, Optional, Sequence

import numpy as np

from toporesolver.exceptions import WeightsFileError

logger = logging.getLogger(__name__)

_COUNT = struct.Struct(">i")
_WEIGHT_DTYPE = np.dtype(">f8")


def normalize_weights(raw: np.ndarray) -> np.ndarray:
    """Rescale so the weights sum to their count; all 1.0 when the sum is 0."""
    raw = np.asarray(raw, dtype=np.float64)
    total = float(raw.sum())
    if total > 0:
        return raw / total * len(raw)
    return np.ones(len(raw), dtype=np.float64)


def write_weights(path: str | Path, weights: Sequence[Optional[np.ndarray]]) -> None:
    """Normalize and write one record per entry; None entries are written as n=0."""
    path = Path(path)
    with path.open("wb") as out:
        for entry in weights:
            if entry is None:
                out.write(_COUNT.pack(0))
                continue
            normalized = normalize_weights(entry)
            out.write(_COUNT.pack(len(normalized)))
            out.write(normalized.astype(_WEIGHT_DTYPE).tobytes())
    logger.info("Wrote %d weight records to %s", len(weights), path)


def _read_record(f: BinaryIO, index: int) -> Optional[np.ndarray]:
    header = f.read(_COUNT.size)
    if not header:
        return None
    if len(header) < _COUNT.size:
        raise WeightsFileError(f"truncated count for record {index}")
    (n,) = _COUNT.unpack(header)
    if n < 0:
        raise WeightsFileError(f"negative candidate count {n} in record {index}")
    payload = f.read(n * _WEIGHT_DTYPE.itemsize)
    if len(payload) < n * _WEIGHT_DTYPE.itemsize:
        raise WeightsFileError(f"record {index} declares {n} weights but the file ends early")
    return np.frombuffer(payload, dtype=_WEIGHT_DTYPE).astype(np.float64)


def read_weights(path: str | Path, num_types: int) -> list[np.ndarray]:
    """
    Read up to `num_types` records. Types past a clean end of file get an
    empty array, the same as an n=0 record. A record cut short raises
    WeightsFileError.
    """
    path = Path(path)
    records: list[np.ndarray] = []
    with path.open("rb") as f:
        for i in range(num_types):
            record = _read_record(f, i)
            if record is None:
                logger.warning("Weights file %s ends after %d of %d types", path, i, num_types)
                break
            records.append(record)
    records.extend(np.empty(0, dtype=np.float64) for _ in range(num_types - len(records)))
    return records
