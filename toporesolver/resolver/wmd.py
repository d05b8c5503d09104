"""
Weighted minimum-distance resolver (SPIDER).

Every toponym type carries one weight per candidate. Each iteration, every
toponym instance votes for the candidate that minimizes its summed weighted
distance to the other toponyms in the same document; the votes are turned
into a distribution over candidates (averaging 1.0) and become the weights
for the next iteration. A final pass with the learned weights sets the
selections, and a backoff resolver fills in whatever is left.

A candidate with weight 0 (it never won a vote, or was given 0 by a weights
file) is never the nearest match for another toponym and can never win its
own vote.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from toporesolver.config import get_settings
from toporesolver.distance import DistanceTable
from toporesolver.exceptions import ConfigurationError
from toporesolver.lexicon import Lexicon, TypeId
from toporesolver.resolver.base import Resolver
from toporesolver.resolver.simple import DocDistResolver, RandomResolver
from toporesolver.text import Corpus, Document, Toponym
from toporesolver.topo import Coordinate, Location, PointRegion
from toporesolver.weights_io import read_weights

logger = logging.getLogger(__name__)

# Phantom counts added to every candidate for smoothing
PHANTOM_COUNT = 0

# Floor for distances to the gold coordinate in WEIGHTED mode
MIN_GOLD_DISTANCE_KM = 1e-3


class DocumentCoord(str, Enum):
    """How the document-level gold coordinate feeds into the voting."""
    NO = "no"
    # One extra single-candidate toponym per document, at the gold coordinate
    ADDTOPO = "addtopo"
    # Initial weights by inverse distance to the gold coordinate (provisional)
    WEIGHTED = "weighted"


# (toponym, its type's weights as a plain list) for one document
_DocEntries = list[tuple[Toponym, list[float]]]


class WeightedMinDistResolver(Resolver):
    def __init__(
        self,
        num_iterations: Optional[int] = None,
        weights_path: Optional[str | Path] = None,
        log_path: Optional[str | Path] = None,
        doc_coord: DocumentCoord = DocumentCoord.NO,
        seed: Optional[int] = None,
        overwrite_selecteds: bool = True,
    ):
        super().__init__(overwrite_selecteds)
        if num_iterations is None:
            num_iterations = get_settings().resolver.wmd_iterations
        if num_iterations < 0:
            raise ConfigurationError(f"number of iterations must be >= 0, got {num_iterations}")
        if weights_path is not None and log_path is None:
            raise ConfigurationError("a weights file needs a log file for the document-distance backoff")

        self.num_iterations = num_iterations
        self.weights_path = weights_path
        self.log_path = log_path
        self.doc_coord = DocumentCoord(doc_coord)
        self.seed = seed

        if self.doc_coord is DocumentCoord.WEIGHTED:
            logger.warning("WEIGHTED document-coordinate mode is provisional and untested")

        # Kept across train/disambiguate so that different corpora can be
        # used for training and for disambiguation
        self.lexicon: Optional[Lexicon] = None
        self.weights: Optional[list[Optional[np.ndarray]]] = None
        self.counts: Optional[list[Optional[np.ndarray]]] = None
        self.distance_table = DistanceTable()

        self._synthetic: dict[Document, Toponym] = {}
        self._synthetic_serial = 0

    # ── Training ──────────────────────────────────────────────────────

    def train(self, corpus: Corpus) -> None:
        self.distance_table = DistanceTable()

        lexicon = Lexicon.from_corpus(corpus)
        self._add_synthetic_toponyms(lexicon, corpus)

        file_weights = None
        if self.weights_path is not None:
            file_weights = read_weights(self.weights_path, len(lexicon))
            logger.info("Initial weights read from %s", self.weights_path)

        self.lexicon = lexicon
        self.weights = [None] * len(lexicon)
        self.counts = [None] * len(lexicon)
        self._initialize_tables(corpus, file_weights)

        for i in range(self.num_iterations):
            logger.info("Iteration %d/%d", i + 1, self.num_iterations)
            self._update_weights(corpus)

    def _initialize_tables(self, corpus: Corpus, file_weights: Optional[list[np.ndarray]]) -> None:
        for doc in corpus:
            for toponym in self._iter_toponyms(doc):
                if toponym.ambiguity == 0:
                    continue
                type_id = self.lexicon[toponym.form]
                if self.weights[type_id] is not None:
                    self._ensure_width(type_id, toponym)
                    continue

                self.counts[type_id] = np.full(toponym.ambiguity, PHANTOM_COUNT, dtype=np.int64)
                from_file = file_weights[type_id] if file_weights is not None else None
                if from_file is not None and len(from_file) > 0:
                    if len(from_file) == toponym.ambiguity:
                        self.weights[type_id] = np.array(from_file, dtype=np.float64)
                        continue
                    logger.warning("Weights file has %d weights for %r, which has %d candidates; using 1.0",
                                   len(from_file), toponym.form, toponym.ambiguity)
                if self.doc_coord is DocumentCoord.WEIGHTED and doc.gold_coord is not None:
                    self.weights[type_id] = self._gold_coord_weights(toponym, doc.gold_coord)
                else:
                    self.weights[type_id] = np.ones(toponym.ambiguity, dtype=np.float64)

    @staticmethod
    def _gold_coord_weights(toponym: Toponym, gold: Coordinate) -> np.ndarray:
        """Inverse distance to `gold`, scaled to sum to the toponym's ambiguity."""
        inverse = np.array(
            [1.0 / max(candidate.distance_in_km(gold), MIN_GOLD_DISTANCE_KM) for candidate in toponym],
            dtype=np.float64,
        )
        return inverse * toponym.ambiguity / inverse.sum()

    def _ensure_width(self, type_id: TypeId, toponym: Toponym) -> None:
        # All mentions of a form are expected to list the same candidates in
        # the same order; a longer list extends the type's tables.
        width = len(self.weights[type_id])
        if toponym.ambiguity <= width:
            return
        logger.warning("%r seen with %d candidates after %d; extending its weights",
                       toponym.form, toponym.ambiguity, width)
        extra = toponym.ambiguity - width
        self.weights[type_id] = np.concatenate([self.weights[type_id], np.ones(extra)])
        if self.counts is not None and self.counts[type_id] is not None:
            self.counts[type_id] = np.concatenate(
                [self.counts[type_id], np.full(extra, PHANTOM_COUNT, dtype=np.int64)]
            )

    def _update_weights(self, corpus: Corpus) -> None:
        for counts in self.counts:
            if counts is not None:
                counts[:] = PHANTOM_COUNT
        sums = [PHANTOM_COUNT * len(c) if c is not None else 0 for c in self.counts]

        weights = self._weights_as_lists()
        for doc in corpus:
            entries = self._doc_entries(doc, weights)
            for toponym in self._iter_toponyms(doc):
                winner = self._select(toponym, entries, weights)
                if winner > -1:
                    type_id = self.lexicon[toponym.form]
                    self.counts[type_id][winner] += 1
                    sums[type_id] += 1

        for type_id, counts in enumerate(self.counts):
            # Types that never received a vote keep their previous weights
            if counts is None or sums[type_id] <= 0:
                continue
            self.weights[type_id] = counts / sums[type_id] * len(counts)

    # ── Disambiguation ────────────────────────────────────────────────

    def disambiguate(self, corpus: Corpus) -> Corpus:
        if self.weights is None:
            self.train(corpus)

        self.lexicon.add_corpus(corpus)
        self._add_synthetic_toponyms(self.lexicon, corpus)
        self._expand_weights(corpus)

        weights = self._weights_as_lists()
        for doc in corpus:
            entries = self._doc_entries(doc, weights)
            for toponym in self._iter_toponyms(doc):
                if not self.should_resolve(toponym):
                    continue
                winner = self._select(toponym, entries, weights)
                if winner > -1:
                    toponym.selected_idx = winner

        if self.weights_path is not None:
            fallback: Resolver = DocDistResolver(self.log_path, seed=self.seed)
        else:
            fallback = RandomResolver(self.seed)
        return self.backoff(fallback, corpus)

    def _expand_weights(self, corpus: Corpus) -> None:
        """Uniform weights for types first seen after training."""
        missing = len(self.lexicon) - len(self.weights)
        if missing > 0:
            self.weights.extend([None] * missing)
        for doc in corpus:
            for toponym in self._iter_toponyms(doc):
                if toponym.ambiguity == 0:
                    continue
                type_id = self.lexicon[toponym.form]
                if self.weights[type_id] is None:
                    self.weights[type_id] = np.ones(toponym.ambiguity, dtype=np.float64)
                else:
                    self._ensure_width(type_id, toponym)

    # ── Voting ────────────────────────────────────────────────────────

    def _weights_as_lists(self) -> list[Optional[list[float]]]:
        return [w.tolist() if w is not None else None for w in self.weights]

    def _doc_entries(self, doc: Document, weights: Sequence[Optional[list[float]]]) -> _DocEntries:
        return [
            (toponym, weights[self.lexicon[toponym.form]])
            for toponym in self._iter_toponyms(doc)
            if toponym.ambiguity > 0
        ]

    def _select(self, toponym: Toponym, entries: _DocEntries, weights: Sequence[Optional[list[float]]]) -> int:
        """Index of the winning candidate, or -1 to abstain."""
        if toponym.ambiguity == 0:
            return -1
        own_weights = weights[self.lexicon[toponym.form]]

        best_total = math.inf
        best_idx = -1
        for idx, candidate in enumerate(toponym.candidates):
            total = self.check_candidate(toponym, candidate, own_weights[idx], entries, best_total)
            if total is not None:
                best_total, best_idx = total, idx

        if best_idx == -1:
            # No other toponym in the document: take the heaviest candidate,
            # but only if it stands out from uniform weights
            heaviest = 1.0
            for idx, weight in enumerate(own_weights[:toponym.ambiguity]):
                if weight > heaviest:
                    heaviest, best_idx = weight, idx
        return best_idx

    def check_candidate(
        self,
        toponym: Toponym,
        candidate: Location,
        weight: float,
        entries: _DocEntries,
        current_min_total: float,
    ) -> Optional[float]:
        """
        Summed weighted distance from `candidate` to the nearest candidate of
        every other toponym in the document. Returns None as soon as the sum
        reaches `current_min_total`, or when there is no other toponym.
        """
        total = 0.0
        seen = 0
        for other, other_weights in entries:
            if other is toponym:
                continue
            nearest = math.inf
            for other_idx, other_loc in enumerate(other.candidates):
                denominator = weight * other_weights[other_idx]
                if denominator <= 0.0:
                    continue
                weighted = self.distance_table.distance(candidate, other_loc) / denominator
                if weighted < nearest:
                    nearest = weighted
            seen += 1
            total += nearest
            if total >= current_min_total:
                return None
        return total if seen > 0 else None

    # ── Synthetic document toponyms ───────────────────────────────────

    def _add_synthetic_toponyms(self, lexicon: Lexicon, corpus: Corpus) -> None:
        if self.doc_coord is not DocumentCoord.ADDTOPO:
            return
        for doc in corpus:
            toponym = self._synthetic.get(doc)
            if toponym is None:
                if doc.gold_coord is None:
                    continue
                form = f"__TOPO_{doc.id}_{self._synthetic_serial}__"
                self._synthetic_serial += 1
                location = Location(form, form, PointRegion(doc.gold_coord))
                toponym = Toponym(form, [location])
                self._synthetic[doc] = toponym
            lexicon.get_or_add(toponym.form)

    def _iter_toponyms(self, doc: Document) -> list[Toponym]:
        toponyms = doc.toponyms()
        if self.doc_coord is DocumentCoord.ADDTOPO:
            synthetic = self._synthetic.get(doc)
            if synthetic is not None:
                toponyms.append(synthetic)
        return toponyms

    def weights_for(self, form: str) -> Optional[np.ndarray]:
        if self.lexicon is None or self.weights is None:
            return None
        type_id = self.lexicon.get(form)
        if type_id is None or type_id >= len(self.weights):
            return None
        return self.weights[type_id]
