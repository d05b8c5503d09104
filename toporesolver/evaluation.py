"""
Scoring of resolved corpora against gold annotations.

SignatureEvaluator matches predicted toponyms to gold toponyms by a
"signature": the characters around the mention in its sentence (lower-cased,
alphanumeric only) plus the document id. This lets the predicted corpus come
from a different tokenization or toponym recognizer than the gold one.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from toporesolver.config import get_settings
from toporesolver.text import Corpus, Toponym
from toporesolver.topo import Location

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]")


# ── Reports ───────────────────────────────────────────────────────────

@dataclass
class Report:
    tp: int = 0
    fp: int = 0
    fn: int = 0
    instance_count: int = 0

    def increment_tp(self) -> None:
        self.tp += 1
        self.instance_count += 1

    def increment_fp(self) -> None:
        self.fp += 1

    def increment_fn(self) -> None:
        self.fn += 1
        self.instance_count += 1

    def increment_fp_and_fn(self) -> None:
        self.fp += 1
        self.fn += 1
        self.instance_count += 1

    def increment_instance_count(self) -> None:
        self.instance_count += 1

    @property
    def precision(self) -> float:
        denom = self.tp + self.fp
        return self.tp / denom if denom else 0.0

    @property
    def recall(self) -> float:
        denom = self.tp + self.fn
        return self.tp / denom if denom else 0.0

    @property
    def f_score(self) -> float:
        p, r = self.precision, self.recall
        return 2 * p * r / (p + r) if p + r > 0 else 0.0

    @property
    def accuracy(self) -> float:
        return self.tp / self.instance_count if self.instance_count else 0.0


@dataclass
class DistanceReport:
    """Error distances in km."""
    distances: list[float] = field(default_factory=list)

    def add_distance(self, distance: float) -> None:
        self.distances.append(distance)

    @property
    def num_distances(self) -> int:
        return len(self.distances)

    @property
    def min_distance(self) -> float:
        return float(np.min(self.distances)) if self.distances else 0.0

    @property
    def max_distance(self) -> float:
        return float(np.max(self.distances)) if self.distances else 0.0

    @property
    def mean_distance(self) -> float:
        return float(np.mean(self.distances)) if self.distances else 0.0

    @property
    def median_distance(self) -> float:
        return float(np.median(self.distances)) if self.distances else 0.0

    def fraction_within(self, threshold_km: Optional[float] = None) -> float:
        if not self.distances:
            return 0.0
        if threshold_km is None:
            threshold_km = get_settings().evaluation.distance_threshold_km
        return float(np.mean(np.asarray(self.distances) <= threshold_km))


# ── Evaluators ────────────────────────────────────────────────────────

class Evaluator(ABC):
    def __init__(self, corpus: Corpus):
        self.corpus = corpus

    @abstractmethod
    def evaluate(self, pred: Optional[Corpus] = None) -> Report:
        ...


class AccuracyEvaluator(Evaluator):
    """Gold index vs. selected index on a single corpus holding both."""

    def evaluate(self, pred: Optional[Corpus] = None) -> Report:
        corpus = pred if pred is not None else self.corpus
        report = Report()
        for toponym in corpus.toponyms():
            if not toponym.has_gold:
                continue
            if toponym.gold_idx == toponym.selected_idx:
                report.increment_tp()
            else:
                report.increment_instance_count()
        return report


@dataclass
class _SignatureEntry:
    toponym: Toponym
    location: Optional[Location]
    candidates: list[Location]


def closest_match(gold: Location, candidates: Sequence[Location]) -> Optional[Location]:
    best, best_dist = None, float("inf")
    for candidate in candidates:
        dist = candidate.distance(gold)
        if dist < best_dist:
            best, best_dist = candidate, dist
    return best


def is_closest_match(gold: Location, pred: Optional[Location], candidates: Sequence[Location]) -> bool:
    if pred is None:
        return False
    to_beat = pred.distance(gold)
    return not any(other.distance(gold) < to_beat for other in candidates)


class SignatureEvaluator(Evaluator):
    def __init__(
        self,
        gold_corpus: Corpus,
        oracle: bool = False,
        window: Optional[int] = None,
        errors_path: Optional[str | Path] = None,
    ):
        super().__init__(gold_corpus)
        settings = get_settings().evaluation
        self.oracle = oracle
        self.window = settings.signature_window if window is None else window
        self.errors_path = errors_path
        self.distance_report = DistanceReport()
        # Predicted toponym -> the candidate closest to its gold location
        self.correct_locations: dict[Toponym, Location] = {}
        # Gold location name (lower-cased) -> error distances in km
        self.errors: dict[str, list[float]] = {}

    def signature(self, context: str, start: int, doc_id: str) -> str:
        begin = max(0, start - self.window)
        end = min(len(context), start + self.window)
        return context[begin:end] + doc_id

    def _signatures(self, corpus: Corpus, gold: bool) -> dict[str, _SignatureEntry]:
        entries: dict[str, _SignatureEntry] = {}
        for doc in corpus:
            for sent in doc:
                context = ""
                starts: list[tuple[int, Toponym]] = []
                for token in sent:
                    if token.is_toponym:
                        if gold:
                            wanted = token.has_gold and token.ambiguity > 0
                        else:
                            wanted = token.has_selected or token.ambiguity == 0
                        if wanted:
                            starts.append((len(context), token))
                    context += _NON_ALNUM.sub("", token.form.lower())

                for start, toponym in starts:
                    location = toponym.gold if gold else toponym.selected
                    key = self.signature(context, start, doc.id)
                    entries[key] = _SignatureEntry(toponym, location, list(toponym.candidates))
        return entries

    def evaluate(self, pred: Optional[Corpus] = None) -> Report:
        if pred is None:
            raise ValueError("SignatureEvaluator needs a predicted corpus")
        report = Report()
        self.distance_report = DistanceReport()
        self.correct_locations = {}
        self.errors = {}

        gold_entries = self._signatures(self.corpus, gold=True)
        pred_entries = self._signatures(pred, gold=False)

        for key, gold_entry in gold_entries.items():
            pred_entry = pred_entries.get(key)
            if pred_entry is None:
                report.increment_fn()
                continue
            gold_loc = gold_entry.location

            if pred_entry.candidates:
                self.correct_locations[pred_entry.toponym] = closest_match(gold_loc, pred_entry.candidates)

            if self.oracle:
                if pred_entry.candidates:
                    best = closest_match(gold_loc, pred_entry.candidates)
                    self._record_error(gold_loc, gold_loc.distance_in_km(best))
                    report.increment_tp()
                continue

            if pred_entry.location is not None:
                self._record_error(gold_loc, gold_loc.distance_in_km(pred_entry.location))
            if is_closest_match(gold_loc, pred_entry.location, pred_entry.candidates):
                report.increment_tp()
            else:
                report.increment_fp_and_fn()

        for key in pred_entries:
            if key not in gold_entries:
                report.increment_fp()

        if self.errors_path is not None:
            self.write_errors(self.errors_path)
        return report

    def _record_error(self, gold_loc: Location, distance: float) -> None:
        self.distance_report.add_distance(distance)
        self.errors.setdefault(gold_loc.name.lower(), []).append(distance)

    def write_errors(self, path: str | Path) -> None:
        """One line per gold location name: name & count & mean & sum\\\\"""
        path = Path(path)
        with path.open("w", encoding="utf-8") as out:
            for name, distances in self.errors.items():
                total = sum(distances)
                out.write(f"{name} & {len(distances)} & {total / len(distances)} & {total}\\\\\n")
        logger.info("Wrote error breakdown for %d toponyms to %s", len(self.errors), path)
