"""
Probabilistic resolver: scores every candidate by blending

  * a local-context classifier trained per toponym type,
  * the document-level cell distribution from a geolocation log,
  * an administrative-level prior (larger regions have more representatives),
  * optionally, a population prior.

The accumulated per-type scores can be written as a weights file that seeds
WeightedMinDistResolver.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Mapping, Optional

import numpy as np

from toporesolver.config import get_settings
from toporesolver.exceptions import ConfigurationError
from toporesolver.lexicon import Lexicon
from toporesolver.logfile import cell_distributions, parse_log_file, predicted_doc_coords
from toporesolver.resolver.base import Resolver
from toporesolver.resolver.context import (
    ContextModel,
    context_features,
    load_context_models,
    load_stoplist,
    load_training_counts,
    type_frequencies,
)
from toporesolver.resolver.simple import DocDistResolver
from toporesolver.text import Corpus, Token, Toponym
from toporesolver.topo import Region
from toporesolver.weights_io import write_weights

logger = logging.getLogger(__name__)


def filter_and_normalize(cell_dist: Mapping[Region, float], toponym: Toponym) -> dict[Region, float]:
    """Keep the cells holding at least one candidate's center, renormalized."""
    centers = [candidate.center for candidate in toponym]
    kept = {
        cell: prob for cell, prob in cell_dist.items()
        if any(cell.contains(center) for center in centers)
    }
    total = sum(kept.values())
    if total <= 0:
        return {}
    return {cell: prob / total for cell, prob in kept.items()}


def admin_level_component(toponym: Toponym) -> np.ndarray:
    reps = np.array([len(candidate.region.representatives) for candidate in toponym], dtype=np.float64)
    total = reps.sum()
    if total <= 0:
        return np.zeros(len(reps))
    return reps / total


class ProbabilisticResolver(Resolver):
    def __init__(
        self,
        log_path: str | Path,
        models_dir: str | Path,
        weights_out_path: Optional[str | Path] = None,
        pop_component_coefficient: Optional[float] = None,
        dg_prob_only: bool = False,
        me_prob_only: bool = False,
        *,
        knn: Optional[int] = None,
        window_size: Optional[int] = None,
        mixing_constant: Optional[float] = None,
        stoplist: Optional[Iterable[str]] = None,
        seed: Optional[int] = None,
        overwrite_selecteds: bool = True,
    ):
        super().__init__(overwrite_selecteds)
        settings = get_settings().resolver
        if pop_component_coefficient is None:
            pop_component_coefficient = settings.pop_component_coefficient
        if not 0.0 <= pop_component_coefficient <= 1.0:
            raise ConfigurationError(
                f"population coefficient must be in [0, 1], got {pop_component_coefficient}"
            )
        if dg_prob_only and me_prob_only:
            raise ConfigurationError("dg_prob_only and me_prob_only are mutually exclusive")

        self.log_path = log_path
        self.models_dir = models_dir
        self.weights_out_path = weights_out_path
        self.pop_component_coefficient = pop_component_coefficient
        self.dg_prob_only = dg_prob_only
        self.me_prob_only = me_prob_only
        self.knn = settings.cell_knn if knn is None else knn
        self.window_size = settings.context_window_size if window_size is None else window_size
        self.mixing_constant = settings.mixing_constant if mixing_constant is None else mixing_constant
        if stoplist is None:
            stoplist = load_stoplist(settings.stoplist_path)
        self.stoplist = frozenset(stoplist)
        self.seed = seed

        # Accumulated per-type scores from the last disambiguate()
        self.lexicon: Optional[Lexicon] = None
        self.scores: list[Optional[np.ndarray]] = []

    def disambiguate(self, corpus: Corpus) -> Corpus:
        elements = parse_log_file(self.log_path)
        cell_dists = cell_distributions(elements, self.knn)
        models = load_context_models(self.models_dir)
        frequencies = type_frequencies(load_training_counts(self.models_dir))

        self.lexicon = Lexicon.from_corpus(corpus)
        self.scores = [None] * len(self.lexicon)

        for doc in corpus:
            cell_dist = cell_dists.get(doc.id, {})
            tokens = doc.tokens()
            for index, token in enumerate(tokens):
                if not token.is_toponym or token.ambiguity == 0:
                    continue
                scores = self.score_candidates(
                    token, tokens, index, cell_dist,
                    models.get(token.form), frequencies.get(token.form, 0.0),
                )
                self._accumulate(token.form, scores)

                if self.should_resolve(token):
                    best_idx, best_prob = -1, 0.0
                    for idx, prob in enumerate(scores):
                        if prob > best_prob:
                            best_idx, best_prob = idx, prob
                    token.selected_idx = best_idx

        if self.weights_out_path is not None:
            write_weights(self.weights_out_path, self.scores)

        fallback = DocDistResolver(doc_coords=predicted_doc_coords(elements), seed=self.seed)
        return self.backoff(fallback, corpus)

    def score_candidates(
        self,
        toponym: Toponym,
        tokens: list[Token],
        index: int,
        cell_dist: Mapping[Region, float],
        model: Optional[ContextModel],
        frequency: float,
    ) -> np.ndarray:
        local = self.local_component(toponym, tokens, index, model)
        if self.me_prob_only:
            return local
        document = self.document_component(toponym, cell_dist)
        if self.dg_prob_only:
            return document

        mixing = frequency / (frequency + self.mixing_constant)
        prob = admin_level_component(toponym) * (mixing * local + (1.0 - mixing) * document)

        populations = np.array([candidate.population for candidate in toponym], dtype=np.float64)
        total_population = populations.sum()
        if total_population > 0:
            coef = self.pop_component_coefficient
            return coef * populations / total_population + (1.0 - coef) * prob
        return prob

    def local_component(
        self,
        toponym: Toponym,
        tokens: list[Token],
        index: int,
        model: Optional[ContextModel],
    ) -> np.ndarray:
        local = np.zeros(toponym.ambiguity)
        if model is None:
            return local
        features = context_features(tokens, index, self.window_size, self.stoplist)
        for idx, prob in model.predict(features).items():
            if 0 <= idx < toponym.ambiguity:
                local[idx] = prob
        return local

    @staticmethod
    def document_component(toponym: Toponym, cell_dist: Mapping[Region, float]) -> np.ndarray:
        document = np.zeros(toponym.ambiguity)
        if not cell_dist:
            return document
        restricted = filter_and_normalize(cell_dist, toponym)
        for idx, candidate in enumerate(toponym):
            center = candidate.center
            for cell, prob in restricted.items():
                if cell.contains(center):
                    document[idx] = prob
                    break
        return document

    def _accumulate(self, form: str, scores: np.ndarray) -> None:
        type_id = self.lexicon[form]
        current = self.scores[type_id]
        if current is None:
            self.scores[type_id] = scores.astype(np.float64, copy=True)
        elif len(current) < len(scores):
            padded = np.zeros(len(scores))
            padded[:len(current)] = current
            self.scores[type_id] = padded + scores
        else:
            current[:len(scores)] += scores
