"""Single-signal resolvers, mostly used as backoffs for the iterative ones."""

from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Mapping, Optional

from toporesolver.config import get_settings
from toporesolver.logfile import parse_log_file, predicted_doc_coords
from toporesolver.resolver.base import Resolver
from toporesolver.text import Corpus
from toporesolver.topo import Coordinate

logger = logging.getLogger(__name__)


class RandomResolver(Resolver):
    """Uniform random choice among a toponym's candidates."""

    def __init__(self, seed: Optional[int] = None, overwrite_selecteds: bool = True):
        super().__init__(overwrite_selecteds)
        if seed is None:
            seed = get_settings().resolver.random_seed
        self._rng = random.Random(seed)

    def disambiguate(self, corpus: Corpus) -> Corpus:
        resolved = 0
        for toponym in corpus.toponyms():
            if self.should_resolve(toponym):
                toponym.selected_idx = self._rng.randrange(toponym.ambiguity)
                resolved += 1
        logger.debug("Random resolver selected %d toponyms", resolved)
        return corpus


class PopulationResolver(Resolver):
    """Most populous candidate; random when no candidate has a population."""

    def __init__(self, seed: Optional[int] = None, overwrite_selecteds: bool = True):
        super().__init__(overwrite_selecteds)
        self.seed = seed

    def disambiguate(self, corpus: Corpus) -> Corpus:
        for toponym in corpus.toponyms():
            if not self.should_resolve(toponym):
                continue
            best_idx, best_pop = -1, 0
            for idx, candidate in enumerate(toponym):
                if candidate.population > best_pop:
                    best_idx, best_pop = idx, candidate.population
            if best_idx >= 0:
                toponym.selected_idx = best_idx

        return self.backoff(RandomResolver(self.seed), corpus)


class DocDistResolver(Resolver):
    """
    Picks the candidate nearest to the document's predicted coordinate from
    a prior document-geolocation run. Documents missing from the log back
    off to random selection.
    """

    def __init__(
        self,
        log_path: Optional[str | Path] = None,
        *,
        doc_coords: Optional[Mapping[str, Coordinate]] = None,
        seed: Optional[int] = None,
        overwrite_selecteds: bool = True,
    ):
        super().__init__(overwrite_selecteds)
        if doc_coords is None:
            if log_path is None:
                raise ValueError("DocDistResolver needs a log file or predicted document coordinates")
            doc_coords = predicted_doc_coords(parse_log_file(log_path))
        self.doc_coords = dict(doc_coords)
        self.seed = seed

    def disambiguate(self, corpus: Corpus) -> Corpus:
        missing_docs = 0
        for doc in corpus:
            pred_coord = self.doc_coords.get(doc.id)
            if pred_coord is None:
                missing_docs += 1
                continue
            for toponym in doc.toponyms():
                if not self.should_resolve(toponym):
                    continue
                best_idx, best_dist = -1, float("inf")
                for idx, candidate in enumerate(toponym):
                    dist = candidate.distance(pred_coord)
                    if dist < best_dist:
                        best_idx, best_dist = idx, dist
                if best_idx >= 0:
                    toponym.selected_idx = best_idx

        if missing_docs:
            logger.info("%d documents have no predicted coordinate; backing off to random", missing_docs)
        return self.backoff(RandomResolver(self.seed), corpus)
