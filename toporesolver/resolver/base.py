"""
Resolver contract.

A resolver picks one candidate per toponym by setting `selected_idx` in
place. Resolvers are chained for backoff: the fallback runs with
`overwrite_selecteds=False` so it only fills in toponyms the primary
resolver abstained on.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from toporesolver.text import Corpus, Toponym


class Resolver(ABC):
    def __init__(self, overwrite_selecteds: bool = True):
        self.overwrite_selecteds = overwrite_selecteds

    def train(self, corpus: Corpus) -> None:
        """Optional corpus-wide precomputation. Default: nothing to learn."""

    @abstractmethod
    def disambiguate(self, corpus: Corpus) -> Corpus:
        """Set `selected_idx` on the corpus's toponyms and return the same corpus."""

    def should_resolve(self, toponym: Toponym) -> bool:
        # Toponyms without candidates always stay unresolved
        if toponym.ambiguity == 0:
            return False
        return self.overwrite_selecteds or not toponym.has_selected

    @staticmethod
    def backoff(fallback: "Resolver", corpus: Corpus) -> Corpus:
        """Run `fallback` only on toponyms that are still unresolved."""
        fallback.overwrite_selecteds = False
        return fallback.disambiguate(corpus)
