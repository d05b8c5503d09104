"""
Dense, stable integer ids for toponym surface forms.

Per-type weight and count tables are plain lists indexed by `TypeId`, so
the hot loops never hash strings.
"""

from __future__ import annotations

from typing import Iterable, Iterator, NewType, Optional

from toporesolver.text import Corpus

TypeId = NewType("TypeId", int)


class Lexicon:
    def __init__(self, forms: Iterable[str] = ()):
        self._ids: dict[str, TypeId] = {}
        self._forms: list[str] = []
        for form in forms:
            self.get_or_add(form)

    @classmethod
    def from_corpus(cls, corpus: Corpus) -> "Lexicon":
        lexicon = cls()
        lexicon.add_corpus(corpus)
        return lexicon

    def add_corpus(self, corpus: Corpus) -> None:
        """Add every toponym form in document order."""
        for toponym in corpus.toponyms():
            self.get_or_add(toponym.form)

    def get_or_add(self, form: str) -> TypeId:
        type_id = self._ids.get(form)
        if type_id is None:
            type_id = TypeId(len(self._forms))
            self._ids[form] = type_id
            self._forms.append(form)
        return type_id

    def get(self, form: str) -> Optional[TypeId]:
        return self._ids.get(form)

    def __getitem__(self, form: str) -> TypeId:
        return self._ids[form]

    def form(self, type_id: TypeId) -> str:
        return self._forms[type_id]

    def __contains__(self, form: object) -> bool:
        return form in self._ids

    def __len__(self) -> int:
        return len(self._forms)

    def __iter__(self) -> Iterator[str]:
        return iter(self._forms)
