"""
In-memory corpus model: documents of sentences of tokens, some of which are
toponyms carrying an ordered list of candidate locations.

Resolvers mutate `Toponym.selected_idx` in place; everything else is set at
load time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

from toporesolver.topo import Coordinate, Location


class Token:
    """A single token of running text."""

    is_toponym = False

    def __init__(self, form: str):
        self.form = form

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.form!r})"


class Toponym(Token):
    """
    A place-name mention with its gazetteer candidates.

    Equality is identity: two mentions of "Paris" in the same document are
    distinct toponyms.
    """

    is_toponym = True

    def __init__(
        self,
        form: str,
        candidates: Optional[Iterable[Location]] = None,
        gold_idx: int = -1,
        selected_idx: int = -1,
    ):
        super().__init__(form)
        self.candidates: list[Location] = list(candidates or [])
        self.gold_idx = gold_idx
        self._selected_idx = -1
        self.selected_idx = selected_idx

    @property
    def ambiguity(self) -> int:
        return len(self.candidates)

    @property
    def selected_idx(self) -> int:
        return self._selected_idx

    @selected_idx.setter
    def selected_idx(self, idx: int) -> None:
        if idx != -1 and not 0 <= idx < self.ambiguity:
            raise ValueError(
                f"selected index {idx} out of range for {self.form!r} "
                f"with {self.ambiguity} candidates"
            )
        self._selected_idx = idx

    @property
    def has_gold(self) -> bool:
        return self.gold_idx >= 0

    @property
    def has_selected(self) -> bool:
        return 0 <= self._selected_idx < self.ambiguity

    @property
    def gold(self) -> Optional[Location]:
        if not self.has_gold or not self.candidates:
            return None
        # Gold indices past the end of the list point at the last candidate
        return self.candidates[min(self.gold_idx, self.ambiguity - 1)]

    @property
    def selected(self) -> Optional[Location]:
        return self.candidates[self._selected_idx] if self.has_selected else None

    def __iter__(self) -> Iterator[Location]:
        return iter(self.candidates)

    def __repr__(self) -> str:
        return (f"Toponym({self.form!r}, ambiguity={self.ambiguity}, "
                f"gold={self.gold_idx}, selected={self._selected_idx})")


@dataclass(eq=False)
class Sentence:
    tokens: list[Token] = field(default_factory=list)

    @property
    def toponyms(self) -> list[Toponym]:
        return [t for t in self.tokens if t.is_toponym]

    def __iter__(self) -> Iterator[Token]:
        return iter(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)


@dataclass(eq=False)
class Document:
    id: str
    sentences: list[Sentence] = field(default_factory=list)
    gold_coord: Optional[Coordinate] = None

    def __iter__(self) -> Iterator[Sentence]:
        return iter(self.sentences)

    def tokens(self) -> list[Token]:
        return [tok for sent in self.sentences for tok in sent]

    def toponyms(self) -> list[Toponym]:
        return [top for sent in self.sentences for top in sent.toponyms]


@dataclass(eq=False)
class Corpus:
    documents: list[Document] = field(default_factory=list)

    def __iter__(self) -> Iterator[Document]:
        return iter(self.documents)

    def __len__(self) -> int:
        return len(self.documents)

    def toponyms(self) -> Iterator[Toponym]:
        for doc in self.documents:
            yield from doc.toponyms()
