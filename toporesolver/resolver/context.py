"""
Per-toponym-type context classifiers.

A models directory holds, for each toponym form, a training file
`<form>.txt` (one instance per line: comma-separated context words followed
by the gold candidate index) and the classifier trained from it,
`<form>.mxm`. Spaces in the form become underscores in the file name.

The classifiers are scikit-learn pipelines (DictVectorizer into a
LogisticRegression) persisted with joblib. Their classes are candidate
indices.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

import joblib
from sklearn.dummy import DummyClassifier
from sklearn.feature_extraction import DictVectorizer
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline

from toporesolver.text import Corpus, Token

logger = logging.getLogger(__name__)

MODEL_SUFFIX = ".mxm"
TRAINING_SUFFIX = ".txt"

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def form_to_filename(form: str) -> str:
    return form.replace(" ", "_")


def filename_to_form(stem: str) -> str:
    return stem.replace("_", " ")


def load_stoplist(path: Optional[str | Path]) -> frozenset[str]:
    if path is None:
        return frozenset()
    with Path(path).open("r", encoding="utf-8") as f:
        return frozenset(line.strip().lower() for line in f if line.strip())


def context_features(
    tokens: Sequence[Token],
    index: int,
    window_size: int,
    stoplist: Iterable[str] = (),
) -> list[str]:
    """Lower-cased alphanumeric words within `window_size` tokens of `tokens[index]`."""
    stop = stoplist if isinstance(stoplist, (set, frozenset)) else set(stoplist)
    start = max(0, index - window_size)
    end = min(len(tokens), index + window_size + 1)
    features = []
    for i in range(start, end):
        if i == index:
            continue
        word = _NON_ALNUM.sub("", tokens[i].form.lower())
        if word and word not in stop:
            features.append(word)
    return features


def _as_feature_dict(features: Iterable[str]) -> dict[str, float]:
    return {word: float(count) for word, count in Counter(features).items()}


class ContextModel:
    """Distribution over candidate indices given a toponym's context words."""

    def __init__(self, pipeline: Pipeline, form: str = ""):
        self.pipeline = pipeline
        self.form = form

    @classmethod
    def load(cls, path: str | Path) -> "ContextModel":
        path = Path(path)
        return cls(joblib.load(path), filename_to_form(path.stem))

    def predict(self, features: Iterable[str]) -> dict[int, float]:
        probabilities = self.pipeline.predict_proba([_as_feature_dict(features)])[0]
        return {int(label): float(p) for label, p in zip(self.pipeline.classes_, probabilities)}


def load_context_models(models_dir: str | Path) -> dict[str, ContextModel]:
    models_dir = Path(models_dir)
    models = {}
    for path in sorted(models_dir.glob(f"*{MODEL_SUFFIX}")):
        model = ContextModel.load(path)
        models[model.form] = model
    logger.info("Loaded %d context models from %s", len(models), models_dir)
    return models


def load_training_counts(models_dir: str | Path) -> dict[str, int]:
    """Number of training instances per toponym form."""
    counts = {}
    for path in sorted(Path(models_dir).glob(f"*{TRAINING_SUFFIX}")):
        with path.open("r", encoding="utf-8") as f:
            counts[filename_to_form(path.stem)] = sum(1 for _ in f)
    return counts


def type_frequencies(counts: dict[str, int]) -> dict[str, float]:
    """Relative training frequency f(t) of every form."""
    total = sum(counts.values())
    if total == 0:
        return {}
    return {form: count / total for form, count in counts.items()}


def read_training_file(path: str | Path) -> tuple[list[dict[str, float]], list[str]]:
    instances, labels = [], []
    with Path(path).open("r", encoding="utf-8") as f:
        for line in f:
            parts = line.strip().split(",")
            if not parts or not parts[-1]:
                continue
            instances.append(_as_feature_dict(p for p in parts[:-1] if p))
            labels.append(parts[-1])
    return instances, labels


def build_pipeline(num_labels: int, max_iter: int = 1000) -> Pipeline:
    # LogisticRegression refuses single-class data; the prior is all there is
    if num_labels < 2:
        classifier = DummyClassifier(strategy="prior")
    else:
        classifier = LogisticRegression(max_iter=max_iter)
    return Pipeline([("vectorizer", DictVectorizer()), ("classifier", classifier)])


def train_context_models(models_dir: str | Path, max_iter: int = 1000) -> list[Path]:
    """Train one classifier per training file and write it next to it."""
    models_dir = Path(models_dir)
    written = []
    for path in sorted(models_dir.glob(f"*{TRAINING_SUFFIX}")):
        instances, labels = read_training_file(path)
        if not instances:
            logger.warning("No training instances in %s, skipping", path)
            continue
        pipeline = build_pipeline(len(set(labels)), max_iter=max_iter)
        pipeline.fit(instances, labels)
        out = path.with_suffix(MODEL_SUFFIX)
        joblib.dump(pipeline, out)
        written.append(out)
        logger.debug("Trained %s on %d instances", out.name, len(instances))
    logger.info("Trained %d context models in %s", len(written), models_dir)
    return written


def training_instances(
    corpus: Corpus,
    window_size: int,
    stoplist: Iterable[str] = (),
) -> Iterator[tuple[str, list[str], int]]:
    """(form, context words, gold index) for every gold-annotated toponym."""
    stop = frozenset(stoplist)
    for doc in corpus:
        tokens = doc.tokens()
        for index, token in enumerate(tokens):
            if token.is_toponym and token.has_gold and token.ambiguity > 0:
                gold_idx = min(token.gold_idx, token.ambiguity - 1)
                yield token.form, context_features(tokens, index, window_size, stop), gold_idx


def write_training_instances(
    models_dir: str | Path,
    instances: Iterable[tuple[str, Sequence[str], int]],
) -> dict[str, int]:
    """
    Append (form, context words, gold index) instances to the per-form
    training files. Returns the number of instances written per form.
    """
    models_dir = Path(models_dir)
    models_dir.mkdir(parents=True, exist_ok=True)
    written: Counter[str] = Counter()
    handles = {}
    try:
        for form, features, gold_idx in instances:
            f = handles.get(form)
            if f is None:
                f = (models_dir / f"{form_to_filename(form)}{TRAINING_SUFFIX}").open("a", encoding="utf-8")
                handles[form] = f
            f.write(",".join(list(features) + [str(gold_idx)]) + "\n")
            written[form] += 1
    finally:
        for f in handles.values():
            f.close()
    return dict(written)
