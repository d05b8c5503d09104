"""
Reading and writing corpora and gazetteers as JSON.

    {"documents": [
        {"id": "d1", "gold_coord": [48.85, 2.35],
         "sentences": [["I", "went", "to",
                        {"form": "Paris", "gold_idx": 0,
                         "candidates": [{"id": "p1", "name": "Paris", "lat": 48.85, "lon": 2.35}]}]]}
    ]}

Coordinates in the files are degrees.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from toporesolver.gazetteer import Gazetteer, InMemoryGazetteer
from toporesolver.models import (
    CandidateModel,
    CorpusModel,
    DocumentModel,
    GazetteerModel,
    ToponymModel,
)
from toporesolver.text import Corpus, Document, Sentence, Token, Toponym
from toporesolver.topo import Coordinate, Location, PointRegion, RectRegion

logger = logging.getLogger(__name__)


# ── Conversion ────────────────────────────────────────────────────────

def location_from_model(model: CandidateModel) -> Location:
    if model.is_rect:
        region = RectRegion.from_degrees(model.min_lat, model.max_lat, model.min_lon, model.max_lon)
    else:
        region = PointRegion(Coordinate.from_degrees(model.lat, model.lon))
    return Location(
        id=model.id,
        name=model.name,
        region=region,
        population=model.population,
        admin1_code=model.admin1_code,
        type=model.type,
    )


def location_to_model(location: Location) -> CandidateModel:
    fields = dict(
        id=location.id,
        name=location.name,
        population=location.population,
        admin1_code=location.admin1_code,
        type=location.type,
    )
    region = location.region
    if isinstance(region, RectRegion):
        sw = Coordinate(region.min_lat, region.min_lng)
        ne = Coordinate(region.max_lat, region.max_lng)
        return CandidateModel(
            min_lat=sw.lat_degrees, max_lat=ne.lat_degrees,
            min_lon=sw.lng_degrees, max_lon=ne.lng_degrees,
            **fields,
        )
    center = region.center
    return CandidateModel(lat=center.lat_degrees, lon=center.lng_degrees, **fields)


def corpus_from_model(model: CorpusModel, gazetteer: Optional[Gazetteer] = None) -> Corpus:
    corpus = Corpus()
    filled = 0
    for doc_model in model.documents:
        gold_coord = None
        if doc_model.gold_coord is not None:
            gold_coord = Coordinate.from_degrees(*doc_model.gold_coord)
        doc = Document(doc_model.id, gold_coord=gold_coord)
        for sent_model in doc_model.sentences:
            sentence = Sentence()
            for token_model in sent_model:
                if isinstance(token_model, str):
                    sentence.tokens.append(Token(token_model))
                    continue
                candidates = [location_from_model(c) for c in token_model.candidates]
                if not candidates and gazetteer is not None:
                    candidates = gazetteer.lookup(token_model.form) or []
                    filled += bool(candidates)
                sentence.tokens.append(
                    Toponym(token_model.form, candidates, token_model.gold_idx, token_model.selected_idx)
                )
            doc.sentences.append(sentence)
        corpus.documents.append(doc)
    if filled:
        logger.info("Filled candidates for %d toponyms from the gazetteer", filled)
    return corpus


def corpus_to_model(corpus: Corpus) -> CorpusModel:
    documents = []
    for doc in corpus:
        gold_coord = None
        if doc.gold_coord is not None:
            gold_coord = (doc.gold_coord.lat_degrees, doc.gold_coord.lng_degrees)
        sentences = []
        for sent in doc:
            tokens = []
            for token in sent:
                if token.is_toponym:
                    tokens.append(ToponymModel(
                        form=token.form,
                        candidates=[location_to_model(c) for c in token.candidates],
                        gold_idx=token.gold_idx,
                        selected_idx=token.selected_idx,
                    ))
                else:
                    tokens.append(token.form)
            sentences.append(tokens)
        documents.append(DocumentModel(id=doc.id, gold_coord=gold_coord, sentences=sentences))
    return CorpusModel(documents=documents)


# ── Files ─────────────────────────────────────────────────────────────

def load_corpus(path: str | Path, gazetteer: Optional[Gazetteer] = None) -> Corpus:
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        model = CorpusModel.model_validate(json.load(f))
    corpus = corpus_from_model(model, gazetteer)
    logger.info("Loaded %d documents from %s", len(corpus), path)
    return corpus


def save_corpus(corpus: Corpus, path: str | Path) -> None:
    path = Path(path)
    path.write_text(corpus_to_model(corpus).model_dump_json(indent=2, exclude_none=True), encoding="utf-8")
    logger.info("Wrote %d documents to %s", len(corpus), path)


def load_gazetteer(path: str | Path) -> InMemoryGazetteer:
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        model = GazetteerModel.model_validate(json.load(f))
    gazetteer = InMemoryGazetteer.from_locations(location_from_model(c) for c in model.locations)
    logger.info("Loaded gazetteer with %d names from %s", len(gazetteer), path)
    return gazetteer
