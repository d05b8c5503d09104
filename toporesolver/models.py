"""
Pydantic models for the JSON corpus and gazetteer files and for evaluation
output. These are pure data objects; conversion to the in-memory corpus
lives in corpus_io.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from toporesolver.topo import LocationType


# ── Candidates ────────────────────────────────────────────────────────

class CandidateModel(BaseModel):
    """A gazetteer entry: either a point (lat/lon) or a rectangle, in degrees."""
    id: str
    name: str
    lat: Optional[float] = Field(None, ge=-90.0, le=90.0)
    lon: Optional[float] = Field(None, ge=-180.0, le=180.0)
    min_lat: Optional[float] = Field(None, ge=-90.0, le=90.0)
    max_lat: Optional[float] = Field(None, ge=-90.0, le=90.0)
    min_lon: Optional[float] = Field(None, ge=-180.0, le=180.0)
    max_lon: Optional[float] = Field(None, ge=-180.0, le=180.0)
    population: int = Field(0, ge=0)
    admin1_code: Optional[str] = None
    type: LocationType = LocationType.OTHER

    model_config = {"extra": "ignore"}

    @field_validator("type", mode="before")
    @classmethod
    def lowercase_type(cls, v):
        """Gazetteer dumps spell types in upper case."""
        return v.lower() if isinstance(v, str) else v

    @model_validator(mode="after")
    def check_geometry(self) -> "CandidateModel":
        has_point = self.lat is not None and self.lon is not None
        box = (self.min_lat, self.max_lat, self.min_lon, self.max_lon)
        has_box = all(v is not None for v in box)
        if not has_point and not has_box:
            raise ValueError(f"candidate {self.id!r} needs lat/lon or a full bounding box")
        return self

    @property
    def is_rect(self) -> bool:
        return self.lat is None or self.lon is None


# ── Corpus ────────────────────────────────────────────────────────────

class ToponymModel(BaseModel):
    form: str
    candidates: list[CandidateModel] = Field(default_factory=list)
    gold_idx: int = -1
    selected_idx: int = -1

    @model_validator(mode="after")
    def check_selected(self) -> "ToponymModel":
        if self.selected_idx != -1 and not 0 <= self.selected_idx < len(self.candidates):
            raise ValueError(
                f"selected_idx {self.selected_idx} out of range for {self.form!r}"
            )
        return self


TokenModel = Union[str, ToponymModel]


class DocumentModel(BaseModel):
    id: str
    gold_coord: Optional[tuple[float, float]] = None
    sentences: list[list[TokenModel]] = Field(default_factory=list)


class CorpusModel(BaseModel):
    documents: list[DocumentModel] = Field(default_factory=list)


class GazetteerModel(BaseModel):
    """A flat list of named locations, indexed by name on load."""
    locations: list[CandidateModel] = Field(default_factory=list)


# ── Evaluation output ─────────────────────────────────────────────────

class EvaluationSummary(BaseModel):
    precision: float
    recall: float
    f_score: float
    accuracy: float
    min_error_km: float
    max_error_km: float
    mean_error_km: float
    median_error_km: float
    fraction_within_threshold: float
    threshold_km: float
    toponyms_evaluated: int
