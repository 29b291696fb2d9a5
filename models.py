# models.py
# pydantic models for strict io contracts: raw responses in, assembled report out

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

RawValue = Union[bool, int, float, str, None]

# keys a collector may use for the raw answer, in priority order
_RAW_VALUE_KEYS = ("value", "score", "response", "answer")


class Severity(str, Enum):
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


SEVERITY_RANK = {Severity.MODERATE: 1, Severity.HIGH: 2, Severity.CRITICAL: 3}


class Reliability(str, Enum):
    GOOD = "GOOD"
    ACCEPTABLE = "ACCEPTABLE"
    CAUTION = "CAUTION"
    QUESTIONABLE = "QUESTIONABLE"
    INVALID = "INVALID"


# ----------------------------- input contract -----------------------------


class Response(BaseModel):
    """one respondent answer as handed over by the survey collector.

    the raw value keeps its original type: numbers, numerals-as-text,
    booleans and labels are all legal and resolved later by the normalizer.
    a numeric 0 is a real answer, so the raw-value collapse below checks
    `is not None`, never truthiness.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    question_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("question_id", "questionId", "qid"),
    )
    scale_tag: Optional[str] = Field(
        None, validation_alias=AliasChoices("scale_tag", "scaleTag", "instrument")
    )
    subscale_tag: Optional[str] = Field(
        None,
        validation_alias=AliasChoices(
            "subscale_tag", "subscaleTag", "facet_tag", "facetTag", "facet"
        ),
    )
    domain: Optional[str] = Field(
        None, validation_alias=AliasChoices("domain", "category", "trait")
    )
    value: RawValue = None
    reverse_scored: bool = Field(
        False,
        validation_alias=AliasChoices("reverse_scored", "reverseScored", "reversed"),
    )
    response_time: Optional[float] = Field(
        None,
        ge=0.0,
        validation_alias=AliasChoices("response_time", "responseTime"),
    )
    timestamp: Optional[Union[str, float]] = None

    @model_validator(mode="before")
    @classmethod
    def _collapse_raw_value(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        raw = None
        for key in _RAW_VALUE_KEYS:
            if data.get(key) is not None:
                raw = data[key]
                break
        # non-scalar answers are unrecognized input, not a contract violation
        if not isinstance(raw, (bool, int, float, str)):
            raw = None
        return {**data, "value": raw}

    @field_validator("question_id", mode="before")
    @classmethod
    def _qid_as_text(cls, v: Any) -> Any:
        # ids are opaque; collectors and csv readers may hand them over as numbers
        if isinstance(v, bool):
            return v
        if isinstance(v, int):
            return str(v)
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        if isinstance(v, float):
            return repr(v)
        return v

    @field_validator("question_id")
    @classmethod
    def _qid_nonempty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("question_id cannot be blank")
        return v.strip()


# ----------------------------- validity output -----------------------------


class ValidityFlag(BaseModel):
    """one validity concern with its triggering metric."""

    model_config = ConfigDict(strict=True, extra="forbid", frozen=True)

    type: str
    severity: Severity
    metric: str
    value: float = Field(..., ge=0.0)
    message_key: str


class ValidityAssessment(BaseModel):
    """advisory validity metadata for a whole response set.

    proportions are None when none of their items were answered; evidence
    counts say how many items backed each proportion.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    inconsistency: Optional[float] = Field(None, ge=0.0, le=1.0)
    infrequency: Optional[float] = Field(None, ge=0.0, le=1.0)
    positive_impression: Optional[float] = Field(None, ge=0.0, le=1.0)
    random_responding: bool = False
    response_sd: Optional[float] = Field(None, ge=0.0)

    pairs_answered: int = Field(0, ge=0)
    pairs_flagged: int = Field(0, ge=0)
    infrequency_answered: int = Field(0, ge=0)
    positive_impression_answered: int = Field(0, ge=0)
    scorable_answers: int = Field(0, ge=0)

    flags: List[ValidityFlag] = Field(default_factory=list)
    reliability: Reliability = Reliability.GOOD

    @computed_field  # type: ignore[misc]
    @property
    def valid(self) -> bool:
        return not any(
            f.severity in (Severity.HIGH, Severity.CRITICAL) for f in self.flags
        )

    @computed_field  # type: ignore[misc]
    @property
    def summary_key(self) -> str:
        return f"validity.summary.{self.reliability.value.lower()}"

    @computed_field  # type: ignore[misc]
    @property
    def recommendation_key(self) -> str:
        return f"validity.recommendation.{self.reliability.value.lower()}"

    @model_validator(mode="after")
    def _flag_counts_consistent(self) -> "ValidityAssessment":
        if self.pairs_flagged > self.pairs_answered:
            raise ValueError(
                f"pairs_flagged ({self.pairs_flagged}) exceeds pairs_answered ({self.pairs_answered})"
            )
        return self


# ----------------------------- report output -----------------------------


class Alert(BaseModel):
    """clinical alert derived from gate-approved scores."""

    model_config = ConfigDict(strict=True, extra="forbid", frozen=True)

    type: str = Field(..., min_length=1)
    severity: Severity
    instrument: str
    message_key: str
    recommendation_key: str


class InstrumentSection(BaseModel):
    """one instrument's gated output inside the assembled report."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    instrument: str
    scores: Dict[str, Any]
    confidence: Dict[str, Dict[str, Any]]
    summary: Dict[str, Any] = Field(default_factory=dict)
    caveats: List[str] = Field(default_factory=list)
    alerts: List[Alert] = Field(default_factory=list)


class AssembledReport(BaseModel):
    """the sole contract handed to downstream renderers and narrative builders."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    report_id: str
    response_count: int = Field(..., ge=0)
    instruments: Dict[str, InstrumentSection]
    omitted: List[str] = Field(default_factory=list)
    validity: ValidityAssessment
    alerts: List[Alert] = Field(default_factory=list)
    enrichments: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _omitted_not_reported(self) -> "AssembledReport":
        clash = set(self.omitted) & set(self.instruments)
        if clash:
            raise ValueError(f"instruments both omitted and reported: {sorted(clash)}")
        return self
