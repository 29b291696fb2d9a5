# scorers/base.py
# shared plumbing for instrument scorers: item selection, aggregation, gating

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from aggregator import BASIS_AVERAGE, BandTable, DomainScore, ScaleAggregator, Subscale
from gating import ConfidenceRecord, DataSufficiencyGate
from models import Response
from normalizer import ScaleDefinition, ScoredItem, get_scale, normalize
from schema import InstrumentSpec

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEP_RE = re.compile(r"[\s\-]+")


def canonical_tag(tag: Optional[str]) -> Optional[str]:
    """"timeManagement", "Time Management", "time-management" → "time_management"."""
    if tag is None:
        return None
    text = _CAMEL_RE.sub("_", tag.strip())
    return _SEP_RE.sub("_", text).lower() or None


@dataclass(frozen=True)
class InstrumentResult:
    """one scorer's output.

    attributes:
        instrument: scorer name
        scores: gated payloads keyed by domain
        confidence: every gate decision, keyed "domain" or "domain.subscale"
        summary: facts derived only from reportable payloads
    """

    instrument: str
    scores: Dict[str, Any]
    confidence: Dict[str, ConfidenceRecord]
    summary: Dict[str, Any] = field(default_factory=dict)

    @property
    def reportable(self) -> bool:
        return any(r.reportable for r in self.confidence.values())


class InstrumentScorer:
    """base class for one instrument; subclasses implement score()."""

    name: str = ""

    def __init__(
        self, spec: InstrumentSpec, logger: Optional[logging.Logger] = None
    ) -> None:
        if not self.name:
            raise ValueError(f"{type(self).__name__} must define a name")
        self.spec = spec
        self.aggregator = ScaleAggregator(precision=spec.precision)
        # subscale averages keep at least two decimals even for integer totals
        self.gate = DataSufficiencyGate(
            spec.gate, precision=self.aggregator.average_precision
        )
        self.logger = logger or logging.getLogger(f"scorers.{self.name}")

    def score(self, responses: Sequence[Response]) -> InstrumentResult:
        raise NotImplementedError

    # ------------------------- selection -------------------------

    @staticmethod
    def latest(responses: Iterable[Response]) -> Dict[str, Response]:
        """responses by question id; a resent answer replaces the earlier one."""
        return {r.question_id: r for r in responses}

    def items(self, by_id: Mapping[str, Response], subscale: str) -> List[ScoredItem]:
        """normalized items of a configured (id-based) subscale."""
        scale = self.spec.scale_for(subscale)
        return [
            normalize(by_id[q], scale)
            for q in self.spec.subscales[subscale].items
            if q in by_id
        ]

    def tagged(
        self, responses: Iterable[Response], tags: Sequence[str]
    ) -> List[Response]:
        """responses whose scale tag is one of `tags` (case-insensitive)."""
        wanted = {t.upper() for t in tags}
        return [r for r in responses if r.scale_tag and r.scale_tag.upper() in wanted]

    def normalize_all(
        self, responses: Iterable[Response], scale: Optional[ScaleDefinition] = None
    ) -> List[ScoredItem]:
        scale = scale or get_scale(self.spec.scale)
        return [normalize(r, scale) for r in responses]

    # ------------------------- aggregation -------------------------

    def subscales(
        self,
        by_id: Mapping[str, Response],
        names: Sequence[str],
        band: Optional[str] = None,
        basis: str = BASIS_AVERAGE,
    ) -> Tuple[Subscale, ...]:
        bands = self.spec.band(band) if band else None
        return tuple(
            self.aggregator.subscale(n, self.items(by_id, n), bands, basis)
            for n in names
        )

    def band_or_none(self, name: str) -> Optional[BandTable]:
        return self.spec.bands.get(name)

    # ------------------------- gating -------------------------

    def expose(
        self,
        key: str,
        domain: DomainScore,
        scores: Dict[str, Any],
        confidence: Dict[str, ConfidenceRecord],
        extras: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """gate `domain`, store its payload and records; True when reportable."""
        payload, records = self.gate.domain_payload(key, domain, extras)
        scores[key] = payload
        confidence.update(records)
        return records[key].reportable

    def finish(
        self,
        scores: Dict[str, Any],
        confidence: Dict[str, ConfidenceRecord],
        summary: Optional[Dict[str, Any]] = None,
    ) -> InstrumentResult:
        reported = sum(1 for k, r in confidence.items() if "." not in k and r.reportable)
        self.logger.info(
            "%s: %d/%d domains reportable",
            self.name,
            reported,
            sum(1 for k in confidence if "." not in k),
        )
        return InstrumentResult(
            instrument=self.name,
            scores=scores,
            confidence=confidence,
            summary=summary or {},
        )
