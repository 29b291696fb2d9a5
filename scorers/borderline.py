# scorers/borderline.py
# MSI-BPD style screen: one criterion per domain, met when the domain average
# reaches the configured cutoff; severity from the mean of domain averages

from __future__ import annotations

from typing import Any, Dict, Sequence

from gating import ConfidenceRecord
from models import Response
from scorers.base import InstrumentResult, InstrumentScorer


class BorderlineScorer(InstrumentScorer):
    name = "borderline"

    def score(self, responses: Sequence[Response]) -> InstrumentResult:
        spec = self.spec
        by_id = self.latest(responses)
        scores: Dict[str, Any] = {}
        confidence: Dict[str, ConfidenceRecord] = {}

        subscales = self.subscales(by_id, list(spec.subscales), band="severity")
        overall = self.aggregator.domain(
            "msi_bpd", subscales=subscales, bands=spec.band("severity")
        )

        cutoff = float(spec.threshold("criterion_average"))
        met = [s.name for s in subscales if s.average is not None and s.average >= cutoff]
        positive = len(met) >= int(spec.threshold("positive_screen_criteria"))
        extras = {
            "criteria_met": len(met),
            "criteria": met,
            "screening_level": spec.band("screening").classify(len(met)),
            "positive_screen": positive,
        }
        summary: Dict[str, Any] = {}
        if self.expose("msi_bpd", overall, scores, confidence, extras):
            summary = {
                "severity": overall.level,
                "screening_level": extras["screening_level"],
                "positive_screen": positive,
            }
        return self.finish(scores, confidence, summary)
