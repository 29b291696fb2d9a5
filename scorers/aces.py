# scorers/aces.py
# adverse childhood experiences: endorsed-item count by abuse / neglect / household

from __future__ import annotations

from typing import Any, Dict, Sequence

from gating import ConfidenceRecord
from models import Response
from scorers.base import InstrumentResult, InstrumentScorer

DOMAINS = ("abuse", "neglect", "household_dysfunction")


class AcesScorer(InstrumentScorer):
    name = "aces"

    def score(self, responses: Sequence[Response]) -> InstrumentResult:
        spec = self.spec
        by_id = self.latest(responses)
        scores: Dict[str, Any] = {}
        confidence: Dict[str, ConfidenceRecord] = {}

        subscales = self.subscales(by_id, DOMAINS)
        items = [i for name in DOMAINS for i in self.items(by_id, name)]
        aces = self.aggregator.total("aces", items, spec.band("aces"), subscales)

        sexual_id = spec.threshold("sexual_abuse_item")
        extras = {
            "domain_totals": {s.name: s.total for s in subscales if s.has_data},
            "sexual_abuse": any(
                i.question_id == sexual_id and not i.defaulted and i.value >= 1
                for i in items
            ),
        }
        summary: Dict[str, Any] = {}
        if self.expose("aces", aces, scores, confidence, extras):
            summary = {"risk_level": aces.level, "total": aces.score}
        return self.finish(scores, confidence, summary)
