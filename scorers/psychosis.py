# scorers/psychosis.py
# PQ-B prodromal screen: positive / negative / disorganization symptom counts
# weighed against the respondent's distress rating

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from gating import ConfidenceRecord
from models import Response
from scorers.base import InstrumentResult, InstrumentScorer

SYMPTOM_SUBSCALES = ("positive", "negative", "disorganization")


class PsychosisScorer(InstrumentScorer):
    name = "psychosis"

    def score(self, responses: Sequence[Response]) -> InstrumentResult:
        spec = self.spec
        by_id = self.latest(responses)
        scores: Dict[str, Any] = {}
        confidence: Dict[str, ConfidenceRecord] = {}

        # subscale level is banded on the endorsed fraction (average of 0/1 items)
        subscales = self.subscales(by_id, SYMPTOM_SUBSCALES, band="symptom_ratio")
        items = [i for name in SYMPTOM_SUBSCALES for i in self.items(by_id, name)]
        pqb = self.aggregator.total("pqb", items, spec.band("risk"), subscales)

        distress_items = self.items(by_id, "distress")
        distress = self.aggregator.domain("distress", items=distress_items, precision=2)
        self.expose("distress", distress, scores, confidence)
        distress_value = distress.score

        endorsed = {i.question_id for i in items if not i.defaulted and i.value >= 1}
        extras = {
            "risk": self._risk(pqb.score, distress_value),
            "positive_screen": self._positive_screen(pqb.score, distress_value),
            "distress": distress_value,
            "hallucinations": any(q in endorsed for q in spec.threshold("hallucination_items")),
            "thought_disorder": any(q in endorsed for q in spec.threshold("thought_disorder_items")),
        }
        summary: Dict[str, Any] = {}
        if self.expose("pqb", pqb, scores, confidence, extras):
            summary = {"risk": extras["risk"], "positive_screen": extras["positive_screen"]}
        return self.finish(scores, confidence, summary)

    def _positive_screen(self, total: Optional[float], distress: Optional[float]) -> bool:
        if total is None or distress is None:
            return False
        return total >= float(self.spec.threshold("positive_screen_symptoms")) and distress >= float(
            self.spec.threshold("positive_screen_distress")
        )

    def _risk(self, total: Optional[float], distress: Optional[float]) -> str:
        base = self.spec.band("risk").classify(total)
        if total is None or distress is None:
            return base
        if total >= float(self.spec.threshold("positive_screen_symptoms")):
            if distress >= float(self.spec.threshold("very_high_distress")):
                return "Very High"
            if distress >= float(self.spec.threshold("positive_screen_distress")):
                return "High"
        return base
