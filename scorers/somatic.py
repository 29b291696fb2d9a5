# scorers/somatic.py
# PHQ-15 somatic symptom burden with body-system subscales and health anxiety

from __future__ import annotations

from typing import Any, Dict, Sequence

from gating import ConfidenceRecord
from models import Response
from scorers.base import InstrumentResult, InstrumentScorer

SYMPTOM_DOMAINS = ("pain", "cardiopulmonary", "gastrointestinal", "other")


class SomaticScorer(InstrumentScorer):
    name = "somatic"

    def score(self, responses: Sequence[Response]) -> InstrumentResult:
        spec = self.spec
        by_id = self.latest(responses)
        scores: Dict[str, Any] = {}
        confidence: Dict[str, ConfidenceRecord] = {}

        subscales = self.subscales(by_id, SYMPTOM_DOMAINS, band="symptom_domain")
        items = [i for name in SYMPTOM_DOMAINS for i in self.items(by_id, name)]
        phq15 = self.aggregator.total("phq15", items, spec.band("phq15"), subscales)

        # "bothered a lot" is the top of the 0-2 scale
        top = spec.scale_for("pain").maximum
        extras = {
            "symptom_count": sum(1 for i in items if not i.defaulted and i.value >= top),
            "functional_impairment": spec.band("functional_impairment").classify(phq15.score),
        }
        phq_ok = self.expose("phq15", phq15, scores, confidence, extras)

        health = self.aggregator.domain(
            "health_anxiety",
            items=self.items(by_id, "health_anxiety"),
            bands=spec.band("health_anxiety"),
            precision=2,
        )
        health_ok = self.expose("health_anxiety", health, scores, confidence)

        summary: Dict[str, Any] = {}
        if phq_ok:
            summary["severity"] = phq15.level
            summary["symptom_count"] = extras["symptom_count"]
        if health_ok:
            summary["health_anxiety"] = health.level
        return self.finish(scores, confidence, summary)
