# scorers/anxiety.py
# GAD-7 total plus panic / social / OCD / PTSD subtype averages

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from gating import ConfidenceRecord
from models import Response
from normalizer import ScaleDefinition
from scorers.base import InstrumentResult, InstrumentScorer

SUBTYPES = ("panic", "social", "ocd", "ptsd")


class AnxietyScorer(InstrumentScorer):
    name = "anxiety"

    def score(self, responses: Sequence[Response]) -> InstrumentResult:
        spec = self.spec
        by_id = self.latest(responses)
        scores: Dict[str, Any] = {}
        confidence: Dict[str, ConfidenceRecord] = {}
        # range-normalized intensity of each reportable domain, for primary type
        intensity: Dict[str, float] = {}

        gad_bands = spec.band("gad7")
        gad = self.aggregator.total("gad7", self.items(by_id, "gad7"), gad_bands)
        if self.expose(
            "gad7", gad, scores, confidence, {"severity_index": gad_bands.index(gad.score)}
        ):
            intensity["gad"] = _intensity(gad.score / gad.count, spec.scale_for("gad7"))

        for name in SUBTYPES:
            items = self.items(by_id, name)
            domain = self.aggregator.domain(
                name, items=items, bands=spec.band("subtype"), precision=2
            )
            extras = {}
            if name == "panic":
                avoidance = self._item_value(items, spec.threshold("avoidance_item"))
                extras["avoidance"] = avoidance
                extras["avoidance_endorsed"] = avoidance is not None and avoidance >= float(
                    spec.threshold("avoidance_endorsed")
                )
            if self.expose(name, domain, scores, confidence, extras):
                intensity[name] = _intensity(domain.score, spec.scale_for(name))

        summary: Dict[str, Any] = {}
        if "gad" in intensity:
            summary["severity"] = gad.level
        if intensity:
            # first-declared wins ties
            summary["primary_type"] = max(intensity, key=lambda k: intensity[k])
        return self.finish(scores, confidence, summary)

    @staticmethod
    def _item_value(items, question_id: str) -> Optional[float]:
        for i in items:
            if i.question_id == question_id and not i.defaulted:
                return i.value
        return None


def _intensity(value: float, scale: ScaleDefinition) -> float:
    return (value - scale.minimum) / (scale.maximum - scale.minimum)
