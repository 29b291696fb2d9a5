# scorers/mania.py
# MDQ symptom checklist: total, severity, composite risk, positive screen, bipolar type

from __future__ import annotations

from typing import Any, Dict, Sequence

from gating import ConfidenceRecord
from models import Response
from scorers.base import InstrumentResult, InstrumentScorer

BIPOLAR_UNLIKELY = "Unlikely"
BIPOLAR_I = "BP-I Suggested"
BIPOLAR_II = "BP-II Suggested"


class ManiaScorer(InstrumentScorer):
    name = "mania"

    def score(self, responses: Sequence[Response]) -> InstrumentResult:
        spec = self.spec
        by_id = self.latest(responses)
        scores: Dict[str, Any] = {}
        confidence: Dict[str, ConfidenceRecord] = {}

        items = self.items(by_id, "mdq")
        mdq = self.aggregator.total("mdq", items, spec.band("mdq"))

        cutoff = float(spec.threshold("positive_screen"))
        risky_id = spec.threshold("risky_behavior_item")
        risky = any(
            i.question_id == risky_id and not i.defaulted and i.value >= 1 for i in items
        )
        positive = mdq.score is not None and mdq.score >= cutoff
        if not positive:
            bipolar_type = BIPOLAR_UNLIKELY
        elif risky:
            bipolar_type = BIPOLAR_I
        else:
            bipolar_type = BIPOLAR_II

        extras = {
            "positive_screen": positive,
            "composite_risk": spec.band("composite_risk").classify(mdq.score),
            "risky_behavior": risky,
            "bipolar_type": bipolar_type,
        }
        summary: Dict[str, Any] = {}
        if self.expose("mdq", mdq, scores, confidence, extras):
            summary = {"severity": mdq.level, "positive_screen": positive}
        return self.finish(scores, confidence, summary)
