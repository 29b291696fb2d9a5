# scorers/depression.py
# PHQ-9 total and severity, suicidal-ideation item, clinical indicator average,
# and a composite on the PHQ-9 metric that falls back to the clinical items

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Tuple

from aggregator import SOURCE_NONE, UNKNOWN, DomainScore, round_half_up
from gating import ConfidenceRecord
from models import Response
from scorers.base import InstrumentResult, InstrumentScorer


class DepressionScorer(InstrumentScorer):
    name = "depression"

    def score(self, responses: Sequence[Response]) -> InstrumentResult:
        spec = self.spec
        by_id = self.latest(responses)
        scores: Dict[str, Any] = {}
        confidence: Dict[str, ConfidenceRecord] = {}

        phq_bands = spec.band("phq9")
        phq_items = self.items(by_id, "phq9")
        phq = self.aggregator.total("phq9", phq_items, phq_bands)
        phq_ok = self.expose(
            "phq9",
            phq,
            scores,
            confidence,
            {"severity_index": phq_bands.index(phq.score)},
        )

        # item 9 is gated on its own so the safety signal survives a short phq-9
        suicide_id = spec.threshold("suicide_item")
        si = self.aggregator.total(
            "suicidal_ideation",
            [i for i in phq_items if i.question_id == suicide_id],
            spec.band("suicidal_ideation"),
        )
        si_ok = self.expose("suicidal_ideation", si, scores, confidence)

        clinical = self.aggregator.domain(
            "clinical",
            items=self.items(by_id, "clinical"),
            bands=spec.band("clinical"),
            precision=2,
        )
        clinical_ok = self.expose("clinical", clinical, scores, confidence)

        composite, basis = self._composite(phq, phq_ok, clinical, clinical_ok)
        composite_ok = self.expose(
            "composite", composite, scores, confidence, {"basis": basis}
        )

        summary: Dict[str, Any] = {}
        if phq_ok:
            summary["severity"] = phq.level
        if si_ok:
            summary["suicidal_ideation"] = si.level
        if composite_ok:
            summary["composite_level"] = composite.level
        return self.finish(scores, confidence, summary)

    def _composite(
        self,
        phq: DomainScore,
        phq_ok: bool,
        clinical: DomainScore,
        clinical_ok: bool,
    ) -> Tuple[DomainScore, Optional[str]]:
        bands = self.spec.band("phq9")
        if phq_ok:
            return DomainScore(
                name="composite",
                score=phq.score,
                source=phq.source,
                level=phq.level,
                count=phq.count,
                defaulted=phq.defaulted,
            ), "phq9"
        if clinical_ok:
            # map the 1-5 clinical average onto the 0-27 phq-9 range
            factor = float(self.spec.threshold("clinical_to_phq9_factor"))
            value = round_half_up((clinical.score - 1.0) * factor)
            return DomainScore(
                name="composite",
                score=value,
                source=clinical.source,
                level=bands.classify(value),
                count=clinical.count,
                defaulted=clinical.defaulted,
            ), "clinical"
        return DomainScore(
            name="composite",
            score=None,
            source=SOURCE_NONE,
            level=UNKNOWN,
            count=0,
            defaulted=phq.defaulted + clinical.defaulted,
        ), None
