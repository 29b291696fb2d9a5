# scorers/resilience.py
# resilience facets (adaptability, control, support) and the coping balance

from __future__ import annotations

from typing import Any, Dict, Sequence

from aggregator import SOURCE_FACETS, SOURCE_NONE, DomainScore, round_half_up
from gating import ConfidenceRecord
from models import Response
from scorers.base import InstrumentResult, InstrumentScorer

FACETS = ("adaptability", "control", "support")
COPING = ("adaptive_coping", "maladaptive_coping")


class ResilienceScorer(InstrumentScorer):
    name = "resilience"

    def score(self, responses: Sequence[Response]) -> InstrumentResult:
        spec = self.spec
        by_id = self.latest(responses)
        scores: Dict[str, Any] = {}
        confidence: Dict[str, ConfidenceRecord] = {}
        summary: Dict[str, Any] = {}

        facets = self.subscales(by_id, FACETS, band="resilience")
        overall = self.aggregator.domain(
            "resilience", subscales=facets, bands=spec.band("resilience")
        )
        if self.expose("resilience", overall, scores, confidence):
            summary["level"] = overall.level

        coping = self._coping(self.subscales(by_id, COPING))
        if self.expose("coping", coping, scores, confidence):
            summary["coping_style"] = coping.level
        return self.finish(scores, confidence, summary)

    def _coping(self, subscales) -> DomainScore:
        """adaptive / maladaptive average ratio; undefined unless both sides have data."""
        adaptive, maladaptive = subscales
        ratio = None
        if adaptive.average is not None and maladaptive.average is not None and maladaptive.average > 0:
            ratio = round_half_up(adaptive.average / maladaptive.average, 2)
        return DomainScore(
            name="coping",
            score=ratio,
            source=SOURCE_FACETS if ratio is not None else SOURCE_NONE,
            level=self.spec.band("coping_style").classify(ratio),
            count=adaptive.count + maladaptive.count,
            defaulted=adaptive.defaulted + maladaptive.defaulted,
            subscales=tuple(subscales),
        )
