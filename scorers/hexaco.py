# scorers/hexaco.py
# HEXACO honesty-humility: four facets, domain = mean of facet means

from __future__ import annotations

from typing import Any, Dict, Sequence

from scipy.stats import norm

from aggregator import round_half_up
from gating import ConfidenceRecord
from models import Response
from scorers.base import InstrumentResult, InstrumentScorer


class HexacoScorer(InstrumentScorer):
    name = "hexaco"

    def score(self, responses: Sequence[Response]) -> InstrumentResult:
        spec = self.spec
        by_id = self.latest(responses)
        scores: Dict[str, Any] = {}
        confidence: Dict[str, ConfidenceRecord] = {}

        facets = self.subscales(by_id, list(spec.subscales), band="facet")
        domain = self.aggregator.domain(
            "honesty_humility", subscales=facets, bands=spec.band("honesty_humility")
        )
        extras = {"percentile": self.percentile(domain.score)}

        summary: Dict[str, Any] = {}
        if self.expose("honesty_humility", domain, scores, confidence, extras):
            summary = {"level": domain.level, "percentile": extras["percentile"]}
        return self.finish(scores, confidence, summary)

    def percentile(self, score) -> Any:
        """normal-theory percentile against the configured population mean/sd."""
        if score is None:
            return None
        z = (score - float(self.spec.threshold("population_mean"))) / float(
            self.spec.threshold("population_sd")
        )
        return int(round_half_up(float(norm.cdf(z)) * 100.0))
