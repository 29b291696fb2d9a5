# scorers/neurodiversity.py
# ADHD / autism screening and the executive-function profile.
# items are picked up by scale tag, grouped by their (canonicalized) subscale
# tag. screening scores credit only agreement above the endorsement floor:
#   screen = sum(2 * max(value - floor, 0)) over real items
# the executive-function block is reported only when enough of its
# sub-domains are themselves reportable.

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Sequence, Tuple

from aggregator import DomainScore, Subscale
from gating import ConfidenceRecord, is_reported
from models import Response
from normalizer import ScoredItem
from scorers.base import InstrumentResult, InstrumentScorer, canonical_tag

EXECUTIVE_FUNCTION = "executive_function"


class NeurodiversityScorer(InstrumentScorer):
    name = "neurodiversity"

    def score(self, responses: Sequence[Response]) -> InstrumentResult:
        spec = self.spec
        scores: Dict[str, Any] = {}
        confidence: Dict[str, ConfidenceRecord] = {}
        summary: Dict[str, Any] = {}

        latest = list(self.latest(responses).values())
        for screen, params in spec.params["screens"].items():
            items = self.normalize_all(self.tagged(latest, params["tags"]))
            domain = self._screen(screen, items, params["indicators"])
            if self.expose(screen, domain, scores, confidence):
                summary[screen] = domain.level

        ef = spec.params[EXECUTIVE_FUNCTION]
        ef_items = self.normalize_all(self.tagged(latest, ef["tags"]))
        strengths, challenges = self._executive_function(
            ef_items, ef["domains"], scores, confidence
        )
        if is_reported(scores[EXECUTIVE_FUNCTION]):
            summary[EXECUTIVE_FUNCTION] = scores[EXECUTIVE_FUNCTION]["level"]
            summary["strengths"] = strengths
            summary["challenges"] = challenges
        return self.finish(scores, confidence, summary)

    # ------------------------- screens -------------------------

    def _screen(
        self, screen: str, items: List[ScoredItem], indicators: Sequence[str]
    ) -> DomainScore:
        floor = float(self.spec.threshold("endorsement_floor"))
        excess = [
            replace(i, value=2.0 * max(i.value - floor, 0.0)) for i in items
        ]
        indicator_subs = tuple(
            self.aggregator.subscale(
                name,
                [i for i in items if canonical_tag(i.subscale_tag) == name],
                self.spec.band("indicator"),
            )
            for name in indicators
        )
        return self.aggregator.total(
            screen, excess, self.spec.band(screen), indicator_subs
        )

    # ------------------------- executive function -------------------------

    def _executive_function(
        self,
        items: List[ScoredItem],
        domains: Sequence[str],
        scores: Dict[str, Any],
        confidence: Dict[str, ConfidenceRecord],
    ) -> Tuple[List[str], List[str]]:
        bands = self.spec.band(EXECUTIVE_FUNCTION)
        subs: List[Subscale] = [
            self.aggregator.subscale(
                d, [i for i in items if canonical_tag(i.subscale_tag) == d], bands
            )
            for d in domains
        ]
        reportable = [
            s
            for s in subs
            if self.gate.evaluate_subscale(f"{EXECUTIVE_FUNCTION}.{s.name}", s).reportable
        ]
        block = self.gate.evaluate_block(EXECUTIVE_FUNCTION, len(reportable))

        overall = self.aggregator.domain(
            EXECUTIVE_FUNCTION, subscales=reportable, bands=bands
        )
        overall = replace(overall, subscales=tuple(subs))

        challenge_at = float(self.spec.threshold("challenge_average"))
        strength_at = float(self.spec.threshold("strength_average"))
        challenges = [s.name for s in reportable if s.average >= challenge_at]
        strengths = [s.name for s in reportable if s.average <= strength_at]

        extras = {
            "domains_reported": len(reportable),
            "strengths": strengths,
            "challenges": challenges,
        }
        payload, records = self.gate.domain_payload(
            EXECUTIVE_FUNCTION, overall, extras, record=block
        )
        scores[EXECUTIVE_FUNCTION] = payload
        confidence.update(records)
        if block.reportable:
            self.logger.debug(
                "executive function: %d/%d sub-domains, overall %s",
                len(reportable),
                len(subs),
                overall.score,
            )
        return strengths, challenges
