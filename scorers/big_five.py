# scorers/big_five.py
# NEO-style five-factor traits on a 0-100 scale.
# trait = mean of its facet means whenever facet analysis is allowed, so facet
# and trait numbers can never disagree; otherwise the raw trait items are
# averaged, otherwise an injected baseline is used.

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from aggregator import SOURCE_EXTERNAL
from gating import ConfidenceRecord, trait_interval
from models import Response
from normalizer import ScoredItem
from schema import InstrumentSpec
from scorers.base import InstrumentResult, InstrumentScorer, canonical_tag

FACET_ANALYSIS = "facet_analysis"


class BigFiveScorer(InstrumentScorer):
    name = "big_five"

    def __init__(
        self,
        spec: InstrumentSpec,
        logger: Optional[logging.Logger] = None,
        baseline: Optional[Mapping[str, float]] = None,
    ) -> None:
        super().__init__(spec, logger)
        self.traits: Dict[str, List[str]] = {
            t: list(facets) for t, facets in spec.params["traits"].items()
        }
        self.facet_to_trait = {f: t for t, fs in self.traits.items() for f in fs}
        self.reliability: Dict[str, float] = dict(spec.params.get("reliability", {}))
        self.baseline = dict(baseline or {})
        # every trait shares the "trait" rule; facets fall back to "*"
        for trait in self.traits:
            self.gate.rules.setdefault(trait, self.gate.rule_for("trait"))

    def score(self, responses: Sequence[Response]) -> InstrumentResult:
        spec = self.spec
        items = self.normalize_all(self.tagged(responses, spec.tags))
        scores: Dict[str, Any] = {}
        confidence: Dict[str, ConfidenceRecord] = {}
        summary: Dict[str, Any] = {}

        by_trait = self._by_trait(items)
        facet_items = sum(
            1 for i in items if not i.defaulted and canonical_tag(i.subscale_tag) in self.facet_to_trait
        )
        gate_record = self.gate.decide(FACET_ANALYSIS, facet_items)
        confidence[FACET_ANALYSIS] = gate_record
        facets_on = gate_record.reportable

        trait_bands = spec.band("trait")
        for trait, facets in self.traits.items():
            trait_items = by_trait.get(trait, [])
            subscales = ()
            if facets_on:
                subscales = tuple(
                    self.aggregator.subscale(
                        f,
                        [i for i in trait_items if canonical_tag(i.subscale_tag) == f],
                        trait_bands,
                    )
                    for f in facets
                )
            domain = self.aggregator.domain(
                trait,
                subscales=subscales,
                items=trait_items,
                bands=trait_bands,
                external=self.baseline.get(trait),
            )
            extras: Dict[str, Any] = {}
            if domain.score is not None and domain.source != SOURCE_EXTERNAL:
                extras["facets_used"] = sum(1 for s in subscales if s.has_data)
                extras["interval"] = trait_interval(
                    domain.score,
                    domain.count,
                    self.reliability.get(trait, 0.85),
                    float(spec.threshold("population_sd")),
                )
            if self.expose(trait, domain, scores, confidence, extras):
                summary[trait] = domain.level

        self.logger.debug(
            "big five: %d tagged items, %d facet-tagged, facet analysis=%s",
            len(items),
            facet_items,
            facets_on,
        )
        return self.finish(scores, confidence, summary)

    # ------------------------- helpers -------------------------

    def _by_trait(self, items: Sequence[ScoredItem]) -> Dict[str, List[ScoredItem]]:
        """bucket items by trait; a missing trait tag is inferred from the facet."""
        out: Dict[str, List[ScoredItem]] = {}
        for i in items:
            trait = canonical_tag(i.domain)
            if trait not in self.traits:
                trait = self.facet_to_trait.get(canonical_tag(i.subscale_tag))
            if trait is None:
                continue
            out.setdefault(trait, []).append(i)
        return out
