"""
validity: response-pattern trustworthiness for a whole assessment.

four independent signals over the full response set:

    inconsistency        paired opposite items answered alike (|a-b| < 2)
    infrequency          rarely-true items endorsed (>= 4)
    positive impression  implausibly virtuous items endorsed (>= 4)
    random responding    inconsistent AND low spread over all scorable answers

every validity item is read on one common 1-5 scale as answered, without
reverse keying. reliability is a pure function of the flag severity
multiset, so flag order never matters.
the result is advisory; it never alters any instrument score.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from config.core import ValidityConfig
from models import Reliability, Response, Severity, ValidityAssessment, ValidityFlag
from normalizer import SCALES, ScoredItem, normalize

# (metric, high flag type, moderate flag type)
_FLAG_TYPES = {
    "inconsistency": ("HIGH_INCONSISTENCY", "MODERATE_INCONSISTENCY"),
    "infrequency": ("POSSIBLE_EXAGGERATION", "QUESTIONABLE_EXAGGERATION"),
    "positive_impression": ("FAKING_GOOD", "POSSIBLE_FAKING_GOOD"),
}
RANDOM_RESPONDING = "RANDOM_RESPONDING"


def classify_reliability(flags: Iterable[ValidityFlag]) -> Reliability:
    """worst-flag decision table; depends only on severity counts."""
    counts = Counter(f.severity for f in flags)
    if counts[Severity.CRITICAL]:
        return Reliability.INVALID
    if counts[Severity.HIGH] >= 2:
        return Reliability.QUESTIONABLE
    if counts[Severity.HIGH] == 1 or counts[Severity.MODERATE] >= 2:
        return Reliability.CAUTION
    if counts[Severity.MODERATE] == 1:
        return Reliability.ACCEPTABLE
    return Reliability.GOOD


class ValidityScaleCalculator:
    """compute a ValidityAssessment from one response set."""

    def __init__(
        self,
        config: Optional[ValidityConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or ValidityConfig()
        self.scale = SCALES["validity"]
        self.logger = logger or logging.getLogger(f"{__name__}.ValidityScaleCalculator")

    def assess(self, responses: Sequence[Response]) -> ValidityAssessment:
        scored = self._score_by_id(responses)
        cfg = self.config
        flags: List[ValidityFlag] = []

        inconsistency, answered, flagged = self._inconsistency(scored)
        flags += self._threshold_flag(
            "inconsistency", inconsistency, cfg.inconsistency_high, cfg.inconsistency_moderate
        )

        infrequency, infreq_n = self._endorsed_ratio(scored, cfg.infrequency_items)
        flags += self._threshold_flag(
            "infrequency", infrequency, cfg.infrequency_high, cfg.infrequency_moderate
        )

        positive, pos_n = self._endorsed_ratio(scored, cfg.positive_impression_items)
        flags += self._threshold_flag(
            "positive_impression",
            positive,
            cfg.positive_impression_high,
            cfg.positive_impression_moderate,
        )

        scorable = [i.value for i in scored.values() if not i.defaulted]
        sd = float(np.std(scorable)) if len(scorable) >= cfg.random_min_answers else None
        random_flag = (
            sd is not None
            and inconsistency is not None
            and inconsistency > cfg.random_inconsistency_above
            and sd < cfg.random_sd_below
        )
        if random_flag:
            flags.append(
                ValidityFlag(
                    type=RANDOM_RESPONDING,
                    severity=Severity.CRITICAL,
                    metric="response_sd",
                    value=sd,
                    message_key="validity.flag.random_responding",
                )
            )

        reliability = classify_reliability(flags)
        self.logger.info(
            "validity: inconsistency=%s infrequency=%s positive_impression=%s sd=%s reliability=%s",
            _fmt(inconsistency),
            _fmt(infrequency),
            _fmt(positive),
            _fmt(sd),
            reliability.value,
        )
        return ValidityAssessment(
            inconsistency=inconsistency,
            infrequency=infrequency,
            positive_impression=positive,
            random_responding=random_flag,
            response_sd=sd,
            pairs_answered=answered,
            pairs_flagged=flagged,
            infrequency_answered=infreq_n,
            positive_impression_answered=pos_n,
            scorable_answers=len(scorable),
            flags=flags,
            reliability=reliability,
        )

    # ------------------------- helpers -------------------------

    def _score_by_id(self, responses: Sequence[Response]) -> Dict[str, ScoredItem]:
        # last answer wins when a collector resends an item. pair items are
        # opposite-keyed and compared as answered
        return {r.question_id: normalize(r, self.scale, keyed=False) for r in responses}

    def _answered(self, scored: Dict[str, ScoredItem], qid: str) -> Optional[float]:
        item = scored.get(qid)
        if item is None or item.defaulted:
            return None
        return item.value

    def _inconsistency(
        self, scored: Dict[str, ScoredItem]
    ) -> Tuple[Optional[float], int, int]:
        answered = flagged = 0
        for a_id, b_id in self.config.inconsistency_pairs:
            a = self._answered(scored, a_id)
            b = self._answered(scored, b_id)
            if a is None or b is None:
                continue
            answered += 1
            if abs(a - b) < self.config.pair_difference_threshold:
                flagged += 1
        ratio = flagged / answered if answered else None
        return ratio, answered, flagged

    def _endorsed_ratio(
        self, scored: Dict[str, ScoredItem], item_ids: Sequence[str]
    ) -> Tuple[Optional[float], int]:
        values = [self._answered(scored, q) for q in item_ids]
        values = [v for v in values if v is not None]
        if not values:
            return None, 0
        endorsed = sum(1 for v in values if v >= self.config.endorsement_threshold)
        return endorsed / len(values), len(values)

    @staticmethod
    def _threshold_flag(
        metric: str, ratio: Optional[float], high: float, moderate: float
    ) -> List[ValidityFlag]:
        if ratio is None:
            return []
        high_type, moderate_type = _FLAG_TYPES[metric]
        if ratio > high:
            severity, kind = Severity.HIGH, high_type
        elif ratio > moderate:
            severity, kind = Severity.MODERATE, moderate_type
        else:
            return []
        return [
            ValidityFlag(
                type=kind,
                severity=severity,
                metric=metric,
                value=float(ratio),
                message_key=f"validity.flag.{kind.lower()}",
            )
        ]


def _fmt(x: Optional[float]) -> str:
    return "n/a" if x is None else f"{x:.3f}"
