"""
gating: data sufficiency gate / confidence filter.

purpose
-------
decides, per domain and per subscale, whether an already-computed score may
be exposed. three outcomes:

    real items >= full_confidence_items  → reportable
    min_items <= real items < full       → reportable, caveat LOW_CONFIDENCE
    real items < min_items (or no score) → not reportable, INSUFFICIENT_DATA

the gate never touches the arithmetic of the aggregator. it only builds the
payload a consumer sees, and a non-reportable payload carries no score, level,
subscale numbers or derived extras, so any number present downstream is
gate-approved.

defaulted items are excluded from the real-item count. an externally supplied
domain value has no item evidence and is always reported with LOW_CONFIDENCE.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from scipy.stats import norm

from aggregator import SOURCE_EXTERNAL, DomainScore, Subscale, round_half_up

LOW_CONFIDENCE = "LOW_CONFIDENCE"
INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
REPORTED = "REPORTED"

DEFAULT_RULE_KEY = "*"


@dataclass(frozen=True)
class SufficiencyRule:
    """minimum real items to report, and the count below which a caveat applies."""

    min_items: int = 1
    full_confidence_items: Optional[int] = None

    def __post_init__(self) -> None:
        if self.full_confidence_items is None:
            object.__setattr__(self, "full_confidence_items", self.min_items)
        if self.min_items < 1:
            raise ValueError("min_items must be >= 1")
        if self.full_confidence_items < self.min_items:
            raise ValueError("full_confidence_items must be >= min_items")

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "SufficiencyRule":
        min_items = int(d["min_items"])
        return cls(
            min_items=min_items,
            full_confidence_items=int(d.get("full_confidence_items", min_items)),
        )


@dataclass(frozen=True)
class ConfidenceRecord:
    """gate decision plus the item-count evidence behind it."""

    reportable: bool
    caveat: Optional[str]
    real_items: int
    defaulted_items: int
    required_items: int
    full_confidence_items: int

    @property
    def status(self) -> str:
        return REPORTED if self.reportable else INSUFFICIENT_DATA

    def as_dict(self) -> Dict[str, Any]:
        return {
            "reportable": self.reportable,
            "caveat": self.caveat,
            "real_items": self.real_items,
            "defaulted_items": self.defaulted_items,
            "required_items": self.required_items,
            "full_confidence_items": self.full_confidence_items,
        }


class DataSufficiencyGate:
    """rule lookup by key ("domain" or "domain.subscale"), with a "*" fallback."""

    def __init__(
        self,
        rules: Optional[Mapping[str, SufficiencyRule]] = None,
        precision: int = 2,
    ) -> None:
        self.rules: Dict[str, SufficiencyRule] = dict(rules or {})
        self.rules.setdefault(DEFAULT_RULE_KEY, SufficiencyRule())
        self.precision = precision

    def rule_for(self, key: str) -> SufficiencyRule:
        if key in self.rules:
            return self.rules[key]
        # "domain.subscale" falls back to the bare subscale name, then "*"
        tail = key.rsplit(".", 1)[-1]
        return self.rules.get(tail, self.rules[DEFAULT_RULE_KEY])

    def decide(
        self, key: str, real_items: int, defaulted_items: int = 0, has_score: bool = True
    ) -> ConfidenceRecord:
        rule = self.rule_for(key)
        if not has_score or real_items < rule.min_items:
            reportable, caveat = False, None
        elif real_items < rule.full_confidence_items:
            reportable, caveat = True, LOW_CONFIDENCE
        else:
            reportable, caveat = True, None
        return ConfidenceRecord(
            reportable=reportable,
            caveat=caveat,
            real_items=real_items,
            defaulted_items=defaulted_items,
            required_items=rule.min_items,
            full_confidence_items=rule.full_confidence_items,
        )

    def evaluate(self, key: str, domain: DomainScore) -> ConfidenceRecord:
        if domain.source == SOURCE_EXTERNAL and domain.score is not None:
            # supplied from outside; no item evidence to count, so always caveated
            rule = self.rule_for(key)
            return ConfidenceRecord(
                reportable=True,
                caveat=LOW_CONFIDENCE,
                real_items=domain.count,
                defaulted_items=domain.defaulted,
                required_items=rule.min_items,
                full_confidence_items=rule.full_confidence_items,
            )
        return self.decide(
            key, domain.count, domain.defaulted, has_score=domain.score is not None
        )

    def evaluate_subscale(self, key: str, subscale: Subscale) -> ConfidenceRecord:
        return self.decide(
            key, subscale.count, subscale.defaulted, has_score=subscale.has_data
        )

    def evaluate_block(self, key: str, present: int) -> ConfidenceRecord:
        """gate a block on how many of its sub-domains are themselves reportable."""
        return self.decide(key, present, 0, has_score=present > 0)

    # ------------------------- payload builders -------------------------

    def subscale_payload(
        self, key: str, subscale: Subscale
    ) -> Tuple[Dict[str, Any], ConfidenceRecord]:
        record = self.evaluate_subscale(key, subscale)
        if not record.reportable:
            return _suppressed(record), record
        payload = {
            "status": REPORTED,
            "total": subscale.total,
            "count": subscale.count,
            "average": round_half_up(subscale.average, self.precision),
            "level": subscale.level,
            "confidence": record.as_dict(),
        }
        return payload, record

    def domain_payload(
        self,
        key: str,
        domain: DomainScore,
        extras: Optional[Mapping[str, Any]] = None,
        record: Optional[ConfidenceRecord] = None,
    ) -> Tuple[Dict[str, Any], Dict[str, ConfidenceRecord]]:
        """gated payload for a domain and its subscales.

        `record` overrides the item-count decision (block rules). returns the
        payload and every confidence record produced, keyed "<key>" and
        "<key>.<subscale>".
        """
        record = record or self.evaluate(key, domain)
        records: Dict[str, ConfidenceRecord] = {key: record}
        if not record.reportable:
            return _suppressed(record), records

        subs: Dict[str, Any] = {}
        for s in domain.subscales:
            sub_key = f"{key}.{s.name}"
            subs[s.name], records[sub_key] = self.subscale_payload(sub_key, s)

        payload: Dict[str, Any] = {
            "status": REPORTED,
            "score": domain.score,
            "level": domain.level,
            "source": domain.source,
            "count": domain.count,
        }
        if subs:
            payload["subscales"] = subs
        payload.update(extras or {})
        payload["confidence"] = record.as_dict()
        return payload, records


def _suppressed(record: ConfidenceRecord) -> Dict[str, Any]:
    return {"status": INSUFFICIENT_DATA, "confidence": record.as_dict()}


def is_reported(payload: Optional[Mapping[str, Any]]) -> bool:
    return bool(payload) and payload.get("status") == REPORTED


# ------------------------- trait confidence intervals -------------------------

# fewer items → wider interval
_SAMPLE_ADJUSTMENT = ((15, 1.0), (12, 1.1), (10, 1.2), (8, 1.3), (6, 1.5), (0, 1.8))


def trait_interval(
    score: float,
    item_count: int,
    reliability: float,
    population_sd: float = 15.0,
    confidence: float = 0.95,
) -> Dict[str, int]:
    """SEM-based interval for a 0-100 trait score.

    SEM = sd * sqrt(1 - reliability), widened for short item sets; the bounds
    are clipped to [0, 100] and rounded half-up.
    """
    if not 0.0 < reliability < 1.0:
        raise ValueError("reliability must be in (0, 1)")
    if not 0.0 < confidence < 1.0:
        raise ValueError("confidence must be in (0, 1)")
    z = float(norm.ppf(0.5 + confidence / 2.0))
    sem = population_sd * (1.0 - reliability) ** 0.5
    factor = next(f for n, f in _SAMPLE_ADJUSTMENT if item_count >= n)
    margin = z * sem * factor
    return {
        "lower": int(max(0.0, round_half_up(score - margin))),
        "upper": int(min(100.0, round_half_up(score + margin))),
        "margin": int(round_half_up(margin)),
    }
