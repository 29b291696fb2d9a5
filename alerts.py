# alerts.py
# clinical alert rule table over gated instrument payloads.
# derivation is a pure function of already-gated scores: a suppressed payload
# never fires a rule, and raw responses are never consulted.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from gating import is_reported
from models import SEVERITY_RANK, Alert, Severity

# instrument name -> domain key -> gated payload
ScoreBook = Mapping[str, Mapping[str, Any]]
Predicate = Callable[[ScoreBook], bool]


@dataclass(frozen=True)
class AlertRule:
    type: str
    severity: Severity
    instrument: str
    when: Predicate

    @property
    def message_key(self) -> str:
        return f"alert.{self.type.lower()}"

    @property
    def recommendation_key(self) -> str:
        return f"recommendation.{self.type.lower()}"

    def fire(self) -> Alert:
        return Alert(
            type=self.type,
            severity=self.severity,
            instrument=self.instrument,
            message_key=self.message_key,
            recommendation_key=self.recommendation_key,
        )


# ------------------------- payload access -------------------------


def _reported(book: ScoreBook, instrument: str, domain: str) -> Optional[Mapping[str, Any]]:
    """the payload when it exists and passed the gate, else None."""
    payload = (book.get(instrument) or {}).get(domain)
    return payload if is_reported(payload) else None


def _field(book: ScoreBook, instrument: str, domain: str, key: str) -> Any:
    payload = _reported(book, instrument, domain)
    return None if payload is None else payload.get(key)


def _at_least(book: ScoreBook, instrument: str, domain: str, key: str, cutoff: float) -> bool:
    value = _field(book, instrument, domain, key)
    return value is not None and value >= cutoff


def _equals(book: ScoreBook, instrument: str, domain: str, key: str, expected: Any) -> bool:
    return _field(book, instrument, domain, key) == expected


def _is_true(book: ScoreBook, instrument: str, domain: str, key: str) -> bool:
    return _field(book, instrument, domain, key) is True


def _abuse_total(book: ScoreBook) -> Optional[float]:
    totals = _field(book, "aces", "aces", "domain_totals") or {}
    return totals.get("abuse")


# ------------------------- rule table -------------------------

# order matters: within one severity, alerts keep table order
ALERT_RULES: List[AlertRule] = [
    AlertRule(
        "SUICIDAL_IDEATION",
        Severity.CRITICAL,
        "depression",
        lambda b: _at_least(b, "depression", "suicidal_ideation", "score", 2),
    ),
    AlertRule(
        "SUICIDAL_IDEATION",
        Severity.HIGH,
        "depression",
        lambda b: _equals(b, "depression", "suicidal_ideation", "score", 1),
    ),
    AlertRule(
        "SEVERE_DEPRESSION",
        Severity.HIGH,
        "depression",
        lambda b: _at_least(b, "depression", "phq9", "severity_index", 4),
    ),
    AlertRule(
        "SEVERE_ANXIETY",
        Severity.HIGH,
        "anxiety",
        lambda b: _equals(b, "anxiety", "gad7", "level", "Severe"),
    ),
    AlertRule(
        "PANIC_WITH_AVOIDANCE",
        Severity.MODERATE,
        "anxiety",
        lambda b: _is_true(b, "anxiety", "panic", "avoidance_endorsed"),
    ),
    AlertRule(
        "HIGH_SOMATIC_BURDEN",
        Severity.MODERATE,
        "somatic",
        lambda b: _equals(b, "somatic", "phq15", "level", "High"),
    ),
    AlertRule(
        "BIPOLAR_SCREEN_POSITIVE",
        Severity.HIGH,
        "mania",
        lambda b: _is_true(b, "mania", "mdq", "positive_screen"),
    ),
    AlertRule(
        "HIGH_MANIA_SYMPTOMS",
        Severity.CRITICAL,
        "mania",
        lambda b: _at_least(b, "mania", "mdq", "score", 10),
    ),
    AlertRule(
        "RISKY_BEHAVIOR_DURING_MANIA",
        Severity.HIGH,
        "mania",
        lambda b: _is_true(b, "mania", "mdq", "risky_behavior")
        and _is_true(b, "mania", "mdq", "positive_screen"),
    ),
    AlertRule(
        "PSYCHOSIS_RISK_POSITIVE",
        Severity.CRITICAL,
        "psychosis",
        lambda b: _is_true(b, "psychosis", "pqb", "positive_screen"),
    ),
    AlertRule(
        "HALLUCINATIONS_DETECTED",
        Severity.CRITICAL,
        "psychosis",
        lambda b: _is_true(b, "psychosis", "pqb", "hallucinations"),
    ),
    AlertRule(
        "THOUGHT_DISORDER_SEVERE",
        Severity.CRITICAL,
        "psychosis",
        lambda b: _is_true(b, "psychosis", "pqb", "thought_disorder"),
    ),
    AlertRule(
        "HIGH_PSYCHOSIS_SYMPTOMS",
        Severity.CRITICAL,
        "psychosis",
        lambda b: _at_least(b, "psychosis", "pqb", "score", 10),
    ),
    AlertRule(
        "BORDERLINE_SCREEN_POSITIVE",
        Severity.HIGH,
        "borderline",
        lambda b: _is_true(b, "borderline", "msi_bpd", "positive_screen"),
    ),
    AlertRule(
        "HIGH_ACES_SCORE",
        Severity.HIGH,
        "aces",
        lambda b: _at_least(b, "aces", "aces", "score", 4),
    ),
    AlertRule(
        "VERY_HIGH_ACES",
        Severity.CRITICAL,
        "aces",
        lambda b: _at_least(b, "aces", "aces", "score", 7),
    ),
    AlertRule(
        "SEXUAL_ABUSE_HISTORY",
        Severity.HIGH,
        "aces",
        lambda b: _is_true(b, "aces", "aces", "sexual_abuse"),
    ),
    AlertRule(
        "MULTIPLE_ABUSE_TYPES",
        Severity.HIGH,
        "aces",
        lambda b: (_abuse_total(b) or 0) >= 2,
    ),
    # cross-instrument
    AlertRule(
        "MOOD_ELEVATION_WITH_DEPRESSION",
        Severity.HIGH,
        "mania",
        lambda b: _is_true(b, "mania", "mdq", "positive_screen")
        and _at_least(b, "depression", "phq9", "score", 10),
    ),
]


def derive_alerts(
    book: ScoreBook, rules: Optional[List[AlertRule]] = None
) -> List[Alert]:
    """fire every matching rule; highest severity first, then table order."""
    table = ALERT_RULES if rules is None else rules
    fired = [(pos, rule) for pos, rule in enumerate(table) if rule.when(book)]
    fired.sort(key=lambda pr: (-SEVERITY_RANK[pr[1].severity], pr[0]))
    return [rule.fire() for _, rule in fired]


def alerts_by_instrument(alerts: List[Alert]) -> Dict[str, List[Alert]]:
    out: Dict[str, List[Alert]] = {}
    for a in alerts:
        out.setdefault(a.instrument, []).append(a)
    return out
