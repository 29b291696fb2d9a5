"""
Data sufficiency gate tests: the three outcomes, rule lookup, and the
guarantee that a suppressed payload carries no numbers.
"""

import pytest

from aggregator import SOURCE_EXTERNAL, BandTable, ScaleAggregator
from gating import (
    INSUFFICIENT_DATA,
    LOW_CONFIDENCE,
    REPORTED,
    DataSufficiencyGate,
    SufficiencyRule,
    is_reported,
    trait_interval,
)
from normalizer import ScoredItem

BANDS = BandTable.from_pairs([[0, "Low"], [3, "High"]])


def _items(n, value=4.0, defaulted=0):
    real = [
        ScoredItem(question_id=f"q{i}", value=value, defaulted=False, rule="numeric", scale="likert5")
        for i in range(n)
    ]
    fake = [
        ScoredItem(question_id=f"d{i}", value=3.0, defaulted=True, rule="default", scale="likert5")
        for i in range(defaulted)
    ]
    return real + fake


@pytest.fixture
def gate():
    return DataSufficiencyGate(
        {"dom": SufficiencyRule(3, 5), "facet": SufficiencyRule(2, 2)}
    )


class TestDecisions:
    def test_full_confidence(self, gate):
        r = gate.decide("dom", 5)
        assert r.reportable and r.caveat is None
        assert r.status == REPORTED

    def test_low_confidence_band(self, gate):
        r = gate.decide("dom", 4)
        assert r.reportable
        assert r.caveat == LOW_CONFIDENCE

    def test_below_minimum(self, gate):
        r = gate.decide("dom", 2, defaulted_items=7)
        assert not r.reportable
        assert r.status == INSUFFICIENT_DATA
        assert r.required_items == 3
        assert r.defaulted_items == 7

    def test_no_score_never_reportable(self, gate):
        assert not gate.decide("dom", 10, has_score=False).reportable

    def test_defaulted_items_do_not_count(self, gate):
        d = ScaleAggregator().domain("dom", items=_items(2, defaulted=6))
        r = gate.evaluate("dom", d)
        assert not r.reportable
        assert r.real_items == 2


class TestRuleLookup:
    def test_exact_then_tail_then_default(self, gate):
        assert gate.rule_for("dom").min_items == 3
        assert gate.rule_for("dom.facet").min_items == 2
        assert gate.rule_for("other.thing") == SufficiencyRule()

    def test_rule_validation(self):
        with pytest.raises(ValueError):
            SufficiencyRule(0)
        with pytest.raises(ValueError):
            SufficiencyRule(5, 3)
        assert SufficiencyRule.from_dict({"min_items": 4}).full_confidence_items == 4

    def test_min_only_rule_has_no_caveat_band(self):
        rule = SufficiencyRule(3)
        assert rule.full_confidence_items == 3
        gate = DataSufficiencyGate({"facet": rule})
        assert not gate.decide("facet", 2).reportable
        assert gate.decide("facet", 3).caveat is None


class TestPayloads:
    def test_suppressed_payload_has_no_numbers(self, gate):
        agg = ScaleAggregator()
        d = agg.domain(
            "dom", subscales=[agg.subscale("facet", _items(1))], bands=BANDS
        )
        payload, records = gate.domain_payload("dom", d, {"severity_index": 2})
        assert payload["status"] == INSUFFICIENT_DATA
        assert set(payload) == {"status", "confidence"}
        assert not is_reported(payload)
        assert list(records) == ["dom"]

    def test_reported_payload_gates_each_subscale(self, gate):
        agg = ScaleAggregator()
        full = agg.subscale("facet", _items(4), BANDS)
        thin = agg.subscale("thin", _items(1), BANDS)
        d = agg.domain("dom", subscales=[full, thin], bands=BANDS)
        payload, records = gate.domain_payload("dom", d, {"extra": True})
        assert payload["status"] == REPORTED
        assert payload["score"] == 4.0
        assert payload["extra"] is True
        assert payload["subscales"]["facet"]["average"] == 4.0
        # "thin" falls back to the "*" rule (1 item) so it is reported
        assert payload["subscales"]["thin"]["status"] == REPORTED
        assert set(records) == {"dom", "dom.facet", "dom.thin"}

    def test_subscale_below_rule_is_marker_only(self):
        gate = DataSufficiencyGate({"facet": SufficiencyRule(3)})
        s = ScaleAggregator().subscale("facet", _items(2), BANDS)
        payload, record = gate.subscale_payload("dom.facet", s)
        assert payload == {"status": INSUFFICIENT_DATA, "confidence": record.as_dict()}

    def test_external_source_always_low_confidence(self, gate):
        d = ScaleAggregator().domain("dom", external=55)
        assert d.source == SOURCE_EXTERNAL
        r = gate.evaluate("dom", d)
        assert r.reportable
        assert r.caveat == LOW_CONFIDENCE
        assert r.real_items == 0

    def test_block_rule_counts_present_subdomains(self):
        gate = DataSufficiencyGate({"block": SufficiencyRule(4, 6)})
        assert not gate.evaluate_block("block", 3).reportable
        assert gate.evaluate_block("block", 4).caveat == LOW_CONFIDENCE
        assert gate.evaluate_block("block", 6).caveat is None
        assert not gate.evaluate_block("block", 0).reportable


class TestTraitInterval:
    def test_interval_brackets_score(self):
        out = trait_interval(50, 20, 0.9)
        assert out["lower"] < 50 < out["upper"]
        # z(0.975) * 15 * sqrt(0.1) ≈ 9.30 → 9
        assert out["margin"] == 9

    def test_fewer_items_widen_interval(self):
        wide = trait_interval(50, 4, 0.9)
        narrow = trait_interval(50, 20, 0.9)
        assert wide["margin"] > narrow["margin"]

    def test_clipped_to_range(self):
        out = trait_interval(98, 3, 0.8)
        assert out["upper"] == 100
        assert trait_interval(1, 3, 0.8)["lower"] == 0

    def test_bad_reliability(self):
        with pytest.raises(ValueError):
            trait_interval(50, 10, 1.0)
