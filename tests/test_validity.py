"""
Validity scale tests: inconsistency, infrequency, positive impression,
random responding and the reliability decision table.
"""

import itertools

import pytest

from config.core import ValidityConfig
from models import Reliability, Response, Severity, ValidityFlag
from validity import ValidityScaleCalculator, classify_reliability

CFG = ValidityConfig()


def _pairs(flagged, total=10):
    """answer `total` pairs; the first `flagged` are answered alike."""
    out = []
    for i, (a, b) in enumerate(CFG.inconsistency_pairs[:total]):
        out.append(Response(question_id=a, value=4))
        out.append(Response(question_id=b, value=4 if i < flagged else 1))
    return out


def _flag(severity):
    return ValidityFlag(
        type="X", severity=severity, metric="m", value=0.5, message_key="validity.flag.x"
    )


@pytest.fixture
def calc():
    return ValidityScaleCalculator(CFG)


class TestInconsistency:
    def test_eight_of_ten_pairs_flagged(self, calc):
        out = calc.assess(_pairs(8))
        assert out.inconsistency == pytest.approx(0.80)
        assert out.pairs_answered == 10
        assert out.pairs_flagged == 8
        (flag,) = out.flags
        assert flag.type == "HIGH_INCONSISTENCY"
        assert flag.severity == Severity.HIGH
        # a single HIGH flag maps to CAUTION in the decision table
        assert out.reliability == Reliability.CAUTION
        assert out.valid is False

    def test_moderate_band(self, calc):
        out = calc.assess(_pairs(3))
        assert out.flags[0].type == "MODERATE_INCONSISTENCY"
        assert out.reliability == Reliability.ACCEPTABLE

    def test_threshold_is_strict(self, calc):
        # 3/10 = 0.30 is not above 0.30
        out = calc.assess(_pairs(3))
        assert out.flags[0].severity == Severity.MODERATE

    def test_monotone_in_flagged_pairs(self, calc):
        ratios = [calc.assess(_pairs(k)).inconsistency for k in range(11)]
        assert ratios == sorted(ratios)

    def test_reverse_keyed_pair_items_compared_as_answered(self, calc):
        # B items are keyed opposite to A, so 5 vs 1 is the consistent answer
        rs = []
        for a, b in CFG.inconsistency_pairs:
            rs.append(Response(questionId=a, value=5))
            rs.append(Response(questionId=b, value=1, reverseScored=True))
        out = calc.assess(rs)
        assert out.inconsistency == 0.0
        assert out.pairs_answered == 10
        assert out.random_responding is False
        assert out.reliability == Reliability.GOOD

    def test_unanswered_pairs_are_not_evidence(self, calc):
        a, b = CFG.inconsistency_pairs[0]
        out = calc.assess([Response(question_id=a, value=3), Response(question_id=b, value=None)])
        assert out.inconsistency is None
        assert out.pairs_answered == 0
        assert out.flags == []
        assert out.reliability == Reliability.GOOD


class TestEndorsement:
    def test_infrequency_high(self, calc):
        rs = [Response(question_id=q, value=5) for q in CFG.infrequency_items[:3]]
        rs += [Response(question_id=q, value=1) for q in CFG.infrequency_items[3:]]
        out = calc.assess(rs)
        assert out.infrequency == pytest.approx(0.5)
        assert out.flags[0].type == "POSSIBLE_EXAGGERATION"

    def test_labels_read_on_common_scale(self, calc):
        rs = [
            Response(question_id=q, value="Nearly every day")
            for q in CFG.positive_impression_items
        ]
        out = calc.assess(rs)
        # phq "nearly every day" reads as 4 on the 1-5 footing → endorsed
        assert out.positive_impression == 1.0
        assert out.flags[0].type == "FAKING_GOOD"

    def test_no_answers_no_proportion(self, calc):
        out = calc.assess([Response(question_id="OTHER", value=2)])
        assert out.infrequency is None
        assert out.positive_impression is None
        assert out.infrequency_answered == 0


class TestRandomResponding:
    def test_flat_inconsistent_pattern(self, calc):
        # every answer identical: pairs all alike, spread zero
        rs = []
        for a, b in CFG.inconsistency_pairs:
            rs += [Response(question_id=a, value=3), Response(question_id=b, value=3)]
        out = calc.assess(rs)
        assert out.random_responding is True
        assert out.response_sd == 0.0
        assert any(f.type == "RANDOM_RESPONDING" for f in out.flags)
        assert out.reliability == Reliability.INVALID

    def test_needs_minimum_answers(self, calc):
        rs = _pairs(4, total=4)
        out = calc.assess(rs)
        assert out.response_sd is None
        assert out.random_responding is False

    def test_zero_answers_are_scorable(self, calc):
        rs = [Response(question_id=f"Q{i}", value=0) for i in range(12)]
        out = calc.assess(rs)
        assert out.scorable_answers == 12


class TestReliabilityTable:
    @pytest.mark.parametrize(
        "severities,expected",
        [
            ([], Reliability.GOOD),
            ([Severity.MODERATE], Reliability.ACCEPTABLE),
            ([Severity.MODERATE, Severity.MODERATE], Reliability.CAUTION),
            ([Severity.HIGH], Reliability.CAUTION),
            ([Severity.HIGH, Severity.HIGH], Reliability.QUESTIONABLE),
            ([Severity.HIGH, Severity.HIGH, Severity.MODERATE], Reliability.QUESTIONABLE),
            ([Severity.CRITICAL], Reliability.INVALID),
            ([Severity.MODERATE, Severity.CRITICAL], Reliability.INVALID),
        ],
    )
    def test_decision_table(self, severities, expected):
        assert classify_reliability([_flag(s) for s in severities]) == expected

    def test_order_independent(self):
        flags = [_flag(Severity.MODERATE), _flag(Severity.HIGH), _flag(Severity.MODERATE)]
        results = {classify_reliability(p) for p in itertools.permutations(flags)}
        assert len(results) == 1


def test_assessment_keys(calc):
    out = calc.assess(_pairs(0))
    assert out.summary_key == "validity.summary.good"
    assert out.recommendation_key == "validity.recommendation.good"
    dumped = out.model_dump()
    assert dumped["valid"] is True
