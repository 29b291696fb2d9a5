"""
Neurodiversity scorer tests: tag-based screening domains and the gated
executive-function block.
"""

import pytest

from gating import INSUFFICIENT_DATA, LOW_CONFIDENCE, REPORTED
from models import Response
from scorers import NeurodiversityScorer


@pytest.fixture
def scorer(specs):
    return NeurodiversityScorer(specs["neurodiversity"])


def _numbers_in(obj):
    """every int/float (not bool) anywhere in a payload."""
    if isinstance(obj, bool):
        return []
    if isinstance(obj, (int, float)):
        return [obj]
    if isinstance(obj, dict):
        return [n for v in obj.values() for n in _numbers_in(v)]
    if isinstance(obj, (list, tuple)):
        return [n for v in obj for n in _numbers_in(v)]
    return []


def _ef(domain, n, value, tag="EXECUTIVE_FUNCTION"):
    return [
        Response(question_id=f"EF_{domain}_{k}", value=value, scale_tag=tag, subscale_tag=domain)
        for k in range(n)
    ]


class TestScreens:
    def test_three_items_not_reportable(self, scorer, tagged):
        rs = tagged("ADHD", 3, 5, scale_tag="ADHD", subscale_tag="inattention")
        out = scorer.score(rs)
        adhd = out.scores["adhd"]
        assert adhd["status"] == INSUFFICIENT_DATA
        assert "score" not in adhd
        assert "level" not in adhd
        assert "subscales" not in adhd
        # only the item-count evidence may carry numbers
        assert set(adhd) == {"status", "confidence"}
        assert "adhd" not in out.summary

    def test_screening_score_counts_agreement_above_floor(self, scorer, tagged):
        rs = tagged("ADHD_IN", 3, 5, scale_tag="ADHD", subscale_tag="inattention")
        rs += tagged("ADHD_HY", 2, "Agree", scale_tag="ASRS", subscale_tag="Hyperactivity")
        rs += tagged("ADHD_IM", 2, 2, scale_tag="ADHD", subscale_tag="impulsivity")
        out = scorer.score(rs)
        adhd = out.scores["adhd"]
        # 3 * 2*(5-3) + 2 * 2*(4-3) + 2 * 0 = 16
        assert adhd["status"] == REPORTED
        assert adhd["score"] == 16
        assert adhd["level"] == "significant"
        assert adhd["confidence"]["caveat"] == LOW_CONFIDENCE
        assert adhd["subscales"]["inattention"]["average"] == 5.0
        assert adhd["subscales"]["inattention"]["level"] == "Severe"
        # two items fall below the indicator minimum of three
        assert adhd["subscales"]["hyperactivity"]["status"] == INSUFFICIENT_DATA
        assert out.summary["adhd"] == "significant"

    def test_autism_tags(self, scorer, tagged):
        rs = tagged("AQ", 10, 4, scale_tag="AQ", subscale_tag="social")
        autism = scorer.score(rs).scores["autism"]
        assert autism["score"] == 20
        assert autism["level"] == "significant"
        assert autism["confidence"]["caveat"] is None

    def test_neutral_answers_score_zero(self, scorer, tagged):
        rs = tagged("ADHD", 6, 3, scale_tag="ADHD")
        adhd = scorer.score(rs).scores["adhd"]
        assert adhd["score"] == 0
        assert adhd["level"] == "minimal"


class TestExecutiveFunction:
    def test_block_hidden_below_four_domains(self, scorer):
        rs = _ef("planning", 3, 4) + _ef("organization", 3, 4) + _ef("flexibility", 3, 4)
        rs += _ef("working_memory", 2, 4)
        out = scorer.score(rs)
        ef = out.scores["executive_function"]
        assert ef["status"] == INSUFFICIENT_DATA
        assert set(ef) == {"status", "confidence"}
        assert ef["confidence"]["real_items"] == 3
        assert ef["confidence"]["required_items"] == 4
        assert "executive_function" not in out.summary

    def test_block_reported_with_strengths_and_challenges(self, scorer):
        rs = _ef("planning", 3, 5) + _ef("organization", 3, 4)
        rs += _ef("timeManagement", 3, 2, tag="EXECUTIVE")
        rs += _ef("flexibility", 3, 1)
        rs += _ef("working_memory", 1, 5)
        out = scorer.score(rs)
        ef = out.scores["executive_function"]
        assert ef["status"] == REPORTED
        assert ef["confidence"]["caveat"] == LOW_CONFIDENCE
        assert ef["domains_reported"] == 4
        # mean of the four reportable averages: (5 + 4 + 2 + 1) / 4
        assert ef["score"] == 3.0
        assert ef["level"] == "Moderate"
        assert ef["challenges"] == ["planning", "organization"]
        assert ef["strengths"] == ["time_management", "flexibility"]
        assert ef["subscales"]["working_memory"]["status"] == INSUFFICIENT_DATA
        assert ef["subscales"]["planning"]["average"] == 5.0
        assert out.summary["challenges"] == ["planning", "organization"]

    def test_insufficient_payloads_leak_no_numbers(self, scorer, tagged):
        rs = tagged("ADHD", 3, 5, scale_tag="ADHD")
        out = scorer.score(rs)
        for payload in out.scores.values():
            assert payload["status"] == INSUFFICIENT_DATA
            leaked = _numbers_in({k: v for k, v in payload.items() if k != "confidence"})
            assert leaked == []
