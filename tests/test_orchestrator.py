"""
Report orchestrator tests: failure isolation, validity caveats, alert
derivation, enrichment providers and byte-identical output.
"""

import logging

import pytest

from config.core import ValidityConfig
from models import Reliability
from orchestrator import ReportOrchestrator
from scorers import DepressionScorer, ManiaScorer, SomaticScorer, build_scorers
from validators import InvalidResponseSetError
from validity import ValidityScaleCalculator


class ExplodingScorer:
    name = "exploding"

    def score(self, responses):
        raise RuntimeError("boom")


class RecordingEnricher:
    name = "recorder"

    def __init__(self):
        self.seen = None

    def enrich(self, sections, metadata):
        self.seen = (sorted(sections), dict(metadata))
        return {"instruments": len(sections)}


class SilentScorer:
    name = "silent"

    def score(self, responses):
        return None


class BrokenEnricher:
    name = "broken"

    def enrich(self, sections, metadata):
        raise ValueError("provider unavailable")


def _phq9(spec, value):
    return [{"questionId": q, "value": value} for q in spec.subscales["phq9"].items]


def _somatic(spec, value):
    ids = [q for s in ("pain", "cardiopulmonary", "gastrointestinal", "other") for q in spec.subscales[s].items]
    return [{"questionId": q, "value": value} for q in ids]


@pytest.fixture
def orchestrator(specs):
    return ReportOrchestrator(
        scorers=[DepressionScorer(specs["depression"]), SomaticScorer(specs["somatic"])],
        validity=ValidityScaleCalculator(ValidityConfig()),
    )


class TestAssembly:
    def test_sections_and_alerts(self, orchestrator, specs):
        rs = _phq9(specs["depression"], 3) + _somatic(specs["somatic"], 2)
        report = orchestrator.assemble(rs)
        assert set(report.instruments) == {"depression", "somatic"}
        assert report.omitted == []
        assert report.response_count == 19
        assert report.instruments["somatic"].scores["phq15"]["score"] == 20
        types = [a.type for a in report.alerts]
        assert types[0] == "SUICIDAL_IDEATION"
        assert "SEVERE_DEPRESSION" in types
        assert "HIGH_SOMATIC_BURDEN" in types
        dep_alerts = [a.type for a in report.instruments["depression"].alerts]
        assert "HIGH_SOMATIC_BURDEN" not in dep_alerts

    def test_failing_scorer_is_isolated(self, specs, caplog):
        orch = ReportOrchestrator(
            scorers=[DepressionScorer(specs["depression"]), ExplodingScorer()],
        )
        with caplog.at_level(logging.INFO):
            report = orch.assemble(_phq9(specs["depression"], 1))
        assert "exploding" not in report.instruments
        assert report.omitted == ["exploding"]
        assert report.instruments["depression"].scores["phq9"]["score"] == 9
        errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert len(errors) == 1
        assert "exploding" in errors[0].getMessage()
        assert errors[0].exc_info is not None

    def test_scorer_returning_no_result_is_isolated(self, specs, caplog):
        orch = ReportOrchestrator(
            scorers=[SilentScorer(), DepressionScorer(specs["depression"])],
        )
        with caplog.at_level(logging.INFO):
            report = orch.assemble(_phq9(specs["depression"], 1))
        assert report.omitted == ["silent"]
        assert "depression" in report.instruments
        errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert len(errors) == 1
        assert "TypeError" in errors[0].getMessage()

    def test_numeric_question_ids_are_text(self, orchestrator):
        report = orchestrator.assemble([{"questionId": 101, "value": 2}])
        assert report.response_count == 1
        assert report.omitted == []

    @pytest.mark.parametrize("bad", [None, "responses", {"questionId": "Q"}, 42])
    def test_malformed_input_raises_before_scoring(self, orchestrator, bad):
        with pytest.raises(InvalidResponseSetError):
            orchestrator.assemble(bad)

    def test_record_without_question_id_raises(self, orchestrator):
        with pytest.raises(InvalidResponseSetError, match=r"response\[1\]"):
            orchestrator.assemble([{"questionId": "A", "value": 1}, {"value": 2}])

    def test_metadata_passthrough(self, orchestrator):
        meta = {"respondent": "r-17", "nested": {"site": 3}}
        report = orchestrator.assemble([], metadata=meta)
        assert report.metadata == meta
        assert report.response_count == 0

    def test_duplicate_scorer_names_rejected(self, specs):
        with pytest.raises(ValueError):
            ReportOrchestrator(
                scorers=[ManiaScorer(specs["mania"]), ManiaScorer(specs["mania"])]
            )


class TestValidityCaveats:
    def test_caution_adds_caveat_to_every_section(self, orchestrator, specs):
        cfg = ValidityConfig()
        rs = _phq9(specs["depression"], 1)
        for i, (a, b) in enumerate(cfg.inconsistency_pairs):
            rs.append({"questionId": a, "value": 4})
            rs.append({"questionId": b, "value": 4 if i < 8 else 1})
        report = orchestrator.assemble(rs)
        assert report.validity.reliability == Reliability.CAUTION
        for section in report.instruments.values():
            assert section.caveats == ["VALIDITY_CAUTION"]
        # validity never alters scores
        assert report.instruments["depression"].scores["phq9"]["score"] == 9

    def test_good_validity_no_caveat(self, orchestrator, specs):
        report = orchestrator.assemble(_phq9(specs["depression"], 1))
        assert report.validity.reliability == Reliability.GOOD
        assert report.instruments["depression"].caveats == []


class TestEnrichment:
    def test_providers_receive_sections_and_failures_are_skipped(self, specs, caplog):
        recorder = RecordingEnricher()
        orch = ReportOrchestrator(
            scorers=[DepressionScorer(specs["depression"])],
            enrichers=[BrokenEnricher(), recorder],
        )
        with caplog.at_level(logging.ERROR):
            report = orch.assemble(_phq9(specs["depression"], 0), metadata={"k": "v"})
        assert report.enrichments == {"recorder": {"instruments": 1}}
        assert recorder.seen == (["depression"], {"k": "v"})
        assert any("broken" in r.getMessage() for r in caplog.records)


class TestDeterminism:
    def test_byte_identical_reports(self, specs, loader):
        rs = _phq9(specs["depression"], 2) + _somatic(specs["somatic"], 1)
        first = ReportOrchestrator(build_scorers(specs), ValidityScaleCalculator(loader.validity_config))
        second = ReportOrchestrator(build_scorers(specs), ValidityScaleCalculator(loader.validity_config))
        assert first.assemble(rs).model_dump_json() == second.assemble(rs).model_dump_json()

    def test_parallel_matches_sequential(self, specs, loader):
        rs = _phq9(specs["depression"], 2) + _somatic(specs["somatic"], 1)
        validity = ValidityScaleCalculator(loader.validity_config)
        seq = ReportOrchestrator(build_scorers(specs), validity)
        par = ReportOrchestrator(build_scorers(specs), validity, parallel=True, max_workers=4)
        a, b = seq.assemble(rs), par.assemble(rs)
        assert list(a.instruments) == list(b.instruments)
        assert a.model_dump_json() == b.model_dump_json()

    def test_report_id_depends_on_responses(self, orchestrator, specs):
        a = orchestrator.assemble(_phq9(specs["depression"], 1))
        b = orchestrator.assemble(_phq9(specs["depression"], 2))
        assert a.report_id != b.report_id
        assert len(a.report_id) == 64
