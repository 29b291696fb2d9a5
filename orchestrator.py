"""
orchestrator: runs every instrument scorer and the validity calculator on one
response set and assembles the report.

purpose
-------
single entry point from a raw response set to an AssembledReport. the
response set is validated once, frozen into a tuple of Responses, and handed
unchanged to every scorer, to the validity calculator and (as read-only
sections) to optional enrichment providers.

failure isolation
-----------------
a scorer that raises, or returns anything but an InstrumentResult, is logged
once (status "error" with traceback), left out of `instruments` and listed
in `omitted`; the others are unaffected. the same holds for enrichment
providers. malformed input is not a scorer failure: it raises
InvalidResponseSetError before anything runs.

contracts
---------
- scorers expose `.name` and `.score(responses) -> InstrumentResult`.
- enrichers expose `.name` and `.enrich(sections, metadata) -> Any`.
- validity exposes `.assess(responses) -> ValidityAssessment`.
- identical input gives a byte-identical report (no clocks, no randomness;
  report_id is a sha-256 of the canonical response json).
"""

from __future__ import annotations

import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from alerts import alerts_by_instrument, derive_alerts
from gating import is_reported
from models import AssembledReport, InstrumentSection, Reliability, Response, ValidityAssessment
from scorers.base import InstrumentResult, InstrumentScorer
from validators import canonical_responses, log_scorer_status, validate_response_set
from validity import ValidityScaleCalculator

# reliability levels that put a caveat on every instrument section
_CAVEATED = (Reliability.CAUTION, Reliability.QUESTIONABLE, Reliability.INVALID)


class ReportOrchestrator:
    """fan a response set out to the registered scorers and merge the results."""

    def __init__(
        self,
        scorers: Sequence[InstrumentScorer],
        validity: Optional[ValidityScaleCalculator] = None,
        enrichers: Optional[Sequence[Any]] = None,
        logger: Optional[logging.Logger] = None,
        parallel: bool = False,
        max_workers: Optional[int] = None,
    ) -> None:
        names = [getattr(s, "name", None) for s in scorers]
        if any(not n for n in names):
            raise ValueError("all scorers must expose a non-empty .name")
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate scorer names: {names}")
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        self.scorers = list(scorers)
        self.validity = validity or ValidityScaleCalculator()
        self.enrichers = list(enrichers or [])
        self.logger = logger or logging.getLogger(f"{__name__}.ReportOrchestrator")
        self.parallel = parallel
        self.max_workers = max_workers

    # --------- public api ---------

    def assemble(
        self, responses: Any, metadata: Optional[Mapping[str, Any]] = None
    ) -> AssembledReport:
        """score, gate, validate and merge one response set."""
        frozen = validate_response_set(responses)
        self.logger.info(
            "assembling report: %d responses, %d scorers", len(frozen), len(self.scorers)
        )

        results = self._run_scorers(frozen)
        omitted = [s.name for s, r in zip(self.scorers, results) if r is None]

        validity = self.validity.assess(frozen)
        caveats = self._validity_caveats(validity)

        book = {r.instrument: r.scores for r in results if r is not None}
        alerts = derive_alerts(book)
        per_instrument = alerts_by_instrument(alerts)

        sections: Dict[str, InstrumentSection] = {}
        for result in results:
            if result is None:
                continue
            sections[result.instrument] = InstrumentSection(
                instrument=result.instrument,
                scores=result.scores,
                confidence={k: r.as_dict() for k, r in result.confidence.items()},
                summary=result.summary,
                caveats=list(caveats),
                alerts=per_instrument.get(result.instrument, []),
            )

        meta = dict(metadata or {})
        enrichments = self._run_enrichers(sections, meta)

        report = AssembledReport(
            report_id=self.report_id(frozen),
            response_count=len(frozen),
            instruments=sections,
            omitted=omitted,
            validity=validity,
            alerts=alerts,
            enrichments=enrichments,
            metadata=meta,
        )
        self.logger.info(
            "report %s: %d instruments, %d omitted, %d alerts, reliability=%s",
            report.report_id[:12],
            len(sections),
            len(omitted),
            len(alerts),
            validity.reliability.value,
        )
        return report

    @staticmethod
    def report_id(responses: Sequence[Response]) -> str:
        return hashlib.sha256(canonical_responses(responses).encode("utf-8")).hexdigest()

    # --------- helpers: scorers ---------

    def _run_scorers(
        self, responses: Tuple[Response, ...]
    ) -> List[Optional[InstrumentResult]]:
        """results in registration order; None marks a failed scorer."""
        if not self.parallel or len(self.scorers) < 2:
            return [self._run_one(s, responses) for s in self.scorers]

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(self._run_one, s, responses) for s in self.scorers]
            return [f.result() for f in futures]

    def _run_one(
        self, scorer: InstrumentScorer, responses: Tuple[Response, ...]
    ) -> Optional[InstrumentResult]:
        log_scorer_status(self.logger, scorer.name, "start")
        try:
            result = scorer.score(responses)
            if not isinstance(result, InstrumentResult):
                raise TypeError(
                    f"score() returned {type(result).__name__}, expected InstrumentResult"
                )
        except Exception as e:
            log_scorer_status(
                self.logger,
                scorer.name,
                "error",
                f"{type(e).__name__}: {e}",
                exc_info=True,
            )
            return None

        if result.instrument != scorer.name:
            self.logger.warning(
                "scorer %s returned results labelled %s; relabelling",
                scorer.name,
                result.instrument,
            )
            result = InstrumentResult(
                instrument=scorer.name,
                scores=result.scores,
                confidence=result.confidence,
                summary=result.summary,
            )

        reported = sorted(k for k, p in result.scores.items() if is_reported(p))
        status = "ok" if reported else "insufficient"
        log_scorer_status(
            self.logger,
            scorer.name,
            status,
            meta={"reported": reported, "domains": len(result.scores)},
        )
        return result

    # --------- helpers: validity & enrichment ---------

    def _validity_caveats(self, validity: ValidityAssessment) -> List[str]:
        if validity.reliability in _CAVEATED:
            self.logger.warning(
                "validity reliability %s: %d flags",
                validity.reliability.value,
                len(validity.flags),
            )
            return [f"VALIDITY_{validity.reliability.value}"]
        return []

    def _run_enrichers(
        self, sections: Dict[str, InstrumentSection], metadata: Dict[str, Any]
    ) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if not self.enrichers:
            return out
        view = MappingProxyType(sections)
        for provider in self.enrichers:
            name = getattr(provider, "name", type(provider).__name__)
            try:
                out[name] = provider.enrich(view, MappingProxyType(metadata))
            except Exception:
                self.logger.exception("enrichment provider %s failed; skipped", name)
        return out
