# run_assessment.py
# cli entrypoint wiring config → response loader → scorers → orchestrator → report json
# one response set per run; synthetic profiles are available for demos.

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from config.core import RuntimeConfig
from config.loader import ConfigurationLoader
from data.synthetic_profiles import SyntheticResponseGenerator
from dataloader import ResponseLoader
from orchestrator import ReportOrchestrator
from scorers import build_scorers
from validity import ValidityScaleCalculator

# ------------------------------- logging setup -------------------------------

LOG = logging.getLogger("run_assessment")
logging.basicConfig(
    level=os.environ.get("PSYGATE_LOGLEVEL", "INFO"),
    format="%(asctime)s | %(levelname)s | %(message)s",
)

# ------------------------------- wiring helpers -------------------------------


def build_orchestrator(
    loader: ConfigurationLoader,
    runtime: RuntimeConfig,
    only: Optional[List[str]] = None,
    baseline: Optional[Dict[str, float]] = None,
) -> ReportOrchestrator:
    """scorers for every configured (or selected) instrument plus the validity scales."""
    scorers = build_scorers(loader.instruments, only=only, baseline=baseline)
    return ReportOrchestrator(
        scorers=scorers,
        validity=ValidityScaleCalculator(loader.validity_config),
        parallel=runtime.parallel_scorers,
        max_workers=runtime.max_workers,
    )


def _load_baseline(path: Optional[str]) -> Optional[Dict[str, float]]:
    """optional {trait: 0-100 value} used when a trait has no item data."""
    if not path:
        return None
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"baseline file {path} must hold a json object")
    return {str(k): float(v) for k, v in data.items()}


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="PsyGate: gated psychometric scoring with validity screening"
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--responses", help="path to a response set (json list/object or csv)"
    )
    source.add_argument(
        "--dummy-profile",
        choices=SyntheticResponseGenerator.profiles(),
        help="generate a synthetic respondent instead of reading a file",
    )
    parser.add_argument(
        "--config",
        default=RuntimeConfig().instruments_config,
        help="path to instruments json",
    )
    parser.add_argument(
        "--seed", type=int, default=0, help="seed for synthetic responses"
    )
    parser.add_argument(
        "--only",
        nargs="+",
        default=None,
        help="score only these instruments (default: all configured)",
    )
    parser.add_argument(
        "--baseline", default=None, help="json {trait: value} for big five traits"
    )
    parser.add_argument(
        "--parallel", action="store_true", help="run scorers on a thread pool"
    )
    parser.add_argument(
        "--max-workers", type=int, default=None, help="thread pool size for --parallel"
    )
    parser.add_argument(
        "--out", default="psygate_report.json", help="where to write the report (json)"
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)

    runtime = RuntimeConfig(
        instruments_config=args.config,
        log_level=os.environ.get("PSYGATE_LOGLEVEL", "INFO"),
        parallel_scorers=args.parallel,
        max_workers=args.max_workers,
        output_dir=str(Path(args.out).parent),
    )
    LOG.info("starting psygate")
    LOG.info("config=%s parallel=%s", runtime.instruments_config, runtime.parallel_scorers)

    loader = ConfigurationLoader(runtime)
    LOG.info(
        "instruments (%s): %s", loader.version, ", ".join(loader.instrument_names)
    )

    # load responses
    if args.dummy_profile:
        generator = SyntheticResponseGenerator(
            loader.instruments, loader.validity_config, seed=args.seed
        )
        responses, metadata = ResponseLoader(
            use_dummy=True, generator=generator, profile=args.dummy_profile
        ).load()
    else:
        responses, metadata = ResponseLoader(args.responses).load()

    orchestrator = build_orchestrator(
        loader, runtime, only=args.only, baseline=_load_baseline(args.baseline)
    )
    report = orchestrator.assemble(responses, metadata=metadata)

    if report.omitted:
        LOG.warning("instruments omitted after scorer failure: %s", report.omitted)
    LOG.info(
        "validity reliability=%s, alerts=%d",
        report.validity.reliability.value,
        len(report.alerts),
    )

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
    LOG.info("report saved → %s", out_path.resolve())


if __name__ == "__main__":
    try:
        main()
    except Exception as e:
        LOG.exception("fatal error: %s", e)
        sys.exit(1)
