"""
Shared fixtures for PsyGate tests.

All fixtures read the shipped config/instruments.json, so tests exercise the
same cutoffs and gate minimums as a real run.
"""

from typing import Any, Callable, Dict, List

import pytest

from config.core import RuntimeConfig
from config.loader import ConfigurationLoader
from models import Response


@pytest.fixture(scope="session")
def loader() -> ConfigurationLoader:
    return ConfigurationLoader(RuntimeConfig())


@pytest.fixture(scope="session")
def specs(loader):
    return loader.instruments


@pytest.fixture
def response() -> Callable[..., Response]:
    """build one Response: response("Q1", 2, subscale_tag="x")."""

    def _make(qid: str, value: Any, **kw) -> Response:
        return Response(question_id=qid, value=value, **kw)

    return _make


@pytest.fixture
def answers() -> Callable[..., List[Dict[str, Any]]]:
    """raw records for a list of ids all answered with the same value."""

    def _make(ids, value, **kw) -> List[Dict[str, Any]]:
        return [{"questionId": q, "value": value, **kw} for q in ids]

    return _make


@pytest.fixture
def tagged() -> Callable[..., List[Response]]:
    """n tag-based responses sharing scale/subscale tags."""

    def _make(prefix: str, n: int, value: Any, **tags) -> List[Response]:
        return [
            Response(question_id=f"{prefix}_{k}", value=value, **tags)
            for k in range(1, n + 1)
        ]

    return _make
