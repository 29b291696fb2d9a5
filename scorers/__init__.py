# scorers/__init__.py
"""public api for the scorers package.

exports the scorer classes, the name → class registry and build_scorers(),
which wires every configured instrument to its scorer.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Type

from schema import InstrumentSpec

from .aces import AcesScorer
from .anxiety import AnxietyScorer
from .base import InstrumentResult, InstrumentScorer, canonical_tag
from .big_five import BigFiveScorer
from .borderline import BorderlineScorer
from .depression import DepressionScorer
from .hexaco import HexacoScorer
from .mania import ManiaScorer
from .neurodiversity import NeurodiversityScorer
from .psychosis import PsychosisScorer
from .resilience import ResilienceScorer
from .somatic import SomaticScorer

SCORER_CLASSES: Dict[str, Type[InstrumentScorer]] = {
    cls.name: cls
    for cls in (
        DepressionScorer,
        AnxietyScorer,
        SomaticScorer,
        ManiaScorer,
        PsychosisScorer,
        BorderlineScorer,
        AcesScorer,
        HexacoScorer,
        ResilienceScorer,
        BigFiveScorer,
        NeurodiversityScorer,
    )
}


def build_scorers(
    specs: Mapping[str, InstrumentSpec],
    only: Optional[Sequence[str]] = None,
    baseline: Optional[Mapping[str, float]] = None,
    logger: Optional[logging.Logger] = None,
) -> List[InstrumentScorer]:
    """one scorer per configured instrument, in configuration order.

    `only` restricts the run to named instruments; `baseline` feeds external
    trait values to the big five scorer. a given `logger` is handed to each
    scorer as a child named after the instrument.
    """
    log = logger or logging.getLogger(__name__)
    wanted = list(specs) if only is None else list(only)
    unknown = [n for n in wanted if n not in specs]
    if unknown:
        raise KeyError(f"Unknown instruments requested: {unknown}")

    scorers: List[InstrumentScorer] = []
    for name in wanted:
        cls = SCORER_CLASSES.get(name)
        if cls is None:
            log.warning("No scorer registered for configured instrument %s; skipping", name)
            continue
        child = logger.getChild(name) if logger is not None else None
        if cls is BigFiveScorer:
            scorers.append(BigFiveScorer(specs[name], logger=child, baseline=baseline))
        else:
            scorers.append(cls(specs[name], logger=child))
    return scorers


__all__ = [
    "SCORER_CLASSES",
    "build_scorers",
    "InstrumentResult",
    "InstrumentScorer",
    "canonical_tag",
    "AcesScorer",
    "AnxietyScorer",
    "BigFiveScorer",
    "BorderlineScorer",
    "DepressionScorer",
    "HexacoScorer",
    "ManiaScorer",
    "NeurodiversityScorer",
    "PsychosisScorer",
    "ResilienceScorer",
    "SomaticScorer",
]
