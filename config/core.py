"""
Core configuration classes for PsyGate.

This module contains the runtime configuration and the validity-scale
parameters. Instrument items, severity bands and gate minimums live in
config/instruments.json and are loaded by config.loader.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

CONFIG_DIR = Path(__file__).resolve().parent


def _default_pairs() -> List[Tuple[str, str]]:
    return [(f"VALIDITY_INCONS_{i}A", f"VALIDITY_INCONS_{i}B") for i in range(1, 11)]


def _default_infrequency() -> List[str]:
    return [f"VALIDITY_INFREQ_{i}" for i in range(1, 7)]


def _default_positive_impression() -> List[str]:
    return [f"VALIDITY_POS_IMP_{i}" for i in range(1, 9)]


@dataclass
class RuntimeConfig:
    """Runtime configuration for a scoring run."""

    # instrument definitions (items, bands, gates)
    instruments_config: str = str(CONFIG_DIR / "instruments.json")

    # logging
    log_level: str = "INFO"

    # scorer execution; scorers are pure so threads are safe
    parallel_scorers: bool = False
    max_workers: Optional[int] = None

    # output
    output_dir: str = "out"

    def __post_init__(self):
        """Validate runtime configuration."""
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.log_level.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR"}:
            raise ValueError(f"Unsupported log level: {self.log_level}")


@dataclass
class ValidityConfig:
    """Item sets and thresholds for the validity scales.

    Thresholds are strict (a ratio must exceed them); the endorsement
    threshold is inclusive on the common 1-5 scale.
    """

    inconsistency_pairs: List[Tuple[str, str]] = field(default_factory=_default_pairs)
    infrequency_items: List[str] = field(default_factory=_default_infrequency)
    positive_impression_items: List[str] = field(
        default_factory=_default_positive_impression
    )

    pair_difference_threshold: float = 2.0
    endorsement_threshold: float = 4.0

    inconsistency_high: float = 0.30
    inconsistency_moderate: float = 0.20
    infrequency_high: float = 0.40
    infrequency_moderate: float = 0.25
    positive_impression_high: float = 0.50
    positive_impression_moderate: float = 0.375

    # random responding
    random_min_answers: int = 10
    random_inconsistency_above: float = 0.30
    random_sd_below: float = 0.5

    def __post_init__(self):
        """Validate threshold ordering and item-set integrity."""
        for metric in ("inconsistency", "infrequency", "positive_impression"):
            high = getattr(self, f"{metric}_high")
            moderate = getattr(self, f"{metric}_moderate")
            if not 0.0 <= moderate < high <= 1.0:
                raise ValueError(
                    f"{metric}: require 0 <= moderate < high <= 1, got {moderate}/{high}"
                )
        if self.random_min_answers < 2:
            raise ValueError("random_min_answers must be >= 2")

        pair_ids = [q for pair in self.inconsistency_pairs for q in pair]
        if len(pair_ids) != len(set(pair_ids)):
            raise ValueError("inconsistency pairs must not share items")
        sets = [set(pair_ids), set(self.infrequency_items), set(self.positive_impression_items)]
        for i, a in enumerate(sets):
            for b in sets[i + 1 :]:
                if a & b:
                    raise ValueError(f"validity item sets overlap: {sorted(a & b)}")
