# normalizer.py
# turn one heterogeneous raw answer into a canonical numeric score.
# precedence: number → numeral-as-text → boolean → label → neutral default.
# nothing here raises on odd input; unrecognized answers come back defaulted.

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from models import Response

# rule names recorded on each scored item
RULE_NUMERIC = "numeric"
RULE_NUMERAL = "numeral"
RULE_BOOLEAN = "boolean"
RULE_LABEL = "label"
RULE_DEFAULT = "default"

_SEP_RE = re.compile(r"[\s_\-]+")


def _label_key(text: str) -> str:
    """case/space/underscore-insensitive lookup key ("Strongly_Agree" → "strongly agree")."""
    return _SEP_RE.sub(" ", text.strip().lower())


@dataclass(frozen=True)
class ScaleDefinition:
    """canonical scale for one family of items.

    attributes:
        name: scale identifier referenced by instrument config
        minimum: lowest canonical value
        maximum: highest canonical value
        neutral: documented default for unrecognized answers
        labels: categorical label → canonical value
        text_range: source range of numerals-as-text; None means numerals are
            already canonical, otherwise they are rescaled linearly onto
            [minimum, maximum]
    """

    name: str
    minimum: float
    maximum: float
    neutral: float
    labels: Mapping[str, float] = field(default_factory=dict)
    text_range: Optional[Tuple[float, float]] = None

    def __post_init__(self) -> None:
        if self.maximum <= self.minimum:
            raise ValueError(f"scale {self.name!r}: maximum must exceed minimum")
        if not self.minimum <= self.neutral <= self.maximum:
            raise ValueError(f"scale {self.name!r}: neutral outside [min, max]")
        if self.text_range is not None and self.text_range[1] <= self.text_range[0]:
            raise ValueError(f"scale {self.name!r}: text_range must be increasing")
        # normalize label keys once so lookups stay cheap
        object.__setattr__(
            self, "labels", {_label_key(k): float(v) for k, v in self.labels.items()}
        )

    def lookup(self, label: str) -> Optional[float]:
        key = _label_key(label)
        if key in self.labels:
            return self.labels[key]
        return None

    def rescale_text(self, x: float) -> float:
        if self.text_range is None:
            return x
        lo, hi = self.text_range
        return self.minimum + (x - lo) / (hi - lo) * (self.maximum - self.minimum)

    def mirror(self, x: float) -> float:
        return self.minimum + self.maximum - x


@dataclass(frozen=True)
class ScoredItem:
    """a response after normalization.

    attributes:
        question_id: originating response id
        value: canonical numeric score
        defaulted: True when the neutral default stood in for the answer;
            defaulted items never count as data present
        rule: which precedence rule produced the value
        scale: scale name used
        scale_tag / subscale_tag / domain: tags copied from the response
    """

    question_id: str
    value: float
    defaulted: bool
    rule: str
    scale: str
    scale_tag: Optional[str] = None
    subscale_tag: Optional[str] = None
    domain: Optional[str] = None


# ----------------------------- label tables -----------------------------

_AGREEMENT = {
    "strongly disagree": 1,
    "disagree": 2,
    "neutral": 3,
    "neither agree nor disagree": 3,
    "agree": 4,
    "strongly agree": 5,
}

_FREQUENCY = {
    "never": 1,
    "rarely": 2,
    "sometimes": 3,
    "often": 4,
    "very often": 5,
}

_PHQ_FREQUENCY = {
    "not at all": 0,
    "several days": 1,
    "more than half the days": 2,
    "nearly every day": 3,
}

_PHQ_BOTHER = {
    "not bothered at all": 0,
    "bothered a little": 1,
    "bothered a lot": 2,
}


SCALES: Dict[str, ScaleDefinition] = {
    "binary": ScaleDefinition(
        name="binary",
        minimum=0,
        maximum=1,
        neutral=0,
        labels={"yes": 1, "no": 0, "true": 1, "false": 0},
    ),
    "phq3": ScaleDefinition(
        name="phq3", minimum=0, maximum=2, neutral=1, labels=_PHQ_BOTHER
    ),
    "phq4": ScaleDefinition(
        name="phq4", minimum=0, maximum=3, neutral=1.5, labels=_PHQ_FREQUENCY
    ),
    "likert5": ScaleDefinition(
        name="likert5",
        minimum=1,
        maximum=5,
        neutral=3,
        labels={**_AGREEMENT, **_FREQUENCY, "yes": 5, "no": 1},
    ),
    # validity items are read on one common 1-5 footing, phq words included
    "validity": ScaleDefinition(
        name="validity",
        minimum=1,
        maximum=5,
        neutral=3,
        labels={
            **_AGREEMENT,
            **_FREQUENCY,
            **{k: v + 1 for k, v in _PHQ_FREQUENCY.items()},
        },
    ),
    "percent": ScaleDefinition(
        name="percent",
        minimum=0,
        maximum=100,
        neutral=50,
        labels={k: (v - 1) * 25 for k, v in {**_AGREEMENT, **_FREQUENCY}.items()},
        text_range=(1, 5),
    ),
}


def get_scale(name: str) -> ScaleDefinition:
    try:
        return SCALES[name]
    except KeyError:
        raise ValueError(
            f"unknown scale {name!r}; expected one of {sorted(SCALES)}"
        ) from None


# ----------------------------- normalization -----------------------------


def _finite(x: float) -> bool:
    return not (math.isnan(x) or math.isinf(x))


def _resolve(raw, scale: ScaleDefinition) -> Tuple[Optional[float], str]:
    """apply the precedence rules; returns (value or None, rule)."""
    # bool is an int subclass in python, so it is excluded from rule 1
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        if _finite(float(raw)):
            return float(raw), RULE_NUMERIC
        return None, RULE_DEFAULT

    if isinstance(raw, str):
        text = raw.strip()
        try:
            parsed = float(text)
        except ValueError:
            parsed = None
        if parsed is not None and _finite(parsed):
            return scale.rescale_text(parsed), RULE_NUMERAL

    if isinstance(raw, bool):
        return (scale.maximum if raw else scale.minimum), RULE_BOOLEAN

    if isinstance(raw, str):
        hit = scale.lookup(raw)
        if hit is not None:
            return hit, RULE_LABEL

    return None, RULE_DEFAULT


def normalize(
    response: Response, scale: ScaleDefinition, keyed: bool = True
) -> ScoredItem:
    """normalize a single response onto `scale`.

    keyed=False skips reverse keying and keeps the answer as given.
    """
    value, rule = _resolve(response.value, scale)
    defaulted = value is None
    if defaulted:
        value = scale.neutral
    elif keyed and response.reverse_scored:
        value = scale.mirror(value)
    return ScoredItem(
        question_id=response.question_id,
        value=value,
        defaulted=defaulted,
        rule=rule,
        scale=scale.name,
        scale_tag=response.scale_tag,
        subscale_tag=response.subscale_tag,
        domain=response.domain,
    )


def normalize_all(
    responses: Iterable[Response], scale: ScaleDefinition
) -> List[ScoredItem]:
    return [normalize(r, scale) for r in responses]
