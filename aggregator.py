# aggregator.py
# scale aggregation shared by every instrument scorer
# yagnified: items → subscale (total/count/average) → domain, plus ordered
# lower-inclusive severity tables. only real (non-defaulted) items enter the
# arithmetic; an empty subscale has no average, never a fabricated 0.

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from normalizer import ScoredItem

UNKNOWN = "Unknown"

SOURCE_FACETS = "facets"
SOURCE_ITEMS = "items"
SOURCE_EXTERNAL = "external"
SOURCE_NONE = "none"

BASIS_TOTAL = "total"
BASIS_AVERAGE = "average"


def round_half_up(value: float, precision: int = 0) -> float:
    """round half away from zero at `precision` decimals (python's round() is banker's)."""
    quantum = Decimal(1).scaleb(-precision)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class BandTable:
    """ordered decision table of (lower_inclusive_bound, label).

    classify() is total: a value picks the last band whose lower bound it
    reaches; values under the first bound fall into the first band. a
    boundary value always lands in the band it opens.
    """

    bands: Tuple[Tuple[float, str], ...]

    def __post_init__(self) -> None:
        if not self.bands:
            raise ValueError("band table cannot be empty")
        lowers = [b[0] for b in self.bands]
        if any(b <= a for a, b in zip(lowers, lowers[1:])):
            raise ValueError(f"band bounds must be strictly increasing: {lowers}")

    @classmethod
    def from_pairs(cls, pairs: Iterable[Sequence]) -> "BandTable":
        return cls(tuple((float(lo), str(label)) for lo, label in pairs))

    @property
    def labels(self) -> List[str]:
        return [label for _, label in self.bands]

    def classify(self, value: Optional[float]) -> str:
        if value is None:
            return UNKNOWN
        label = self.bands[0][1]
        for lower, name in self.bands:
            if value >= lower:
                label = name
            else:
                break
        return label

    def index(self, value: Optional[float]) -> Optional[int]:
        """position of the matching band (0-based), None without a value."""
        if value is None:
            return None
        return self.labels.index(self.classify(value))


@dataclass(frozen=True)
class Subscale:
    """aggregate of scored items sharing a facet/category.

    attributes:
        name: subscale key
        total: sum over real items
        count: number of real items
        defaulted: number of items that fell back to the neutral default
        average: total / count, None when count == 0
        level: band label, "Unknown" when there is no data
        items: real item values keyed by question id (for item-level rules)
    """

    name: str
    total: float
    count: int
    defaulted: int
    average: Optional[float]
    level: str
    items: Tuple[Tuple[str, float], ...] = ()

    @property
    def has_data(self) -> bool:
        return self.count > 0

    def item(self, question_id: str) -> Optional[float]:
        for qid, value in self.items:
            if qid == question_id:
                return value
        return None


@dataclass(frozen=True)
class DomainScore:
    """top-level score of an instrument or trait.

    attributes:
        name: domain key
        score: reported score, None when nothing supports one
        source: which path produced it (facets | items | external | none)
        level: band label of the score
        count: real items behind the score
        defaulted: defaulted items seen
        subscales: child subscales in definition order
    """

    name: str
    score: Optional[float]
    source: str
    level: str
    count: int
    defaulted: int
    subscales: Tuple[Subscale, ...] = ()

    def subscale(self, name: str) -> Optional[Subscale]:
        for s in self.subscales:
            if s.name == name:
                return s
        return None


class ScaleAggregator:
    """items → subscale → domain with consistent rounding.

    precision applies to domain scores; subscale averages are reported at
    `average_precision` (never fewer than two decimals). totals of integer
    items stay exact.
    """

    def __init__(self, precision: int = 2) -> None:
        if precision < 0:
            raise ValueError("precision must be >= 0")
        self.precision = precision
        self.average_precision = max(precision, 2)

    def subscale(
        self,
        name: str,
        items: Iterable[ScoredItem],
        bands: Optional[BandTable] = None,
        basis: str = BASIS_AVERAGE,
    ) -> Subscale:
        self._check_basis(basis)
        items = list(items)
        real = [i for i in items if not i.defaulted]
        total = float(sum(i.value for i in real))
        count = len(real)
        average = total / count if count else None
        banded = total if basis == BASIS_TOTAL else average
        if count == 0:
            level = UNKNOWN
        elif bands is None:
            level = UNKNOWN
        else:
            level = bands.classify(banded)
        return Subscale(
            name=name,
            total=total,
            count=count,
            defaulted=len(items) - count,
            average=average,
            level=level,
            items=tuple((i.question_id, i.value) for i in real),
        )

    def domain(
        self,
        name: str,
        subscales: Sequence[Subscale] = (),
        items: Sequence[ScoredItem] = (),
        bands: Optional[BandTable] = None,
        basis: str = BASIS_AVERAGE,
        precision: Optional[int] = None,
        external: Optional[float] = None,
    ) -> DomainScore:
        """domain score from facet means, else raw items, else an external value.

        facet path: round_half_up(mean(valid subscale averages)), the averages
        taken as reported (rounded to `average_precision`) so the published
        facet numbers reproduce the domain score.
        item path: total or average over real items per `basis`.
        """
        self._check_basis(basis)
        digits = self.precision if precision is None else precision
        subscales = tuple(subscales)
        valid = [
            round_half_up(s.average, self.average_precision)
            for s in subscales
            if s.average is not None
        ]

        count = sum(s.count for s in subscales)
        defaulted = sum(s.defaulted for s in subscales)

        if valid:
            score: Optional[float] = round_half_up(sum(valid) / len(valid), digits)
            source = SOURCE_FACETS
        else:
            pooled = self.subscale(name, items, basis=basis)
            if items:
                count, defaulted = pooled.count, pooled.defaulted
            if pooled.count:
                raw = pooled.total if basis == BASIS_TOTAL else pooled.average
                score = round_half_up(raw, digits)
                source = SOURCE_ITEMS
            elif external is not None:
                score = round_half_up(float(external), digits)
                source = SOURCE_EXTERNAL
            else:
                score = None
                source = SOURCE_NONE

        level = bands.classify(score) if (bands is not None and score is not None) else UNKNOWN
        return DomainScore(
            name=name,
            score=score,
            source=source,
            level=level,
            count=count,
            defaulted=defaulted,
            subscales=subscales,
        )

    def total(
        self,
        name: str,
        items: Sequence[ScoredItem],
        bands: Optional[BandTable] = None,
        subscales: Sequence[Subscale] = (),
    ) -> DomainScore:
        """clinical-style domain: summed over items, children kept for reporting."""
        d = self.domain(name, items=items, bands=bands, basis=BASIS_TOTAL)
        return replace(d, subscales=tuple(subscales))

    # ------------------------- helpers -------------------------

    @staticmethod
    def _check_basis(basis: str) -> None:
        if basis not in (BASIS_TOTAL, BASIS_AVERAGE):
            raise ValueError(f"basis must be 'total' or 'average', got {basis!r}")


def group_items(
    items: Iterable[ScoredItem], key: str = "subscale_tag"
) -> Dict[str, List[ScoredItem]]:
    """bucket scored items by a tag attribute, keeping first-seen order."""
    out: "OrderedDict[str, List[ScoredItem]]" = OrderedDict()
    for item in items:
        tag = getattr(item, key)
        if tag is None:
            continue
        out.setdefault(tag, []).append(item)
    return dict(out)
