# schema.py
# helpers to load instrument definitions: items, scales, bands and gate rules

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from aggregator import BandTable
from gating import SufficiencyRule
from normalizer import ScaleDefinition, get_scale


@dataclass(frozen=True)
class SubscaleSpec:
    name: str
    items: Tuple[str, ...]
    scale: Optional[str] = None  # None → instrument default


@dataclass(frozen=True)
class InstrumentSpec:
    """one instrument as declared in config/instruments.json."""

    name: str
    label: str
    scale: str
    precision: int
    subscales: Dict[str, SubscaleSpec]
    bands: Dict[str, BandTable]
    gate: Dict[str, SufficiencyRule]
    thresholds: Dict[str, Any] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    tags: Tuple[str, ...] = ()

    def scale_for(self, subscale: str) -> ScaleDefinition:
        spec = self.subscales.get(subscale)
        return get_scale(spec.scale if spec and spec.scale else self.scale)

    def band(self, name: str) -> BandTable:
        try:
            return self.bands[name]
        except KeyError:
            raise ValueError(f"{self.name}: no band table {name!r}") from None

    def threshold(self, name: str) -> Any:
        try:
            return self.thresholds[name]
        except KeyError:
            raise ValueError(f"{self.name}: missing threshold {name!r}") from None

    @property
    def item_ids(self) -> Tuple[str, ...]:
        return tuple(q for s in self.subscales.values() for q in s.items)

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "InstrumentSpec":
        scale = str(data.get("scale", "likert5"))
        get_scale(scale)  # unknown scale names fail here

        subscales: Dict[str, SubscaleSpec] = {}
        for sub_name, sub in (data.get("subscales") or {}).items():
            sub_scale = sub.get("scale")
            if sub_scale is not None:
                get_scale(sub_scale)
            subscales[sub_name] = SubscaleSpec(
                name=sub_name, items=tuple(sub.get("items", ())), scale=sub_scale
            )

        bands = {
            k: BandTable.from_pairs(pairs) for k, pairs in (data.get("bands") or {}).items()
        }
        gate = {
            k: SufficiencyRule.from_dict(rule) for k, rule in (data.get("gate") or {}).items()
        }
        return cls(
            name=name,
            label=str(data.get("label", name)),
            scale=scale,
            precision=int(data.get("precision", 2)),
            subscales=subscales,
            bands=bands,
            gate=gate,
            thresholds=dict(data.get("thresholds") or {}),
            params=dict(data.get("params") or {}),
            tags=tuple(str(t).upper() for t in data.get("tags", ())),
        )


def load_config_document(path: str | Path) -> Dict[str, Any]:
    """read the raw instrument config json."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_instrument_specs(path: str | Path) -> Dict[str, InstrumentSpec]:
    """return {instrument name: InstrumentSpec} in declaration order."""
    data = load_config_document(path)
    return {
        name: InstrumentSpec.from_dict(name, body)
        for name, body in data["instruments"].items()
    }
