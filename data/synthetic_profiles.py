"""
Synthetic respondent generator for PsyGate testing and demos.

Every response set is derived from the loaded instrument definitions, so the
generated question ids always match the configuration. Generation is seeded:
the same profile, seed and configuration give the same records.
"""

import random
from typing import Any, Dict, List, Mapping

from config.core import ValidityConfig
from normalizer import get_scale
from schema import InstrumentSpec


class SyntheticResponseGenerator:
    """Generate plausible response sets for named respondent profiles."""

    # position on each scale (0 = minimum, 1 = maximum), noise, share answered
    PROFILES: Dict[str, Dict[str, Any]] = {
        "typical": {
            "summary": "Low symptom burden, consistent answers",
            "level": 0.25,
            "noise": 0.12,
            "answered": 1.0,
            "elevated": {},
        },
        "depressed": {
            "summary": "Elevated depression and anxiety, consistent answers",
            "level": 0.25,
            "noise": 0.12,
            "answered": 1.0,
            "elevated": {"depression": 0.85, "anxiety": 0.7, "somatic": 0.6},
        },
        "random": {
            "summary": "Uniformly random answers with unrelated pair items",
            "level": None,
            "noise": 0.0,
            "answered": 1.0,
            "elevated": {},
        },
        "faking_good": {
            "summary": "Implausibly favourable self-presentation",
            "level": 0.02,
            "noise": 0.03,
            "answered": 1.0,
            "elevated": {},
        },
        "sparse": {
            "summary": "Only a fraction of items answered",
            "level": 0.3,
            "noise": 0.12,
            "answered": 0.2,
            "elevated": {},
        },
    }

    # items generated per facet / indicator / executive-function domain
    ITEMS_PER_FACET = 3
    ITEMS_PER_INDICATOR = 2
    ITEMS_PER_EF_DOMAIN = 3

    def __init__(
        self,
        specs: Mapping[str, InstrumentSpec],
        validity: ValidityConfig,
        seed: int = 0,
    ):
        self.specs = specs
        self.validity = validity
        self.seed = seed

    @classmethod
    def profiles(cls) -> List[str]:
        return list(cls.PROFILES)

    def generate(self, profile: str = "typical") -> List[Dict[str, Any]]:
        """
        Generate one response set.

        Args:
            profile: One of PROFILES

        Returns:
            List of response records (plain dicts, collector field names)
        """
        if profile not in self.PROFILES:
            raise ValueError(
                f"Unknown profile: {profile}. Available: {self.profiles()}"
            )
        template = self.PROFILES[profile]
        rng = random.Random(f"{profile}:{self.seed}")

        records: List[Dict[str, Any]] = []
        for name, spec in self.specs.items():
            level = template["elevated"].get(name, template["level"])
            records.extend(self._instrument_records(rng, spec, level, template["noise"]))
        records.extend(self._validity_records(rng, profile, template))

        kept = [r for r in records if rng.random() < template["answered"]]
        return kept

    # ---- instruments ----

    def _instrument_records(
        self, rng: random.Random, spec: InstrumentSpec, level, noise: float
    ) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for sub in spec.subscales.values():
            scale = spec.scale_for(sub.name)
            for qid in sub.items:
                out.append(
                    {
                        "questionId": qid,
                        "value": self._draw(rng, scale, level, noise),
                        "scaleTag": spec.name.upper(),
                        "subscaleTag": sub.name,
                    }
                )

        scale = get_scale(spec.scale)
        params = spec.params
        if "traits" in params:
            for trait, facets in params["traits"].items():
                for facet in facets:
                    for k in range(1, self.ITEMS_PER_FACET + 1):
                        out.append(
                            {
                                "questionId": f"NEO_{trait}_{facet}_{k}".upper(),
                                "value": self._draw(rng, scale, level, noise),
                                "scaleTag": spec.tags[0],
                                "domain": trait,
                                "subscaleTag": facet,
                            }
                        )
        for screen, screen_params in params.get("screens", {}).items():
            for indicator in screen_params["indicators"]:
                for k in range(1, self.ITEMS_PER_INDICATOR + 1):
                    out.append(
                        {
                            "questionId": f"{screen}_{indicator}_{k}".upper(),
                            "value": self._draw(rng, scale, level, noise),
                            "scaleTag": screen_params["tags"][0],
                            "subscaleTag": indicator,
                        }
                    )
        ef = params.get("executive_function")
        if ef:
            for domain in ef["domains"]:
                for k in range(1, self.ITEMS_PER_EF_DOMAIN + 1):
                    out.append(
                        {
                            "questionId": f"EF_{domain}_{k}".upper(),
                            "value": self._draw(rng, scale, level, noise),
                            "scaleTag": ef["tags"][0],
                            "subscaleTag": domain,
                        }
                    )
        return out

    # ---- validity ----

    def _validity_records(
        self, rng: random.Random, profile: str, template: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        scale = get_scale("validity")
        out: List[Dict[str, Any]] = []
        # pair items are keyed in opposite directions: a consistent respondent
        # answers them at opposite ends of the scale
        for a, b in self.validity.inconsistency_pairs:
            if profile == "random":
                first = self._draw(rng, scale, None, 0.0)
                second = self._draw(rng, scale, None, 0.0)
            else:
                first = self._draw(rng, scale, 0.1, 0.08)
                second = int(scale.minimum + scale.maximum - first)
            out.append({"questionId": a, "value": first, "scaleTag": "VALIDITY"})
            out.append({"questionId": b, "value": second, "scaleTag": "VALIDITY"})

        rare = None if profile == "random" else 0.0
        for qid in self.validity.infrequency_items:
            out.append(
                {"questionId": qid, "value": self._draw(rng, scale, rare, 0.0), "scaleTag": "VALIDITY"}
            )

        if profile == "faking_good":
            virtue = 1.0
        elif profile == "random":
            virtue = None
        else:
            virtue = 0.3
        for qid in self.validity.positive_impression_items:
            out.append(
                {"questionId": qid, "value": self._draw(rng, scale, virtue, 0.1), "scaleTag": "VALIDITY"}
            )
        return out

    @staticmethod
    def _draw(rng: random.Random, scale, level, noise: float) -> int:
        """integer answer at `level` of the scale range; None level → uniform."""
        if level is None:
            x = rng.random()
        else:
            x = min(1.0, max(0.0, level + rng.gauss(0.0, noise)))
        return int(round(scale.minimum + x * (scale.maximum - scale.minimum)))
