"""
Configuration Loader Module for PsyGate
=======================================

Centralized configuration management with fail-fast validation for the
instrument definitions and validity scales. Ensures configuration integrity
before any respondent data is scored.

Module Architecture:
-------------------
    ┌───────────────────────────────┐
    │   Configuration Files         │
    ├───────────────────────────────┤
    │ • config/instruments.json     │──> ConfigurationLoader
    └───────────────────────────────┘          │
                                               ▼
                                        ┌──────────────┐
                                        │  Validation  │
                                        │   & Cache    │
                                        └──────────────┘
                                               │
                    ┌──────────────────────────┴──────────────┐
                    ▼                                         ▼
            Instrument Specs                           Validity Config
        (items, bands, gate rules)               (pairs, item sets, cutoffs)

Key Features:
------------
1. **Fail-Fast Validation**: unknown scales, non-increasing bands, bad gate
   rules and duplicate items are rejected at startup
2. **Centralized Access**: single source of truth for every cutoff
3. **Caching**: configuration loaded once per loader

Clinical Context:
----------------
Screening cutoffs and severity bands are configuration data. They can be
checked against the published cutoffs of each instrument without touching
scorer code.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from config.core import RuntimeConfig, ValidityConfig
from schema import InstrumentSpec


class ConfigurationError(ValueError):
    """Raised when an instrument or validity configuration is unusable."""


class ConfigurationLoader:
    """
    Load instrument and validity configuration with fail-fast validation.
    """

    def __init__(self, runtime_config: RuntimeConfig):
        """
        Initialize configuration loader.

        Args:
            runtime_config: Runtime configuration with file paths

        Raises:
            FileNotFoundError: If the instrument config doesn't exist
            ConfigurationError: If the configuration is invalid
        """
        self.config = runtime_config
        self.logger = logging.getLogger(f"{__name__}.ConfigurationLoader")

        self._document = self._load_document()
        self._instruments = self._build_instruments(self._document)
        self._validity = self._build_validity(self._document)

        self.logger.info(
            "Configuration loaded: %d instruments, %d inconsistency pairs",
            len(self._instruments),
            len(self._validity.inconsistency_pairs),
        )

    # ---- public api ----

    @property
    def instruments(self) -> Dict[str, InstrumentSpec]:
        return dict(self._instruments)

    @property
    def instrument_names(self) -> List[str]:
        return list(self._instruments)

    @property
    def validity_config(self) -> ValidityConfig:
        return self._validity

    @property
    def version(self) -> str:
        return str(self._document.get("version", "unversioned"))

    def instrument(self, name: str) -> InstrumentSpec:
        """
        Get one instrument definition.

        Raises:
            KeyError: If the instrument isn't configured
        """
        if name not in self._instruments:
            raise KeyError(
                f"Unknown instrument: {name}. Available: {self.instrument_names}"
            )
        return self._instruments[name]

    # ---- loading ----

    def _load_document(self) -> Dict[str, Any]:
        path = Path(self.config.instruments_config)
        if not path.exists():
            raise FileNotFoundError(f"Instrument config not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in instrument config: {e}") from e

        if not isinstance(document, dict):
            raise ConfigurationError("Instrument config must be a JSON object")
        if "instruments" not in document or not document["instruments"]:
            raise ConfigurationError("Config missing non-empty 'instruments' object")
        if "validity" not in document:
            raise ConfigurationError("Config missing 'validity' section")
        return document

    def _build_instruments(self, document: Dict[str, Any]) -> Dict[str, InstrumentSpec]:
        specs: Dict[str, InstrumentSpec] = {}
        for name, body in document["instruments"].items():
            if not isinstance(body, dict):
                raise ConfigurationError(f"Instrument {name!r} must be an object")
            try:
                spec = InstrumentSpec.from_dict(name, body)
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigurationError(f"Instrument {name!r}: {e}") from e
            self._validate_instrument(spec)
            specs[name] = spec
            self.logger.debug(
                "Loaded instrument %s (%s): %d subscales, %d items",
                name,
                spec.label,
                len(spec.subscales),
                len(spec.item_ids),
            )
        return specs

    def _validate_instrument(self, spec: InstrumentSpec) -> None:
        ids = spec.item_ids
        if len(ids) != len(set(ids)):
            duplicates = sorted({q for q in ids if ids.count(q) > 1})
            raise ConfigurationError(f"{spec.name}: duplicate item ids {duplicates}")

        # id-based instruments need items; tag-based ones need tags
        if not ids and not spec.tags:
            raise ConfigurationError(f"{spec.name}: declares neither items nor tags")

        for sub in spec.subscales.values():
            if not sub.items and not spec.tags:
                raise ConfigurationError(f"{spec.name}.{sub.name}: empty item list")

        if not 0 <= spec.precision <= 4:
            raise ConfigurationError(f"{spec.name}: precision must be within 0..4")

    def _build_validity(self, document: Dict[str, Any]) -> ValidityConfig:
        raw = dict(document["validity"])
        pairs = raw.pop("inconsistency_pairs", None)
        if pairs is not None:
            bad = [p for p in pairs if not isinstance(p, (list, tuple)) or len(p) != 2]
            if bad:
                raise ConfigurationError(f"Inconsistency pairs must be 2-item lists: {bad}")
            raw["inconsistency_pairs"] = [tuple(p) for p in pairs]
        try:
            return ValidityConfig(**raw)
        except TypeError as e:
            raise ConfigurationError(f"Unknown validity setting: {e}") from e
        except ValueError as e:
            raise ConfigurationError(f"Invalid validity config: {e}") from e
