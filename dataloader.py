"""
PsyGate Response Loader
=======================
Reads one respondent's answers from disk (or from the synthetic generator)
and hands back plain records ready for validators.validate_response_set().

File Formats:
-------------
1. JSON:
   - either a bare list of response objects, or
   - an object {"responses": [...], "metadata": {...}}
   - loaded through pd.json_normalize() so nested collector exports flatten
     the same way as CSV columns

2. CSV:
   - one row per answer, loaded with pd.read_csv()
   - column names are kept as-is; the Response model accepts the collector
     spellings (questionId / question_id / qid, value / score / response ...)

Value Handling:
---------------
- a numeric 0 is a real answer and is never dropped or replaced
- pandas missing values (NaN, NaT, None) become None, which the normalizer
  treats as unanswered and scores with the neutral default
- integral floats introduced by pandas ("2.0" in a float column) are
  returned as ints; text cells stay text
- metadata is passed through unchanged
"""

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".json", ".csv")


class ResponseLoader:
    """Load a response set for one assessment run."""

    def __init__(
        self,
        path: Optional[str] = None,
        use_dummy: bool = False,
        generator: Any = None,
        profile: str = "typical",
    ):
        """
        Initialize the response loader.

        Args:
            path: JSON or CSV file with the response set.
            use_dummy: If True, draw responses from the synthetic generator.
            generator: SyntheticResponseGenerator used in dummy mode.
            profile: Synthetic profile name for dummy mode.
        """
        self.use_dummy = use_dummy
        self.generator = generator
        self.profile = profile
        self.path = Path(path) if path else None

        if use_dummy:
            if generator is None:
                raise ValueError("use_dummy=True requires a synthetic generator")
            return

        if self.path is None:
            raise ValueError("A response file path is required unless use_dummy=True")
        if not self.path.exists():
            raise FileNotFoundError(
                f"Response file does not exist: {self.path}. "
                f"Use use_dummy=True for synthetic data."
            )
        if self.path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise ValueError(
                f"Unsupported response file type {self.path.suffix!r}; "
                f"expected one of {SUPPORTED_SUFFIXES}"
            )

    def load(self) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        """
        Load the response set.

        Returns:
            (records, metadata)
        """
        if self.use_dummy:
            records = self.generator.generate(self.profile)
            logger.info(
                "Generated %d synthetic responses (profile=%s, seed=%s)",
                len(records),
                self.profile,
                self.generator.seed,
            )
            return records, {"source": "synthetic", "profile": self.profile}

        if self.path.suffix.lower() == ".csv":
            frame = pd.read_csv(self.path)
            metadata: Dict[str, Any] = {}
        else:
            frame, metadata = self._read_json(self.path)

        records = frame_to_records(frame)
        logger.info("Loaded %d responses from %s", len(records), self.path)
        return records, metadata

    @staticmethod
    def _read_json(path: Path) -> Tuple[pd.DataFrame, Dict[str, Any]]:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)

        if isinstance(document, list):
            rows, metadata = document, {}
        elif isinstance(document, dict) and isinstance(document.get("responses"), list):
            rows, metadata = document["responses"], dict(document.get("metadata") or {})
        else:
            raise ValueError(
                f"{path}: expected a list of responses or an object with a 'responses' list"
            )
        return pd.json_normalize(rows), metadata


def frame_to_records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    """DataFrame rows → plain dicts with missing cells as None and zeros intact."""
    frame = frame.astype(object).where(pd.notna(frame), None)
    return [
        {k: _plain(v) for k, v in row.items()}
        for row in frame.to_dict(orient="records")
    ]


def _plain(value: Any) -> Any:
    if value is None:
        return None
    if hasattr(value, "item"):
        # numpy scalar → python scalar
        value = value.item()
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer():
            return int(value)
    return value
