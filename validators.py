# validators.py
# input-contract validation for response sets and structured scorer logging.
# malformed input fails fast here, before any scorer runs.

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Tuple

from pydantic import ValidationError

from models import Response


class InvalidResponseSetError(ValueError):
    """raised when the response set itself is unusable (not an answer-level problem)."""


def validate_response_set(raw: Any) -> Tuple[Response, ...]:
    """coerce a raw response collection into an immutable tuple of Responses.

    accepts a list/tuple of mappings or Response instances. strings, mappings
    and other non-collections are rejected; so is any record missing a
    question id. odd answer values are not rejected here; the normalizer
    degrades them to a defaulted neutral score.
    """
    if raw is None:
        raise InvalidResponseSetError("response set is missing (got None)")
    if isinstance(raw, (str, bytes, Mapping)) or not isinstance(raw, (list, tuple)):
        raise InvalidResponseSetError(
            f"response set must be a list of responses, got {type(raw).__name__}"
        )

    out = []
    for i, rec in enumerate(raw):
        if isinstance(rec, Response):
            out.append(rec)
            continue
        if not isinstance(rec, Mapping):
            raise InvalidResponseSetError(
                f"response[{i}] must be an object, got {type(rec).__name__}"
            )
        try:
            out.append(Response.model_validate(dict(rec)))
        except ValidationError as e:
            raise InvalidResponseSetError(f"response[{i}] is malformed: {e}") from e
    return tuple(out)


def canonical_responses(responses: Iterable[Response]) -> str:
    """stable json text of a response set (used for report ids)."""
    rows = [r.model_dump(mode="json") for r in responses]
    return json.dumps(rows, sort_keys=True, separators=(",", ":"))


# ------------------------- structured status logging -------------------------

_ALLOWED_STATUS = {"start", "ok", "insufficient", "error", "skip"}


def log_scorer_status(*args, **kwargs) -> None:
    """emit one structured line per scorer event.

    call as log_scorer_status(logger, instrument, status[, reason[, meta]]) or
    with keywords. status must be one of start/ok/insufficient/error/skip and
    meta must be json-serializable. exc_info is forwarded to the logger.
    """
    logger = kwargs.pop("logger", args[0] if args else None)
    exc_info = kwargs.pop("exc_info", None)
    if not isinstance(logger, logging.Logger):
        raise TypeError(
            "log_scorer_status: first arg or 'logger=' must be a logging.Logger"
        )

    if len(args) >= 3:
        _, instrument, status, *rest = args
        reason = rest[0] if len(rest) >= 1 else kwargs.pop("reason", None)
        meta = rest[1] if len(rest) >= 2 else kwargs.pop("meta", None)
    else:
        try:
            instrument = kwargs.pop("instrument")
            status = kwargs.pop("status")
        except KeyError as e:
            raise ValueError(
                f"log_scorer_status: missing required field {e.args[0]!r}"
            ) from e
        reason = kwargs.pop("reason", None)
        meta = kwargs.pop("meta", None)

    if status not in _ALLOWED_STATUS:
        raise ValueError(
            f"log_scorer_status: invalid status={status!r}; expected one of {sorted(_ALLOWED_STATUS)}"
        )

    if meta is not None:
        try:
            json.dumps(meta)
        except (TypeError, ValueError) as e:
            raise ValueError(
                f"log_scorer_status: 'meta' must be JSON-serializable: {e}"
            ) from e

    payload: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "instrument": instrument,
        "status": status,
    }
    if reason:
        payload["reason"] = reason
    if meta is not None:
        payload["meta"] = meta

    level = logging.ERROR if status == "error" else logging.INFO
    logger.log(
        level, "scorer_event %s", json.dumps(payload, sort_keys=True), exc_info=exc_info
    )
