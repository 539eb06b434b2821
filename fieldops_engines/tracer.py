"""
fieldops_engines.tracer -- FIELDOPS_ENGINE_TRACE for derived-view engines.

Responsibility:
    ``@traced_engine`` wraps an engine method and logs one trace record per
    call: engine name and version, a fingerprint of the snapshot it was
    given, the size of each fingerprinted input, and the duration.  Two
    refreshes over an unchanged snapshot log the same fingerprint, which is
    how a stale or repeated view computation shows up in the logs.

    While the engine runs, the fingerprint is bound as ``trace_id`` on
    LogContext, so the engine's own debug lines carry it too.

Invariants enforced:
    - The fingerprint depends only on the named keyword arguments: records
      are canonicalised field by field, mappings by sorted key.
    - The decorator never alters arguments or the return value.

Failure modes:
    - A named field absent from the call is fingerprinted as "null".
    - An exception from the engine propagates; no trace is logged for it.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import logging
import time
from collections.abc import Callable, Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from fieldops_kernel.logging_config import LogContext

_logger = logging.getLogger("fieldops.engines.tracer")


def _canonicalize(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return _canonicalize(value.value)
    if isinstance(value, (str, int, float, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        pairs = (
            (f.name, getattr(value, f.name)) for f in dataclasses.fields(value)
        )
        return type(value).__name__ + "(" + ",".join(
            f"{name}={_canonicalize(v)}" for name, v in pairs
        ) + ")"
    if isinstance(value, Mapping):
        return "{" + ",".join(
            f"{k}:{_canonicalize(v)}" for k, v in sorted(value.items())
        ) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: dict[str, Any],
) -> str:
    """16 hex chars of SHA-256 over the named keyword arguments."""
    canonical = "|".join(
        f"{name}={_canonicalize(kwargs.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def _input_sizes(fingerprint_fields: tuple[str, ...], kwargs: dict[str, Any]) -> dict[str, int]:
    return {
        name: len(kwargs[name])
        for name in fingerprint_fields
        if isinstance(kwargs.get(name), (list, tuple))
    }


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """
    Log FIELDOPS_ENGINE_TRACE for each call of the decorated engine method.

    Args:
        engine_name: e.g. "outstanding_balance".
        engine_version: Bumped when the rules change meaning.
        fingerprint_fields: Keyword arguments that make up the snapshot.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = compute_input_fingerprint(fingerprint_fields, kwargs)

            started = time.monotonic()
            with LogContext.bind(trace_id=fingerprint):
                result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - started) * 1000, 2)

            _logger.info(
                "FIELDOPS_ENGINE_TRACE",
                extra={
                    "trace_type": "FIELDOPS_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fingerprint,
                    "input_sizes": _input_sizes(fingerprint_fields, kwargs),
                    "duration_ms": duration_ms,
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
