"""
fieldops_config -- single public entrypoint for derived-view configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Engines and services receive the returned
    ``FieldOpsConfig`` as an argument; none of them read files,
    environment variables, or toggles on their own.

Architecture position:
    Configuration -- sits beside ``fieldops_kernel`` and below
    ``fieldops_engines`` / ``fieldops_services``.  The kernel MUST NEVER
    import from ``fieldops_config``.

Failure modes:
    - ``InvalidConfigError`` -- the YAML is missing, unreadable, or fails
      schema validation.  The original exception is chained.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``FIELDOPS_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying each rendered view back to the rules that shaped it.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from fieldops_config.loader import load_config_file
from fieldops_config.schema import (
    DEFAULT_CONFIG,
    ArchiveRetentionRules,
    FieldOpsConfig,
    LeadViewRules,
    OutstandingBalanceRules,
    TaskVisibilityRules,
)
from fieldops_kernel.exceptions import InvalidConfigError

_logger = logging.getLogger("fieldops.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> FieldOpsConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to the packaged
            ``fieldops_config/sets/default.yaml``.

    Returns:
        A validated, frozen ``FieldOpsConfig``.

    Raises:
        InvalidConfigError: If the file cannot be read or parsed, or a
            rule is out of range.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH

    try:
        config = load_config_file(path)
    except FileNotFoundError as exc:
        raise InvalidConfigError(str(path), "file not found") from exc
    except yaml.YAMLError as exc:
        raise InvalidConfigError(str(path), f"malformed YAML: {exc}") from exc
    except ValueError as exc:
        raise InvalidConfigError(str(path), str(exc)) from exc

    _logger.info(
        "FIELDOPS_CONFIG_TRACE",
        extra={
            "trace_type": "FIELDOPS_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(path),
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG",
    "ArchiveRetentionRules",
    "FieldOpsConfig",
    "LeadViewRules",
    "OutstandingBalanceRules",
    "TaskVisibilityRules",
    "get_active_config",
]
