"""
Configuration Loader (``fieldops_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``fieldops_config.schema`` dataclasses.  Services and engines never call
this directly; the runtime entry point is
``fieldops_config.get_active_config()``.

Invariants enforced
-------------------
* Keys omitted from the YAML fall back to the schema defaults; keys that
  are present must be well-typed and in range.
* Unknown top-level or section keys are rejected so typos do not silently
  revert a rule to its default.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  source for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong type / out-of-range / unknown key  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from fieldops_config.schema import (
    ArchiveRetentionRules,
    FieldOpsConfig,
    LeadViewRules,
    OutstandingBalanceRules,
    TaskVisibilityRules,
)
from fieldops_kernel.domain.records import LeadStage

_SECTIONS = {
    "balances": OutstandingBalanceRules,
    "archive": ArchiveRetentionRules,
    "tasks": TaskVisibilityRules,
    "leads": LeadViewRules,
}

_ROOT_SCALARS = {"config_id": str, "version": int, "currency": str}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Top-level YAML in {path} must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _check_type(section: str, key: str, value: Any, expected: type) -> Any:
    if expected is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{section}.{key} must be an integer, got {value!r}")
        return value
    if expected is bool:
        if not isinstance(value, bool):
            raise ValueError(f"{section}.{key} must be true or false, got {value!r}")
        return value
    if expected is str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"{section}.{key} must be a non-empty string, got {value!r}")
        return value.strip()
    # tuple[str, ...]
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValueError(f"{section}.{key} must be a list of strings, got {value!r}")
    items = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValueError(f"{section}.{key} entries must be non-empty strings")
        items.append(item.strip())
    return tuple(items)


def _field_types(cls: type) -> dict[str, type]:
    types: dict[str, type] = {}
    for f in fields(cls):
        annotation = f.type if isinstance(f.type, str) else f.type.__name__
        if annotation.startswith("tuple"):
            types[f.name] = tuple
        elif annotation == "int":
            types[f.name] = int
        elif annotation == "bool":
            types[f.name] = bool
        else:
            types[f.name] = str
    return types


def parse_section(name: str, data: Any) -> Any:
    """Parse one rules section, defaulting omitted keys."""
    cls = _SECTIONS[name]
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f"{name} must be a mapping")

    types = _field_types(cls)
    unknown = sorted(set(data) - set(types))
    if unknown:
        raise ValueError(f"Unknown keys in {name}: {', '.join(unknown)}")

    kwargs = {key: _check_type(name, key, value, types[key]) for key, value in data.items()}
    return cls(**kwargs)


def parse_config(data: dict[str, Any]) -> FieldOpsConfig:
    """
    Parse a ``FieldOpsConfig`` from a dict.

    Raises:
        ValueError: on unknown keys, wrong types, or rules that contradict
            each other (see ``validate_config``).
    """
    unknown = sorted(set(data) - set(_SECTIONS) - set(_ROOT_SCALARS))
    if unknown:
        raise ValueError(f"Unknown top-level keys: {', '.join(unknown)}")

    root = {
        key: _check_type("config", key, data[key], expected)
        for key, expected in _ROOT_SCALARS.items()
        if key in data
    }
    sections = {name: parse_section(name, data.get(name)) for name in _SECTIONS}

    config = FieldOpsConfig(**root, **sections, checksum=compute_checksum(data))
    validate_config(config)
    return config


def validate_config(config: FieldOpsConfig) -> None:
    """
    Cross-field checks that single-key parsing cannot express.

    Raises:
        ValueError: describing the first violated rule.
    """
    if len(config.currency) != 3 or not config.currency.isalpha():
        raise ValueError(f"currency must be a 3-letter code, got {config.currency!r}")
    if config.version < 1:
        raise ValueError("version must be >= 1")

    balances = config.balances
    if not balances.qualifying_invoice_statuses:
        raise ValueError("balances.qualifying_invoice_statuses must not be empty")
    overlap = set(balances.terminal_financial_statuses) & set(
        balances.fallback_financial_statuses
    )
    if overlap:
        raise ValueError(
            "financial statuses cannot be both terminal and fallback: "
            + ", ".join(sorted(overlap))
        )
    if balances.dashboard_limit < 1:
        raise ValueError("balances.dashboard_limit must be >= 1")

    if config.archive.retention_days < 1:
        raise ValueError("archive.retention_days must be >= 1")
    if not 0 <= config.archive.expiring_soon_days <= config.archive.retention_days:
        raise ValueError("archive.expiring_soon_days must be between 0 and retention_days")

    if config.tasks.auto_archive_days < 0:
        raise ValueError("tasks.auto_archive_days must be >= 0")
    if config.tasks.completed_status in config.tasks.hidden_statuses:
        raise ValueError("tasks.completed_status cannot also be a hidden status")

    _validate_leads(config.leads)


def _validate_leads(leads: LeadViewRules) -> None:
    if min(leads.engaged_window_days, leads.contact_gap_days) < 0:
        raise ValueError("leads day thresholds must be >= 0")
    if not leads.engaged_window_days < leads.stalled_after_days <= leads.archive_after_days:
        raise ValueError(
            "leads thresholds must satisfy "
            "engaged_window_days < stalled_after_days <= archive_after_days"
        )
    known = {stage.value for stage in LeadStage}
    unknown = sorted(set(leads.follow_up_stages) - known)
    if unknown:
        raise ValueError(f"Unknown lead stages in leads.follow_up_stages: {', '.join(unknown)}")
    if not leads.follow_up_stages:
        raise ValueError("leads.follow_up_stages must not be empty")
    overlap = {s.lower() for s in leads.lost_project_statuses} & {
        s.lower() for s in leads.won_project_statuses
    }
    if overlap:
        raise ValueError(
            "project statuses cannot be both won and lost: " + ", ".join(sorted(overlap))
        )


def load_config_file(path: Path) -> FieldOpsConfig:
    """Load and parse a YAML configuration file."""
    return parse_config(load_yaml_file(path))
