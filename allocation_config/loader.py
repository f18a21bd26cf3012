"""
Configuration Loader (``allocation_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into an
``allocation_config.schema.AllocationSettings``.  The single public
entry point for runtime config is ``allocation_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any

import yaml

from allocation_config.schema import AllocationSettings

_KNOWN_KEYS = frozenset(f.name for f in fields(AllocationSettings))

_BOOL_KEYS = frozenset({"echo_sql", "lock_scopes"})
_INT_KEYS = frozenset({"pool_size", "max_overflow", "value_decimal_places"})


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
        raise ValueError(f"{path}: expected a mapping, got {type(data).__name__}")
    return data


def parse_settings(data: dict[str, Any]) -> AllocationSettings:
    """
    Parse AllocationSettings from a dict.

    Settings may sit at the top level or under an ``allocation`` key.
    """
    section = data.get("allocation", data)
    if not isinstance(section, dict):
        raise ValueError("allocation section must be a mapping")

    unknown = set(section) - _KNOWN_KEYS
    if unknown:
        raise ValueError(f"Unknown allocation settings: {', '.join(sorted(unknown))}")

    values: dict[str, Any] = {}
    for key, value in section.items():
        if key in _BOOL_KEYS and not isinstance(value, bool):
            raise ValueError(f"{key} must be a boolean, got {value!r}")
        if key in _INT_KEYS and (isinstance(value, bool) or not isinstance(value, int)):
            raise ValueError(f"{key} must be an integer, got {value!r}")
        values[key] = str(value) if key in ("database_url", "log_level") else value
    return AllocationSettings(**values)


def compute_checksum(settings: AllocationSettings) -> str:
    """
    SHA-256 of the canonical JSON form of ``settings``.

    The database URL is excluded so credentials never reach the checksum
    (and the log line that carries it).
    """
    data = asdict(settings)
    data.pop("database_url")
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
