"""
allocation_config -- single public entrypoint for allocation settings.

Responsibility:
    Provides the ONLY way to obtain runtime settings through
    ``get_active_config()``.  Returns a frozen ``AllocationSettings``.

Architecture position:
    Configuration.  Sits above ``allocation_kernel``; the kernel MUST NEVER
    import from ``allocation_config``.  ``allocation_config.bridges``
    translates settings into kernel objects (engine, service).

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path

from allocation_config.loader import compute_checksum, load_yaml_file, parse_settings
from allocation_config.schema import AllocationSettings

_logger = logging.getLogger("allocation_kernel.config")

# Default settings file
_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

DATABASE_URL_ENV = "ALLOCATION_DATABASE_URL"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> AllocationSettings:
    """The ONLY public configuration entrypoint.

    Args:
        path: Settings file.  Defaults to allocation_config/sets/default.yaml.
        environ: Environment to read overrides from.  Defaults to os.environ.

    Returns:
        Validated AllocationSettings.  ``ALLOCATION_DATABASE_URL``, when set,
        overrides ``database_url``.
    """
    settings_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH
    settings = parse_settings(load_yaml_file(settings_path))

    env = os.environ if environ is None else environ
    override = env.get(DATABASE_URL_ENV)
    if override:
        settings = replace(settings, database_url=override)

    _logger.info(
        "ALLOCATION_CONFIG_TRACE",
        extra={
            "trace_type": "ALLOCATION_CONFIG_TRACE",
            "config_path": str(settings_path),
            "checksum": compute_checksum(settings),
            "database_url_from_env": bool(override),
            "lock_scopes": settings.lock_scopes,
        },
    )
    return settings


__all__ = [
    "AllocationSettings",
    "DATABASE_URL_ENV",
    "get_active_config",
]
