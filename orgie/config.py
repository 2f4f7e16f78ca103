"""
orgie.config — YAML Configuration Loader
=========================================

Reads ``config.yaml`` for **infrastructure-only** settings (application
name, port, generation bounds, log format).  Secrets such as
``DATABASE_URL`` and ``JWT_SECRET`` stay in the environment (``.env``).

Usage::

    from orgie.config import load_config

    cfg = load_config()            # reads ./config.yaml by default
    print(cfg.app_name)            # "Orgie"
    print(cfg.max_generation_days) # 366
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

DEFAULT_MAX_GENERATION_DAYS = 366


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class OrgieConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    app_name: str

    # API
    api_port: int

    # Term generation: widest allowed start..end range, in days
    max_generation_days: int = DEFAULT_MAX_GENERATION_DAYS

    # Emit JSON log lines instead of human-readable text
    log_json: bool = False


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> OrgieConfig:
    """Read *path* and return an :class:`OrgieConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return OrgieConfig(
        app_name=raw["app_name"],
        api_port=int(raw["api_port"]),
        max_generation_days=int(
            raw.get("max_generation_days", DEFAULT_MAX_GENERATION_DAYS)
        ),
        log_json=bool(raw.get("log_json", False)),
    )
