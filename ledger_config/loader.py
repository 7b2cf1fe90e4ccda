"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads payroll configuration from YAML and parses it into the typed
``PayrollConfig`` dataclass.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Top level not a mapping, unknown keys, invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import PayrollConfig
from ledger_kernel.logging_config import get_logger

logger = get_logger("config.loader")

DEFAULTS_PATH = Path(__file__).parent / "defaults" / "payroll.yaml"
CONFIG_PATH_ENV = "LEDGER_PAYROLL_CONFIG"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level, got {type(data).__name__}")
    return data


def load_payroll_config(path: Path | str) -> PayrollConfig:
    """
    Parse a payroll config YAML file.

    The file holds the ``PayrollConfig`` fields either at top level or
    under a ``payroll:`` key.
    """
    path = Path(path)
    data = load_yaml_file(path)
    if "payroll" in data:
        data = data["payroll"] or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: 'payroll' must be a mapping")
    config = PayrollConfig.from_dict(data)
    logger.info("payroll_config_loaded", extra={"path": str(path)})
    return config


def get_active_config() -> PayrollConfig:
    """
    Return the active payroll configuration.

    Uses the file named by ``LEDGER_PAYROLL_CONFIG`` when set, otherwise the
    packaged defaults.
    """
    override = os.environ.get(CONFIG_PATH_ENV)
    return load_payroll_config(Path(override) if override else DEFAULTS_PATH)
