from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def _package_root() -> Path:
    # notebuilder/internal_core/config.py -> notebuilder
    return Path(__file__).resolve().parents[1]


def _getenv_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None else value


def _getenv_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _getenv_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


def _getenv_log_level(name: str, default: str) -> str:
    level = _getenv_str(name, default).strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        return default
    return level


def _getenv_opt_path(name: str) -> Optional[Path]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return Path(raw).expanduser().resolve()
    except Exception:
        return None


@dataclass(frozen=True)
class BuilderConfig:
    NOTEBUILDER_DEFAULT_WORK_TYPE: str
    NOTEBUILDER_SESSION_TTL_SECONDS: int
    NOTEBUILDER_COPIED_RESET_SECONDS: float
    NOTEBUILDER_CATALOG_DIR: str
    NOTEBUILDER_LOG_LEVEL: str

    def catalog_dir_path(self) -> Path:
        if self.NOTEBUILDER_CATALOG_DIR:
            return Path(self.NOTEBUILDER_CATALOG_DIR)
        return _package_root() / "note" / "work_types"


def load_config() -> BuilderConfig:
    catalog_dir = _getenv_opt_path("NOTEBUILDER_CATALOG_DIR")
    return BuilderConfig(
        NOTEBUILDER_DEFAULT_WORK_TYPE=_getenv_str("NOTEBUILDER_DEFAULT_WORK_TYPE", "affirm-card"),
        NOTEBUILDER_SESSION_TTL_SECONDS=_getenv_int("NOTEBUILDER_SESSION_TTL_SECONDS", 14400),
        NOTEBUILDER_COPIED_RESET_SECONDS=max(
            0.0, _getenv_float("NOTEBUILDER_COPIED_RESET_SECONDS", 2.0)
        ),
        NOTEBUILDER_CATALOG_DIR=str(catalog_dir) if catalog_dir is not None else "",
        NOTEBUILDER_LOG_LEVEL=_getenv_log_level("NOTEBUILDER_LOG_LEVEL", "INFO"),
    )
