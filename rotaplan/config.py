"""Configuration loading and validation (YAML or JSON)."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

ASSIGNERS = ("rotation", "cp_sat")


@dataclass
class WindowConfig:
    start: str = "00:00"
    end: str = "23:59"


@dataclass
class FairnessConfig:
    # When False the counter starts at zero each build: fair within the month only.
    seed_from_history: bool = True
    history_limit: Optional[int] = None


@dataclass
class CPSatConfig:
    max_time_in_seconds: float = 10.0
    num_search_workers: int = 4


@dataclass
class RecalculationConfig:
    max_workers: int = 1


@dataclass
class SchedulerConfig:
    database_url: str = "sqlite:///rotaplan.db"
    default_window: WindowConfig = field(default_factory=WindowConfig)
    fairness: FairnessConfig = field(default_factory=FairnessConfig)
    assigner: str = "rotation"
    cp_sat: CPSatConfig = field(default_factory=CPSatConfig)
    strict_weekday_events: bool = False
    recalculation: RecalculationConfig = field(default_factory=RecalculationConfig)


def _read_raw(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a mapping: {path}")
    return data


def _validate(cfg: SchedulerConfig) -> None:
    for name in ("start", "end"):
        value = getattr(cfg.default_window, name)
        if not HHMM_RE.match(str(value)):
            raise ValueError(f"default_window.{name} must be HH:MM, got {value!r}")
    if cfg.assigner not in ASSIGNERS:
        raise ValueError(f"assigner must be one of {ASSIGNERS}, got {cfg.assigner!r}")
    if cfg.fairness.history_limit is not None and cfg.fairness.history_limit < 1:
        raise ValueError("fairness.history_limit must be >= 1 or null")
    if cfg.cp_sat.max_time_in_seconds <= 0:
        raise ValueError("cp_sat.max_time_in_seconds must be positive")
    if cfg.cp_sat.num_search_workers < 1:
        raise ValueError("cp_sat.num_search_workers must be >= 1")
    if cfg.recalculation.max_workers < 1:
        raise ValueError("recalculation.max_workers must be >= 1")


def config_from_dict(data: Dict[str, Any]) -> SchedulerConfig:
    """Build a validated SchedulerConfig from a plain mapping."""
    data = dict(data or {})
    try:
        cfg = SchedulerConfig(
            database_url=str(data.get("database_url", SchedulerConfig.database_url)),
            default_window=WindowConfig(**(data.get("default_window") or {})),
            fairness=FairnessConfig(**(data.get("fairness") or {})),
            assigner=str(data.get("assigner", "rotation")),
            cp_sat=CPSatConfig(**(data.get("cp_sat") or {})),
            strict_weekday_events=bool(data.get("strict_weekday_events", False)),
            recalculation=RecalculationConfig(**(data.get("recalculation") or {})),
        )
    except TypeError as e:
        # unknown key inside a section
        raise ValueError(f"Invalid config: {e}") from e
    _validate(cfg)
    return cfg


def load_config(path: str | Path | None = None) -> SchedulerConfig:
    """
    Load configuration from a YAML or JSON file.

    Args:
        path: Config file path. None returns the defaults.

    Returns:
        Validated SchedulerConfig

    Raises:
        ValueError: If a value is out of range or malformed
    """
    if path is None:
        return config_from_dict({})
    return config_from_dict(_read_raw(Path(path)))
