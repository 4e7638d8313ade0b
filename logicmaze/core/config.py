from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
import yaml


CONFIG_FILENAME = "logicmaze.yaml"
CONFIG_ENV = "LOGICMAZE_CONFIG"

DEFAULT_VEHICLES = {
    "car": {"icon": "🚗", "name": "car"},
    "bus": {"icon": "🚌", "name": "bus"},
    "train": {"icon": "🚂", "name": "train"},
    "plane": {"icon": "✈️", "name": "plane"},
}


@dataclass(frozen=True)
class EngineSettings:
    move_speed: float = 4.0  # tiles per second
    settle_epsilon: float = 0.05
    switch_cooldown: float = 0.5  # seconds
    hint_delay: float = 30.0  # seconds
    frame_rate: int = 60

    @property
    def frame_time(self) -> float:
        return 1.0 / self.frame_rate

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "EngineSettings":
        defaults = cls()
        try:
            settings = cls(
                move_speed=float(raw.get("move_speed", defaults.move_speed)),
                settle_epsilon=float(raw.get("settle_epsilon", defaults.settle_epsilon)),
                switch_cooldown=float(raw.get("switch_cooldown", defaults.switch_cooldown)),
                hint_delay=float(raw.get("hint_delay", defaults.hint_delay)),
                frame_rate=int(raw.get("frame_rate", defaults.frame_rate)),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"engine settings must be numbers: {e}") from e
        if settings.move_speed <= 0:
            raise ValueError("engine.move_speed must be positive")
        if settings.settle_epsilon <= 0:
            raise ValueError("engine.settle_epsilon must be positive")
        if settings.switch_cooldown < 0 or settings.hint_delay < 0:
            raise ValueError("engine cooldowns must not be negative")
        if settings.frame_rate <= 0:
            raise ValueError("engine.frame_rate must be positive")
        return settings


@dataclass(frozen=True)
class LogicMazeConfig:
    patterns_path: str
    tile_size: int
    audit_path: str | None
    engine: EngineSettings
    tasks: list[dict[str, Any]]
    vehicles: dict[str, dict[str, str]] = field(default_factory=lambda: dict(DEFAULT_VEHICLES))


def default_patterns_path() -> str:
    return str(Path(__file__).resolve().parent.parent / "maze" / "mazes.json")


def load_yaml(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {p}")
    with p.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _resolve(base: Path, value: str) -> str:
    if Path(value).is_absolute():
        return value
    return str((base / value).resolve())


def resolve_config_path(config_path: str | None) -> str:
    """Find the master config: explicit path, then $LOGICMAZE_CONFIG, then cwd and its parents."""
    if config_path:
        path = Path(config_path)
        if path.exists() or config_path != CONFIG_FILENAME:
            return str(path)

    env_path = os.getenv(CONFIG_ENV)
    if env_path and Path(env_path).exists():
        return env_path

    cwd = Path.cwd()
    for parent in [cwd, *cwd.parents]:
        candidate = parent / CONFIG_FILENAME
        if candidate.exists():
            return str(candidate)

    return config_path or CONFIG_FILENAME


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"config key '{key}' must be a mapping")
    return value


def load_master_config(path: str | Path) -> LogicMazeConfig:
    master_path = Path(path).resolve()
    raw = load_yaml(master_path)
    if not isinstance(raw, dict):
        raise ValueError(f"config {master_path} must be a mapping")
    base = master_path.parent

    maze_raw = _section(raw, "maze")
    patterns_path = maze_raw.get("patterns_path")
    if patterns_path is not None and not isinstance(patterns_path, str):
        raise ValueError("config key 'maze.patterns_path' must be a path")
    patterns_path = _resolve(base, patterns_path) if patterns_path else default_patterns_path()
    tile_size = maze_raw.get("tile_size", 32)
    if not isinstance(tile_size, int) or isinstance(tile_size, bool) or tile_size <= 0:
        raise ValueError("config key 'maze.tile_size' must be a positive integer")

    audit_path = _section(raw, "audit").get("path")
    if audit_path is not None and not isinstance(audit_path, str):
        raise ValueError("config key 'audit.path' must be a path")
    if audit_path:
        audit_path = _resolve(base, audit_path)

    tasks = raw.get("tasks", [])
    if not isinstance(tasks, list) or not tasks:
        raise ValueError("config must define at least one task")

    vehicles = dict(DEFAULT_VEHICLES)
    for name, vehicle in _section(raw, "vehicles").items():
        if not isinstance(vehicle, dict):
            raise ValueError(f"config key 'vehicles.{name}' must be a mapping")
        vehicles[name] = vehicle

    return LogicMazeConfig(
        patterns_path=patterns_path,
        tile_size=tile_size,
        audit_path=audit_path,
        engine=EngineSettings.from_dict(_section(raw, "engine")),
        tasks=tasks,
        vehicles=vehicles,
    )
