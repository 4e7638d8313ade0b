from __future__ import annotations

import random
from pathlib import Path
from typing import Any

from logicmaze.core.audit import AuditLog
from logicmaze.core.config import DEFAULT_VEHICLES, EngineSettings, LogicMazeConfig
from logicmaze.maze.engine import Engine
from logicmaze.maze.loader import build_maze, load_patterns, load_tasks
from logicmaze.maze.models import (
    SUCCESS,
    DoorResult,
    Event,
    HintDue,
    ItemCollected,
    MazePattern,
    SwitchToggled,
    Task,
    Tile,
)


DIRECTIONS = {
    "N": (0, -1),
    "S": (0, 1),
    "E": (1, 0),
    "W": (-1, 0),
    "NE": (1, -1),
    "NW": (-1, -1),
    "SE": (1, 1),
    "SW": (-1, 1),
}

START_MESSAGE = "Pick a tile next to your vehicle to drive there."


class Session:
    """One player's run through the task list.

    Starting a session picks a maze pattern, places the active task's objects on
    it and hands the result to a fresh ``Engine``, so the inventory is empty and
    the player stands on the start tile for every new maze.
    """

    def __init__(
        self,
        tasks: list[Task],
        patterns: list[MazePattern],
        settings: EngineSettings | None = None,
        vehicle: str = "car",
        vehicles: dict[str, dict[str, str]] | None = None,
        rng: random.Random | None = None,
        audit_path: str | None = None,
        tile_size: int = 32,
    ):
        if not tasks:
            raise ValueError("at least one task is required")
        if not patterns:
            raise ValueError("at least one maze pattern is required")
        self.vehicles = vehicles or dict(DEFAULT_VEHICLES)
        if vehicle not in self.vehicles:
            raise ValueError(f"unknown vehicle {vehicle}")

        self.tasks = tasks
        self.patterns = patterns
        self.settings = settings or EngineSettings()
        self.vehicle = vehicle
        self.rng = rng or random.Random()
        self.audit = AuditLog(audit_path) if audit_path else None
        self.tile_size = tile_size

        self.completed: set[int] = set()
        self.task_index: int | None = None
        self.pattern: MazePattern | None = None
        self.engine: Engine | None = None
        self.message = ""
        self.cleared = False
        self._hint_shown = False

    @classmethod
    def from_config(
        cls, cfg: LogicMazeConfig, vehicle: str = "car", seed: int | None = None
    ) -> "Session":
        return cls(
            tasks=load_tasks(cfg.tasks),
            patterns=load_patterns(Path(cfg.patterns_path)),
            settings=cfg.engine,
            vehicle=vehicle,
            vehicles=cfg.vehicles,
            rng=random.Random(seed),
            audit_path=cfg.audit_path,
            tile_size=cfg.tile_size,
        )

    @property
    def task(self) -> Task | None:
        if self.task_index is None:
            return None
        return self.tasks[self.task_index]

    @property
    def vehicle_icon(self) -> str:
        return self.vehicles[self.vehicle].get("icon", "@")

    def select_task(self, index: int | None = None) -> Task:
        if index is not None:
            if not 0 <= index < len(self.tasks):
                raise ValueError(f"unknown task {index + 1}")
            self.task_index = index
            return self.tasks[index]

        # easiest unfinished task first; start over once all are done
        remaining = [i for i in range(len(self.tasks)) if i not in self.completed]
        self.task_index = remaining[0] if remaining else 0
        return self.tasks[self.task_index]

    def start(self, pattern_index: int | None = None) -> Engine:
        task = self.task or self.select_task()
        if pattern_index is None:
            pattern_index = self.rng.randrange(len(self.patterns))
        if not 0 <= pattern_index < len(self.patterns):
            raise ValueError(f"unknown maze pattern {pattern_index + 1}")

        self.pattern = self.patterns[pattern_index]
        maze = build_maze(self.pattern, task, self.tile_size)
        self.engine = Engine(maze, task.target_door, self.settings)
        self.message = START_MESSAGE
        self.cleared = False
        self._hint_shown = False
        if self.audit is not None:
            self.audit.bind(maze_id=maze.maze_id, task=task.target_door)
        self._audit({"event": "session_start", "vehicle": self.vehicle})
        return self.engine

    def next_game(self, pattern_index: int | None = None) -> Engine:
        self.select_task()
        return self.start(pattern_index)

    def _require_engine(self) -> Engine:
        if self.engine is None:
            raise RuntimeError("start a maze before moving")
        return self.engine

    def request_move(self, tile: Tile | tuple[int, int]) -> bool:
        engine = self._require_engine()
        if self.cleared:
            return False
        return engine.request_move(tile)

    def step(self, direction: str) -> bool:
        offset = DIRECTIONS.get(direction.upper())
        engine = self._require_engine()
        current = engine.settled_tile
        if offset is None or current is None:
            return False
        return self.request_move(Tile(current.x + offset[0], current.y + offset[1]))

    def advance(self, delta_time: float) -> list[Event]:
        engine = self._require_engine()
        events = engine.advance(delta_time)

        for event in events:
            if isinstance(event, ItemCollected):
                self.message = f"You got the {event.name}!"
            elif isinstance(event, SwitchToggled):
                self.message = f"The {event.name} is {event.state}."
            elif isinstance(event, DoorResult):
                if event.outcome == SUCCESS:
                    self.completed.add(self.task_index)
                    self.cleared = True
                    self.message = self.task.success_message
                else:
                    self.message = event.message
            self._audit(event)

        if (
            not self._hint_shown
            and not self.cleared
            and not engine.is_moving
            and engine.clock - engine.last_progress >= self.settings.hint_delay
        ):
            self._hint_shown = True
            hint = HintDue(self.hint())
            self.message = hint.hint
            self._audit(hint)
            events.append(hint)

        return events

    def run_until_settled(self, frame_time: float | None = None, max_frames: int = 100_000) -> list[Event]:
        """Drive frames until the pending move settles and return everything that happened."""
        engine = self._require_engine()
        frame_time = self.settings.frame_time if frame_time is None else frame_time
        if frame_time <= 0:
            raise ValueError("frame_time must be positive")

        events: list[Event] = []
        frames = 0
        while engine.is_moving:
            if frames >= max_frames:
                raise RuntimeError("move did not settle")
            events.extend(self.advance(frame_time))
            frames += 1
        return events

    def hint(self) -> str:
        task = self.task
        if task is None or not task.hint:
            return "Keep going!"
        return task.hint

    def snapshot(self) -> dict[str, Any]:
        task = self.task
        data: dict[str, Any] = {
            "vehicle": self.vehicle,
            "task": task.target_door if task else None,
            "completed": sorted(self.completed),
            "pattern": self.pattern.name if self.pattern else None,
            "cleared": self.cleared,
            "message": self.message,
        }
        if self.engine is not None:
            data.update(self.engine.snapshot())
        return data

    def _audit(self, event: Any) -> None:
        if self.audit is not None:
            self.audit.write(event)
