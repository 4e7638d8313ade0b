from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Any

from logicmaze.core.config import EngineSettings
from logicmaze.maze.models import (
    CONDITION_UNMET,
    OFF,
    ON,
    SUCCESS,
    WALL,
    WRONG_DOOR,
    Door,
    DoorResult,
    Event,
    Inventory,
    ItemCollected,
    MazeDescriptor,
    Position,
    SwitchToggled,
    Tile,
)


logger = logging.getLogger(__name__)


class Engine:
    """Grid movement and collision for one maze session.

    The engine is driven by a frame clock: the caller feeds ``advance(dt)`` once
    per frame and reads ``player_position`` back for rendering. Moves are
    requested one tile target at a time; a request made while a move is still
    running is ignored. Pickups, switches and doors are evaluated only when the
    player settles on a tile.
    """

    def __init__(
        self,
        maze: MazeDescriptor | None,
        target_door: str | None,
        settings: EngineSettings | None = None,
    ):
        if maze is None:
            raise ValueError("a maze descriptor is required before a session starts")
        if not isinstance(maze, MazeDescriptor):
            raise ValueError("maze must be a MazeDescriptor")
        if not maze.is_walkable(maze.start.x, maze.start.y):
            raise ValueError("maze start is not a walkable tile")

        self.maze = maze
        self.target_door = target_door
        self.settings = settings or EngineSettings()

        # per-session copies; the descriptor itself is never mutated
        self.items = [replace(item) for item in maze.items]
        self.switches = [replace(sw) for sw in maze.switches]
        self.doors = list(maze.doors)
        self.inventory = Inventory()

        self.player_position = Position(float(maze.start.x), float(maze.start.y))
        self.player_target: Tile | None = None
        self.clock = 0.0
        self.last_progress = 0.0

    @property
    def is_moving(self) -> bool:
        return self.player_target is not None

    @property
    def settled_tile(self) -> Tile | None:
        if self.is_moving:
            return None
        return self.player_position.as_tile()

    def request_move(self, target: Tile | tuple[int, int]) -> bool:
        if not isinstance(target, Tile):
            target = Tile(*target)

        if self.is_moving:
            return False
        if not all(isinstance(v, int) and not isinstance(v, bool) for v in (target.x, target.y)):
            logger.debug("Ignoring move to non-tile coordinates (%r,%r)", target.x, target.y)
            return False
        if not self.maze.in_bounds(target.x, target.y):
            logger.debug("Ignoring move outside the grid to (%s,%s)", target.x, target.y)
            return False
        if self.maze.tile_at(target.x, target.y) == WALL:
            logger.debug("Cannot move to wall at (%s,%s)", target.x, target.y)
            return False

        current = self.player_position.as_tile()
        if self.has_wall_between(current.x, current.y, target.x, target.y):
            logger.debug(
                "Path blocked by wall from (%s,%s) to (%s,%s)", current.x, current.y, target.x, target.y
            )
            return False

        self.player_target = target
        self.last_progress = self.clock
        logger.debug("Moving from (%s,%s) toward (%s,%s)", current.x, current.y, target.x, target.y)
        return True

    def is_wall(self, x: int, y: int) -> bool:
        # outside the grid counts as wall
        if not self.maze.in_bounds(x, y):
            return True
        return self.maze.tile_at(x, y) == WALL

    def has_wall_between(self, x1: int, y1: int, x2: int, y2: int) -> bool:
        if x1 == x2 and y1 == y2:
            return False

        dx = abs(x2 - x1)
        dy = abs(y2 - y1)

        if dx == 1 and dy == 1:
            # no cutting across the corner of a wall
            return self.is_wall(x1, y2) or self.is_wall(x2, y1)

        if (dx == 1 and dy == 0) or (dx == 0 and dy == 1):
            return False

        if dx == dy:
            return self._diagonal_blocked(x1, y1, x2, y2)

        return self._line_blocked(x1, y1, x2, y2)

    def _diagonal_blocked(self, x1: int, y1: int, x2: int, y2: int) -> bool:
        step_x = 1 if x1 < x2 else -1
        step_y = 1 if y1 < y2 else -1
        x, y = x1, y1
        while x != x2 or y != y2:
            next_x, next_y = x + step_x, y + step_y
            if self.is_wall(next_x, next_y):
                return True
            if self.is_wall(x + step_x, y) or self.is_wall(x, y + step_y):
                return True
            x, y = next_x, next_y
        return False

    def _line_blocked(self, x1: int, y1: int, x2: int, y2: int) -> bool:
        """Bresenham walk from the current tile to the target; any wall on the line blocks."""
        dx = abs(x2 - x1)
        dy = abs(y2 - y1)
        sx = 1 if x1 < x2 else -1
        sy = 1 if y1 < y2 else -1
        err = dx - dy
        x, y = x1, y1
        while True:
            if self.maze.in_bounds(x, y) and self.maze.tile_at(x, y) == WALL:
                return True
            if x == x2 and y == y2:
                return False
            e2 = 2 * err
            if e2 > -dy:
                err -= dy
                x += sx
            if e2 < dx:
                err += dx
                y += sy

    def advance(self, delta_time: float) -> list[Event]:
        if delta_time < 0:
            raise ValueError("delta_time must not be negative")

        self.clock += delta_time
        if self.player_target is None:
            return []

        target = self.player_target
        dx = target.x - self.player_position.x
        dy = target.y - self.player_position.y
        distance = math.hypot(dx, dy)

        if distance < self.settings.settle_epsilon:
            self.player_position = Position(float(target.x), float(target.y))
            self.player_target = None
            self.last_progress = self.clock
            return self._check_collisions(target)

        progress = min((self.settings.move_speed * delta_time) / distance, 1.0)
        self.player_position = Position(
            self.player_position.x + dx * progress,
            self.player_position.y + dy * progress,
        )
        return []

    def _check_collisions(self, tile: Tile) -> list[Event]:
        events: list[Event] = []

        for item in self.items:
            if item.collected or item.pos != tile:
                continue
            item.collected = True
            if item.is_badge:
                self.inventory.badges.add(item.item_id)
            else:
                self.inventory.items.add(item.item_id)
            logger.debug("Collected %s %s", item.kind, item.item_id)
            events.append(ItemCollected(item_id=item.item_id, kind=item.kind, name=item.name))

        for sw in self.switches:
            if sw.pos != tile or sw.guarded(self.clock):
                continue
            sw.state = OFF if sw.state == ON else ON
            sw.guard_until = self.clock + self.settings.switch_cooldown
            self.inventory.switches[sw.switch_id] = sw.state
            logger.debug("Switch %s turned %s", sw.switch_id, sw.state)
            events.append(SwitchToggled(switch_id=sw.switch_id, state=sw.state, name=sw.name))

        for door in self.doors:
            if door.pos == tile:
                events.append(self.check_door(door))

        return events

    def check_door(self, door: Door) -> DoorResult:
        if not door.condition.is_met(self.inventory):
            result = DoorResult(door.door_id, CONDITION_UNMET, door.condition.describe(self.maze.names()))
        elif door.door_id == self.target_door:
            result = DoorResult(door.door_id, SUCCESS, f"The {door.door_id} door is open!")
        else:
            result = DoorResult(door.door_id, WRONG_DOOR, "That is the wrong door! Check the task again.")
        logger.debug("Door %s: %s", door.door_id, result.outcome)
        return result

    def snapshot(self) -> dict[str, Any]:
        return {
            "maze_id": self.maze.maze_id,
            "position": {"x": self.player_position.x, "y": self.player_position.y},
            "target": None if self.player_target is None else {"x": self.player_target.x, "y": self.player_target.y},
            "moving": self.is_moving,
            "inventory": self.inventory.to_dict(),
            "items": {item.item_id: item.collected for item in self.items},
            "switches": {sw.switch_id: sw.state for sw in self.switches},
            "clock": self.clock,
        }
