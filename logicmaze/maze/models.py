from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


WALL = 0
FLOOR = 1
START = 2
GOAL = 3

TILE_CODES = {WALL, FLOOR, START, GOAL}

ON = "ON"
OFF = "OFF"


@dataclass(frozen=True)
class Tile:
    x: int
    y: int


@dataclass
class Position:
    x: float
    y: float

    def as_tile(self) -> Tile:
        return Tile(int(round(self.x)), int(round(self.y)))


@dataclass
class Item:
    item_id: str
    pos: Tile
    icon: str
    name: str
    kind: str = "item"  # "item" | "badge"
    collected: bool = False

    @property
    def is_badge(self) -> bool:
        return self.kind == "badge"


@dataclass
class Switch:
    switch_id: str
    pos: Tile
    icon: str
    name: str
    state: str = OFF
    guard_until: float | None = None

    def guarded(self, now: float) -> bool:
        return self.guard_until is not None and now < self.guard_until


@dataclass
class Inventory:
    items: set[str] = field(default_factory=set)
    badges: set[str] = field(default_factory=set)
    switches: dict[str, str] = field(default_factory=dict)

    def clear(self) -> None:
        self.items.clear()
        self.badges.clear()
        self.switches.clear()

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": sorted(self.items),
            "badges": sorted(self.badges),
            "switches": dict(sorted(self.switches.items())),
        }


@dataclass(frozen=True)
class HasItem:
    item_id: str
    type = "has_item"

    @property
    def value(self) -> str:
        return self.item_id

    def is_met(self, inventory: Inventory) -> bool:
        return self.item_id in inventory.items

    def describe(self, names: dict[str, str]) -> str:
        return f"You need the {names.get(self.item_id, self.item_id)}."


@dataclass(frozen=True)
class SwitchOn:
    switch_id: str
    type = "switch_on"

    @property
    def value(self) -> str:
        return self.switch_id

    def is_met(self, inventory: Inventory) -> bool:
        return inventory.switches.get(self.switch_id) == ON

    def describe(self, names: dict[str, str]) -> str:
        return f"Turn the {names.get(self.switch_id, self.switch_id)} ON."


@dataclass(frozen=True)
class HasBadge:
    badge_id: str
    type = "has_badge"

    @property
    def value(self) -> str:
        return self.badge_id

    def is_met(self, inventory: Inventory) -> bool:
        return self.badge_id in inventory.badges

    def describe(self, names: dict[str, str]) -> str:
        return f"You need the {names.get(self.badge_id, self.badge_id)}."


DoorCondition = Union[HasItem, SwitchOn, HasBadge]

CONDITION_TYPES = {
    HasItem.type: HasItem,
    SwitchOn.type: SwitchOn,
    HasBadge.type: HasBadge,
}


@dataclass(frozen=True)
class Door:
    door_id: str
    pos: Tile
    condition: DoorCondition
    icon: str


@dataclass(frozen=True)
class MazeDescriptor:
    maze_id: str
    name: str
    tile_size: int
    width: int
    height: int
    grid: tuple[tuple[int, ...], ...]
    start: Tile
    items: list[Item]
    switches: list[Switch]
    doors: list[Door]
    goals: tuple[Tile, ...] = ()

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def tile_at(self, x: int, y: int) -> int:
        return self.grid[y][x]

    def is_walkable(self, x: int, y: int) -> bool:
        return self.in_bounds(x, y) and self.grid[y][x] != WALL

    def names(self) -> dict[str, str]:
        names = {item.item_id: item.name for item in self.items}
        names.update({sw.switch_id: sw.name for sw in self.switches})
        return names


@dataclass(frozen=True)
class MazePattern:
    index: int
    name: str
    width: int
    height: int
    grid: tuple[tuple[int, ...], ...]
    start: Tile
    goals: tuple[Tile, ...]
    anchors: dict[str, Tile]


@dataclass(frozen=True)
class Placement:
    object_id: str
    anchor: str
    icon: str
    name: str
    kind: str = "item"


@dataclass(frozen=True)
class DoorPlacement:
    door_id: str
    anchor: str
    condition: DoorCondition
    icon: str


@dataclass(frozen=True)
class Task:
    target_door: str
    text: str
    hint: str
    learning: str
    door: DoorPlacement
    success_message: str = "The door is open!"
    pickups: tuple[Placement, ...] = ()
    switches: tuple[Placement, ...] = ()


# Events emitted by the engine and session


@dataclass(frozen=True)
class ItemCollected:
    item_id: str
    kind: str
    name: str
    event_name = "item_collected"


@dataclass(frozen=True)
class SwitchToggled:
    switch_id: str
    state: str
    name: str
    event_name = "switch_toggled"


@dataclass(frozen=True)
class DoorResult:
    door_id: str
    outcome: str  # "success" | "wrong_door" | "condition_unmet"
    message: str
    event_name = "door_result"


@dataclass(frozen=True)
class HintDue:
    hint: str
    event_name = "hint_due"


Event = Union[ItemCollected, SwitchToggled, DoorResult, HintDue]

SUCCESS = "success"
WRONG_DOOR = "wrong_door"
CONDITION_UNMET = "condition_unmet"
