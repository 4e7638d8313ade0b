from __future__ import annotations

import json
from collections import deque
from pathlib import Path
from typing import Any

from logicmaze.maze.models import (
    CONDITION_TYPES,
    GOAL,
    START,
    TILE_CODES,
    WALL,
    Door,
    DoorCondition,
    DoorPlacement,
    HasBadge,
    HasItem,
    Item,
    MazeDescriptor,
    MazePattern,
    Placement,
    Switch,
    SwitchOn,
    Task,
    Tile,
    OFF,
    ON,
)


# camelCase names used by older maze files
CONDITION_ALIASES = {
    "hasItem": HasItem.type,
    "switchOn": SwitchOn.type,
    "hasBadge": HasBadge.type,
}

ANCHORS = {"key", "switch", "badge", "goal_left", "goal_middle", "goal_right"}


def _load_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_tile(value: Any, where: str) -> Tile:
    if isinstance(value, dict):
        x, y = value.get("x"), value.get("y")
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        x, y = value
    else:
        raise ValueError(f"{where}: expected a tile as {{x, y}} or [x, y]")
    if not _is_int(x) or not _is_int(y):
        raise ValueError(f"{where}: tile coordinates must be integers")
    return Tile(x, y)


def parse_condition(raw: Any, where: str) -> DoorCondition:
    if not isinstance(raw, dict):
        raise ValueError(f"{where}: missing door condition")
    ctype = raw.get("type")
    if isinstance(ctype, str):
        ctype = CONDITION_ALIASES.get(ctype, ctype)
    value = raw.get("value")
    if not isinstance(ctype, str) or ctype not in CONDITION_TYPES:
        raise ValueError(f"{where}: unknown condition type {raw.get('type')}")
    if not isinstance(value, str) or not value:
        raise ValueError(f"{where}: condition value must be an object id")
    return CONDITION_TYPES[ctype](value)


def _item_kind(raw: dict[str, Any], item_id: str) -> str:
    kind = raw.get("kind")
    if kind is None:
        return "badge" if "badge" in item_id else "item"
    if kind not in ("item", "badge"):
        raise ValueError(f"item {item_id}: unknown kind {kind}")
    return kind


def validate_maze(maze_data: Any) -> None:
    if not isinstance(maze_data, dict):
        raise ValueError("maze descriptor must be a mapping")

    grid = maze_data.get("grid")
    if not isinstance(grid, list) or not grid:
        raise ValueError("maze grid is missing")

    width = maze_data.get("width", len(grid[0]) if isinstance(grid[0], list) else None)
    height = maze_data.get("height", len(grid))
    if not _is_int(width) or not _is_int(height) or width <= 0 or height <= 0:
        raise ValueError("maze width and height must be positive integers")
    if len(grid) != height:
        raise ValueError(f"grid has {len(grid)} rows, expected {height}")
    for y, row in enumerate(grid):
        if not isinstance(row, list) or len(row) != width:
            raise ValueError(f"grid row {y} must have {width} tiles")
        for x, code in enumerate(row):
            if not _is_int(code) or code not in TILE_CODES:
                raise ValueError(f"invalid tile code {code!r} at ({x},{y})")

    def walkable(tile: Tile) -> bool:
        return 0 <= tile.x < width and 0 <= tile.y < height and grid[tile.y][tile.x] != WALL

    start = parse_tile(maze_data.get("start"), "start")
    if not walkable(start):
        raise ValueError(f"start ({start.x},{start.y}) is not a walkable tile")

    ids: set[str] = set()
    kinds: dict[str, str] = {}

    for group in ("items", "switches", "doors"):
        entries = maze_data.get(group, [])
        if not isinstance(entries, list):
            raise ValueError(f"{group} must be a list")
        for entry in entries:
            if not isinstance(entry, dict):
                raise ValueError(f"{group} entries must be mappings")
            oid = entry.get("id")
            if not isinstance(oid, str) or not oid:
                raise ValueError(f"{group} entry without id")
            if oid in ids:
                raise ValueError(f"duplicate object id {oid}")
            ids.add(oid)

            pos = parse_tile(entry.get("pos"), f"{group} {oid}")
            if not walkable(pos):
                raise ValueError(f"{group} {oid} at ({pos.x},{pos.y}) is not on a walkable tile")

            if group == "items":
                kinds[oid] = _item_kind(entry, oid)
            elif group == "switches":
                kinds[oid] = "switch"
                if entry.get("state", OFF) not in (ON, OFF):
                    raise ValueError(f"switch {oid} has invalid state {entry.get('state')}")

    for door in maze_data.get("doors", []):
        condition = parse_condition(door.get("condition"), f"door {door['id']}")
        if isinstance(condition, HasItem) and kinds.get(condition.item_id) != "item":
            raise ValueError(f"door {door['id']} requires unknown item {condition.item_id}")
        if isinstance(condition, HasBadge) and kinds.get(condition.badge_id) != "badge":
            raise ValueError(f"door {door['id']} requires unknown badge {condition.badge_id}")
        if isinstance(condition, SwitchOn) and kinds.get(condition.switch_id) != "switch":
            raise ValueError(f"door {door['id']} requires unknown switch {condition.switch_id}")


def maze_from_dict(data: dict[str, Any]) -> MazeDescriptor:
    validate_maze(data)
    grid = tuple(tuple(row) for row in data["grid"])

    items = [
        Item(
            item_id=i["id"],
            pos=parse_tile(i["pos"], i["id"]),
            icon=i.get("icon", ""),
            name=i.get("name", i["id"]),
            kind=_item_kind(i, i["id"]),
            collected=bool(i.get("collected", False)),
        )
        for i in data.get("items", [])
    ]
    switches = [
        Switch(
            switch_id=s["id"],
            pos=parse_tile(s["pos"], s["id"]),
            icon=s.get("icon", ""),
            name=s.get("name", s["id"]),
            state=s.get("state", OFF),
        )
        for s in data.get("switches", [])
    ]
    doors = [
        Door(
            door_id=d["id"],
            pos=parse_tile(d["pos"], d["id"]),
            condition=parse_condition(d["condition"], d["id"]),
            icon=d.get("icon", ""),
        )
        for d in data.get("doors", [])
    ]

    return MazeDescriptor(
        maze_id=data.get("id", "maze"),
        name=data.get("name", data.get("id", "maze")),
        tile_size=int(data.get("tile_size", 32)),
        width=len(grid[0]),
        height=len(grid),
        grid=grid,
        start=parse_tile(data["start"], "start"),
        items=items,
        switches=switches,
        doors=doors,
        goals=tuple(parse_tile(g, "goal") for g in data.get("goals", [])),
    )


def reachable_tiles(grid: list[list[int]], start: Tile) -> set[Tile]:
    """Tiles reachable from ``start`` by single orthogonal steps over non-wall tiles."""
    height, width = len(grid), len(grid[0])
    seen = {start}
    queue = deque([start])
    while queue:
        tile = queue.popleft()
        for dx, dy in ((1, 0), (-1, 0), (0, 1), (0, -1)):
            nxt = Tile(tile.x + dx, tile.y + dy)
            if nxt in seen or not (0 <= nxt.x < width and 0 <= nxt.y < height):
                continue
            if grid[nxt.y][nxt.x] == WALL:
                continue
            seen.add(nxt)
            queue.append(nxt)
    return seen


def load_patterns(path: Path) -> list[MazePattern]:
    data = _load_json(Path(path))
    width = data.get("width")
    height = data.get("height")
    if not _is_int(width) or not _is_int(height) or width <= 0 or height <= 0:
        raise ValueError("pattern file needs positive integer width and height")

    raw_patterns = data.get("patterns", [])
    if not raw_patterns:
        raise ValueError("pattern file defines no patterns")

    patterns: list[MazePattern] = []
    for index, raw in enumerate(raw_patterns):
        name = raw.get("name", f"pattern {index + 1}")
        grid = [[WALL] * width for _ in range(height)]
        for x, y in raw.get("paths", []):
            # out-of-range path tiles are skipped
            if 0 <= x < width and 0 <= y < height:
                grid[y][x] = 1

        start = parse_tile(raw.get("start"), f"{name} start")
        goals = tuple(parse_tile(g, f"{name} goal") for g in raw.get("goals", []))
        for tile in (start, *goals):
            if not (0 <= tile.x < width and 0 <= tile.y < height):
                raise ValueError(f"{name}: tile ({tile.x},{tile.y}) is out of bounds")
        grid[start.y][start.x] = START
        for goal in goals:
            grid[goal.y][goal.x] = GOAL

        anchors = {}
        for anchor, value in raw.get("anchors", {}).items():
            tile = parse_tile(value, f"{name} anchor {anchor}")
            if not (0 <= tile.x < width and 0 <= tile.y < height) or grid[tile.y][tile.x] == WALL:
                raise ValueError(f"{name}: anchor {anchor} is not on a walkable tile")
            anchors[anchor] = tile
        missing = ANCHORS - set(anchors)
        if missing:
            raise ValueError(f"{name}: missing anchors {', '.join(sorted(missing))}")

        reachable = reachable_tiles(grid, start)
        cut_off = sorted(anchor for anchor, tile in anchors.items() if tile not in reachable)
        if cut_off:
            raise ValueError(f"{name}: anchors {', '.join(cut_off)} cannot be reached from the start")

        patterns.append(
            MazePattern(
                index=index,
                name=name,
                width=width,
                height=height,
                grid=tuple(tuple(row) for row in grid),
                start=start,
                goals=goals,
                anchors=anchors,
            )
        )
    return patterns


def _placement(raw: Any, where: str) -> Placement:
    if not isinstance(raw, dict):
        raise ValueError(f"{where}: placements must be mappings")
    oid = raw.get("id")
    anchor = raw.get("anchor")
    if not oid or not isinstance(anchor, str) or anchor not in ANCHORS:
        raise ValueError(f"{where}: placement needs an id and a known anchor")
    return Placement(
        object_id=oid,
        anchor=anchor,
        icon=raw.get("icon", ""),
        name=raw.get("name", oid),
        kind=_item_kind(raw, oid),
    )


def _placements(raw: dict[str, Any], key: str, where: str) -> tuple[Placement, ...]:
    entries = raw.get(key) or []
    if not isinstance(entries, list):
        raise ValueError(f"{where}: {key} must be a list")
    return tuple(_placement(entry, where) for entry in entries)


def load_tasks(raw_tasks: Any) -> list[Task]:
    if not isinstance(raw_tasks, list):
        raise ValueError("tasks must be a list")
    tasks: list[Task] = []
    for index, raw in enumerate(raw_tasks, start=1):
        if not isinstance(raw, dict):
            raise ValueError(f"task {index} must be a mapping")
        target = raw.get("target_door")
        door_raw = raw.get("door") or {}
        if not isinstance(door_raw, dict):
            raise ValueError(f"task {target or index}: door must be a mapping")
        if not target or door_raw.get("id") != target:
            raise ValueError(f"task {target!r} must place its target door")
        if not isinstance(door_raw.get("anchor"), str) or door_raw["anchor"] not in ANCHORS:
            raise ValueError(f"task {target}: door needs a known anchor")
        door = DoorPlacement(
            door_id=door_raw["id"],
            anchor=door_raw["anchor"],
            condition=parse_condition(door_raw.get("condition"), f"task {target}"),
            icon=door_raw.get("icon", ""),
        )
        tasks.append(
            Task(
                target_door=target,
                text=raw.get("text", ""),
                hint=raw.get("hint", ""),
                learning=raw.get("learning", ""),
                door=door,
                success_message=raw.get("success_message", "The door is open!"),
                pickups=_placements(raw, "pickups", f"task {target}"),
                switches=_placements(raw, "switches", f"task {target}"),
            )
        )
    return tasks


def build_maze(pattern: MazePattern, task: Task, tile_size: int = 32) -> MazeDescriptor:
    """Place the task's pickups, switches and door on the pattern's anchors."""

    def pos(anchor: str) -> dict[str, int]:
        tile = pattern.anchors[anchor]
        return {"x": tile.x, "y": tile.y}

    door = task.door
    data = {
        "id": f"pattern-{pattern.index + 1}-{task.target_door}",
        "name": pattern.name,
        "tile_size": tile_size,
        "width": pattern.width,
        "height": pattern.height,
        "grid": [list(row) for row in pattern.grid],
        "start": {"x": pattern.start.x, "y": pattern.start.y},
        "goals": [{"x": g.x, "y": g.y} for g in pattern.goals],
        "items": [
            {"id": p.object_id, "pos": pos(p.anchor), "icon": p.icon, "name": p.name, "kind": p.kind}
            for p in task.pickups
        ],
        "switches": [
            {"id": s.object_id, "pos": pos(s.anchor), "icon": s.icon, "name": s.name}
            for s in task.switches
        ],
        "doors": [
            {
                "id": door.door_id,
                "pos": pos(door.anchor),
                "icon": door.icon,
                "condition": {"type": door.condition.type, "value": door.condition.value},
            }
        ],
    }
    return maze_from_dict(data)
