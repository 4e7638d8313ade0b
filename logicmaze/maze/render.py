from __future__ import annotations

from logicmaze.maze.models import GOAL, ON, START, WALL
from logicmaze.maze.session import Session


TILE_GLYPHS = {WALL: "#", START: "S", GOAL: "G"}


def render_maze(session: Session) -> str:
    engine = session.engine
    if engine is None:
        return "No maze loaded."

    maze = engine.maze
    marks: dict[tuple[int, int], str] = {}
    for door in engine.doors:
        marks[(door.pos.x, door.pos.y)] = "D"
    for sw in engine.switches:
        marks[(sw.pos.x, sw.pos.y)] = "1" if sw.state == ON else "0"
    for item in engine.items:
        if not item.collected:
            marks[(item.pos.x, item.pos.y)] = "*" if item.is_badge else "k"

    player = engine.player_position.as_tile()

    lines: list[str] = []
    task = session.task
    lines.append(f"== {maze.name} ==")
    if task:
        lines.append(task.text)
    lines.append("")

    lines.append("   " + "".join(str(x % 10) for x in range(maze.width)))
    for y in range(maze.height):
        row = []
        for x in range(maze.width):
            if (x, y) == (player.x, player.y):
                row.append("@")
            elif (x, y) in marks:
                row.append(marks[(x, y)])
            else:
                row.append(TILE_GLYPHS.get(maze.tile_at(x, y), "."))
        lines.append(f"{y:>2} " + "".join(row))
    lines.append("")

    lines.append(f"You: {session.vehicle_icon} at ({player.x},{player.y})")

    held = [i.name for i in engine.items if i.item_id in engine.inventory.items]
    badges = [i.name for i in engine.items if i.item_id in engine.inventory.badges]
    switches = [
        f"{sw.name}: {engine.inventory.switches[sw.switch_id]}"
        for sw in engine.switches
        if sw.switch_id in engine.inventory.switches
    ]
    carried = held + badges + switches
    lines.append("Inventory: " + (", ".join(carried) if carried else "(empty)"))

    if session.message:
        lines.append(session.message)

    return "\n".join(lines)
