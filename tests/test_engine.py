import unittest
from pathlib import Path

from logicmaze.core.config import EngineSettings
from logicmaze.maze.engine import Engine
from logicmaze.maze.loader import load_patterns, maze_from_dict
from logicmaze.maze.models import (
    CONDITION_UNMET,
    SUCCESS,
    WALL,
    WRONG_DOOR,
    DoorResult,
    ItemCollected,
    Position,
    SwitchToggled,
    Tile,
)


ROOT = Path(__file__).resolve().parents[1]
PATTERNS = ROOT / "logicmaze" / "maze" / "mazes.json"

GLYPHS = {"#": 0, ".": 1, "S": 2, "G": 3}


def grid_from(rows):
    return [[GLYPHS[c] for c in row] for row in rows]


def open_maze(**extra):
    data = {
        "id": "open",
        "grid": grid_from(
            [
                "#####",
                "#S..#",
                "#...#",
                "#...#",
                "#####",
            ]
        ),
        "start": {"x": 1, "y": 1},
    }
    data.update(extra)
    return maze_from_dict(data)


def corridor_maze(items=(), switches=(), doors=()):
    """The 10x15 'Simple Corridor' layout with the given objects placed on it."""
    pattern = load_patterns(PATTERNS)[0]
    return maze_from_dict(
        {
            "id": "corridor",
            "grid": [list(row) for row in pattern.grid],
            "start": {"x": 1, "y": 1},
            "items": list(items),
            "switches": list(switches),
            "doors": list(doors),
        }
    )


KEY_RED = {"id": "key-red", "pos": {"x": 3, "y": 5}, "icon": "🔑", "name": "red key"}
SWITCH_GREEN = {"id": "switch-green", "pos": {"x": 5, "y": 10}, "icon": "🔘", "name": "green switch"}
DOOR_LEFT = {
    "id": "left",
    "pos": {"x": 6, "y": 13},
    "icon": "🔑",
    "condition": {"type": "has_item", "value": "key-red"},
}


def settle(engine, frame=1 / 60, limit=10_000):
    events = []
    for _ in range(limit):
        if not engine.is_moving:
            break
        events.extend(engine.advance(frame))
    return events


def drive(engine, x, y):
    accepted = engine.request_move(Tile(x, y))
    assert accepted, f"move to ({x},{y}) was rejected"
    return settle(engine)


class RequestMoveTests(unittest.TestCase):
    def test_wall_targets_never_move_the_player(self):
        engine = Engine(corridor_maze(), None)
        maze = engine.maze
        for y in range(maze.height):
            for x in range(maze.width):
                if maze.tile_at(x, y) != WALL:
                    continue
                self.assertFalse(engine.request_move(Tile(x, y)))
                self.assertFalse(engine.is_moving)
                self.assertEqual(engine.player_position, Position(1.0, 1.0))

    def test_out_of_bounds_is_ignored(self):
        engine = Engine(open_maze(), None)
        self.assertFalse(engine.request_move((-1, 1)))
        self.assertFalse(engine.request_move((5, 1)))
        self.assertFalse(engine.request_move((1, 99)))
        self.assertIsNone(engine.player_target)

    def test_non_integer_targets_are_ignored(self):
        engine = Engine(open_maze(), None)
        self.assertFalse(engine.request_move((2.5, 1)))
        self.assertFalse(engine.request_move((2.0, 1)))
        self.assertFalse(engine.request_move((True, 1)))
        self.assertFalse(engine.request_move(Tile("2", 1)))
        self.assertIsNone(engine.player_target)
        self.assertTrue(engine.request_move((2, 1)))

    def test_requests_while_moving_are_ignored(self):
        engine = Engine(open_maze(), None)
        self.assertTrue(engine.request_move((2, 1)))
        engine.advance(0.05)
        self.assertFalse(engine.request_move((1, 2)))
        self.assertEqual(engine.player_target, Tile(2, 1))

    def test_diagonal_step_needs_both_corners_open(self):
        maze = corridor_maze()
        for y in range(maze.height):
            for x in range(maze.width):
                if not maze.is_walkable(x, y):
                    continue
                for dx, dy in ((1, 1), (1, -1), (-1, 1), (-1, -1)):
                    tx, ty = x + dx, y + dy
                    if not maze.is_walkable(tx, ty):
                        continue
                    engine = Engine(maze, None)
                    engine.player_position = Position(float(x), float(y))
                    corners_open = maze.is_walkable(x, ty) and maze.is_walkable(tx, y)
                    self.assertEqual(
                        engine.request_move((tx, ty)),
                        corners_open,
                        f"({x},{y}) -> ({tx},{ty})",
                    )

    def test_diagonal_corner_wall_blocks(self):
        grid = [
            "#####",
            "#S#.#",
            "#...#",
            "#####",
        ]
        engine = Engine(maze_from_dict({"grid": grid_from(grid), "start": [1, 1]}), None)
        self.assertFalse(engine.request_move((2, 2)))

        engine = Engine(open_maze(), None)
        self.assertTrue(engine.request_move((2, 2)))

    def test_long_diagonal_checks_every_step(self):
        grid = [
            "#####",
            "#S..#",
            "#..##",
            "#...#",
            "#####",
        ]
        engine = Engine(maze_from_dict({"grid": grid_from(grid), "start": [1, 1]}), None)
        # (3,2) is a wall corner on the second step
        self.assertFalse(engine.request_move((3, 3)))
        engine = Engine(open_maze(), None)
        self.assertTrue(engine.request_move((3, 3)))

    def test_line_walk_blocks_through_walls(self):
        grid = [
            "#######",
            "#S....#",
            "###.###",
            "#.....#",
            "#######",
        ]
        engine = Engine(maze_from_dict({"grid": grid_from(grid), "start": [1, 1]}), None)
        self.assertFalse(engine.request_move((5, 3)))
        self.assertFalse(engine.request_move((1, 3)))
        self.assertTrue(engine.request_move((5, 1)))

    def test_same_tile_request_is_accepted(self):
        engine = Engine(open_maze(), None)
        self.assertTrue(engine.request_move((1, 1)))
        self.assertTrue(engine.is_moving)
        engine.advance(0.0)
        self.assertFalse(engine.is_moving)


class AdvanceTests(unittest.TestCase):
    def test_moves_at_configured_speed_and_settles(self):
        engine = Engine(open_maze(), None, EngineSettings(move_speed=4.0))
        engine.request_move((3, 1))

        engine.advance(0.25)
        self.assertAlmostEqual(engine.player_position.x, 2.0)
        self.assertAlmostEqual(engine.player_position.y, 1.0)
        self.assertTrue(engine.is_moving)
        self.assertIsNone(engine.settled_tile)

        # capped: a long frame lands on the target, never past it
        engine.advance(10.0)
        self.assertAlmostEqual(engine.player_position.x, 3.0)
        self.assertTrue(engine.is_moving)

        engine.advance(0.0)
        self.assertFalse(engine.is_moving)
        self.assertEqual(engine.player_position, Position(3.0, 1.0))
        self.assertEqual(engine.settled_tile, Tile(3, 1))

    def test_snaps_within_epsilon(self):
        engine = Engine(open_maze(), None, EngineSettings(move_speed=4.0, settle_epsilon=0.05))
        engine.request_move((2, 1))
        engine.advance(0.24)  # 0.96 of the way
        self.assertTrue(engine.is_moving)
        engine.advance(0.0)
        self.assertFalse(engine.is_moving)
        self.assertEqual(engine.player_position, Position(2.0, 1.0))

    def test_idle_advance_only_ticks_the_clock(self):
        engine = Engine(open_maze(), None)
        self.assertEqual(engine.advance(1.5), [])
        self.assertAlmostEqual(engine.clock, 1.5)
        self.assertEqual(engine.player_position, Position(1.0, 1.0))

    def test_negative_delta_is_rejected(self):
        engine = Engine(open_maze(), None)
        with self.assertRaises(ValueError):
            engine.advance(-0.1)

    def test_collisions_only_fire_on_settle(self):
        engine = Engine(corridor_maze(items=[KEY_RED]), None)
        engine.request_move((3, 5))
        events = []
        while engine.is_moving:
            events.extend(engine.advance(1 / 60))
            if engine.is_moving:
                self.assertEqual(engine.inventory.items, set())
        self.assertEqual([type(e) for e in events], [ItemCollected])

    def test_missing_descriptor_fails_fast(self):
        with self.assertRaises(ValueError):
            Engine(None, "left")
        with self.assertRaises(ValueError):
            Engine({"grid": []}, "left")


class CollisionTests(unittest.TestCase):
    def test_pickup_is_idempotent(self):
        engine = Engine(corridor_maze(items=[KEY_RED]), "left")
        events = drive(engine, 3, 5)
        self.assertEqual(events, [ItemCollected("key-red", "item", "red key")])
        self.assertEqual(engine.inventory.items, {"key-red"})

        before = engine.inventory.to_dict()
        self.assertEqual(drive(engine, 3, 5), [])
        drive(engine, 3, 4)
        self.assertEqual(drive(engine, 3, 5), [])
        self.assertEqual(engine.inventory.to_dict(), before)

    def test_badges_go_to_the_badge_set(self):
        badge = {"id": "badge-star", "pos": {"x": 2, "y": 1}, "icon": "⭐", "name": "star badge"}
        engine = Engine(open_maze(items=[badge]), None)
        events = drive(engine, 2, 1)
        self.assertEqual(events[0].kind, "badge")
        self.assertEqual(engine.inventory.badges, {"badge-star"})
        self.assertEqual(engine.inventory.items, set())

    def test_switch_strictly_alternates_outside_the_guard(self):
        engine = Engine(corridor_maze(switches=[SWITCH_GREEN]), None)
        drive(engine, 5, 10)
        states = [engine.inventory.switches["switch-green"]]
        for _ in range(4):
            engine.advance(0.6)
            events = drive(engine, 5, 10)
            states.append(events[0].state)
        self.assertEqual(states, ["ON", "OFF", "ON", "OFF", "ON"])

    def test_switch_guard_window(self):
        engine = Engine(corridor_maze(switches=[SWITCH_GREEN]), None, EngineSettings(switch_cooldown=0.5))
        events = drive(engine, 5, 10)
        self.assertEqual(events, [SwitchToggled("switch-green", "ON", "green switch")])

        # settling again inside the window does nothing
        engine.request_move((5, 10))
        self.assertEqual(engine.advance(0.1), [])
        self.assertEqual(engine.inventory.switches["switch-green"], "ON")

        engine.advance(0.5)
        engine.request_move((5, 10))
        events = engine.advance(0.0)
        self.assertEqual(events, [SwitchToggled("switch-green", "OFF", "green switch")])
        self.assertEqual(engine.inventory.switches["switch-green"], "OFF")

    def test_door_opens_for_target_task(self):
        engine = Engine(corridor_maze(items=[KEY_RED], doors=[DOOR_LEFT]), "left")
        drive(engine, 3, 5)
        self.assertEqual(engine.inventory.items, {"key-red"})

        events = drive(engine, 6, 13)
        self.assertEqual(len(events), 1)
        self.assertIsInstance(events[0], DoorResult)
        self.assertEqual(events[0].outcome, SUCCESS)

    def test_wrong_door_keeps_inventory(self):
        engine = Engine(corridor_maze(items=[KEY_RED], doors=[DOOR_LEFT]), "middle")
        drive(engine, 3, 5)
        before = engine.inventory.to_dict()

        events = drive(engine, 6, 13)
        self.assertEqual(events[0].outcome, WRONG_DOOR)
        self.assertEqual(engine.inventory.to_dict(), before)
        self.assertEqual(engine.target_door, "middle")
        # the session keeps going
        self.assertTrue(engine.request_move((6, 12)))

    def test_condition_unmet_names_the_requirement(self):
        engine = Engine(corridor_maze(items=[KEY_RED], doors=[DOOR_LEFT]), "left")
        # around the key room
        for x, y in ((1, 9), (5, 9), (5, 12), (6, 12)):
            drive(engine, x, y)
        events = drive(engine, 6, 13)
        self.assertEqual(events[0].outcome, CONDITION_UNMET)
        self.assertIn("red key", events[0].message)
        self.assertEqual(engine.inventory.items, set())

    def test_switch_door_and_badge_door(self):
        door_mid = {
            "id": "middle",
            "pos": {"x": 3, "y": 3},
            "icon": "🔘",
            "condition": {"type": "switch_on", "value": "sw"},
        }
        door_right = {
            "id": "right",
            "pos": {"x": 1, "y": 3},
            "icon": "⭐",
            "condition": {"type": "has_badge", "value": "badge-star"},
        }
        maze = open_maze(
            items=[{"id": "badge-star", "pos": [2, 2], "kind": "badge"}],
            switches=[{"id": "sw", "pos": [3, 1]}],
            doors=[door_mid, door_right],
        )
        engine = Engine(maze, "middle")
        self.assertEqual(drive(engine, 3, 3)[0].outcome, CONDITION_UNMET)
        drive(engine, 3, 2)
        drive(engine, 3, 1)
        self.assertEqual(drive(engine, 3, 3)[0].outcome, SUCCESS)

        self.assertEqual(drive(engine, 1, 3)[0].outcome, CONDITION_UNMET)
        drive(engine, 2, 2)
        self.assertEqual(drive(engine, 1, 3)[0].outcome, WRONG_DOOR)


class ScenarioTests(unittest.TestCase):
    def test_red_key_opens_left_door(self):
        engine = Engine(corridor_maze(items=[KEY_RED], doors=[DOOR_LEFT]), "left")
        self.assertTrue(engine.request_move((3, 5)))
        settle(engine)
        self.assertEqual(engine.inventory.items, {"key-red"})

        self.assertTrue(engine.request_move((6, 13)))
        events = settle(engine)
        self.assertEqual([e.outcome for e in events if isinstance(e, DoorResult)], [SUCCESS])

    def test_left_door_is_wrong_for_middle_task(self):
        engine = Engine(corridor_maze(items=[KEY_RED], doors=[DOOR_LEFT]), "middle")
        drive(engine, 3, 5)
        events = drive(engine, 6, 13)
        self.assertEqual(events[0].outcome, WRONG_DOOR)
        self.assertEqual(engine.inventory.items, {"key-red"})

    def test_green_switch_guard(self):
        engine = Engine(corridor_maze(switches=[SWITCH_GREEN]), None)
        drive(engine, 5, 10)
        self.assertEqual(engine.inventory.switches, {"switch-green": "ON"})

        engine.request_move((5, 10))
        self.assertEqual(engine.advance(1 / 60), [])
        self.assertEqual(engine.inventory.switches, {"switch-green": "ON"})

        engine.advance(1.0)
        engine.request_move((5, 10))
        engine.advance(1 / 60)
        self.assertEqual(engine.inventory.switches, {"switch-green": "OFF"})

    def test_snapshot_reports_position_and_inventory(self):
        engine = Engine(corridor_maze(items=[KEY_RED]), None)
        drive(engine, 3, 5)
        snap = engine.snapshot()
        self.assertEqual(snap["position"], {"x": 3.0, "y": 5.0})
        self.assertFalse(snap["moving"])
        self.assertEqual(snap["inventory"]["items"], ["key-red"])
        self.assertTrue(snap["items"]["key-red"])


if __name__ == "__main__":
    unittest.main()
