import tempfile
import unittest
from pathlib import Path

import yaml
from typer.testing import CliRunner

from logicmaze.cli import app


ROOT = Path(__file__).resolve().parents[1]
CONFIG = ROOT / "logicmaze.yaml"


class CliTests(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self._tmp = tempfile.TemporaryDirectory()
        raw = yaml.safe_load(CONFIG.read_text(encoding="utf-8"))
        raw.pop("audit", None)
        raw["maze"]["patterns_path"] = str(ROOT / "logicmaze" / "maze" / "mazes.json")
        self.config = Path(self._tmp.name) / "logicmaze.yaml"
        self.config.write_text(yaml.safe_dump(raw, allow_unicode=True), encoding="utf-8")

    def tearDown(self):
        self._tmp.cleanup()

    def invoke(self, *args, input=None):
        return self.runner.invoke(app, [*args, "--config", str(self.config)], input=input)

    def test_version(self):
        result = self.runner.invoke(app, ["--version"])
        self.assertEqual(result.exit_code, 0)
        self.assertTrue(result.output.strip())

    def test_tasks_list(self):
        result = self.invoke("tasks", "list")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("left", result.output)
        self.assertIn("middle", result.output)
        self.assertIn("right", result.output)

    def test_mazes_list_and_show(self):
        result = self.invoke("mazes", "list")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Zigzag", result.output)

        result = self.invoke("mazes", "show", "1")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("== Simple Corridor ==", result.output)

        result = self.invoke("mazes", "show", "9")
        self.assertEqual(result.exit_code, 2)

    def test_move_opens_the_left_door(self):
        result = self.invoke("move", "3,5", "6,13", "--pattern", "1", "--task", "1")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("red key", result.output)
        self.assertIn("SUCCESS", result.output)

    def test_move_into_a_wall_fails(self):
        result = self.invoke("move", "0,0", "--pattern", "1")
        self.assertEqual(result.exit_code, 5)
        self.assertIn("BLOCKED", result.output)

    def test_move_with_bad_tile(self):
        result = self.invoke("move", "three", "--pattern", "1")
        self.assertEqual(result.exit_code, 4)

    def test_missing_config(self):
        result = self.runner.invoke(app, ["tasks", "list", "--config", str(Path(self._tmp.name) / "nope.yaml")])
        self.assertEqual(result.exit_code, 1)

    def test_malformed_task_is_a_clean_error(self):
        raw = yaml.safe_load(self.config.read_text(encoding="utf-8"))
        raw["tasks"][0]["door"] = "left"
        self.config.write_text(yaml.safe_dump(raw, allow_unicode=True), encoding="utf-8")
        for args in (("tasks", "list"), ("move", "3,5")):
            result = self.invoke(*args)
            self.assertEqual(result.exit_code, 1, result.output)
            self.assertIsInstance(result.exception, SystemExit)
            self.assertIn("door must be a mapping", result.output)

    def test_malformed_engine_section_is_a_clean_error(self):
        raw = yaml.safe_load(self.config.read_text(encoding="utf-8"))
        raw["engine"] = "fast"
        self.config.write_text(yaml.safe_dump(raw, allow_unicode=True), encoding="utf-8")
        result = self.invoke("mazes", "list")
        self.assertEqual(result.exit_code, 1, result.output)
        self.assertIn("Could not load config", result.output)

    def test_play_session(self):
        result = self.invoke("play", "--pattern", "1", input="hint\n0,0\n3,5\n6,13\nquit\n")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("You need the red key", result.output)
        self.assertIn("You cannot drive there.", result.output)
        self.assertIn("Level 1 clear!", result.output)

    def test_play_unknown_vehicle(self):
        result = self.invoke("play", "--vehicle", "rocket")
        self.assertEqual(result.exit_code, 1)


if __name__ == "__main__":
    unittest.main()
