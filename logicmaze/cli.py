from __future__ import annotations

import logging
import time
from importlib import metadata
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from logicmaze.core.config import LogicMazeConfig, load_master_config, resolve_config_path
from logicmaze.maze.loader import load_patterns, load_tasks
from logicmaze.maze.models import DoorResult, Event, HintDue, ItemCollected, SwitchToggled, Tile
from logicmaze.maze.render import render_maze
from logicmaze.maze.session import DIRECTIONS, Session


app = typer.Typer(add_completion=False, help="Logic Maze: open the right door by meeting its condition")
console = Console()


def _get_version() -> str:
    try:
        return metadata.version("logicmaze")
    except metadata.PackageNotFoundError:
        return "0.0.0+local"


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the Logic Maze version and exit.",
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log engine decisions."),
):
    if version:
        console.print(_get_version())
        raise typer.Exit()
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()


def _get_env(config_path: str) -> LogicMazeConfig:
    try:
        return load_master_config(resolve_config_path(config_path))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"❌ Could not load config: {e}")
        raise typer.Exit(code=1)


def _new_session(cfg: LogicMazeConfig, vehicle: str, seed: Optional[int]) -> Session:
    try:
        return Session.from_config(cfg, vehicle=vehicle, seed=seed)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"❌ Could not set up the maze: {e}")
        raise typer.Exit(code=1)


def _start(session: Session, pattern: Optional[int], task: Optional[int]) -> None:
    try:
        if task is not None:
            session.select_task(task - 1)
        session.start(None if pattern is None else pattern - 1)
    except ValueError as e:
        console.print(f"❌ {e}")
        raise typer.Exit(code=2)


def _print_events(events: list[Event]) -> None:
    for event in events:
        if isinstance(event, ItemCollected):
            console.print(f"✨ Picked up [bold]{event.name}[/bold]")
        elif isinstance(event, SwitchToggled):
            console.print(f"🔘 {event.name} is now [bold]{event.state}[/bold]")
        elif isinstance(event, DoorResult):
            style = {"success": "green", "wrong_door": "yellow"}.get(event.outcome, "red")
            console.print(f"🚪 [{style}]{event.message}[/{style}]")
        elif isinstance(event, HintDue):
            console.print(f"💡 {event.hint}")


def _parse_tile(raw: str) -> Tile:
    parts = raw.replace(",", " ").split()
    if len(parts) != 2:
        raise ValueError(f"expected X,Y but got {raw!r}")
    return Tile(int(parts[0]), int(parts[1]))


tasks_app = typer.Typer(help="Task operations")
mazes_app = typer.Typer(help="Maze pattern operations")
app.add_typer(tasks_app, name="tasks")
app.add_typer(mazes_app, name="mazes")


@tasks_app.command("list")
def tasks_list(
    config: str = typer.Option("logicmaze.yaml", "--config", help="Path to master config"),
):
    cfg = _get_env(config)
    try:
        tasks = load_tasks(cfg.tasks)
    except ValueError as e:
        console.print(f"❌ Invalid task list: {e}")
        raise typer.Exit(code=1)

    table = Table(title="Logic Maze Tasks")
    table.add_column("#", justify="right")
    table.add_column("Door", style="bold")
    table.add_column("Task")
    table.add_column("Learning")
    for i, task in enumerate(tasks, start=1):
        table.add_row(str(i), task.target_door, task.text, task.learning)
    console.print(table)


@mazes_app.command("list")
def mazes_list(
    config: str = typer.Option("logicmaze.yaml", "--config", help="Path to master config"),
):
    cfg = _get_env(config)
    try:
        patterns = load_patterns(Path(cfg.patterns_path))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"❌ Invalid maze patterns: {e}")
        raise typer.Exit(code=1)

    table = Table(title="Logic Maze Patterns")
    table.add_column("#", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Size", justify="right")
    table.add_column("Start", justify="right")
    for p in patterns:
        table.add_row(str(p.index + 1), p.name, f"{p.width}x{p.height}", f"({p.start.x},{p.start.y})")
    console.print(table)


@mazes_app.command("show")
def mazes_show(
    pattern: int = typer.Argument(..., help="Pattern number (from 'mazes list')"),
    task: int = typer.Option(1, "--task", "-t", help="Task number whose objects are placed"),
    config: str = typer.Option("logicmaze.yaml", "--config", help="Path to master config"),
):
    cfg = _get_env(config)
    session = _new_session(cfg, "car", None)
    _start(session, pattern, task)
    console.print(render_maze(session), markup=False, highlight=False)


@app.command("move")
def move(
    targets: List[str] = typer.Argument(..., help="Tiles to drive to in order, as X,Y"),
    pattern: int = typer.Option(1, "--pattern", "-p", help="Pattern number"),
    task: int = typer.Option(1, "--task", "-t", help="Task number"),
    vehicle: str = typer.Option("car", "--vehicle", help="car, bus, train or plane"),
    config: str = typer.Option("logicmaze.yaml", "--config", help="Path to master config"),
):
    """Drive from the start tile through each target in one scripted run."""
    cfg = _get_env(config)
    session = _new_session(cfg, vehicle, None)
    _start(session, pattern, task)

    for raw in targets:
        try:
            tile = _parse_tile(raw)
        except ValueError as e:
            console.print(f"❌ {e}")
            raise typer.Exit(code=4)
        if not session.request_move(tile):
            console.print(f"🧱 [bold red]BLOCKED[/bold red] cannot drive to ({tile.x},{tile.y})")
            raise typer.Exit(code=5)
        _print_events(session.run_until_settled())

    console.print(render_maze(session), markup=False, highlight=False)
    if session.cleared:
        console.print(f"🏁 [bold green]SUCCESS[/bold green] {session.message}")


@app.command("play")
def play(
    vehicle: str = typer.Option("car", "--vehicle", help="car, bus, train or plane"),
    pattern: Optional[int] = typer.Option(None, "--pattern", "-p", help="Pattern number (random if omitted)"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for maze selection"),
    config: str = typer.Option("logicmaze.yaml", "--config", help="Path to master config"),
):
    """Play in the terminal: type X,Y or a direction (n, ne, e, ...), 'hint', 'look' or 'quit'."""
    cfg = _get_env(config)
    session = _new_session(cfg, vehicle, seed)
    _start(session, pattern, None)
    console.print(render_maze(session), markup=False, highlight=False)

    last = time.monotonic()
    while True:
        try:
            line = console.input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            break

        # real time spent thinking still counts toward cooldowns and the idle hint
        now = time.monotonic()
        _print_events(session.advance(now - last))
        last = now

        cmd = line.lower()
        if cmd in ("q", "quit", "exit"):
            break
        if cmd == "hint":
            console.print(f"💡 {session.hint()}")
            continue
        if cmd == "look" or not cmd:
            console.print(render_maze(session), markup=False, highlight=False)
            continue
        if cmd == "next":
            if not session.cleared:
                console.print("Open the right door first!")
                continue
            session.next_game(None if pattern is None else pattern - 1)
            console.print(render_maze(session), markup=False, highlight=False)
            continue

        if cmd.upper() in DIRECTIONS:
            accepted = session.step(cmd)
        else:
            try:
                accepted = session.request_move(_parse_tile(cmd))
            except ValueError:
                console.print("Type X,Y, a direction (n, ne, e, se, s, sw, w, nw), 'hint', 'look' or 'quit'.")
                continue

        if not accepted:
            console.print("🧱 You cannot drive there.")
            continue

        _print_events(session.run_until_settled())
        last = time.monotonic()
        console.print(render_maze(session), markup=False, highlight=False)
        if session.cleared:
            console.print(f"🏁 [bold green]{session.message}[/bold green] Type 'next' for the next task.")
