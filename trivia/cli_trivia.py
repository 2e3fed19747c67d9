"""CLI subcommand for Pit Trivia."""

import asyncio
import logging
import random
import threading
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from shared.adapters.api_adapter import TriviaApiAdapter
from shared.utils.logging import setup_logging
from trivia.board_builder import build_board
from trivia.config import GameSettings, load_settings
from trivia.display import (
    cell_label,
    describe_result,
    print_board,
    render_board,
    render_game_over,
    render_question,
)
from trivia.game import TriviaGame
from trivia.i18n import Translator
from trivia.loader import CategoryLoader
from trivia.models import TIERS, Category
from trivia.round_engine import RoundPhase
from trivia.sessions import ApiSessionSink, JsonlSessionSink

app = typer.Typer(help="Play Pit Trivia, a two-team board quiz")
console = Console()
logger = logging.getLogger(__name__)

# Countdown values worth announcing while a prompt is open
ANNOUNCE_AT = {20, 10, 5, 3, 2, 1}

# Typed at any question prompt to close the question unscored
CLOSE_KEY = "x"


def _make_loader(categories_file: Optional[str], remote: bool, settings: GameSettings) -> CategoryLoader:
    if remote:
        adapter = TriviaApiAdapter(base_url=settings.api_base_url, token=settings.api_token)
        return CategoryLoader(adapter=adapter)
    return CategoryLoader(categories_file=categories_file)


def _load_categories(loader: CategoryLoader) -> List[Category]:
    try:
        return loader.load()
    except FileNotFoundError as e:
        console.print(f"[red]Categories file not found: {e.filename}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error loading categories: {e}[/red]")
        raise typer.Exit(1)


def _choose_categories(
    loader: CategoryLoader, category_ids: Optional[List[str]], count: int, t: Translator
) -> List[Category]:
    """Resolve --category options, or prompt for a numbered selection."""
    available = _load_categories(loader)
    if category_ids:
        try:
            return loader.select(category_ids)
        except KeyError as e:
            console.print(f"[red]{e.args[0]}[/red]")
            raise typer.Exit(1)

    if len(available) < count:
        console.print(f"[red]Need {count} categories, only {len(available)} available[/red]")
        raise typer.Exit(1)

    for i, category in enumerate(available, 1):
        console.print(f"  {i:>2}. {category.display_name(t.language)}")
    while True:
        raw = console.input(t("choose_categories", count=count) + " ").strip()
        try:
            picks = [int(p) for p in raw.replace(",", " ").split()]
        except ValueError:
            console.print(f"[red]{t('invalid_choice')}[/red]")
            continue
        if len(picks) == count and len(set(picks)) == count and all(1 <= p <= len(available) for p in picks):
            return [available[p - 1] for p in picks]
        console.print(f"[red]{t('invalid_choice')}[/red]")


@app.command()
def categories(
    categories_file: Optional[str] = typer.Option(None, "--categories-file", help="Path to categories YAML file"),
    remote: bool = typer.Option(False, "--remote", help="Fetch categories from the backend API"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Display language (en or ar)"),
):
    """List available categories with per-tier question counts."""
    settings = load_settings()
    t = Translator(language or settings.language)
    loader = _make_loader(categories_file, remote, settings)

    table = Table(title=t("categories_title"))
    table.add_column("ID", style="cyan")
    table.add_column(t("category"))
    for tier in TIERS:
        table.add_column(str(tier), justify="right")
    table.add_column(t("total"), justify="right")

    for category in _load_categories(loader):
        counts = [sum(1 for q in category.questions if q.points == tier) for tier in TIERS]
        short = any(c < 2 for c in counts)
        table.add_row(
            category.id,
            category.display_name(t.language),
            *[str(c) for c in counts],
            f"[yellow]{len(category.questions)}[/yellow]" if short else str(len(category.questions)),
        )
    console.print(table)


@app.command()
def board(
    category: Optional[List[str]] = typer.Option(None, "--category", "-c", help="Category id (repeat for each)"),
    categories_file: Optional[str] = typer.Option(None, "--categories-file", help="Path to categories YAML file"),
    seed: Optional[int] = typer.Option(None, help="Random seed for a reproducible board"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Display language (en or ar)"),
):
    """Build a board and print it without playing."""
    settings = load_settings()
    t = Translator(language or settings.language)
    loader = CategoryLoader(categories_file=categories_file)
    available = _load_categories(loader)

    try:
        chosen = loader.select(category) if category else available[:settings.board_categories]
        built = build_board(chosen, count=settings.board_categories, rng=random.Random(seed))
    except KeyError as e:
        console.print(f"[red]{e.args[0]}[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(render_board(built, t))


def _deliver(future: asyncio.Future, line: Optional[str], error: Optional[BaseException]) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(line)


async def _ainput(prompt: str) -> str:
    """Read a console line without blocking the loop.

    The read runs on a daemon thread so an interrupted game can exit while
    the prompt is still open.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def _read():
        line, error = None, None
        try:
            line = console.input(escape(prompt))
        except EOFError as e:
            error = e
        try:
            loop.call_soon_threadsafe(_deliver, future, line, error)
        except RuntimeError:
            logger.debug("Event loop closed before console input arrived")

    threading.Thread(target=_read, name="trivia-input", daemon=True).start()
    return await future


def _find_cell(game: TriviaGame, label: str):
    for c_idx, cat in enumerate(game.board):
        for q_idx, question in enumerate(cat.questions):
            if cell_label(c_idx, q_idx) == label:
                return cat.id, question.id
    return None


def _close_question(game: TriviaGame, t: Translator) -> None:
    if game.close_question():
        console.print(f"[yellow]{t('question_closed')}[/yellow]")


async def _run_answering(game: TriviaGame, t: Translator, team_name: str) -> None:
    """Answering phase: countdown and console input race; whichever finishes first wins."""
    round_ = game.current_round
    expired = asyncio.Event()

    def on_tick(remaining: int):
        if remaining in ANNOUNCE_AT:
            console.print(f"[dim]⏱ {remaining}[/dim]")

    game.start_countdown(on_tick=on_tick, on_expire=expired.set)
    console.print(render_question(round_, t, team_name))

    pending = None
    while round_.phase is RoundPhase.ANSWERING:
        if pending is None:
            pending = asyncio.ensure_future(_ainput(t("answering_prompt") + " "))
        waiter = asyncio.ensure_future(expired.wait())
        done, _ = await asyncio.wait({pending, waiter}, return_when=asyncio.FIRST_COMPLETED)
        waiter.cancel()
        if pending not in done:
            continue

        command = pending.result().strip().lower()
        pending = None
        if command == CLOSE_KEY:
            _close_question(game, t)
        elif command == "o":
            if round_.use_show_options():
                console.print(render_question(round_, t, team_name))
            else:
                console.print(f"[red]{t('perk_unavailable')}[/red]")
        elif command == "t":
            if round_.use_two_answers():
                console.print(f"[magenta]{t('two_answers_mode_active')}[/magenta]")
            else:
                console.print(f"[red]{t('perk_unavailable')}[/red]")
        elif command == "":
            round_.mark_answered()

    if pending is not None:
        # Time ran out while a prompt was still open
        console.print(f"[red]{t('time_up')}[/red]")
        if (await pending).strip().lower() == CLOSE_KEY:
            _close_question(game, t)


async def _play_question(game: TriviaGame, t: Translator) -> None:
    round_ = game.current_round
    team_name = game.acting_team.name

    if round_.phase is RoundPhase.PRE_QUESTION:
        console.print(render_question(round_, t, team_name))
        while round_.phase is RoundPhase.PRE_QUESTION:
            choice = (await _ainput(t("pit_prompt") + " ")).strip().lower()
            if choice == CLOSE_KEY:
                _close_question(game, t)
            elif choice == "y":
                round_.use_pit()
            elif choice == "n":
                round_.decline_pit()

    if not round_.is_closed:
        await _run_answering(game, t, team_name)
    if round_.is_closed:
        return

    console.print(render_question(round_, t, team_name))
    if (await _ainput(t("reveal_prompt") + " ")).strip().lower() == CLOSE_KEY:
        _close_question(game, t)
        return
    round_.reveal_attribution()

    names = " / ".join(f"{team.id + 1} = {team.name}" for team in game.teams)
    while not round_.is_closed:
        prompt = f"{t('who_answered')} ({names} / 0 = {t('no_one')} / {CLOSE_KEY} = {t('close')}): "
        choice = (await _ainput(prompt)).strip().lower()
        if choice == CLOSE_KEY:
            _close_question(game, t)
            return
        if choice not in ("0", "1", "2"):
            continue
        attribution = None if choice == "0" else int(choice) - 1
        result = game.answer(attribution)
        if result is not None:
            for line in describe_result(result, game, t):
                console.print(f"[bold yellow]{line}[/bold yellow]")


async def _play_game(game: TriviaGame, t: Translator) -> None:
    while not game.game_over:
        notice = f"[bold red]⚠ {t('pit_available')}[/bold red]" if game.consume_pit_notice() else None
        print_board(console, game, t, notice)

        raw = (await _ainput(t("pick_cell", team=game.acting_team.name) + " ")).strip().lower()
        if raw == "q":
            confirm = (await _ainput(t("exit_game_confirm") + " ")).strip().lower()
            if confirm == "y":
                game.abandon()
                return
            continue

        cell = _find_cell(game, raw)
        if cell is None or game.select_question(*cell) is None:
            console.print(f"[red]{t('invalid_choice')}[/red]")
            continue
        await _play_question(game, t)

    console.print(render_game_over(game, t))


@app.command()
def play(
    team_a: Optional[str] = typer.Option(None, "--team-a", help="Name of the team that goes first"),
    team_b: Optional[str] = typer.Option(None, "--team-b", help="Name of the second team"),
    category: Optional[List[str]] = typer.Option(None, "--category", "-c", help="Category id (repeat for each)"),
    categories_file: Optional[str] = typer.Option(None, "--categories-file", help="Path to categories YAML file"),
    remote: bool = typer.Option(False, "--remote", help="Use the backend API for categories and sessions"),
    seed: Optional[int] = typer.Option(None, help="Random seed for a reproducible board"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Display language (en or ar)"),
    answer_seconds: Optional[int] = typer.Option(None, "--answer-seconds", help="Countdown length per question"),
    settings_file: Optional[Path] = typer.Option(None, "--settings", help="Settings YAML file"),
    session_log: Path = typer.Option(Path("logs/trivia/sessions.jsonl"), "--session-log", help="Local session snapshot file"),
    log_path: Path = typer.Option(Path("logs/trivia"), "--log-path", help="Directory for log files"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print logs to terminal for debugging"),
):
    """Play a hot-seat game on this terminal."""
    setup_logging(log_path, verbose)

    settings = load_settings(settings_file)
    if language:
        settings.language = language
    if answer_seconds is not None:
        settings.answer_seconds = answer_seconds
    t = Translator(settings.language)

    loader = _make_loader(categories_file, remote, settings)
    chosen = _choose_categories(loader, category, settings.board_categories, t)

    try:
        built = build_board(chosen, count=settings.board_categories, rng=random.Random(seed))
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    name_a = team_a or console.input(t("team_name_prompt", n=1) + " ").strip() or t("default_team", n=1)
    name_b = team_b or console.input(t("team_name_prompt", n=2) + " ").strip() or t("default_team", n=2)

    if remote:
        sink = ApiSessionSink(loader.adapter)
    else:
        sink = JsonlSessionSink(session_log)

    game = TriviaGame(built, (name_a, name_b), settings=settings, translator=t, session_sink=sink)
    console.print(f"[dim]{t('game_id')}: {game.game_id}[/dim]")

    try:
        asyncio.run(_play_game(game, t))
    except (KeyboardInterrupt, EOFError):
        game.abandon()
        console.print(f"\n[yellow]{t('game_abandoned')}[/yellow]")
        raise typer.Exit(130)
