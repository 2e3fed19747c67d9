"""Rich rendering for the terminal host."""

from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from trivia.i18n import Translator
from trivia.models import TIERS, Category, Question
from trivia.resolver import ResolveResult
from trivia.round_engine import QuestionRound, RoundPhase

TEAM_COLORS = ("orange1", "dodger_blue1")


def _format_score(score: int) -> str:
    """Format score with parentheses for negative numbers (accounting notation)."""
    if score < 0:
        return f"({abs(score)})"
    return str(score)


def cell_label(category_index: int, question_index: int) -> str:
    """Short code typed by players to pick a cell, e.g. ``3b``."""
    return f"{category_index + 1}{chr(ord('a') + question_index)}"


def cells_by_tier(category: Category) -> List[List[int]]:
    """Question indexes grouped by tier, lowest first. Order within a category is not tier-sorted."""
    return [[i for i, q in enumerate(category.questions) if q.points == tier] for tier in TIERS]


def render_board(board: List[Category], t: Translator) -> Table:
    table = Table(title=t("board_title"), show_lines=True)
    for category in board:
        table.add_column(category.display_name(t.language), justify="center", min_width=12)

    columns = []
    for c_idx, category in enumerate(board):
        column = []
        for tier_indexes in cells_by_tier(category):
            for q_idx in tier_indexes:
                question = category.questions[q_idx]
                if question.is_solved:
                    column.append("[dim]—[/dim]")
                else:
                    column.append(f"[bold]{question.points}[/bold] [dim]{cell_label(c_idx, q_idx)}[/dim]")
        columns.append(column)

    depth = max((len(c) for c in columns), default=0)
    for row in range(depth):
        table.add_row(*[col[row] if row < len(col) else "" for col in columns])
    return table


def render_scoreboard(game, t: Translator) -> Table:
    table = Table(show_header=False, box=None, padding=(0, 3))
    cells = []
    for team in game.teams:
        color = TEAM_COLORS[team.id]
        marker = "▶ " if team.id == game.current_turn and not game.game_over else "  "
        perks = [p for p, used in team.perks_used.to_dict().items() if not used]
        perk_text = ", ".join(t(f"perk_{p}") for p in perks) or "—"
        cells.append(
            f"{marker}[bold {color}]{team.name}[/bold {color}]  {_format_score(team.score)}\n"
            f"   [dim]{t('perks_left')}: {perk_text}[/dim]"
        )
    table.add_row(*cells)
    return table


def render_question(round_: QuestionRound, t: Translator, team_name: str) -> Panel:
    question: Question = round_.question
    lines = []
    if round_.pit_active:
        lines.append(f"[bold red]⚠ {t('pit_active')}[/bold red]")

    lines.append(f"[bold]{question.text}[/bold]")

    if round_.phase is RoundPhase.PRE_QUESTION:
        lines.append("")
        lines.append(f"[yellow]{t('ask_use_pit', team=team_name)}[/yellow]")
        lines.append(f"[dim]{t('pit_warning_desc')}[/dim]")
    elif round_.phase is RoundPhase.ANSWERING:
        options = round_.visible_options()
        if options:
            lines.append("")
            lines.extend(f"  • {option}" for option in options)
        if round_.two_answers_active:
            lines.append(f"[magenta]{t('two_answers_mode_active')}[/magenta]")
        color = "red" if round_.time_left < 10 else "green"
        lines.append("")
        lines.append(f"[{color}]⏱ {round_.time_left}[/{color}]")
    elif round_.phase in (RoundPhase.SHOW_ANSWER, RoundPhase.SELECT_TEAM):
        lines.append("")
        lines.append(f"{t('correct_answer')}: [bold green]{question.correct_answer}[/bold green]")

    title = f"{team_name} — {question.points}"
    return Panel("\n".join(lines), title=title, border_style="red" if round_.pit_active else "cyan")


def describe_result(result: ResolveResult, game, t: Translator) -> List[str]:
    """Score animation lines, in the order they should appear."""
    lines = []
    for delta in result.deltas:
        name = game.teams[delta.team_id].name
        sign = "+" if delta.amount >= 0 else "-"
        suffix = " 🕳️" if delta.reason == "pit" else ""
        lines.append(f"{name}: {sign}{abs(delta.amount)}{suffix}")
    if not lines:
        lines.append(t("no_one_answered"))
    return lines


def render_game_over(game, t: Translator) -> Panel:
    winner = game.winner()
    if winner is None:
        headline = f"🤝 {t('its_a_tie')}"
    else:
        headline = f"🏆 {t('wins', team=winner.name)}"

    table = Table(show_header=False, box=None, padding=(0, 3))
    table.add_row(*[
        f"[bold {TEAM_COLORS[team.id]}]{team.name}[/bold {TEAM_COLORS[team.id]}]\n{_format_score(team.score)}"
        for team in game.teams
    ])
    body = Table.grid()
    body.add_row(f"[bold]{headline}[/bold]")
    body.add_row(table)
    return Panel(body, title=t("game_over"), border_style="yellow")


def print_board(console: Console, game, t: Translator, notice: Optional[str] = None) -> None:
    console.print(render_scoreboard(game, t))
    console.print(render_board(game.board, t))
    if notice:
        console.print(notice)
