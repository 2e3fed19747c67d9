"""Command-line interface for Pit Trivia.

- `trivia play` - Play a hot-seat game on this terminal
- `trivia board` - Build and print a board
- `trivia categories` - List the question bank
"""

import typer
from rich.console import Console

from trivia.cli_trivia import app as trivia_app

# Main application
app = typer.Typer(
    help="Pit Trivia - two-team board quiz with perks and the Pit",
    no_args_is_help=True,
)
console = Console()

# Register subcommands
app.add_typer(trivia_app, name="trivia", help="Play and inspect Pit Trivia games")


@app.callback()
def main():
    """Pit Trivia - two teams, six categories, thirty-six questions.

    Examples:

        # Play with the bundled question bank
        pit trivia play --team-a Falcons --team-b Eagles

        # Preview a reproducible board
        pit trivia board --seed 7

        # Inspect the bank served by the backend
        pit trivia categories --remote
    """
    pass


@app.command()
def version():
    """Show version information."""
    from trivia import __version__ as trivia_version
    from shared import __version__ as shared_version

    console.print("[bold]Pit Trivia[/bold]")
    console.print(f"  trivia: {trivia_version}")
    console.print(f"  shared: {shared_version}")


if __name__ == "__main__":
    app()
