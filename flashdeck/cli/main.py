"""
CLI entry point for flashdeck.
"""

# Standard library imports
import logging
from pathlib import Path
from typing import Optional, Tuple

# Third-party imports
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

# Local application imports
from flashdeck.cli.review_ui import render_blocks, start_review_flow
from flashdeck.config import get_settings
from flashdeck.deck_models import ResolvedDeck
from flashdeck.exceptions import DeckError, FlashdeckError
from flashdeck.ingest import register_deck
from flashdeck.loader import DeckFetcher, parent_location
from flashdeck.practice import PracticeEngine
from flashdeck.projection import project_cards
from flashdeck.resolver import DeckResolver
from flashdeck.scheduler import FSRSScheduler, FSRSSchedulerConfig
from flashdeck.store import ActivityStore


console = Console()

app = typer.Typer(
    name="flashdeck",
    help="Flashdeck: practice OFS flashcard decks with spaced repetition.",
    add_completion=False,
    rich_markup_mode="markdown",
)


# Common typer options reused across commands
_data_dir_option = typer.Option(  # noqa: B008
    None,
    "--data-dir",
    help="Root directory for relative deck ids and uploaded decks. "
    "Falls back to FLASHCARD_DATA_DIR, then the working directory.",
    envvar="FLASHCARD_DATA_DIR",
)

_deck_argument = typer.Argument(  # noqa: B008
    ..., help="Deck id: a path relative to the data dir, or an absolute path."
)

_mode_option = typer.Option(
    "mixed", "--mode", "-m", help="Which cards: mixed, review or new."
)

_order_option = typer.Option(
    "standard", "--order", "-o", help="Card order: standard or random."
)


@app.callback()
def _configure(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug logging."
    ),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _open_deck(
    deck_id: str, data_dir: Optional[Path]
) -> Tuple[ActivityStore, ResolvedDeck]:
    """
    Bind an activity store to the deck, load its activity and resolve the deck.

    Returns:
        tuple: (store, resolved_deck)
    """
    settings = get_settings()
    root = data_dir or settings.data_dir
    store = ActivityStore(root=root, detect_conflicts=settings.detect_conflicts)
    deck = store.get_deck(deck_id)
    resolver = DeckResolver(DeckFetcher(timeout=settings.fetch_timeout))
    resolved = resolver.resolve(
        deck, parent_location(store.deck_path), root_location=store.deck_path
    )
    for location in resolved.skipped_extensions:
        console.print(f"[yellow]Skipped extension:[/yellow] {location}")
    return store, resolved


def _make_engine(store: ActivityStore) -> PracticeEngine:
    settings = get_settings()
    scheduler = FSRSScheduler(
        FSRSSchedulerConfig(desired_retention=settings.desired_retention)
    )
    return PracticeEngine(store, scheduler)


def _fail(message: str, error: Exception) -> None:
    console.print(f"[bold red]{message}:[/bold red] {error}")
    raise typer.Exit(code=1) from error


def _preview(text: str, width: int = 60) -> str:
    text = " ".join(text.split())
    text = text if len(text) <= width else text[: width - 3] + "..."
    return escape(text)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def show(
    deck_id: str = _deck_argument,
    data_dir: Optional[Path] = _data_dir_option,
):
    """Show the practice-ready cards of a deck, extensions included."""
    try:
        _, resolved = _open_deck(deck_id, data_dir)
    except FlashdeckError as e:
        _fail("Could not load deck", e)

    cards = project_cards(resolved.cards)
    console.print(
        f"[bold]{resolved.name}[/bold] v{resolved.version} "
        f"({len(cards)} of {len(resolved.cards)} cards practicable)"
    )
    if resolved.description:
        console.print(escape(resolved.description))

    table = Table(title="Cards")
    table.add_column("Id", style="cyan")
    table.add_column("Question", style="white")
    table.add_column("Kind", style="magenta")
    for card in cards:
        kind = "multiple-choice" if card.is_multiple_choice else "flashcard"
        table.add_row(card.id, _preview(render_blocks(card.question_content)), kind)
    console.print(table)


@app.command()
def due(
    deck_id: str = _deck_argument,
    data_dir: Optional[Path] = _data_dir_option,
    mode: str = _mode_option,
    order: str = _order_option,
):
    """List the cards currently due in a deck."""
    try:
        store, resolved = _open_deck(deck_id, data_dir)
        cards = _make_engine(store).get_due_cards(resolved, mode, order)
    except ValueError as e:
        _fail("Invalid option", e)
    except FlashdeckError as e:
        _fail("Could not load deck", e)

    if not cards:
        console.print("[bold yellow]No cards are due.[/bold yellow]")
        return

    table = Table(title=f"Due cards ({mode}, {order})")
    table.add_column("Id", style="cyan")
    table.add_column("Due", style="yellow")
    table.add_column("Question", style="white")
    for card in cards:
        state = store.get_card_state(card.id)
        due_str = f"{state.due:%Y-%m-%d %H:%M}" if state and state.due else "new"
        table.add_row(card.id, due_str, _preview(render_blocks(card.question_content)))
    console.print(table)


@app.command()
def grade(
    deck_id: str = _deck_argument,
    card_id: str = typer.Argument(..., help="Id of the graded card."),  # noqa: B008
    rating: int = typer.Argument(  # noqa: B008
        ..., help="1=Again, 2=Hard, 3=Good, 4=Easy."
    ),
    data_dir: Optional[Path] = _data_dir_option,
):
    """Record one grading event for a card."""
    try:
        store, resolved = _open_deck(deck_id, data_dir)
        if card_id not in {card.id for card in resolved.cards}:
            console.print(
                f"[bold red]Error:[/bold red] card '{card_id}' is not in deck '{resolved.id}'."
            )
            raise typer.Exit(code=1)
        if card_id not in {card.id for card in project_cards(resolved.cards)}:
            console.print(
                f"[bold red]Error:[/bold red] card '{card_id}' has nothing to practice "
                "(no answer and no choices)."
            )
            raise typer.Exit(code=1)
        new_state = _make_engine(store).grade_card(card_id, rating)
    except ValueError as e:
        _fail("Invalid rating", e)
    except FlashdeckError as e:
        _fail("Grading was not saved", e)

    due_str = f"{new_state.due:%Y-%m-%d %H:%M}" if new_state.due else "unscheduled"
    console.print(f"[green]Saved.[/green] Card {card_id} next due {due_str}.")


@app.command()
def review(
    deck_id: str = _deck_argument,
    data_dir: Optional[Path] = _data_dir_option,
    mode: str = _mode_option,
    order: Optional[str] = typer.Option(
        None,
        "--order",
        "-o",
        help="standard or random. Defaults to the deck's shuffle setting.",
    ),
    limit: int = typer.Option(
        20, "--limit", "-l", help="Maximum number of cards in this session."
    ),
):
    """Starts an interactive review session for a deck."""
    try:
        store, resolved = _open_deck(deck_id, data_dir)
        if order is None:
            shuffle = resolved.settings.shuffle if resolved.settings else False
            order = "random" if shuffle else "standard"
        engine = _make_engine(store)
        cards = engine.get_due_cards(resolved, mode, order)[:limit]
    except ValueError as e:
        _fail("Invalid option", e)
    except DeckError as e:
        _fail("Could not load deck", e)
    except FlashdeckError as e:
        _fail("Could not load activity", e)

    console.print(f"Starting review for deck: [bold cyan]{resolved.name}[/bold cyan]")
    start_review_flow(engine, cards)


@app.command()
def history(
    deck_id: str = _deck_argument,
    card_id: str = typer.Argument(..., help="Id of the card."),  # noqa: B008
    data_dir: Optional[Path] = _data_dir_option,
):
    """Show the review log of one card."""
    settings = get_settings()
    store = ActivityStore(root=data_dir or settings.data_dir)
    try:
        store.bind(deck_id)
        store.load()
    except FlashdeckError as e:
        _fail("Could not load activity", e)

    entries = store.get_review_log(card_id)
    if not entries:
        console.print(f"[yellow]No reviews recorded for card {card_id}.[/yellow]")
        return

    table = Table(title=f"Reviews of {card_id}")
    table.add_column("Reviewed", style="cyan")
    table.add_column("Rating", style="magenta")
    table.add_column("Next due", style="yellow")
    for entry in entries:
        extra = entry.model_extra or {}
        table.add_row(
            f"{entry.review:%Y-%m-%d %H:%M}" if entry.review else "-",
            str(extra.get("rating", "-")),
            f"{entry.due:%Y-%m-%d %H:%M}" if entry.due else "-",
        )
    console.print(table)


@app.command()
def register(
    file: Path = typer.Argument(  # noqa: B008
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Deck file to register.",
    ),
    data_dir: Optional[Path] = _data_dir_option,
):
    """Validate a deck file and store it under the data dir."""
    root = data_dir or get_settings().data_dir
    try:
        registered = register_deck(file.read_bytes(), file.name, root)
    except DeckError as e:
        _fail("Invalid deck", e)
    except OSError as e:
        _fail("Could not store deck", e)

    console.print(
        f"[bold green]Registered[/bold green] '{registered.deck.name}' "
        f"as [cyan]{registered.deck_id}[/cyan]"
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """
    Run the CLI application.

    If an unexpected exception occurs, print a bold red error message to the console and exit the process with status code 1.
    """
    try:
        app()
    except Exception as e:
        console.print(f"[bold red]UNEXPECTED ERROR: {e}[/bold red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
