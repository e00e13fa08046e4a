"""
Command-line interface for practicing a deck.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from flashdeck.deck_models import AudioContent
from flashdeck.exceptions import ActivityStoreError
from flashdeck.models import NormalizedCard, PracticeContent
from flashdeck.practice import PracticeEngine

logger = logging.getLogger(__name__)
console = Console()


def render_blocks(blocks: Optional[List[PracticeContent]]) -> str:
    """Plain-text rendering of content blocks for the terminal."""
    parts = []
    for block in blocks or []:
        if isinstance(block, AudioContent):
            parts.append(f"[audio: {block.source}]")
        else:
            parts.append(block.text)
    return "\n".join(parts)


def _get_user_rating() -> int:
    """
    Prompt until the user enters a rating between 1 and 4.
    """
    while True:
        try:
            rating_str = console.input(
                "[bold]Rating (1:Again, 2:Hard, 3:Good, 4:Easy): [/bold]"
            )
            rating = int(rating_str)
            if 1 <= rating <= 4:
                return rating
            console.print(
                "[bold red]Invalid rating. Please enter a number between 1 and 4.[/bold red]"
            )
        except (ValueError, TypeError):
            console.print(
                "[bold red]Invalid input. Please enter a number.[/bold red]"
            )


def _ask_choice(card: NormalizedCard) -> None:
    """Show the options of a multiple-choice card and check the answer."""
    for option in card.options or []:
        console.print(f"  [bold]{option.id}[/bold]) {escape(option.content)}")
    selected = console.input("[italic]Your answer: [/italic]").strip()
    if card.is_correct(selected):
        console.print("[green]Correct![/green]")
    else:
        correct = ", ".join(sorted(card.correct_ids))
        console.print(f"[red]Incorrect.[/red] Correct: [bold]{correct}[/bold]")


def _display_card(card: NormalizedCard) -> None:
    """
    Show the question, let the user answer, then reveal answer and explanation.
    """
    console.print(
        Panel(escape(render_blocks(card.question_content) or card.id), title="Question", border_style="green")
    )
    if card.hint:
        console.print(f"[dim]Hint: {escape(card.hint)}[/dim]")

    if card.is_multiple_choice:
        _ask_choice(card)
    else:
        console.input("[italic]Press Enter to see the answer...[/italic]")

    if card.answer_content:
        console.print(
            Panel(escape(render_blocks(card.answer_content)), title="Answer", border_style="blue")
        )
    if card.explanation:
        console.print(Panel(escape(card.explanation), title="Explanation", border_style="cyan"))


def start_review_flow(engine: PracticeEngine, cards: List[NormalizedCard]) -> int:
    """
    Runs an interactive review over ``cards``.

    Returns:
        The number of cards whose grading was saved.
    """
    if not cards:
        console.print("[bold yellow]No cards are due for review.[/bold yellow]")
        return 0

    console.print("[bold cyan]Starting review session...[/bold cyan]")
    saved = 0
    for index, card in enumerate(cards, start=1):
        console.rule(f"[bold]Card {index} of {len(cards)}[/bold]")
        _display_card(card)
        rating = _get_user_rating()

        try:
            new_state = engine.grade_card(card.id, rating)
        except ActivityStoreError as e:
            logger.error(f"Failed to save review for {card.id}: {e}")
            console.print(
                "[bold red]Error saving review; this grading was not recorded.[/bold red]"
            )
            continue

        saved += 1
        if new_state.due is not None:
            delta = new_state.due - datetime.now(timezone.utc)
            console.print(
                f"[green]Reviewed.[/green] Next due {new_state.due:%Y-%m-%d %H:%M} "
                f"(in {max(delta.days, 0)} days)."
            )
        else:
            console.print("[green]Reviewed.[/green]")
        console.print("")

    console.print("[bold cyan]Review session finished. Well done![/bold cyan]")
    return saved
