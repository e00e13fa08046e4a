"""
Projects raw deck cards into the normalized cards a practice session shows.
"""

import logging
from typing import Iterable, List, Optional, Tuple

import bleach
from bleach.css_sanitizer import CSSSanitizer

from .constants import DEFINITION_SIDE, TERM_SIDE
from .deck_models import (
    AudioContent,
    Card,
    HtmlContent,
    MarkdownContent,
    MultipleChoiceContent,
    Side,
    TextContent,
    format_of,
    text_of,
)
from .models import NormalizedCard, PracticeContent, QuizOption

logger = logging.getLogger(__name__)

ALLOWED_HTML_TAGS = [
    "p", "br", "strong", "em", "b", "i", "u", "s", "del", "sub", "sup",
    "ul", "ol", "li", "blockquote", "pre", "code", "hr",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "table", "thead", "tbody", "tr", "th", "td",
    "img", "a", "span", "ruby", "rt", "rp",
]
ALLOWED_HTML_ATTRIBUTES = {
    "*": ["class", "style", "lang", "dir"],
    "a": ["href", "title", "target", "rel"],
    "img": ["src", "alt", "title", "width", "height"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan", "scope"],
}
CSS_SANITIZER = CSSSanitizer()

_PRACTICE_TYPES = (TextContent, MarkdownContent, HtmlContent, AudioContent)


def sanitize_html(html: str) -> str:
    """Strip tags and attributes a practice view must not render."""
    return bleach.clean(
        html,
        tags=ALLOWED_HTML_TAGS,
        attributes=ALLOWED_HTML_ATTRIBUTES,
        css_sanitizer=CSS_SANITIZER,
        strip=True,
    )


def _collect_side(
    side: Optional[Side],
) -> Tuple[List[PracticeContent], Optional[MultipleChoiceContent]]:
    """Split a side into displayable blocks and its multiple-choice spec."""
    blocks: List[PracticeContent] = []
    multiple_choice: Optional[MultipleChoiceContent] = None
    if side is None:
        return blocks, multiple_choice

    for block in side.content:
        if isinstance(block, HtmlContent):
            blocks.append(
                block.model_copy(update={"inline": sanitize_html(block.inline)})
            )
        elif isinstance(block, _PRACTICE_TYPES):
            blocks.append(block)
        elif isinstance(block, MultipleChoiceContent):
            if multiple_choice is None:
                multiple_choice = block
            else:
                logger.debug(
                    "Ignoring extra multiple-choice block on side '%s'.",
                    side.type,
                )
    return blocks, multiple_choice


def _option_text(value) -> str:
    text = text_of(value)
    if format_of(value) == "html":
        return sanitize_html(text)
    return text


def _project_options(spec: MultipleChoiceContent) -> List[QuizOption]:
    return [
        QuizOption(
            id=option.id,
            content=_option_text(option.content),
            format=format_of(option.content),
            description=text_of(option.description) or None,
            hint=text_of(option.hint) or None,
        )
        for option in spec.options
    ]


def project(card: Card) -> Optional[NormalizedCard]:
    """
    Build the practice view of a card.

    Returns None for cards with neither a multiple-choice spec on the term
    side nor any answer content on the definition side; such cards cannot be
    practiced.
    """
    question_content, multiple_choice = _collect_side(card.side(TERM_SIDE))
    answer_content, _ = _collect_side(card.side(DEFINITION_SIDE))

    if multiple_choice is None and not answer_content:
        return None

    hint = ""
    explanation = ""
    explanation_format = "plain"
    if multiple_choice is not None:
        hint = text_of(multiple_choice.hint)
        explanation = _option_text(multiple_choice.explanation)
        explanation_format = format_of(multiple_choice.explanation)
    hint = hint or text_of(card.hint)

    return NormalizedCard(
        id=card.id,
        question_content=question_content,
        answer_content=answer_content or None,
        options=_project_options(multiple_choice) if multiple_choice else None,
        correct_ids=set(multiple_choice.correct_ids) if multiple_choice else set(),
        hint=hint or None,
        explanation=explanation or None,
        explanation_format=explanation_format,
    )


def project_cards(cards: Iterable[Card]) -> List[NormalizedCard]:
    """Project cards in order, dropping the ones that cannot be practiced."""
    projected: List[NormalizedCard] = []
    dropped = 0
    for card in cards:
        normalized = project(card)
        if normalized is None:
            dropped += 1
            continue
        projected.append(normalized)
    if dropped:
        logger.warning(
            "Dropped %s card(s) with no answer and no multiple-choice spec.",
            dropped,
        )
    return projected
