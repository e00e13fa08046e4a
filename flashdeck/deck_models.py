"""
Pydantic models for OFS deck documents.

Content blocks form a closed tagged union discriminated by their mandatory
``type`` field. Blocks with an unknown ``type`` are kept as
``UnrecognizedContent`` so newer decks still load; projection ignores them.
"""

from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    field_validator,
    model_validator,
)

TEXT = "text"
MARKDOWN = "markdown"
HTML = "html"
AUDIO = "audio"
MULTIPLE_CHOICE = "multiple-choice"

KNOWN_CONTENT_TYPES = frozenset({TEXT, MARKDOWN, HTML, AUDIO, MULTIPLE_CHOICE})
UNRECOGNIZED = "unrecognized"


class _TextLike(BaseModel):
    """Shared shape of text, markdown and html blocks."""

    model_config = ConfigDict(extra="allow")

    inline: str = Field(default="", description="The block's text.")
    direction: Optional[Literal["ltr", "rtl", "auto"]] = None

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_content(cls, data: Any) -> Any:
        """Older decks carry the text under ``content`` instead of ``inline``."""
        if isinstance(data, dict) and "inline" not in data:
            legacy = data.get("content")
            if isinstance(legacy, str):
                data = {k: v for k, v in data.items() if k != "content"}
                data["inline"] = legacy
        return data

    @property
    def text(self) -> str:
        return self.inline


class TextContent(_TextLike):
    type: Literal["text"] = TEXT
    language: Optional[str] = None
    font: Optional[str] = None


class MarkdownContent(_TextLike):
    type: Literal["markdown"] = MARKDOWN


class HtmlContent(_TextLike):
    type: Literal["html"] = HTML


class AudioContent(BaseModel):
    """
    Audio attached to a side. Exactly one source is effective, chosen by
    precedence: remote URL, then inline base64 payload, then local file.
    """

    model_config = ConfigDict(extra="allow")

    type: Literal["audio"] = AUDIO
    url: Optional[str] = None
    base64: Optional[str] = None
    file: Optional[str] = None
    mime: Optional[str] = None
    controls: Optional[bool] = None
    autoplay: Optional[bool] = None

    @model_validator(mode="after")
    def require_source(self) -> "AudioContent":
        if not (self.url or self.base64 or self.file):
            raise ValueError(
                "audio content needs one of 'url', 'base64' or 'file'"
            )
        return self

    @property
    def source_kind(self) -> str:
        if self.url:
            return "url"
        if self.base64:
            return "base64"
        return "file"

    @property
    def source(self) -> str:
        return getattr(self, self.source_kind)


def _text_like_kind(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return "plain"
    if isinstance(value, dict):
        kind = value.get("type", TEXT)
        return kind if kind in (TEXT, MARKDOWN, HTML) else None
    return getattr(value, "type", None)


# A bare string or a text/markdown/html block; used for option content,
# hints and explanations.
TextValue = Annotated[
    Union[
        Annotated[str, Tag("plain")],
        Annotated[TextContent, Tag(TEXT)],
        Annotated[MarkdownContent, Tag(MARKDOWN)],
        Annotated[HtmlContent, Tag(HTML)],
    ],
    Discriminator(_text_like_kind),
]


def text_of(value: Optional[Any]) -> str:
    """Plain text of a TextValue; empty string for None."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return value.text


def format_of(value: Optional[Any]) -> str:
    """Display format of a TextValue: markdown, html, or plain."""
    kind = getattr(value, "type", None)
    if kind in (MARKDOWN, HTML):
        return kind
    return "plain"


class ChoiceOption(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    content: TextValue
    description: Optional[TextValue] = None
    hint: Optional[TextValue] = None


class MultipleChoiceContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Literal["multiple-choice"] = MULTIPLE_CHOICE
    options: List[ChoiceOption] = Field(..., min_length=1)
    correct: Union[str, List[str]]
    hint: Optional[TextValue] = None
    explanation: Optional[TextValue] = None

    @model_validator(mode="after")
    def check_correct_ids(self) -> "MultipleChoiceContent":
        option_ids = {option.id for option in self.options}
        unknown = [cid for cid in self.correct_ids if cid not in option_ids]
        if not self.correct_ids:
            raise ValueError("'correct' must name at least one option")
        if unknown:
            raise ValueError(
                f"'correct' references unknown option ids: {unknown}"
            )
        return self

    @property
    def correct_ids(self) -> List[str]:
        if isinstance(self.correct, str):
            return [self.correct]
        return list(self.correct)


class UnrecognizedContent(BaseModel):
    """A block whose ``type`` this version does not know."""

    model_config = ConfigDict(extra="allow")

    type: str


def _content_kind(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        kind = value.get("type")
    else:
        kind = getattr(value, "type", None)
    if not isinstance(kind, str):
        # No tag: pydantic reports the missing discriminator.
        return None
    return kind if kind in KNOWN_CONTENT_TYPES else UNRECOGNIZED


ContentBlock = Annotated[
    Union[
        Annotated[TextContent, Tag(TEXT)],
        Annotated[MarkdownContent, Tag(MARKDOWN)],
        Annotated[HtmlContent, Tag(HTML)],
        Annotated[AudioContent, Tag(AUDIO)],
        Annotated[MultipleChoiceContent, Tag(MULTIPLE_CHOICE)],
        Annotated[UnrecognizedContent, Tag(UNRECOGNIZED)],
    ],
    Discriminator(_content_kind),
]


class Side(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = Field(..., min_length=1, description="Role, e.g. 'term'.")
    content: List[ContentBlock] = Field(default_factory=list)


class Card(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    sides: List[Side] = Field(..., min_length=1)
    hint: Optional[TextValue] = None

    def side(self, role: str) -> Optional[Side]:
        """First side with the given role, if any."""
        for side in self.sides:
            if side.type == role:
                return side
        return None


class DeckSettings(BaseModel):
    model_config = ConfigDict(extra="allow")

    shuffle: bool = False


class Deck(BaseModel):
    """
    A named collection of cards, optionally extending other decks.

    Unknown top-level keys (learning methods and the like) are preserved.
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    author: Optional[str] = None
    settings: Optional[DeckSettings] = None
    cards: List[Card] = Field(default_factory=list)
    extends: Optional[List[str]] = None

    @field_validator("id", "version", "name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @model_validator(mode="after")
    def cards_or_extensions(self) -> "Deck":
        if not self.cards and not self.extends:
            raise ValueError(
                "deck must have at least one card unless it extends other decks"
            )
        return self


class ResolvedDeck(Deck):
    """A deck whose cards include everything inherited from its extensions."""

    skipped_extensions: List[str] = Field(
        default_factory=list,
        description="Extension locations that could not be loaded.",
    )
