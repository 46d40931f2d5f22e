"""
Flashcard network document models.

JSON documents use camelCase keys (sourceId, createdAt, fontSize); the
models accept both those and the snake_case attribute names.

Validation on load rejects:
- non-string ids and names
- positions whose coordinates are not numbers
- arrows that reference a side id not present in their flashcard
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator, model_validator
from pydantic.alias_generators import to_camel

from hanzinet.errors import DocumentValidationError

DOCUMENT_VERSION = "1.0.0"

ArrowStyle = Literal["solid", "dashed", "dotted"]


def new_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex[:12]}"


class DocumentModel(BaseModel):
    """Base for document models: camelCase aliases, assignment validation."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# Network
# =============================================================================


class Position(DocumentModel):
    x: float
    y: float

    @field_validator("x", "y", mode="before")
    @classmethod
    def _numeric(cls, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("position coordinates must be numbers")
        return value


class Side(DocumentModel):
    """A rectangular cell holding one value."""

    id: StrictStr
    value: StrictStr = ""
    position: Position
    color: str | None = None
    font_size: float | None = None
    width: float | None = None
    height: float | None = None


class Arrow(DocumentModel):
    """A labelled directed connection between two sides."""

    id: StrictStr
    source_id: StrictStr
    destination_id: StrictStr
    label: StrictStr = ""
    color: str | None = None
    style: ArrowStyle | None = None


class Flashcard(DocumentModel):
    """One flashcard network: sides and the arrows between them."""

    id: StrictStr
    name: StrictStr
    sides: list[Side] = Field(default_factory=list)
    arrows: list[Arrow] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    modified_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _check_references(self) -> Flashcard:
        side_ids = [side.id for side in self.sides]
        if len(side_ids) != len(set(side_ids)):
            raise ValueError(f"flashcard {self.id} has duplicate side ids")
        known = set(side_ids)
        for arrow in self.arrows:
            for end in (arrow.source_id, arrow.destination_id):
                if end not in known:
                    raise ValueError(f"arrow {arrow.id} references unknown side {end}")
        return self

    def side(self, side_id: str) -> Side | None:
        return next((s for s in self.sides if s.id == side_id), None)

    def arrow(self, arrow_id: str) -> Arrow | None:
        return next((a for a in self.arrows if a.id == arrow_id), None)

    def touch(self) -> None:
        self.modified_at = datetime.now()

    def add_side(self, value: str, x: float, y: float, **extra) -> Side:
        side = Side(id=new_id("side-"), value=value, position=Position(x=x, y=y), **extra)
        self.sides = [*self.sides, side]
        self.touch()
        return side

    def move_side(self, side_id: str, x: float, y: float) -> None:
        side = self.side(side_id)
        if side is None:
            raise DocumentValidationError(f"Unknown side {side_id}")
        side.position = Position(x=x, y=y)
        self.touch()

    def remove_side(self, side_id: str) -> list[Arrow]:
        """Remove a side and every arrow touching it. Returns the removed arrows."""
        removed = [a for a in self.arrows if side_id in (a.source_id, a.destination_id)]
        kept_arrows = [a for a in self.arrows if a not in removed]
        kept_sides = [s for s in self.sides if s.id != side_id]
        # arrows first so the reference check never sees a dangling arrow
        self.arrows = kept_arrows
        self.sides = kept_sides
        self.touch()
        return removed

    def add_arrow(self, source_id: str, destination_id: str, label: str = "", **extra) -> Arrow:
        for end in (source_id, destination_id):
            if self.side(end) is None:
                raise DocumentValidationError(f"Arrow endpoint {end} is not a side of {self.id}")
        arrow = Arrow(
            id=new_id("arrow-"),
            source_id=source_id,
            destination_id=destination_id,
            label=label,
            **extra,
        )
        self.arrows = [*self.arrows, arrow]
        self.touch()
        return arrow

    def remove_arrow(self, arrow_id: str) -> None:
        self.arrows = [a for a in self.arrows if a.id != arrow_id]
        self.touch()


class FlashcardSet(DocumentModel):
    """A document: an ordered collection of flashcards."""

    id: StrictStr
    name: StrictStr
    description: str | None = None
    flashcards: list[Flashcard] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    modified_at: datetime = Field(default_factory=datetime.now)
    version: StrictStr = DOCUMENT_VERSION

    def flashcard(self, flashcard_id: str) -> Flashcard | None:
        return next((f for f in self.flashcards if f.id == flashcard_id), None)

    def all_arrows(self) -> list[tuple[Flashcard, Arrow]]:
        return [(card, arrow) for card in self.flashcards for arrow in card.arrows]


# =============================================================================
# Templates
# =============================================================================


class TemplateSide(DocumentModel):
    """Side shape without id or value."""

    position: Position
    color: str | None = None
    font_size: float | None = None
    width: float | None = None
    height: float | None = None


class TemplateArrow(DocumentModel):
    """Arrow shape with endpoints given as side indices."""

    source_index: int
    destination_index: int
    label: str = ""
    color: str | None = None
    style: ArrowStyle | None = None


class Template(DocumentModel):
    """Structural skeleton of a flashcard network."""

    id: StrictStr
    name: StrictStr
    description: str | None = None
    sides: list[TemplateSide] = Field(default_factory=list)
    arrows: list[TemplateArrow] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
