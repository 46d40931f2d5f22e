"""
Flashcard templates.

A template keeps a flashcard's structure (side positions, sizes, colors
and arrow connections) without its content. Arrow endpoints are stored
as side indices so the template can be applied with fresh ids.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import ValidationError

from hanzinet.errors import TemplateValidationError

from .models import Arrow, Flashcard, Position, Side, Template, TemplateArrow, TemplateSide, new_id


def create_template_from_flashcard(
    flashcard: Flashcard, name: str, description: str | None = None
) -> Template:
    """Extract a flashcard's structure as a template."""
    index = {side.id: i for i, side in enumerate(flashcard.sides)}
    return Template(
        id=new_id("template-"),
        name=name,
        description=description,
        sides=[
            TemplateSide(
                position=side.position.model_copy(),
                color=side.color,
                font_size=side.font_size,
                width=side.width,
                height=side.height,
            )
            for side in flashcard.sides
        ],
        arrows=[
            TemplateArrow(
                source_index=index[arrow.source_id],
                destination_index=index[arrow.destination_id],
                label=arrow.label,
                color=arrow.color,
                style=arrow.style,
            )
            for arrow in flashcard.arrows
        ],
        created_at=datetime.now(),
    )


def template_errors(template: Template) -> list[str]:
    """Structural problems with a template; empty when valid."""
    errors = []
    if not template.id or not template.name:
        errors.append("template needs an id and a name")
    if not template.sides:
        errors.append("template has no sides")
    count = len(template.sides)
    for i, arrow in enumerate(template.arrows):
        for label, value in (("sourceIndex", arrow.source_index), ("destinationIndex", arrow.destination_index)):
            if not 0 <= value < count:
                errors.append(f"arrow {i}: {label} {value} outside [0, {count})")
    return errors


def validate_template(template: Template) -> bool:
    return not template_errors(template)


def parse_template(data: dict[str, Any]) -> Template:
    """
    Build and validate a template from JSON data.

    Raises:
        TemplateValidationError: If the data is malformed or indices are out of range
    """
    try:
        template = Template.model_validate(data)
    except ValidationError as e:
        raise TemplateValidationError(
            "Invalid template", [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()]
        ) from e
    errors = template_errors(template)
    if errors:
        raise TemplateValidationError(f"Invalid template {template.name!r}", errors)
    return template


def apply_template(template: Template, name: str) -> Flashcard:
    """
    Create a new, empty flashcard from a template.

    Raises:
        TemplateValidationError: If the template is invalid
    """
    errors = template_errors(template)
    if errors:
        raise TemplateValidationError(f"Cannot apply template {template.name!r}", errors)

    sides = [
        Side(
            id=new_id("side-"),
            value="",
            position=Position(x=shape.position.x, y=shape.position.y),
            color=shape.color,
            font_size=shape.font_size,
            width=shape.width,
            height=shape.height,
        )
        for shape in template.sides
    ]
    arrows = [
        Arrow(
            id=new_id("arrow-"),
            source_id=sides[shape.source_index].id,
            destination_id=sides[shape.destination_index].id,
            label=shape.label,
            color=shape.color,
            style=shape.style,
        )
        for shape in template.arrows
    ]
    now = datetime.now()
    return Flashcard(id=new_id("card-"), name=name, sides=sides, arrows=arrows, created_at=now, modified_at=now)


def duplicate_flashcard_structure(flashcard: Flashcard, name: str) -> Flashcard:
    """Copy a flashcard with new ids, empty side values and empty arrow labels."""
    id_map = {side.id: new_id("side-") for side in flashcard.sides}
    now = datetime.now()
    return Flashcard(
        id=new_id("card-"),
        name=name,
        sides=[
            side.model_copy(update={"id": id_map[side.id], "value": ""}, deep=True)
            for side in flashcard.sides
        ],
        arrows=[
            arrow.model_copy(
                update={
                    "id": new_id("arrow-"),
                    "source_id": id_map[arrow.source_id],
                    "destination_id": id_map[arrow.destination_id],
                    "label": "",
                }
            )
            for arrow in flashcard.arrows
        ],
        created_at=now,
        modified_at=now,
    )


def template_preview(template: Template) -> dict[str, Any]:
    """Summary for listing templates."""
    return {
        "name": template.name,
        "description": template.description,
        "side_count": len(template.sides),
        "arrow_count": len(template.arrows),
    }
