"""
JSON file storage for flashcard sets and templates.

Loading validates the whole document before returning it; a document
that fails validation raises and nothing is returned. Saves write to a
temporary file and move it into place.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from hanzinet.errors import DocumentValidationError, PersistenceError

from .models import Flashcard, FlashcardSet, Template, new_id
from .templates import parse_template


def _format_errors(error: ValidationError) -> list[str]:
    return [f"{'.'.join(map(str, err['loc'])) or 'document'}: {err['msg']}" for err in error.errors()]


def parse_flashcard_set(data: Any) -> FlashcardSet:
    """
    Validate raw JSON data as a flashcard set.

    Raises:
        DocumentValidationError: With one message per problem found
    """
    if not isinstance(data, dict):
        raise DocumentValidationError("Flashcard set must be a JSON object")
    try:
        return FlashcardSet.model_validate(data)
    except ValidationError as e:
        raise DocumentValidationError("Invalid flashcard set", _format_errors(e)) from e


def _read_json(path: Path) -> Any:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise PersistenceError(f"Cannot read {path}: {e}") from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentValidationError(f"{path} is not valid JSON: {e}") from e


def write_json_atomic(path: Path, data: Any) -> None:
    """Write JSON next to the target and rename it into place."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise PersistenceError(f"Cannot write {path}: {e}") from e


# =============================================================================
# Flashcard sets
# =============================================================================


def new_flashcard_set(name: str, description: str | None = None) -> FlashcardSet:
    """An empty set with one empty flashcard."""
    flashcard = Flashcard(id=new_id("card-"), name="Flashcard 1")
    return FlashcardSet(id=new_id("set-"), name=name, description=description, flashcards=[flashcard])


def load_flashcard_set(path: Path) -> FlashcardSet:
    """Load and validate a flashcard set file."""
    flashcard_set = parse_flashcard_set(_read_json(path))
    logger.info(
        f"Loaded flashcard set '{flashcard_set.name}' "
        f"({len(flashcard_set.flashcards)} flashcards) from {path}"
    )
    return flashcard_set


def save_flashcard_set(flashcard_set: FlashcardSet, path: Path) -> None:
    write_json_atomic(path, flashcard_set.to_json_dict())
    logger.info(f"Saved flashcard set '{flashcard_set.name}' to {path}")


# =============================================================================
# Templates
# =============================================================================


def load_template(path: Path) -> Template:
    return parse_template(_read_json(path))


def save_template(template: Template, directory: Path) -> Path:
    path = Path(directory) / f"{template.id}.json"
    write_json_atomic(path, template.to_json_dict())
    logger.info(f"Saved template '{template.name}' to {path}")
    return path


def list_templates(directory: Path) -> list[Template]:
    """All valid templates in a directory; invalid files are skipped with a warning."""
    directory = Path(directory)
    if not directory.exists():
        return []
    templates = []
    for path in sorted(directory.glob("*.json")):
        try:
            templates.append(load_template(path))
        except DocumentValidationError as e:
            logger.warning(f"Skipping template {path.name}: {e}")
    return templates
