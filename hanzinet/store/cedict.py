"""
Dictionary import: CC-CEDICT entries and SUBTLEX-style frequency lists.

CC-CEDICT line format:

    傳統 传统 [chuan2 tong3] /tradition/traditional/

Frequency lists are tab-separated with the item in the first column and
are ranked by line order after a three-line header.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from loguru import logger

from .models import UNRANKED

CEDICT_LINE = re.compile(r"^(\S+)\s+(\S+)\s+\[([^\]]*)\]\s+/(.*)/\s*$")
FREQUENCY_HEADER_LINES = 3


@dataclass
class CedictEntry:
    traditional: str
    simplified: str
    pinyin: str
    definitions: list[str]

    @property
    def is_word(self) -> bool:
        return len(self.simplified) > 1

    @property
    def definition(self) -> str:
        return "; ".join(self.definitions)


def parse_cedict_line(line: str) -> CedictEntry | None:
    """Parse one dictionary line; comments, blanks and malformed lines give None."""
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    match = CEDICT_LINE.match(line)
    if match is None:
        return None
    traditional, simplified, pinyin, defs = match.groups()
    definitions = [d.strip() for d in defs.split("/") if d.strip()]
    if not definitions:
        return None
    return CedictEntry(traditional, simplified, pinyin.strip().lower(), definitions)


def parse_cedict(lines: Iterable[str]) -> Iterator[CedictEntry]:
    skipped = 0
    for line in lines:
        entry = parse_cedict_line(line)
        if entry is None:
            if line.strip() and not line.startswith("#"):
                skipped += 1
            continue
        yield entry
    if skipped:
        logger.warning(f"Skipped {skipped} malformed dictionary lines")


def merge_entries(entries: Iterable[CedictEntry]) -> dict[str, CedictEntry]:
    """Combine entries sharing a simplified form; readings become alternatives."""
    merged: dict[str, CedictEntry] = {}
    for entry in entries:
        existing = merged.get(entry.simplified)
        if existing is None:
            merged[entry.simplified] = CedictEntry(
                entry.traditional, entry.simplified, entry.pinyin, list(entry.definitions)
            )
            continue
        readings = [r.strip() for r in existing.pinyin.split(";")]
        if entry.pinyin not in readings:
            existing.pinyin = f"{existing.pinyin}; {entry.pinyin}"
        for definition in entry.definitions:
            if definition not in existing.definitions:
                existing.definitions.append(definition)
    return merged


def parse_frequency_list(lines: Iterable[str], header_lines: int = FREQUENCY_HEADER_LINES) -> dict[str, int]:
    """Item -> rank (1-based, by order of appearance)."""
    ranks: dict[str, int] = {}
    rank = 1
    for index, line in enumerate(lines):
        if index < header_lines or not line.strip():
            continue
        item = line.split("\t")[0].strip()
        if not item or item in ranks:
            continue
        ranks[item] = rank
        rank += 1
    return ranks


def read_lines(path: Path, encoding: str = "utf-8") -> list[str]:
    return Path(path).read_text(encoding=encoding, errors="replace").splitlines()


def rank_for(entry: CedictEntry, character_ranks: dict[str, int], word_ranks: dict[str, int]) -> int:
    table = word_ranks if entry.is_word else character_ranks
    return table.get(entry.simplified, UNRANKED)
