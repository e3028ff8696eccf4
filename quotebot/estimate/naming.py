"""Estimate numbers and export file names."""

from __future__ import annotations

import random
import re
import unicodedata
from datetime import date

ESTIMATE_NUMBER_RE = re.compile(r"^INV-(\d{4})-(\d{3,})$")
ILLEGAL_PATH_CHARS_RE = re.compile(r'[\\/:*?"<>|]')
DEFAULT_FILE_TITLE = "견적서"
MAX_TITLE_LENGTH = 20

_ZWJ = "\u200d"


def generate_estimate_number(sequence: int | None = None, year: int | None = None) -> str:
    """INV-{year}-{sequence:03d}.

    Without a sequence a random suffix is used. Only first-run defaults may
    take that path; once a sequence tracker exists its value must be passed.
    """
    if year is None:
        year = date.today().year
    if sequence is None:
        sequence = random.randint(0, 999)
    return f"INV-{year}-{sequence:03d}"


def sequence_from_estimate_number(number: str) -> int | None:
    match = ESTIMATE_NUMBER_RE.match((number or "").strip())
    return int(match.group(2)) if match else None


def _graphemes(text: str) -> list[str]:
    """Split text into user-perceived characters.

    Combining marks, variation selectors and ZWJ-joined code points stay
    attached to the preceding base character.
    """
    clusters: list[str] = []
    for ch in text:
        joins_previous = (
            unicodedata.combining(ch)
            or unicodedata.category(ch) in ("Mn", "Me")
            or "\ufe00" <= ch <= "\ufe0f"
            or ch == _ZWJ
            or (clusters and clusters[-1].endswith(_ZWJ))
        )
        if clusters and joins_previous:
            clusters[-1] += ch
        else:
            clusters.append(ch)
    return clusters


def truncate_graphemes(text: str, limit: int) -> str:
    return "".join(_graphemes(text)[:limit])


def sanitize_title(title: str | None) -> str:
    safe = ILLEGAL_PATH_CHARS_RE.sub("_", (title or "").strip())
    safe = truncate_graphemes(safe, MAX_TITLE_LENGTH)
    return safe or DEFAULT_FILE_TITLE


def generate_default_file_name(title: str | None, date_str: str | None = None, sequence: int = 1) -> str:
    """'{safe_title}_{YYYY-MM-DD}_{sequence:03d}', without extension."""
    if not date_str:
        date_str = date.today().isoformat()
    return f"{sanitize_title(title)}_{date_str}_{sequence:03d}"


def resolve_export_file_name(doc, extension: str, today: date | None = None, sequence: int | None = None) -> str:
    """User-supplied file name wins; otherwise the generated default.

    The extension is appended unless already present (case-insensitive).
    """
    name = (doc.file_name or "").strip()
    if not name:
        if sequence is None:
            sequence = sequence_from_estimate_number(doc.estimate_number) or 1
        day = (today or date.today()).isoformat()
        name = generate_default_file_name(doc.title, day, sequence)
    suffix = f".{extension.lower().lstrip('.')}"
    if not name.lower().endswith(suffix):
        name += suffix
    return name
