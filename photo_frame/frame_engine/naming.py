"""Output file naming for framed images."""

from __future__ import annotations

import re
from collections.abc import Iterable

from photo_frame import config
from photo_frame.models import OutputFormat

_EXT_RE = re.compile(r"\.[^/.]+$")


def strip_extension(display_name: str) -> str:
    """'holiday/IMG_01.jpeg' -> 'IMG_01'; empty names fall back to a fixed stem."""
    base = re.split(r"[\\/]", display_name or "")[-1]
    stem = _EXT_RE.sub("", base)
    return stem or config.FALLBACK_STEM


def output_name(display_name: str, fmt: OutputFormat) -> str:
    return f"{strip_extension(display_name)}.{fmt.extension}"


def unique_names(names: Iterable[str]) -> list[str]:
    """Disambiguate case-insensitive duplicates with -1, -2, ... suffixes.

    The first occurrence keeps its name; later ones get the lowest free suffix.
    """
    taken: set[str] = set()
    result: list[str] = []
    for name in names:
        candidate = name
        if candidate.casefold() in taken:
            stem, dot, ext = name.rpartition(".")
            if not dot:
                stem, ext = name, ""
            n = 1
            while True:
                candidate = f"{stem}-{n}.{ext}" if dot else f"{stem}-{n}"
                if candidate.casefold() not in taken:
                    break
                n += 1
        taken.add(candidate.casefold())
        result.append(candidate)
    return result
