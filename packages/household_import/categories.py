"""Category helpers shared by validation, commit, and the terminal UI.

Exports
-------
- ``normalize_name(...)`` / ``name_key(...)``: whitespace normalization and
  the case-folded lookup key used everywhere a category name is matched.
- ``validate_name(...)``: light checks applied before a create call.
- ``random_color_source(...)``: the injectable color picker used when the
  import creates categories. Tests pass a seeded ``random.Random`` or a
  constant callable so results are deterministic.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass

type ColorSource = Callable[[], str]

DEFAULT_ICON = "folder"

CATEGORY_COLORS: tuple[str, ...] = (
    "#FF6B6B",
    "#4ECDC4",
    "#45B7D1",
    "#96CEB4",
    "#FFEAA7",
    "#DDA0DD",
    "#98D8C8",
    "#F7DC6F",
    "#BB8FCE",
    "#85C1E9",
    "#F8B500",
    "#FF8C00",
    "#00CED1",
    "#FF69B4",
    "#32CD32",
    "#FFD700",
)


def normalize_name(name: str) -> str:
    """Return a trimmed, single-spaced representation of ``name``.

    Case is preserved; see :func:`name_key` for matching.
    """

    return " ".join(name.strip().split())


def name_key(name: str) -> str:
    return normalize_name(name).lower()


@dataclass(frozen=True, slots=True)
class NameValidation:
    ok: bool
    reason: str | None = None


def validate_name(name: str, *, min_len: int = 1, max_len: int = 64) -> NameValidation:
    n = normalize_name(name)
    if len(n) < min_len:
        return NameValidation(False, "Name cannot be empty")
    if len(n) > max_len:
        return NameValidation(False, f"Name must be at most {max_len} characters")
    return NameValidation(True, None)


def random_color_source(rng: random.Random | None = None) -> ColorSource:
    """Return a callable picking a palette color with ``rng`` (module RNG by default)."""

    picker = rng or random.Random()

    def _pick() -> str:
        return picker.choice(CATEGORY_COLORS)

    return _pick


__all__ = [
    "CATEGORY_COLORS",
    "DEFAULT_ICON",
    "ColorSource",
    "NameValidation",
    "name_key",
    "normalize_name",
    "random_color_source",
    "validate_name",
]
