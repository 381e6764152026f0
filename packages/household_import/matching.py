"""Case-folded name indexes over category and member snapshots.

Indexes are built once per validation pass and are read-only afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from uuid import UUID

from .categories import name_key
from .models import Category, Member


def category_index(categories: Iterable[Category]) -> Mapping[str, UUID]:
    """``{lowercased name: id}``; the first category wins on duplicate names."""

    index: dict[str, UUID] = {}
    for cat in categories:
        index.setdefault(name_key(cat.name), cat.id)
    return MappingProxyType(index)


@dataclass(frozen=True, slots=True)
class MemberMatch:
    member_id: UUID | None
    ambiguous: bool = False

    @property
    def found(self) -> bool:
        return self.member_id is not None


class MemberIndex:
    """Lookup of approved members by case-folded display name."""

    __slots__ = ("_by_name",)

    def __init__(self, members: Iterable[Member]) -> None:
        by_name: dict[str, list[UUID]] = {}
        for m in members:
            if not m.is_active:
                continue
            by_name.setdefault(name_key(m.display_name), []).append(m.id)
        self._by_name: Mapping[str, tuple[UUID, ...]] = MappingProxyType(
            {k: tuple(v) for k, v in by_name.items()}
        )

    def match(self, name: str) -> MemberMatch:
        ids = self._by_name.get(name_key(name), ())
        if len(ids) == 1:
            return MemberMatch(ids[0])
        return MemberMatch(None, ambiguous=len(ids) > 1)


__all__ = ["MemberIndex", "MemberMatch", "category_index"]
