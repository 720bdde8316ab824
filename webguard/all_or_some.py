"""A value that is either everything or a specific collection."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

T = TypeVar("T")

_EVERYTHING: Any = object()


class AllOrSome(Generic[T]):
    """Either ``All`` (anything is allowed) or ``Some`` specific items. Defaults to ``All``."""

    __slots__ = ("_items",)

    def __init__(self, items: T = _EVERYTHING) -> None:
        self._items = items

    @classmethod
    def all(cls) -> "AllOrSome[T]":
        """Everything is allowed."""
        return cls()

    @classmethod
    def some(cls, items: T) -> "AllOrSome[T]":
        """Only ``items`` are allowed."""
        return cls(items)

    def is_all(self) -> bool:
        return self._items is _EVERYTHING

    def is_some(self) -> bool:
        return not self.is_all()

    @property
    def items(self) -> T | None:
        """The allowed items, or None when everything is allowed."""
        return None if self.is_all() else self._items

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AllOrSome):
            return NotImplemented
        if self.is_all() or other.is_all():
            return self.is_all() and other.is_all()
        return self._items == other._items

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self.is_all():
            return "AllOrSome.all()"
        return f"AllOrSome.some({self._items!r})"