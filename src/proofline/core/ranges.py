"""Structured helpers for representing half-open text spans."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Iterator


@dataclass(slots=True, frozen=True)
class TextSpan(Sequence[int]):
    """Half-open ``[start, end)`` character range into a document."""

    start: int
    end: int

    def __post_init__(self) -> None:
        start = self._coerce_index(self.start, "start")
        end = self._coerce_index(self.end, "end")
        if end < start:
            raise ValueError(f"TextSpan end ({end}) precedes start ({start})")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @staticmethod
    def _coerce_index(value: Any, label: str) -> int:
        if isinstance(value, bool):
            raise ValueError(f"TextSpan {label} must be an integer")
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"TextSpan {label} must be an integer") from exc
        if number < 0:
            raise ValueError(f"TextSpan {label} must be non-negative")
        return number

    def __len__(self) -> int:
        return 2

    def __getitem__(self, index: int | slice) -> int | tuple[int, ...]:
        if isinstance(index, slice):
            return self.to_tuple()[index]
        if index == 0:
            return self.start
        if index == 1:
            return self.end
        raise IndexError("TextSpan index out of range")

    def __iter__(self) -> Iterator[int]:
        yield self.start
        yield self.end

    @property
    def length(self) -> int:
        """Return the width of the span."""

        return self.end - self.start

    def fits(self, text: str) -> bool:
        """Return ``True`` when the span lies inside ``text``."""

        return self.end <= len(text)

    def slice_of(self, text: str) -> str:
        return text[self.start : self.end]

    def shifted(self, delta: int) -> TextSpan:
        """Return the span moved by ``delta`` characters."""

        return TextSpan(self.start + delta, self.end + delta)

    def to_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)

    def to_dict(self) -> dict[str, int]:
        """Return the span using the backend's ``startIndex``/``endIndex`` keys."""

        return {"startIndex": self.start, "endIndex": self.end}


__all__ = ["TextSpan"]
