"""Ordered set of small signed integers."""

from bisect import bisect_left
from collections.abc import Iterable, Iterator


class IntSet:
    """Sorted, duplicate-free collection of ints.

    Used to de-duplicate by-part lists and to order resolved BYSETPOS
    positions. Iteration is ascending by value, negatives first.
    """

    def __init__(self, values: Iterable[int] = ()):
        self._ints: list[int] = []
        for value in values:
            self.add(value)

    def add(self, value: int) -> None:
        i = bisect_left(self._ints, value)
        if i == len(self._ints) or self._ints[i] != value:
            self._ints.insert(i, value)

    def __contains__(self, value: object) -> bool:
        if not isinstance(value, int):
            return False
        i = bisect_left(self._ints, value)
        return i < len(self._ints) and self._ints[i] == value

    def __len__(self) -> int:
        return len(self._ints)

    def __iter__(self) -> Iterator[int]:
        return iter(self._ints)

    def to_tuple(self) -> tuple[int, ...]:
        return tuple(self._ints)

    def __repr__(self) -> str:
        return f"IntSet({self._ints!r})"


def uniquify(values: Iterable[int]) -> tuple[int, ...]:
    """Sorted tuple of the distinct values."""
    return IntSet(values).to_tuple()
