"""Termination conditions (COUNT and UNTIL)."""

from abc import ABC, abstractmethod
from datetime import date

from typing_extensions import override

from calrecur.values import comparable


class Condition(ABC):
    """Decides whether an instance may still be emitted.

    Once a condition rejects an instance the iterator stops, so conditions
    are consulted exactly once per instance, in order.
    """

    @abstractmethod
    def apply(self, value: date) -> bool:
        pass


class CountCondition(Condition):
    """Admits exactly ``count`` instances."""

    def __init__(self, count: int):
        self.count = count
        self._remaining = count

    @override
    def apply(self, value: date) -> bool:
        self._remaining -= 1
        return self._remaining >= 0

    def __repr__(self) -> str:
        return f"CountCondition({self.count})"


class UntilCondition(Condition):
    """Admits instances up to and including ``until``."""

    def __init__(self, until: date):
        self.until = until
        self._key = comparable(until)

    @override
    def apply(self, value: date) -> bool:
        return comparable(value) <= self._key

    def __repr__(self) -> str:
        return f"UntilCondition({self.until.isoformat()})"


class Unbounded(Condition):
    @override
    def apply(self, value: date) -> bool:
        return True

    def __repr__(self) -> str:
        return "Unbounded()"
