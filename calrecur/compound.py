"""Union of inclusion iterators minus exclusion iterators."""

import heapq
import itertools
from collections.abc import Iterable
from datetime import date

from typing_extensions import override

from calrecur.iterators import RecurrenceIterator
from calrecur.timeutil import naive_utc
from calrecur.values import comparable


class _Head:
    """An iterator together with the value it most recently produced."""

    __slots__ = ("inclusion", "iterator", "value", "key")

    def __init__(self, inclusion: bool, iterator: RecurrenceIterator):
        self.inclusion = inclusion
        self.iterator = iterator
        self.value: date | None = None
        self.key = 0

    def shift(self) -> bool:
        """Load the next value; False when the iterator is exhausted."""
        if not self.iterator.has_next():
            return False
        self.value = self.iterator.next()
        self.key = comparable(self.value)
        return True


class CompoundIterator(RecurrenceIterator):
    """Merges several recurrence iterators in order.

    Values produced by more than one inclusion are returned once; a value
    produced by any exclusion is never returned. Values are matched by
    their :func:`~calrecur.values.comparable` key, so a bare date does not
    exclude midnight of the same day.
    """

    def __init__(
        self,
        inclusions: Iterable[RecurrenceIterator],
        exclusions: Iterable[RecurrenceIterator] = (),
    ):
        self._heap: list[tuple[int, int, _Head]] = []
        self._order = itertools.count()
        self._pending: _Head | None = None
        self._live_inclusions = 0

        for it in inclusions:
            head = _Head(True, it)
            if head.shift():
                self._push(head)
                self._live_inclusions += 1
        for it in exclusions:
            head = _Head(False, it)
            if head.shift():
                self._push(head)

    def _push(self, head: _Head) -> None:
        heapq.heappush(self._heap, (head.key, next(self._order), head))

    def _pop(self) -> _Head:
        return heapq.heappop(self._heap)[2]

    def _peek_key(self) -> int:
        return self._heap[0][0]

    def _reattach(self, head: _Head) -> None:
        if head.shift():
            self._push(head)
        elif head.inclusion:
            self._live_inclusions -= 1
            # exclusions alone can never produce anything
            if self._live_inclusions == 0:
                self._heap.clear()

    def _require_pending(self) -> None:
        if self._pending is not None:
            return
        excluded_key: int | None = None
        while self._live_inclusions and self._heap:
            inclusion: _Head | None = None
            while self._heap:
                candidate = self._pop()
                if candidate.inclusion:
                    if candidate.key != excluded_key:
                        inclusion = candidate
                        break
                else:
                    excluded_key = candidate.key
                self._reattach(candidate)
                if not self._live_inclusions:
                    return
            if inclusion is None:
                return

            # drain duplicates and exclusions with the same key
            excluded = inclusion.key == excluded_key
            while self._heap and self._peek_key() == inclusion.key:
                match = self._pop()
                excluded |= not match.inclusion
                self._reattach(match)
                if not self._live_inclusions:
                    break
            if not excluded:
                self._pending = inclusion
                return
            self._reattach(inclusion)

    @override
    def has_next(self) -> bool:
        self._require_pending()
        return self._pending is not None

    @override
    def next(self) -> date:
        self._require_pending()
        if self._pending is None:
            raise StopIteration
        head, self._pending = self._pending, None
        value = head.value
        self._reattach(head)
        assert value is not None
        return value

    @override
    def advance_to(self, value: date) -> None:
        target = comparable(naive_utc(value))
        if self._pending is not None:
            if self._pending.key >= target:
                return
            self._pending.iterator.advance_to(value)
            self._reattach(self._pending)
            self._pending = None
        while self._live_inclusions and self._heap and self._peek_key() < target:
            head = self._pop()
            head.iterator.advance_to(value)
            self._reattach(head)
