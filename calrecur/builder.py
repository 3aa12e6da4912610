"""Mutable field accumulator used to compose instants."""

from dataclasses import dataclass
from datetime import date, datetime

from calrecur.timeutil import month_length, year_length
from calrecur.values import comparable


@dataclass
class DateBuilder:
    """Year, month, day, hour, minute and second, any of which may overflow.

    Generators write their own field and read the larger ones.
    ``normalize`` folds out-of-range fields into a valid calendar position
    (day 32 of January becomes February 1st, hour 24 the next day, ...).
    """

    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0

    @classmethod
    def from_value(cls, value: date) -> "DateBuilder":
        if isinstance(value, datetime):
            return cls(
                value.year, value.month, value.day,
                value.hour, value.minute, value.second,
            )
        return cls(value.year, value.month, value.day)

    def set_date(self, value: date) -> None:
        self.year, self.month, self.day = value.year, value.month, value.day

    def set_value(self, value: date) -> None:
        self.set_date(value)
        if isinstance(value, datetime):
            self.hour, self.minute, self.second = value.hour, value.minute, value.second

    def normalize(self) -> None:
        self._normalize_time()
        self._normalize_date()

    def _normalize_time(self) -> None:
        carry, self.second = divmod(self.second, 60)
        self.minute += carry
        carry, self.minute = divmod(self.minute, 60)
        self.hour += carry
        carry, self.hour = divmod(self.hour, 24)
        self.day += carry

    def _normalize_date(self) -> None:
        years, month0 = divmod(self.month - 1, 12)
        self.year += years
        self.month = month0 + 1

        while self.day <= 0:
            # borrow the year that ends just before this month
            self.day += year_length(self.year if self.month > 2 else self.year - 1)
            self.year -= 1

        while True:
            if self.month == 1:
                days = year_length(self.year)
                if self.day > days:
                    self.year += 1
                    self.day -= days
                    continue
            days = month_length(self.year, self.month)
            if self.day <= days:
                break
            self.day -= days
            self.month += 1
            if self.month > 12:
                self.month = 1
                self.year += 1

    def to_date(self) -> date:
        self.normalize()
        return date(self.year, self.month, self.day)

    def to_datetime(self) -> datetime:
        self.normalize()
        return datetime(
            self.year, self.month, self.day, self.hour, self.minute, self.second
        )

    def compare_to(self, value: date) -> int:
        """Compare the builder to ``value``.

        Time fields take part only when ``value`` carries a time.
        """
        self.normalize()
        if isinstance(value, datetime):
            mine = comparable(
                datetime(self.year, self.month, self.day, self.hour, self.minute, self.second)
            )
        else:
            mine = comparable(date(self.year, self.month, self.day))
        other = comparable(value)
        return (mine > other) - (mine < other)

    def __str__(self) -> str:
        return (
            f"{self.year}-{self.month}-{self.day} "
            f"{self.hour}:{self.minute}:{self.second}"
        )
