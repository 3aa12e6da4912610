from .compound import CompoundIterator
from .config import EngineSettings, get_settings
from .factory import (
    create_rdate_iterator,
    create_recurrence_iterator,
    create_rrule_iterator,
    exclude,
    join,
)
from .iterators import RDateIterator, RecurrenceIterator, RRuleIterator
from .recurrence import Recurrence, recurring
from .rule import RecurrenceRule
from .util import DAY, HOUR, MINUTE, SECOND, WEEK
from .values import Frequency, Weekday, WeekdayNum, compare, comparable

__all__ = [
    "Recurrence",
    "RecurrenceRule",
    "recurring",
    "Frequency",
    "Weekday",
    "WeekdayNum",
    "comparable",
    "compare",
    "RecurrenceIterator",
    "RRuleIterator",
    "RDateIterator",
    "CompoundIterator",
    "create_rrule_iterator",
    "create_rdate_iterator",
    "create_recurrence_iterator",
    "join",
    "exclude",
    "EngineSettings",
    "get_settings",
    "SECOND",
    "MINUTE",
    "HOUR",
    "DAY",
    "WEEK",
]
