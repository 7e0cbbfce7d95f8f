"""
Expense Report Selector

Selects the expense rows of a calendar-date range and totals them.

`select` is a pure function of its inputs: the same snapshot, mode, dates,
`today` and timezone always give the same report, so the presentation
layer can preview a report and then print it by calling it again.

Calendar days are local: a day runs from 00:00:00.000 to 23:59:59.999 in
the given timezone (system local time when none is given). Both ends of a
range are inclusive.
"""

from datetime import date, datetime, time, tzinfo
from decimal import Decimal
from typing import Iterable, Optional, Union

from shared_ledger.errors import (
    InvalidDateRangeError,
    MissingDateRangeError,
    ValidationError,
)
from shared_ledger.ledger.store import order_for_display
from shared_ledger.models.ledger import ExpenseReport, ReportMode, Transaction


END_OF_DAY = time(23, 59, 59, 999000)

DateLike = Union[date, datetime, str]


def _as_date(value: Optional[DateLike]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Invalid date: {value!r}")
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}")


def local_today(tz: Optional[tzinfo] = None) -> date:
    """Today's calendar date in `tz`, or in system local time."""
    return datetime.now(tz).date()


def day_bounds(
    date_from: date,
    date_to: date,
    tz: Optional[tzinfo] = None,
) -> tuple[datetime, datetime]:
    """Aware datetimes for the start of `date_from` and the end of `date_to`."""
    start = datetime.combine(date_from, time.min)
    end = datetime.combine(date_to, END_OF_DAY)
    if tz is None:
        # Naive times are read as system local time
        return start.astimezone(), end.astimezone()
    return start.replace(tzinfo=tz), end.replace(tzinfo=tz)


def select(
    snapshot: Iterable[Transaction],
    mode: Union[ReportMode, str],
    date_from: Optional[DateLike] = None,
    date_to: Optional[DateLike] = None,
    *,
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> ExpenseReport:
    """
    Build an expense report.

    Args:
        snapshot: Current ledger transactions
        mode: 'today' or 'custom'
        date_from: First day (custom mode), date or ISO string
        date_to: Last day, inclusive (custom mode)
        today: Override for the current date (defaults to local today)
        tz: Timezone that defines calendar days

    Raises:
        ValidationError: unknown mode, or a bound that is not a date
        MissingDateRangeError: custom mode without both dates
        InvalidDateRangeError: date_from is after date_to
    """
    try:
        mode = ReportMode(mode)
    except ValueError:
        raise ValidationError(f"Unknown report mode: {mode!r}")

    if mode is ReportMode.TODAY:
        start_day = end_day = today or local_today(tz)
    else:
        start_day, end_day = _as_date(date_from), _as_date(date_to)
        if start_day is None or end_day is None:
            raise MissingDateRangeError()
        if start_day > end_day:
            raise InvalidDateRangeError(start_day, end_day)

    start, end = day_bounds(start_day, end_day, tz)

    rows = order_for_display(
        t for t in snapshot
        if t.is_expense and start <= t.date <= end
    )
    total = sum((t.amount for t in rows), Decimal("0"))

    return ExpenseReport(
        mode=mode,
        date_from=start_day,
        date_to=end_day,
        rows=tuple(rows),
        total=total,
    )
