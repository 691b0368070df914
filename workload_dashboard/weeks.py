"""Week keys and the week axis shared by every dashboard series.

A week key is ``YYYY-Wnn`` using ISO week numbering (weeks start on
Monday, the year is the ISO week-year). Keys are zero padded, so sorting
them as strings sorts them chronologically.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional


def week_key(d: date) -> str:
    if isinstance(d, datetime):
        d = d.date()
    year, week, _ = d.isocalendar()
    return f"{year}-W{week:02d}"


def week_start(d: date) -> date:
    """Monday of the week containing ``d``."""
    if isinstance(d, datetime):
        d = d.date()
    return d - timedelta(days=d.weekday())


def effective_date(due_date, created_at) -> Optional[date]:
    value = due_date if due_date is not None else created_at
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        return value.date()
    return value


def week_range(start: date, end: date) -> List[str]:
    """Every week key from the week of ``start`` to the week of ``end``, inclusive."""
    out = []
    curr = week_start(start)
    last = week_start(end)
    while curr <= last:
        out.append(week_key(curr))
        curr += timedelta(days=7)
    return out


def reconcile_weeks(start: Optional[date], end: Optional[date], *series: Iterable[str],
                    today: Optional[date] = None) -> List[str]:
    """Build the week axis for a dashboard response.

    With both bounds the axis is the full range, whether or not any week
    has data. Otherwise it is the sorted union of the weeks present in
    ``series``. An empty axis falls back to the current week so the
    response always has at least one point.
    """
    if start is not None and end is not None:
        weeks = week_range(start, end)
    else:
        seen = set()
        for keys in series:
            seen.update(keys)
        weeks = sorted(seen)
    if not weeks:
        weeks = [week_key(today or date.today())]
    return weeks
