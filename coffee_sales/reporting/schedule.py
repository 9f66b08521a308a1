"""
Report Scheduling Helpers

The scheduler itself lives outside the package (see workflows/); this module
only computes the rolling window it passes to the report.
"""

import calendar
from datetime import date
from typing import Optional, Tuple


def month_window(day: Optional[date] = None) -> Tuple[date, date]:
    """
    First and last calendar day of the month containing ``day``.

    Args:
        day: Any date in the month; defaults to today

    Returns:
        (first_day, last_day)
    """
    day = day or date.today()
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def previous_month_window(day: Optional[date] = None) -> Tuple[date, date]:
    """Window of the month before the one containing ``day``"""
    first, _ = month_window(day)
    if first.month == 1:
        return month_window(first.replace(year=first.year - 1, month=12))
    return month_window(first.replace(month=first.month - 1))


def report_window(run_date: Optional[date] = None, previous_month: bool = False) -> Tuple[date, date]:
    """
    Window for a scheduled report run.

    Args:
        run_date: Date of the run; defaults to today
        previous_month: Report the month before the run instead of the run's own month
    """
    if previous_month:
        return previous_month_window(run_date)
    return month_window(run_date)
