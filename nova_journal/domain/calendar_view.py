"""Month calendar grid of daily P&L."""

import calendar
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from nova_journal.domain.models import DayStats
from nova_journal.domain.rounding import round_half_up


@dataclass(frozen=True)
class CalendarDay:
    day: Optional[int]  # day of month, None for padding
    date: str  # YYYY-MM-DD, "" for padding
    pnl: Optional[float]
    is_current_month: bool


@dataclass
class CalendarWeek:
    days: List[CalendarDay] = field(default_factory=list)
    weekly_total: float = 0.0


@dataclass
class CalendarMonth:
    year: int
    month: int
    weeks: List[CalendarWeek] = field(default_factory=list)
    monthly_total: float = 0.0


def build_calendar_for_month(daily: Sequence[DayStats], year: int, month: int) -> CalendarMonth:
    """
    Lay out one month (1-12) as Monday-first weeks with per-day net P&L.

    Days without trades have pnl None and do not count toward totals.
    """
    pnl_by_date = {d.date: d.net_pnl for d in daily}

    result = CalendarMonth(year=year, month=month)
    monthly_total = 0.0

    for week in calendar.Calendar(firstweekday=calendar.MONDAY).monthdayscalendar(year, month):
        days = []
        weekly_total = 0.0
        for day in week:
            if day == 0:
                days.append(CalendarDay(day=None, date="", pnl=None, is_current_month=False))
                continue

            date_str = f"{year:04d}-{month:02d}-{day:02d}"
            pnl = pnl_by_date.get(date_str)
            if pnl is not None:
                weekly_total += pnl
                monthly_total += pnl
            days.append(CalendarDay(day=day, date=date_str, pnl=pnl, is_current_month=True))

        result.weeks.append(CalendarWeek(days=days, weekly_total=round_half_up(weekly_total, 2)))

    result.monthly_total = round_half_up(monthly_total, 2)
    return result
