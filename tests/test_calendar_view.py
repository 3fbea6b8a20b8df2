from nova_journal.domain.calendar_view import build_calendar_for_month
from nova_journal.domain.metrics import DailyAggregator


def test_month_grid(sample_trades):
    daily = DailyAggregator.aggregate(sample_trades, timezone="UTC")

    cal = build_calendar_for_month(daily, 2024, 1)

    # January 2024 starts on a Monday
    assert len(cal.weeks) == 5
    assert cal.weeks[0].days[0].day == 1
    assert all(len(w.days) == 7 for w in cal.weeks)

    third = cal.weeks[2]
    assert [d.pnl for d in third.days[:3]] == [200.0, -50.0, 150.0]
    assert third.weekly_total == 300.0
    assert cal.weeks[0].weekly_total == 0.0
    assert cal.monthly_total == 300.0

    last = cal.weeks[-1]
    padding = [d for d in last.days if not d.is_current_month]
    assert len(padding) == 4
    assert all(d.day is None and d.pnl is None for d in padding)


def test_leading_padding_and_empty_days():
    # March 2024 starts on a Friday
    cal = build_calendar_for_month([], 2024, 3)

    first = cal.weeks[0].days
    assert [d.day for d in first] == [None, None, None, None, 1, 2, 3]
    assert first[4].date == "2024-03-01"
    assert first[4].pnl is None
    assert cal.monthly_total == 0.0


def test_days_outside_month_are_ignored(sample_trades):
    daily = DailyAggregator.aggregate(sample_trades, timezone="UTC")

    cal = build_calendar_for_month(daily, 2024, 2)

    assert cal.monthly_total == 0.0
    assert all(d.pnl is None for w in cal.weeks for d in w.days)
