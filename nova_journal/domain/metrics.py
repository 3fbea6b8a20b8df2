"""Metrics and reporting calculations over closed trades."""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from collections import defaultdict
from dataclasses import asdict, fields
from datetime import datetime
import pytz
import pandas as pd

from nova_journal.domain.models import (
    ClosedTrade,
    TradeStats,
    DayStats,
    EquityPoint,
    SymbolStats,
    HourlyPerformance,
)
from nova_journal.domain.rounding import round_half_up

DEFAULT_TIMEZONE = "America/Chicago"

# Stand-in for an unbounded ratio (no losses to divide by). Display code
# should go through format_ratio() rather than print it raw.
INFINITE_RATIO = 999.0


def normalize_side(side: str) -> str:
    """Map BUY/LONG to LONG and everything else to SHORT."""
    s = (side or "").strip().upper()
    if s in ("BUY", "LONG"):
        return "LONG"
    return "SHORT"


def calculate_trade_pnl(
    side: str,
    entry_price: float,
    exit_price: float,
    quantity: float,
    fees: float = 0.0,
) -> Tuple[float, float]:
    """
    P&L for a single trade.

    LONG: gross = (exit - entry) * qty
    SHORT: gross = (entry - exit) * qty
    net = gross - fees

    Returns:
        (gross_pnl, net_pnl), each rounded to cents
    """
    if normalize_side(side) == "LONG":
        gross = (exit_price - entry_price) * quantity
    else:
        gross = (entry_price - exit_price) * quantity
    return round_half_up(gross, 2), round_half_up(gross - fees, 2)


def ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, INFINITE_RATIO when only the denominator is 0."""
    if denominator == 0:
        return INFINITE_RATIO if numerator > 0 else 0.0
    return numerator / denominator


def format_ratio(value: float, places: int = 2) -> str:
    if value >= INFINITE_RATIO:
        return "∞"
    return f"{value:.{places}f}"


def local_date(ts: datetime, tz) -> str:
    """Calendar day (YYYY-MM-DD) of a timestamp in tz; naive timestamps are UTC."""
    if ts.tzinfo is None:
        ts = pytz.UTC.localize(ts)
    return ts.astimezone(tz).strftime("%Y-%m-%d")


def _tz(timezone: str):
    return pytz.timezone(timezone)


class DailyAggregator:
    """Bucket closed trades by calendar day of their exit."""

    @staticmethod
    def aggregate(
        trades: Iterable[ClosedTrade],
        timezone: str = DEFAULT_TIMEZONE,
    ) -> List[DayStats]:
        """
        One DayStats per distinct exit day in the report timezone.

        Trades without an exit time are ignored. Output is ascending by date.
        """
        tz = _tz(timezone)

        by_day: Dict[str, List[ClosedTrade]] = defaultdict(list)
        for trade in trades:
            if trade.exit_time is None:
                continue
            by_day[local_date(trade.exit_time, tz)].append(trade)

        rows = []
        for day_date in sorted(by_day.keys()):
            items = by_day[day_date]

            winners = [t for t in items if t.pnl > 0]
            losers = [t for t in items if t.pnl < 0]

            net = sum(t.pnl for t in items)
            fees = sum(t.fees or 0.0 for t in items)
            gross_wins = sum(t.pnl for t in winners)
            gross_loss_abs = abs(sum(t.pnl for t in losers))

            rows.append(
                DayStats(
                    date=day_date,
                    net_pnl=round_half_up(net, 2),
                    gross_pnl=round_half_up(net + fees, 2),
                    fees=round_half_up(fees, 2),
                    trade_count=len(items),
                    winners=len(winners),
                    losers=len(losers),
                    win_rate=round_half_up(len(winners) / len(items) * 100, 1),
                    profit_factor=round_half_up(ratio(gross_wins, gross_loss_abs), 2),
                )
            )

        return rows


class TradeStatsCalculator:
    """Aggregate statistics over closed trades."""

    @staticmethod
    def compute(
        trades: Sequence[ClosedTrade],
        timezone: str = DEFAULT_TIMEZONE,
    ) -> TradeStats:
        """Compute overall trading statistics. Empty input gives all zeros."""
        if not trades:
            return TradeStats()

        wins = [t for t in trades if t.pnl > 0]
        losses = [t for t in trades if t.pnl < 0]
        break_even = [t for t in trades if t.pnl == 0]

        # Stored pnl is already net, so fees are added back for gross
        total_fees = sum(t.fees or 0.0 for t in trades)
        net = sum(t.pnl for t in trades)

        gross_wins = sum(t.pnl for t in wins)
        gross_loss_abs = abs(sum(t.pnl for t in losses))

        avg_win = gross_wins / len(wins) if wins else 0.0
        avg_loss = gross_loss_abs / len(losses) if losses else 0.0

        daily = DailyAggregator.aggregate(trades, timezone)
        trading_days = len(daily)
        winning_days = len([d for d in daily if d.net_pnl > 0])
        losing_days = len([d for d in daily if d.net_pnl < 0])

        return TradeStats(
            net_pnl=round_half_up(net, 2),
            gross_pnl=round_half_up(net + total_fees, 2),
            total_fees=round_half_up(total_fees, 2),
            total_trades=len(trades),
            winning_trades=len(wins),
            losing_trades=len(losses),
            break_even_trades=len(break_even),
            trade_win_rate=round_half_up(len(wins) / len(trades) * 100, 1),
            profit_factor=round_half_up(ratio(gross_wins, gross_loss_abs), 2),
            avg_win=round_half_up(avg_win, 2),
            avg_loss=round_half_up(avg_loss, 2),
            avg_win_loss_ratio=round_half_up(ratio(avg_win, avg_loss), 2),
            largest_win=round_half_up(max((t.pnl for t in wins), default=0.0), 2),
            largest_loss=round_half_up(min((t.pnl for t in losses), default=0.0), 2),
            trading_days=trading_days,
            winning_days=winning_days,
            losing_days=losing_days,
            break_even_days=trading_days - winning_days - losing_days,
            daily_win_rate=round_half_up(winning_days / trading_days * 100, 1) if trading_days else 0.0,
        )


class EquityCurveBuilder:
    """Cumulative equity with running peak and drawdown."""

    @staticmethod
    def build(daily: Sequence[DayStats]) -> List[EquityPoint]:
        """
        Build the equity curve from daily stats in ascending date order.

        The peak starts at the first day's equity rather than zero, so the
        first point never shows a drawdown.
        """
        points = []
        equity = 0.0
        peak: Optional[float] = None

        for day in daily:
            equity += day.net_pnl
            if peak is None or equity > peak:
                peak = equity
                drawdown = 0.0
            else:
                drawdown = equity - peak

            drawdown_pct = drawdown / peak * 100 if peak > 0 else 0.0

            points.append(
                EquityPoint(
                    date=day.date,
                    equity=round_half_up(equity, 2),
                    drawdown=round_half_up(drawdown, 2),
                    drawdown_pct=round_half_up(drawdown_pct, 1),
                )
            )

        return points


class SymbolStatsCalculator:
    """Performance by instrument."""

    @staticmethod
    def compute(trades: Iterable[ClosedTrade]) -> List[SymbolStats]:
        by_symbol: Dict[str, List[ClosedTrade]] = defaultdict(list)
        for trade in trades:
            by_symbol[trade.symbol or "Unknown"].append(trade)

        rows = []
        for symbol, symbol_trades in by_symbol.items():
            total = len(symbol_trades)
            wins = [t.pnl for t in symbol_trades if t.pnl > 0]
            losses = [t.pnl for t in symbol_trades if t.pnl < 0]

            rows.append(
                SymbolStats(
                    symbol=symbol,
                    pnl=round_half_up(sum(t.pnl for t in symbol_trades), 2),
                    trade_count=total,
                    win_rate=int(round_half_up(len(wins) / total * 100)) if total > 0 else 0,
                    profit_factor=round_half_up(ratio(sum(wins), abs(sum(losses))), 2),
                )
            )

        return sorted(rows, key=lambda r: r.pnl, reverse=True)


class HourlyPerformanceCalculator:
    """Closed-trade performance grouped by entry hour in report timezone."""

    @staticmethod
    def compute(
        trades: Iterable[ClosedTrade],
        timezone: str = DEFAULT_TIMEZONE,
    ) -> List[HourlyPerformance]:
        tz = _tz(timezone)

        rows = []
        for t in trades:
            if t.entry_time is None:
                continue
            entry = t.entry_time if t.entry_time.tzinfo else pytz.UTC.localize(t.entry_time)
            rows.append(
                {"hour": entry.astimezone(tz).hour, "pnl": t.pnl, "is_win": 1 if t.pnl > 0 else 0}
            )

        if not rows:
            return []

        df = pd.DataFrame(rows)
        out = (
            df.groupby("hour", as_index=False)
            .agg(
                trades=("pnl", "count"),
                pnl_sum=("pnl", "sum"),
                win_rate=("is_win", "mean"),
            )
            .sort_values("hour")
        )

        return [
            HourlyPerformance(
                hour=int(r.hour),
                pnl=round_half_up(float(r.pnl_sum), 2),
                trade_count=int(r.trades),
                win_rate=int(round_half_up(float(r.win_rate) * 100)),
            )
            for r in out.itertuples(index=False)
        ]


def to_frame(records: Sequence, record_type: Optional[type] = None) -> pd.DataFrame:
    """
    Convert result dataclasses into a DataFrame for reporting.

    record_type supplies the columns when records is empty.
    """
    if not records:
        columns = [f.name for f in fields(record_type)] if record_type else []
        return pd.DataFrame(columns=columns)
    return pd.DataFrame([asdict(r) for r in records])
