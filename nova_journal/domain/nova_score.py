"""
Nova Score: a composite 0-100 rating of trading performance.

Blends six metrics (win rate, profit factor, avg win/loss, recovery factor,
max drawdown, consistency) into one weighted score, and exposes the same
metrics as a radar chart series.
"""

import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Sequence, Union

import pytz

from nova_journal.domain.models import ClosedTrade
from nova_journal.domain.rounding import round_half_up


# Ratios with no denominator fall back to this, and are capped at it for scoring
RATIO_CAP = 10.0

SCORE_WEIGHTS = {
    "win_rate": 0.15,
    "profit_factor": 0.20,
    "avg_win_loss": 0.15,
    "recovery_factor": 0.15,
    "max_drawdown": 0.20,
    "consistency": 0.15,
}

# Value at which a metric earns full marks in the overall score
SCORE_TARGETS = {
    "profit_factor": 2.0,
    "avg_win_loss": 2.0,
    "recovery_factor": 3.0,
}

# Full-scale values for the radar chart, looser than SCORE_TARGETS
RADAR_TARGETS = {
    "profit_factor": 3.0,
    "avg_win_loss": 3.0,
    "recovery_factor": 5.0,
}

RADAR_SUBJECTS = (
    "Win %",
    "Profit factor",
    "Avg win/loss",
    "Recovery factor",
    "Max drawdown",
    "Consistency",
)

NEUTRAL_CONSISTENCY = 50.0


@dataclass(frozen=True)
class TradeData:
    pnl: float
    date: Union[datetime, date, str]

    @classmethod
    def from_closed(cls, trade: ClosedTrade) -> "TradeData":
        return cls(pnl=trade.pnl, date=trade.exit_time)


@dataclass(frozen=True)
class NovaScoreMetrics:
    win_rate: float = 0.0          # 0-100
    profit_factor: float = 0.0     # gross profit / gross loss
    avg_win_loss: float = 0.0      # avg win / avg loss
    recovery_factor: float = 0.0   # net profit / max drawdown
    max_drawdown: float = 0.0      # peak-to-trough as positive % of peak
    consistency: float = 0.0       # 0-100


@dataclass(frozen=True)
class RadarPoint:
    subject: str
    value: float
    full_mark: float = 100.0


@dataclass(frozen=True)
class NovaScoreResult:
    score: int
    label: str
    metrics: NovaScoreMetrics
    radar_data: List[RadarPoint] = field(default_factory=list)


def normalize_metric(value: float, target: float) -> float:
    """Scale to 0-1 against a target, e.g. 2 against 3 -> 0.67."""
    return min(value / target, 1.0)


def invert_drawdown_score(drawdown_percent: float) -> float:
    """0% drawdown scores 100, 50% or worse scores 0."""
    return max(0.0, 100.0 - drawdown_percent * 2)


def score_label(score: float) -> str:
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Average"
    return "Needs Work"


def _day_key(value: Union[datetime, date, str]) -> str:
    """UTC calendar day of a trade date; offset-bearing ISO strings are converted."""
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            parsed = None
        if parsed is not None and parsed.tzinfo is not None:
            value = parsed
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(pytz.UTC)
        return value.strftime("%Y-%m-%d")
    if isinstance(value, date):
        return value.isoformat()
    return str(value)[:10]


class NovaScoreEngine:
    """Computes the Nova Score and its radar breakdown."""

    @staticmethod
    def score(trades: Sequence[TradeData]) -> NovaScoreResult:
        """
        Score a sequence of (pnl, date) records, in the order given.

        Empty input yields the "No Data" result.
        """
        if not trades:
            return NovaScoreEngine.empty()

        metrics = NovaScoreEngine.calculate_metrics(trades)
        score = NovaScoreEngine.overall_score(metrics)

        return NovaScoreResult(
            # Round half up; the label is taken from the unrounded score
            score=int(round_half_up(score)),
            label=score_label(score),
            metrics=metrics,
            radar_data=NovaScoreEngine.radar_data(metrics),
        )

    @staticmethod
    def empty() -> NovaScoreResult:
        return NovaScoreResult(
            score=0,
            label="No Data",
            metrics=NovaScoreMetrics(),
            radar_data=[RadarPoint(subject=s, value=0.0) for s in RADAR_SUBJECTS],
        )

    @staticmethod
    def calculate_metrics(trades: Sequence[TradeData]) -> NovaScoreMetrics:
        winners = [t.pnl for t in trades if t.pnl > 0]
        losers = [t.pnl for t in trades if t.pnl < 0]

        win_rate = len(winners) / len(trades) * 100

        gross_profit = sum(winners)
        gross_loss = abs(sum(losers))
        profit_factor = NovaScoreEngine._capped_ratio(gross_profit, gross_loss)

        avg_win = gross_profit / len(winners) if winners else 0.0
        avg_loss = gross_loss / len(losers) if losers else 0.0
        avg_win_loss = NovaScoreEngine._capped_ratio(avg_win, avg_loss)

        max_drawdown, max_drawdown_pct = NovaScoreEngine.trade_drawdown(trades)

        net_profit = sum(t.pnl for t in trades)
        recovery_factor = min(NovaScoreEngine._capped_ratio(net_profit, max_drawdown), RATIO_CAP)

        return NovaScoreMetrics(
            win_rate=win_rate,
            profit_factor=profit_factor,
            avg_win_loss=avg_win_loss,
            recovery_factor=recovery_factor,
            max_drawdown=max_drawdown_pct,
            consistency=NovaScoreEngine.consistency(trades),
        )

    @staticmethod
    def trade_drawdown(trades: Sequence[TradeData]):
        """
        Largest peak-to-trough drop of trade-by-trade cumulative P&L.

        Returns:
            (max_drawdown_dollars, max_drawdown_percent_of_peak)
        """
        equity = 0.0
        peak = 0.0
        max_drawdown = 0.0
        max_drawdown_pct = 0.0

        for t in trades:
            equity += t.pnl
            if equity > peak:
                peak = equity
            drawdown = peak - equity
            if drawdown > max_drawdown:
                max_drawdown = drawdown
                max_drawdown_pct = drawdown / peak * 100 if peak > 0 else 0.0

        return max_drawdown, max_drawdown_pct

    @staticmethod
    def consistency(trades: Sequence[TradeData]) -> float:
        """
        Score day-to-day stability of P&L, 100 = perfectly even days.

        Uses the coefficient of variation of daily sums; fewer than two
        trading days gives the neutral NEUTRAL_CONSISTENCY.
        """
        if len(trades) < 2:
            return NEUTRAL_CONSISTENCY

        daily: Dict[str, float] = defaultdict(float)
        for t in trades:
            daily[_day_key(t.date)] += t.pnl

        returns = list(daily.values())
        if len(returns) < 2:
            return NEUTRAL_CONSISTENCY

        mean = statistics.fmean(returns)
        std_dev = statistics.pstdev(returns)

        if abs(mean) > 0:
            cv = std_dev / abs(mean)
        else:
            cv = 10.0 if std_dev > 0 else 0.0

        return max(0.0, min(100.0, 100 * (1 - min(cv / 2, 1))))

    @staticmethod
    def overall_score(metrics: NovaScoreMetrics) -> float:
        """Weighted blend of the normalized metrics, clamped to 0-100."""
        normalized = {
            "win_rate": metrics.win_rate,
            "profit_factor": normalize_metric(
                min(metrics.profit_factor, RATIO_CAP), SCORE_TARGETS["profit_factor"]) * 100,
            "avg_win_loss": normalize_metric(
                min(metrics.avg_win_loss, RATIO_CAP), SCORE_TARGETS["avg_win_loss"]) * 100,
            "recovery_factor": normalize_metric(
                min(metrics.recovery_factor, RATIO_CAP), SCORE_TARGETS["recovery_factor"]) * 100,
            "max_drawdown": invert_drawdown_score(metrics.max_drawdown),
            "consistency": metrics.consistency,
        }
        score = sum(normalized[k] * w for k, w in SCORE_WEIGHTS.items())
        return max(0.0, min(100.0, score))

    @staticmethod
    def radar_data(metrics: NovaScoreMetrics) -> List[RadarPoint]:
        values = (
            metrics.win_rate,
            normalize_metric(metrics.profit_factor, RADAR_TARGETS["profit_factor"]) * 100,
            normalize_metric(metrics.avg_win_loss, RADAR_TARGETS["avg_win_loss"]) * 100,
            normalize_metric(metrics.recovery_factor, RADAR_TARGETS["recovery_factor"]) * 100,
            invert_drawdown_score(metrics.max_drawdown),
            metrics.consistency,
        )
        return [RadarPoint(subject=s, value=v) for s, v in zip(RADAR_SUBJECTS, values)]

    @staticmethod
    def _capped_ratio(numerator: float, denominator: float) -> float:
        if denominator > 0:
            return numerator / denominator
        return RATIO_CAP if numerator > 0 else 0.0
