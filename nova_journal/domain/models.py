"""Domain value objects."""

from typing import List, Optional
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Execution:
    """A single normalized broker fill."""
    external_id: str
    symbol: str
    side: str  # BUY or SELL
    quantity: int
    price: float
    executed_at: datetime
    product: str = ""
    description: str = ""
    currency: str = "USD"
    account: str = ""


@dataclass
class OpenLot:
    """Represents an open lot (for FIFO matching)."""
    side: str  # BUY or SELL
    quantity: int
    price: float
    time: datetime
    execution_id: str


@dataclass(frozen=True)
class OpenPosition:
    """Unmatched lot left over after matching, tagged with its symbol."""
    symbol: str
    side: str
    quantity: int
    price: float
    time: datetime
    execution_id: str

    @classmethod
    def from_lot(cls, symbol: str, lot: OpenLot) -> "OpenPosition":
        return cls(
            symbol=symbol,
            side=lot.side,
            quantity=lot.quantity,
            price=lot.price,
            time=lot.time,
            execution_id=lot.execution_id,
        )


@dataclass(frozen=True)
class PartialClose:
    """One FIFO match between an open lot and a closing execution."""
    entry_price: float
    exit_price: float
    quantity: int
    entry_time: datetime
    exit_time: datetime
    pnl_points: float
    open_execution_id: str
    close_execution_id: str


@dataclass(frozen=True)
class DerivedTrade:
    """Closed round-trip: flat -> position -> flat for one symbol."""
    symbol: str
    product: str
    description: str
    side: str  # LONG or SHORT
    quantity: int
    entry_price: float
    exit_price: float
    entry_time: datetime
    exit_time: datetime
    pnl_points: float
    pnl_dollars: float
    open_execution_id: str
    close_execution_id: str
    currency: str = "USD"


@dataclass(frozen=True)
class ClosedTrade:
    """Closed trade as consumed by the analytics calculators."""
    id: str
    symbol: str
    side: str
    quantity: float
    entry_price: float
    exit_price: float
    entry_time: Optional[datetime]
    exit_time: datetime
    pnl: float  # net of fees
    fees: float = 0.0
    status: str = "closed"

    @classmethod
    def from_derived(cls, trade: DerivedTrade, trade_id: Optional[str] = None) -> "ClosedTrade":
        return cls(
            id=trade_id or f"{trade.open_execution_id}:{trade.close_execution_id}",
            symbol=trade.symbol,
            side=trade.side,
            quantity=trade.quantity,
            entry_price=trade.entry_price,
            exit_price=trade.exit_price,
            entry_time=trade.entry_time,
            exit_time=trade.exit_time,
            pnl=trade.pnl_dollars,
        )


@dataclass(frozen=True)
class TradeStats:
    """Aggregate performance over a set of closed trades."""
    net_pnl: float = 0.0
    gross_pnl: float = 0.0
    total_fees: float = 0.0

    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    break_even_trades: int = 0

    trade_win_rate: float = 0.0
    profit_factor: float = 0.0

    avg_win: float = 0.0
    avg_loss: float = 0.0
    avg_win_loss_ratio: float = 0.0

    largest_win: float = 0.0
    largest_loss: float = 0.0

    trading_days: int = 0
    winning_days: int = 0
    losing_days: int = 0
    break_even_days: int = 0
    daily_win_rate: float = 0.0


@dataclass(frozen=True)
class DayStats:
    """Closed-trade P&L for one calendar day (by exit time)."""
    date: str  # YYYY-MM-DD in report timezone
    net_pnl: float
    gross_pnl: float
    fees: float
    trade_count: int
    winners: int
    losers: int
    win_rate: float
    profit_factor: float


@dataclass(frozen=True)
class EquityPoint:
    date: str
    equity: float
    drawdown: float  # <= 0
    drawdown_pct: float = 0.0


@dataclass(frozen=True)
class SymbolStats:
    symbol: str
    pnl: float
    trade_count: int
    win_rate: float
    profit_factor: float = 0.0


@dataclass(frozen=True)
class HourlyPerformance:
    hour: int  # 0-23, entry hour in report timezone
    pnl: float
    trade_count: int
    win_rate: float


@dataclass
class MatchResult:
    """Output of a matching pass."""
    trades: List[DerivedTrade] = field(default_factory=list)
    open_positions: List[OpenPosition] = field(default_factory=list)
