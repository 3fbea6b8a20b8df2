"""
Trade derivation from executions.
Implements FIFO lot matching, partial closes, round-trip accumulation and flips.
"""

import logging
from typing import Dict, List, Iterable, Deque
from collections import deque

from nova_journal.domain.models import (
    Execution,
    OpenLot,
    OpenPosition,
    PartialClose,
    DerivedTrade,
    MatchResult,
)
from nova_journal.domain.point_value import PointValueResolver
from nova_journal.domain.rounding import round_half_up

logger = logging.getLogger(__name__)


class FIFOTradeMatcher:
    """Derives round-trip trades from executions using FIFO matching."""

    @staticmethod
    def match(executions: Iterable[Execution]) -> MatchResult:
        """
        Match executions into closed round-trips and residual open positions.

        Executions are sorted by time (stable, so same-timestamp fills keep
        caller order) and matched per symbol; symbols never interact.

        Returns:
            MatchResult(trades, open_positions)
        """
        ordered = sorted(executions, key=lambda e: e.executed_at)

        # Group by symbol, first-seen order
        by_symbol: Dict[str, List[Execution]] = {}
        for exe in ordered:
            by_symbol.setdefault(exe.symbol, []).append(exe)

        result = MatchResult()
        for symbol, exes in by_symbol.items():
            trades, lots = FIFOTradeMatcher._match_symbol(symbol, exes)
            result.trades.extend(trades)
            result.open_positions.extend(OpenPosition.from_lot(symbol, lot) for lot in lots)

        logger.debug(
            "Matched %d executions into %d trades (%d open lots) across %d symbols",
            len(ordered), len(result.trades), len(result.open_positions), len(by_symbol),
        )
        return result

    @staticmethod
    def _match_symbol(symbol: str, executions: List[Execution]):
        """Run one FIFO pass for a single symbol."""
        open_lots: Deque[OpenLot] = deque()
        closes: List[PartialClose] = []
        trades: List[DerivedTrade] = []

        for exe in executions:
            remaining = exe.quantity

            # Opposite side to the queue: closing (possibly flipping)
            if open_lots and open_lots[0].side != exe.side:
                while remaining > 0 and open_lots:
                    lot = open_lots[0]
                    matched = min(remaining, lot.quantity)

                    closes.append(PartialClose(
                        entry_price=lot.price,
                        exit_price=exe.price,
                        quantity=matched,
                        entry_time=lot.time,
                        exit_time=exe.executed_at,
                        pnl_points=FIFOTradeMatcher._compute_points(
                            is_long=lot.side == "BUY",
                            open_price=lot.price,
                            close_price=exe.price,
                            qty=matched,
                        ),
                        open_execution_id=lot.execution_id,
                        close_execution_id=exe.external_id,
                    ))

                    remaining -= matched
                    lot.quantity -= matched
                    if lot.quantity == 0:
                        open_lots.popleft()

                # Flat again: the round-trip is complete
                if not open_lots and closes:
                    trades.append(FIFOTradeMatcher._finalize(symbol, exe, closes))
                    closes = []

            # Same-side add, fresh open, or the excess of a flip
            if remaining > 0:
                open_lots.append(OpenLot(
                    side=exe.side,
                    quantity=remaining,
                    price=exe.price,
                    time=exe.executed_at,
                    execution_id=exe.external_id,
                ))

        logger.debug(
            "%s: %d round-trips, %d open lots remaining", symbol, len(trades), len(open_lots)
        )
        return trades, list(open_lots)

    @staticmethod
    def _finalize(symbol: str, closing: Execution, closes: List[PartialClose]) -> DerivedTrade:
        """Collapse the partial closes of one round-trip into a DerivedTrade."""
        total_qty = sum(c.quantity for c in closes)
        pnl_points = sum(c.pnl_points for c in closes)

        entry_price = sum(c.entry_price * c.quantity for c in closes) / total_qty
        exit_price = sum(c.exit_price * c.quantity for c in closes) / total_qty

        # Point value scales the summed points once, not each partial close
        pnl_dollars = round_half_up(pnl_points * PointValueResolver.resolve(symbol), 2)

        # Closing fills are always opposite to the position side
        is_long = closing.side == "SELL"

        return DerivedTrade(
            symbol=symbol,
            product=closing.product,
            description=closing.description,
            side="LONG" if is_long else "SHORT",
            quantity=total_qty,
            entry_price=entry_price,
            exit_price=exit_price,
            entry_time=min(c.entry_time for c in closes),
            exit_time=max(c.exit_time for c in closes),
            pnl_points=pnl_points,
            pnl_dollars=pnl_dollars,
            open_execution_id=closes[0].open_execution_id,
            close_execution_id=closes[-1].close_execution_id,
            currency=closing.currency,
        )

    @staticmethod
    def _compute_points(is_long: bool, open_price: float, close_price: float, qty: int) -> float:
        """Compute realized P&L in price points for a matched lot."""
        if is_long:
            return (close_price - open_price) * qty
        else:
            return (open_price - close_price) * qty
