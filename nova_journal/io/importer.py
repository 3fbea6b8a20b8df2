"""Idempotent import of broker executions and derived trades."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

import pytz
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from nova_journal.db.models import Execution as ExecutionRow, Trade, ImportJob
from nova_journal.domain.matcher import FIFOTradeMatcher
from nova_journal.domain.models import ClosedTrade, Execution, MatchResult
from nova_journal.domain.rounding import round_half_up
from nova_journal.io.tradovate_csv import TradovateOrdersParser

logger = logging.getLogger(__name__)

# TradingView exports the Tradovate Orders layout
SUPPORTED_FORMATS = ("tradovate", "tradingview")


class UnsupportedFormatError(ValueError):
    """Raised for an import format no parser exists for."""


@dataclass
class ImportResult:
    success: bool
    executions_imported: int = 0
    trades_created: int = 0
    duplicates_skipped: int = 0
    skipped_rows: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _to_utc(ts: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are aware UTC; naive input is taken as UTC already."""
    if ts is None:
        return None
    if ts.tzinfo is None:
        return pytz.UTC.localize(ts)
    return ts.astimezone(pytz.UTC)


def _trade_key(symbol: str, entry_time: datetime, quantity: int, entry_price: float) -> tuple:
    return (symbol, _to_utc(entry_time), int(quantity), round(entry_price, 8))


class TradeImporter:
    """Handles idempotent import of executions and the trades derived from them."""

    @staticmethod
    def import_csv(
        session: Session,
        csv_text: str,
        account_id: str,
        broker: str = "tradovate",
        timezone: str = TradovateOrdersParser.DEFAULT_TIMEZONE,
        fmt: str = "tradovate",
    ) -> ImportResult:
        """
        Parse an export, store its executions, derive trades and store those.

        Raises:
            UnsupportedFormatError: fmt has no parser
            ValueError: csv_text is empty
        """
        if (fmt or "tradovate") not in SUPPORTED_FORMATS:
            raise UnsupportedFormatError(f"Unsupported format: {fmt}")
        if not csv_text.strip():
            raise ValueError("File is empty")

        parsed = TradovateOrdersParser.parse_csv(csv_text, timezone)

        if not parsed.executions:
            return ImportResult(
                success=False,
                skipped_rows=parsed.skipped,
                errors=parsed.errors or [
                    "No valid executions found in CSV. Check that Status column contains 'Filled' rows."
                ],
            )

        _, executions_saved, exec_warnings = TradeImporter.import_executions(
            session=session,
            account_id=account_id,
            broker=broker,
            executions=parsed.executions,
        )

        matched = FIFOTradeMatcher.match(parsed.executions)
        logger.info(
            "Derived %d trades, %d open positions", len(matched.trades), len(matched.open_positions)
        )

        trades_created, trade_warnings = TradeImporter.save_trades(
            session=session,
            account_id=account_id,
            broker=broker,
            matched=matched,
        )

        duplicates = len(exec_warnings) + len(trade_warnings)

        if trades_created:
            TradeImporter._record_import_job(
                session=session,
                account_id=account_id,
                broker=broker,
                matched=matched,
                trades_created=trades_created,
                executions_saved=executions_saved,
                duplicates=duplicates,
            )

        result = ImportResult(
            success=True,
            executions_imported=executions_saved,
            trades_created=trades_created,
            duplicates_skipped=duplicates,
            skipped_rows=parsed.skipped + duplicates,
            errors=parsed.errors,
            warnings=exec_warnings + trade_warnings,
        )
        logger.info(
            "Import for account %s: %d executions, %d trades, %d duplicates",
            account_id, executions_saved, trades_created, duplicates,
        )
        return result

    @staticmethod
    def import_executions(
        session: Session,
        account_id: str,
        executions: List[Execution],
        broker: str = "tradovate",
    ) -> Tuple[int, int, List[str]]:
        """
        Store executions.

        Idempotent rules:
        - Skip if execution already exists in DB for this account (account_id, external_id).
        - Skip duplicates within the same uploaded file.

        Returns:
            (total_parsed, newly_inserted, warnings)
        """
        warnings: List[str] = []
        newly_inserted = 0

        stmt = select(ExecutionRow.external_id).where(ExecutionRow.account_id == account_id)
        existing_ids = set(session.exec(stmt).all())
        seen_in_file = set()

        for exe in executions:
            exec_id = (exe.external_id or "").strip()
            if not exec_id:
                warnings.append(f"Skipped execution with missing order id: {exe.symbol}")
                continue

            if exec_id in seen_in_file:
                warnings.append(f"Skipped duplicate in file: {exe.symbol} {exec_id}")
                continue
            seen_in_file.add(exec_id)

            if exec_id in existing_ids:
                warnings.append(f"Skipped duplicate in DB: {exe.symbol} {exec_id}")
                continue

            session.add(
                ExecutionRow(
                    account_id=account_id,
                    broker=broker,
                    external_id=exec_id,
                    symbol=exe.symbol,
                    product=exe.product,
                    description=exe.description,
                    side=exe.side,
                    quantity=exe.quantity,
                    price=exe.price,
                    executed_at=_to_utc(exe.executed_at),
                    currency=exe.currency,
                )
            )
            newly_inserted += 1
            existing_ids.add(exec_id)

        if newly_inserted:
            session.commit()

        return len(executions), newly_inserted, warnings

    @staticmethod
    def save_trades(
        session: Session,
        account_id: str,
        matched: MatchResult,
        broker: str = "tradovate",
    ) -> Tuple[int, List[str]]:
        """
        Store closed round-trips and open positions.

        A trade is a duplicate when the account already has one with the same
        symbol, entry time, quantity and entry price.

        Returns:
            (trades_created, warnings)
        """
        warnings: List[str] = []

        existing = session.exec(select(Trade).where(Trade.account_id == account_id)).all()
        seen = {_trade_key(t.symbol, t.entry_time, t.quantity, t.entry_price) for t in existing}

        rows: List[Trade] = []
        for trade in matched.trades:
            rows.append(
                Trade(
                    account_id=account_id,
                    broker=broker,
                    symbol=trade.symbol,
                    product=trade.product,
                    description=trade.description,
                    side=trade.side,
                    quantity=trade.quantity,
                    entry_price=trade.entry_price,
                    exit_price=trade.exit_price,
                    entry_time=_to_utc(trade.entry_time),
                    exit_time=_to_utc(trade.exit_time),
                    status="closed",
                    pnl=trade.pnl_dollars,
                    pnl_points=trade.pnl_points,
                    currency=trade.currency,
                    open_execution_id=trade.open_execution_id,
                    close_execution_id=trade.close_execution_id,
                )
            )
        for pos in matched.open_positions:
            rows.append(
                Trade(
                    account_id=account_id,
                    broker=broker,
                    symbol=pos.symbol,
                    side="LONG" if pos.side == "BUY" else "SHORT",
                    quantity=pos.quantity,
                    entry_price=pos.price,
                    entry_time=_to_utc(pos.time),
                    status="open",
                    open_execution_id=pos.execution_id,
                )
            )

        created = 0
        for row in rows:
            key = _trade_key(row.symbol, row.entry_time, row.quantity, row.entry_price)
            if key in seen:
                warnings.append(f"Skipped duplicate trade: {row.symbol} {row.entry_time.isoformat()}")
                continue
            seen.add(key)
            session.add(row)
            created += 1

        if created:
            session.commit()

        return created, warnings

    @staticmethod
    def load_closed_trades(session: Session, account_id: str) -> List[ClosedTrade]:
        """Closed trades of an account, ready for the analytics calculators."""
        stmt = (
            select(Trade)
            .where(Trade.account_id == account_id, Trade.status == "closed")
            .order_by(Trade.exit_time)
        )

        closed = []
        for row in session.exec(stmt).all():
            if row.exit_time is None:
                continue
            closed.append(
                ClosedTrade(
                    id=row.id,
                    symbol=row.symbol or "Unknown",
                    side="LONG" if row.side.upper() in ("LONG", "BUY") else "SHORT",
                    quantity=row.quantity or 0,
                    entry_price=row.entry_price or 0.0,
                    exit_price=row.exit_price or 0.0,
                    entry_time=row.entry_time,
                    exit_time=row.exit_time,
                    pnl=row.pnl or 0.0,
                    fees=(row.fees or 0.0) + (row.commissions or 0.0),
                )
            )
        return closed

    @staticmethod
    def _record_import_job(
        session: Session,
        account_id: str,
        broker: str,
        matched: MatchResult,
        trades_created: int,
        executions_saved: int,
        duplicates: int,
    ) -> None:
        """Store import metadata. Failure here never fails the import."""
        entry_times = [_to_utc(t.entry_time) for t in matched.trades]
        symbols = sorted({t.symbol for t in matched.trades})

        try:
            session.add(
                ImportJob(
                    account_id=account_id,
                    broker=broker,
                    trades_imported=trades_created,
                    executions_imported=executions_saved,
                    duplicates_skipped=duplicates,
                    date_range_start=min(entry_times) if entry_times else None,
                    date_range_end=max(entry_times) if entry_times else None,
                    symbols=",".join(symbols),
                    total_pnl=round_half_up(sum(t.pnl_dollars for t in matched.trades), 2),
                )
            )
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.warning("Failed to save import job metadata: %s", e)
