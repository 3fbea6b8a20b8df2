from __future__ import annotations

from dataclasses import replace
from datetime import timedelta, timezone

import pytest
from sqlmodel import select

from nova_journal.db.models import Execution, ImportJob, Trade
from nova_journal.domain.matcher import FIFOTradeMatcher
from nova_journal.io.importer import TradeImporter, UnsupportedFormatError


def test_import_csv_stores_executions_and_trades(session, sample_csv):
    result = TradeImporter.import_csv(session, sample_csv, account_id="acct-1")

    assert result.success
    assert result.executions_imported == 4
    # One MGC round-trip plus the open ES short
    assert result.trades_created == 2
    assert result.duplicates_skipped == 0
    assert result.skipped_rows == 2
    assert result.errors == ['Row 7: Invalid side "Hold"']

    trades = session.exec(select(Trade).where(Trade.account_id == "acct-1")).all()
    closed = [t for t in trades if t.status == "closed"]
    opened = [t for t in trades if t.status == "open"]

    assert len(closed) == 1
    mgc = closed[0]
    assert mgc.symbol == "MGCG5"
    assert mgc.side == "LONG"
    assert mgc.quantity == 3
    # (2655 - 2650.5) * 2 + (2655 - 2651.5) * 1 = 12.5 points, $10/point
    assert mgc.pnl_points == pytest.approx(12.5)
    assert mgc.pnl == pytest.approx(125.0)
    assert mgc.entry_price == pytest.approx((2650.5 * 2 + 2651.5) / 3)
    assert mgc.open_execution_id == "1001"
    assert mgc.close_execution_id == "1003"
    assert mgc.entry_time.hour == 14  # stored as UTC

    assert len(opened) == 1
    assert opened[0].symbol == "ESH5"
    assert opened[0].side == "SHORT"
    assert opened[0].exit_time is None
    assert opened[0].pnl is None

    job = session.exec(select(ImportJob)).one()
    assert job.trades_imported == 2
    assert job.executions_imported == 4
    assert job.symbols == "MGCG5"
    assert job.total_pnl == pytest.approx(125.0)


def test_reimport_is_idempotent(session, sample_csv):
    TradeImporter.import_csv(session, sample_csv, account_id="acct-1")
    second = TradeImporter.import_csv(session, sample_csv, account_id="acct-1")

    assert second.success
    assert second.executions_imported == 0
    assert second.trades_created == 0
    assert second.duplicates_skipped == 6
    assert len(second.warnings) == 6

    assert len(session.exec(select(Execution)).all()) == 4
    assert len(session.exec(select(Trade)).all()) == 2
    # No new trades, no new job
    assert len(session.exec(select(ImportJob)).all()) == 1


def test_accounts_are_isolated(session, sample_csv):
    TradeImporter.import_csv(session, sample_csv, account_id="acct-1")
    other = TradeImporter.import_csv(session, sample_csv, account_id="acct-2")

    assert other.executions_imported == 4
    assert other.trades_created == 2


def test_duplicate_within_file(session, make_execution):
    exes = [
        make_execution("E1", "BUY", 1, 100.0, minute=0),
        make_execution("E1", "BUY", 1, 100.0, minute=0),
    ]

    total, inserted, warnings = TradeImporter.import_executions(session, "acct-1", exes)

    assert (total, inserted) == (2, 1)
    assert warnings == ["Skipped duplicate in file: MGCG5 E1"]


def test_save_trades_directly(session, make_execution):
    matched = FIFOTradeMatcher.match([
        make_execution("E1", "BUY", 2, 100.0, minute=0, symbol="AAPL"),
        make_execution("E2", "SELL", 2, 101.0, minute=5, symbol="AAPL"),
    ])

    created, warnings = TradeImporter.save_trades(session, "acct-1", matched)
    again, dup_warnings = TradeImporter.save_trades(session, "acct-1", matched)

    assert (created, warnings) == (1, [])
    assert again == 0
    assert len(dup_warnings) == 1


def test_load_closed_trades_feeds_analytics(session, sample_csv):
    TradeImporter.import_csv(session, sample_csv, account_id="acct-1")

    closed = TradeImporter.load_closed_trades(session, "acct-1")

    assert len(closed) == 1
    assert closed[0].symbol == "MGCG5"
    assert closed[0].pnl == pytest.approx(125.0)
    assert closed[0].fees == 0.0
    assert closed[0].status == "closed"


def test_no_filled_rows(session):
    csv_text = (
        "Order ID,B/S,Contract,Avg Fill Price,Filled Qty,Fill Time,Status\n"
        "1,Buy,ESH5,5000,1,01/02/2025 08:30:00,Canceled\n"
    )

    result = TradeImporter.import_csv(session, csv_text, account_id="acct-1")

    assert not result.success
    assert result.skipped_rows == 1
    assert "No valid executions" in result.errors[0]


def test_rejects_unsupported_format(session, sample_csv):
    with pytest.raises(UnsupportedFormatError):
        TradeImporter.import_csv(session, sample_csv, account_id="acct-1", fmt="ninjatrader")


def test_rejects_empty_file(session):
    with pytest.raises(ValueError, match="empty"):
        TradeImporter.import_csv(session, "  \n", account_id="acct-1")


def test_tradingview_uses_orders_layout(session, sample_csv):
    result = TradeImporter.import_csv(
        session, sample_csv, account_id="acct-1", broker="tradingview", fmt="tradingview"
    )

    assert result.success
    assert result.trades_created == 2
    assert {t.broker for t in session.exec(select(Trade)).all()} == {"tradingview"}


def test_stored_times_are_utc(session, sample_csv):
    TradeImporter.import_csv(session, sample_csv, account_id="acct-1")

    row = session.exec(select(Execution).where(Execution.external_id == "1001")).one()
    executed_at = row.executed_at
    if executed_at.tzinfo is not None:
        assert executed_at.utcoffset() == timedelta(0)
    # 08:30 Chicago
    assert (executed_at.hour, executed_at.minute) == (14, 30)


def test_trade_dedupe_matches_naive_and_aware_times(session, make_execution):
    naive = [
        make_execution("E1", "BUY", 1, 100.0, minute=0, symbol="AAPL"),
        make_execution("E2", "SELL", 1, 101.0, minute=5, symbol="AAPL"),
    ]
    aware = [replace(e, executed_at=e.executed_at.replace(tzinfo=timezone.utc)) for e in naive]

    created, _ = TradeImporter.save_trades(session, "acct-1", FIFOTradeMatcher.match(naive))
    again, warnings = TradeImporter.save_trades(session, "acct-1", FIFOTradeMatcher.match(aware))

    assert created == 1
    assert again == 0
    assert len(warnings) == 1
