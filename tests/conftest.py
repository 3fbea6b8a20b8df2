"""Test configuration and fixtures."""

import pytest
from datetime import datetime, timedelta
from sqlmodel import Session, create_engine, SQLModel
from sqlmodel.pool import StaticPool

import nova_journal.db.models  # noqa: F401
from nova_journal.domain.models import ClosedTrade, Execution


@pytest.fixture(name="session")
def session_fixture():
    """Create in-memory SQLite test database."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="make_execution")
def make_execution_fixture():
    """Factory for executions; minutes are offsets from 2025-01-02 14:30 UTC."""

    def _make(exec_id, side, quantity, price, minute=0, symbol="MGCG5", **kwargs):
        return Execution(
            external_id=exec_id,
            symbol=symbol,
            side=side,
            quantity=quantity,
            price=price,
            executed_at=datetime(2025, 1, 2, 14, 30) + timedelta(minutes=minute),
            **kwargs,
        )

    return _make


def _closed(trade_id, symbol, side, pnl, entry, exit_, fees=0.0):
    return ClosedTrade(
        id=trade_id,
        symbol=symbol,
        side=side,
        quantity=1,
        entry_price=0.0,
        exit_price=0.0,
        entry_time=datetime.fromisoformat(entry),
        exit_time=datetime.fromisoformat(exit_),
        pnl=pnl,
        fees=fees,
    )


@pytest.fixture(name="sample_trades")
def sample_trades_fixture():
    """Three days of closed trades: +200, -50 and +150 net."""
    return [
        # Day 1
        _closed("1", "MGC", "LONG", 100.0, "2024-01-15T10:00:00", "2024-01-15T10:30:00", fees=2.0),
        _closed("2", "MGC", "LONG", 200.0, "2024-01-15T11:00:00", "2024-01-15T11:45:00", fees=4.0),
        _closed("3", "ES", "SHORT", -100.0, "2024-01-15T14:00:00", "2024-01-15T14:30:00", fees=3.0),
        # Day 2
        _closed("4", "MGC", "LONG", -50.0, "2024-01-16T09:30:00", "2024-01-16T10:15:00", fees=2.0),
        _closed("5", "ES", "LONG", 0.0, "2024-01-16T11:00:00", "2024-01-16T11:30:00", fees=3.0),
        # Day 3
        _closed("6", "MGC", "LONG", 150.0, "2024-01-17T10:30:00", "2024-01-17T11:00:00", fees=2.0),
    ]


@pytest.fixture(name="sample_csv")
def sample_csv_fixture():
    """Provide a sample Tradovate Orders export."""
    return """orderId,Account,Order ID,B/S,Contract,Product,Product Description,avgPrice,filledQty,Fill Time,Status,Currency
1001,DEMO123,1001, Buy,MGCG5,MGC,Micro Gold,2650.5,2,01/02/2025 08:30:00, Filled,USD
1002,DEMO123,1002, Buy,MGCG5,MGC,Micro Gold,2651.5,1,01/02/2025 08:35:00, Filled,USD
1003,DEMO123,1003, Sell,MGCG5,MGC,Micro Gold,2655.0,3,01/02/2025 09:10:00, Filled,USD
1004,DEMO123,1004, Sell,MGCG5,MGC,Micro Gold,2660.0,1,01/02/2025 09:20:00, Canceled,USD
1005,DEMO123,1005, Sell,ESH5,ES,E-mini S&P,"5,950.25",1,01/03/2025 10:00:00, Filled,USD
1006,DEMO123,1006, Hold,ESH5,ES,E-mini S&P,5950.25,1,01/03/2025 10:01:00, Filled,USD
"""
