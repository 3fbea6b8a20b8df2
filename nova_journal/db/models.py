"""
SQLModel definitions for the trade journal.
Designed for SQLite locally, PostgreSQL in production.
"""

from datetime import datetime, timezone
from typing import Optional
from sqlmodel import SQLModel, Field
import sqlalchemy
import uuid


class Execution(SQLModel, table=True):
    """Individual broker fill as imported."""
    __tablename__ = "execution"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    account_id: str = Field(index=True)
    broker: str = Field(default="tradovate")

    # Broker order id (unique constraint on account + external_id prevents duplicates)
    external_id: str = Field(index=True)
    symbol: str = Field(index=True)
    product: str = Field(default="")
    description: str = Field(default="")

    side: str = Field()  # BUY or SELL
    quantity: int = Field()
    price: float = Field()
    executed_at: datetime = Field(index=True)  # UTC
    currency: str = Field(default="USD")

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        sqlalchemy.UniqueConstraint("account_id", "external_id", name="uq_account_external_id"),
    )


class Trade(SQLModel, table=True):
    """Derived trade: a closed round-trip, or an open position left after matching."""
    __tablename__ = "trade"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    account_id: str = Field(index=True)
    broker: str = Field(default="tradovate")

    symbol: str = Field(index=True)
    product: str = Field(default="")
    description: str = Field(default="")

    side: str = Field()  # LONG or SHORT
    quantity: int = Field()
    entry_price: float = Field()
    exit_price: Optional[float] = Field(default=None)

    # Lifecycle timestamps (UTC)
    entry_time: datetime = Field(index=True)
    exit_time: Optional[datetime] = Field(default=None, index=True)

    status: str = Field(default="open")  # open, closed

    pnl: Optional[float] = Field(default=None)  # realized, in dollars
    pnl_points: float = Field(default=0.0)
    fees: float = Field(default=0.0)
    commissions: float = Field(default=0.0)

    instrument_type: str = Field(default="future")
    currency: str = Field(default="USD")

    # Originating executions, carried through from matching
    open_execution_id: Optional[str] = Field(default=None)
    close_execution_id: Optional[str] = Field(default=None)

    notes: str = Field(default="")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ImportJob(SQLModel, table=True):
    """Summary of one file import."""
    __tablename__ = "import_job"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    account_id: str = Field(index=True)
    broker: str = Field()

    trades_imported: int = Field(default=0)
    executions_imported: int = Field(default=0)
    duplicates_skipped: int = Field(default=0)

    date_range_start: Optional[datetime] = Field(default=None)
    date_range_end: Optional[datetime] = Field(default=None)
    symbols: str = Field(default="")  # comma-separated
    total_pnl: float = Field(default=0.0)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
