"""
Tradovate / TradingView Orders CSV parser.
Turns an orders export into normalized executions plus per-row diagnostics.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import pytz

from nova_journal.domain.models import Execution

logger = logging.getLogger(__name__)

MAX_ERRORS = 10


@dataclass
class ParseResult:
    """Executions parsed from a file plus what was left behind."""
    executions: List[Execution] = field(default_factory=list)
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.skipped += 1
        if len(self.errors) < MAX_ERRORS:
            self.errors.append(message)


class TradovateOrdersParser:
    """Parse Tradovate/TradingView Orders CSV exports."""

    TIMESTAMP_FORMAT = "%m/%d/%Y %H:%M:%S"

    DEFAULT_TIMEZONE = "America/Chicago"

    @staticmethod
    def parse_fill_time(value: str, timezone: str = DEFAULT_TIMEZONE) -> datetime:
        """
        Parse a "MM/DD/YYYY HH:MM:SS" fill time in the export's timezone.

        Returns:
            Aware datetime in UTC
        """
        dt_naive = datetime.strptime(value.strip(), TradovateOrdersParser.TIMESTAMP_FORMAT)
        dt_local = pytz.timezone(timezone).localize(dt_naive)
        return dt_local.astimezone(pytz.UTC)

    @staticmethod
    def parse_number(value: Optional[str]) -> Optional[float]:
        """Parse "1,234.5"-style numbers; blank or garbage gives None."""
        if value is None:
            return None
        cleaned = value.replace(",", "").replace('"', "").strip()
        if not cleaned:
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None

    @staticmethod
    def normalize_side(value: str) -> Optional[str]:
        """Exports pad the side (" Buy", " Sell")."""
        side = (value or "").strip().lower()
        if side == "buy":
            return "BUY"
        if side == "sell":
            return "SELL"
        return None

    @staticmethod
    def read_rows(csv_text: str) -> List[Dict[str, str]]:
        """Rows keyed by trimmed header; rows with the wrong field count are dropped."""
        lines = [line for line in csv_text.splitlines() if line.strip()]
        if len(lines) < 2:
            return []

        reader = csv.reader(io.StringIO("\n".join(lines)), skipinitialspace=True)
        headers = [h.strip() for h in next(reader)]

        rows = []
        for values in reader:
            if len(values) != len(headers):
                continue
            rows.append({h: v.strip() for h, v in zip(headers, values)})
        return rows

    @staticmethod
    def parse_csv(csv_text: str, timezone: str = DEFAULT_TIMEZONE) -> ParseResult:
        """
        Parse an Orders CSV export. Only filled orders are imported.

        Args:
            csv_text: Raw CSV content
            timezone: Timezone the export's fill times are in

        Returns:
            ParseResult with executions, skipped row count and row errors
        """
        result = ParseResult()

        for i, row in enumerate(TradovateOrdersParser.read_rows(csv_text)):
            row_num = i + 2  # header is row 1

            if "filled" not in row.get("Status", "").lower():
                result.skipped += 1
                continue

            side = TradovateOrdersParser.normalize_side(row.get("B/S", ""))
            if side is None:
                result.add_error(f'Row {row_num}: Invalid side "{row.get("B/S", "")}"')
                continue

            quantity = TradovateOrdersParser.parse_number(row.get("Filled Qty"))
            if quantity is None:
                quantity = TradovateOrdersParser.parse_number(row.get("filledQty"))
            if not quantity or quantity <= 0:
                result.skipped += 1
                continue
            # Contracts fill in whole units
            if not quantity.is_integer():
                result.add_error(f'Row {row_num}: Invalid quantity "{quantity:g}"')
                continue

            price = TradovateOrdersParser.parse_number(row.get("Avg Fill Price"))
            if price is None:
                price = TradovateOrdersParser.parse_number(row.get("avgPrice"))
            if not price or price <= 0:
                result.add_error(f"Row {row_num}: Invalid price")
                continue

            fill_time = row.get("Fill Time", "")
            try:
                executed_at = TradovateOrdersParser.parse_fill_time(fill_time, timezone)
            except ValueError:
                result.add_error(f'Row {row_num}: Invalid fill time "{fill_time}"')
                continue

            symbol = row.get("Contract", "")
            if not symbol:
                result.add_error(f"Row {row_num}: Missing symbol/contract")
                continue

            result.executions.append(
                Execution(
                    external_id=row.get("Order ID") or row.get("orderId") or "",
                    account=row.get("Account", ""),
                    symbol=symbol,
                    product=row.get("Product", ""),
                    description=row.get("Product Description", ""),
                    side=side,
                    quantity=int(quantity),
                    price=price,
                    executed_at=executed_at,
                    currency=row.get("Currency") or "USD",
                )
            )

        logger.info(
            "Parsed %d executions (%d rows skipped, %d errors)",
            len(result.executions), result.skipped, len(result.errors),
        )
        return result
