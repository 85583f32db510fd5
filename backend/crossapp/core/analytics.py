"""Analytics — pure helpers for reporting periods and financial summaries.

Invariants:
    - Amounts summed as Decimal; rows with unparseable amounts count as zero
    - recent payments ordered newest first, at most RECENT_PAYMENTS_LIMIT
    - "30d" style ranges: leading integer = days back from end_date
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation

RECENT_PAYMENTS_LIMIT = 10
DEFAULT_RANGE_DAYS = 30

_RANGE_PATTERN = re.compile(r"^\s*(\d+)")


@dataclass(frozen=True)
class Period:
    start_date: datetime
    end_date: datetime

    def as_dict(self) -> dict:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
        }


def parse_period(date_range: str | int, now: datetime | None = None) -> Period:
    """Turn '30d', '7', or 90 into a Period ending now."""
    end = now or datetime.now(timezone.utc)
    if isinstance(date_range, int):
        days = date_range
    else:
        match = _RANGE_PATTERN.match(date_range)
        days = int(match.group(1)) if match else DEFAULT_RANGE_DAYS
    return Period(start_date=end - timedelta(days=days), end_date=end)


def _amount(row: dict) -> Decimal:
    try:
        return Decimal(str(row.get("amount", 0)))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def summarize_financials(users: list[dict], payments: list[dict]) -> dict:
    """Financial summary of one academy from its users and payments."""
    completed = sum(
        (_amount(p) for p in payments if p.get("status") == "completed"),
        Decimal("0"),
    )
    pending = sum(
        (_amount(p) for p in payments if p.get("status") == "pending"),
        Decimal("0"),
    )
    recent = sorted(
        payments, key=lambda p: str(p.get("created_at") or ""), reverse=True,
    )[:RECENT_PAYMENTS_LIMIT]
    return {
        "total_users": len(users),
        "total_revenue": completed,
        "pending_payments": pending,
        "recent_payments": recent,
    }
