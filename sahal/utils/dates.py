"""
Date arithmetic helpers shared by the card ledger, recruitment and sweep
"""

import math
from datetime import datetime, timezone
from dateutil.relativedelta import relativedelta

SECONDS_PER_DAY = 24 * 60 * 60

def utcnow() -> datetime:
    """Current time as a naive UTC datetime, matching the stored columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def add_months_clamped(value: datetime, months: int) -> datetime:
    """
    Add whole months, clamping the day to the target month's length

    Jan 31 + 1 month gives Feb 28 (Feb 29 in leap years). Negative values
    move backwards with the same clamping. Time of day is preserved.

    Args:
        value: Starting date or datetime
        months: Number of months to add

    Returns:
        Shifted value of the same type
    """
    return value + relativedelta(months=months)

def days_until(target: datetime, now: datetime) -> int:
    """Whole days left until target, rounded up; zero once passed"""
    seconds = (target - now).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / SECONDS_PER_DAY)
