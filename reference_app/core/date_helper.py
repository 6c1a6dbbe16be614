import math
from datetime import datetime, timedelta, timezone

from .settings import settings


def utc_now() -> datetime:
    # Naive UTC, matching how DateTime columns are stored.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def calculate_reference_expiry(created_at: datetime) -> datetime:
    return created_at + timedelta(days=settings.REFERENCE_EXPIRY_DAYS)


def days_until(moment: datetime, now: datetime) -> int:
    return math.ceil((moment - now) / timedelta(days=1))
