"""
Per-IP daily rate limiting for waitlist submissions.

State is not kept in memory: the limit is derived from the waitlist_entries table,
so it holds across multiple dynos sharing one database.
"""

import math
import os
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from fastapi import Request

from src.shared.waitlist.database import WaitlistStore

DEFAULT_RATE_LIMIT_PER_DAY = 10
UNKNOWN_IP = "unknown"


def utc_now() -> datetime:
    """Current naive UTC time, truncated to milliseconds to match stored timestamps."""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def get_now() -> datetime:
    """Dependency providing the request time. Overridden in tests."""
    return utc_now()


def parse_positive_int(value: Optional[str], fallback: int) -> int:
    """Parse a positive integer setting, falling back when absent or invalid."""
    if not value:
        return fallback
    try:
        parsed = int(value.strip())
    except ValueError:
        return fallback
    return parsed if parsed >= 1 else fallback


def get_rate_limit_per_day() -> int:
    """Daily per-IP submission ceiling from WAITLIST_RATE_LIMIT_PER_DAY (default 10)."""
    return parse_positive_int(os.environ.get("WAITLIST_RATE_LIMIT_PER_DAY"), DEFAULT_RATE_LIMIT_PER_DAY)


def get_client_ip(request: Request) -> str:
    """Get client IP address for rate limiting."""
    # Cloudflare sets the real client address
    connecting_ip = request.headers.get("CF-Connecting-IP")
    if connecting_ip:
        return connecting_ip

    # Check for forwarded IP (from proxy/load balancer)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take the first IP in the chain
        return forwarded.split(",")[0].strip()

    return UNKNOWN_IP


def utc_day_bounds(now: datetime) -> Tuple[datetime, datetime]:
    """Inclusive start and end (00:00:00.000 - 23:59:59.999) of the UTC day containing now."""
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    day_end = day_start + timedelta(days=1) - timedelta(milliseconds=1)
    return day_start, day_end


def seconds_until_next_utc_day(now: datetime) -> int:
    """Whole seconds until the next UTC midnight, never less than 1."""
    day_start, _ = utc_day_bounds(now)
    next_day = day_start + timedelta(days=1)
    return max(1, math.ceil((next_day - now).total_seconds()))


def check_rate_limit(store: WaitlistStore, ip_address: str, now: datetime, limit: int) -> bool:
    """
    Check if an IP address may submit again today.

    Args:
        store: Waitlist store for the current request
        ip_address: Client IP address
        now: Naive UTC time of the request
        limit: Maximum submissions per UTC day

    Returns:
        True if within rate limit, False if exceeded
    """
    day_start, day_end = utc_day_bounds(now)
    return store.count_submissions(ip_address, day_start, day_end) < limit
