"""Time utilities (UTC now, local recovery dates, elapsed milliseconds)."""
from __future__ import annotations
import time
from datetime import date, datetime, timezone

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def today_iso() -> str:
    """Recovery dates are calendar dates in ISO form (YYYY-MM-DD)."""
    return date.today().isoformat()

def elapsed_ms(start: float) -> float:
    """Milliseconds since a ``time.perf_counter()`` reading, rounded for logs."""
    return round((time.perf_counter() - start) * 1000, 2)

__all__ = ["utc_now", "today_iso", "elapsed_ms"]
