from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from probate_monitor.core.config import settings
from probate_monitor.schemas.scraped_case import SourceKind

def today_in(timezone: str, now: Optional[datetime] = None) -> date:
    """Calendar date of ``now`` (default: current time) in ``timezone``"""
    tz = ZoneInfo(timezone)
    if now is None:
        return datetime.now(tz).date()
    if now.tzinfo is None:
        return now.date()
    return now.astimezone(tz).date()

def admit(
    filing_date: Optional[date],
    source_kind: SourceKind,
    now: Optional[datetime] = None,
    timezone: str = None,
    lookback_days: int = None,
) -> bool:
    """Decide whether a filing is fresh enough to keep.

    Court sources keep same-day filings only. Property sources keep filings in
    [today - lookback_days, today + 1 day). A missing date is never admitted.
    """
    if filing_date is None:
        return False
    if isinstance(filing_date, datetime):
        filing_date = filing_date.date()
    today = today_in(timezone or settings.ADMISSION_TIMEZONE, now)
    
    if source_kind == "court":
        return filing_date == today
    if source_kind == "property":
        if lookback_days is None:
            lookback_days = settings.PROPERTY_LOOKBACK_DAYS
        start = today - timedelta(days=lookback_days)
        end = today + timedelta(days=1)
        return start <= filing_date < end
    raise ValueError(f"Unknown source kind: {source_kind}")
