from datetime import date, datetime, timedelta, timezone

import pytest

from probate_monitor.utils.admission import admit, today_in

NOW = datetime(2024, 3, 14, 12, 0)
TODAY = NOW.date()


def test_court_source_admits_only_today():
    assert admit(TODAY, "court", now=NOW)
    assert not admit(TODAY - timedelta(days=1), "court", now=NOW)
    assert not admit(TODAY + timedelta(days=1), "court", now=NOW)


def test_missing_filing_date_is_never_admitted():
    assert not admit(None, "court", now=NOW)
    assert not admit(None, "property", now=NOW)


def test_property_source_window_is_half_open():
    assert admit(TODAY - timedelta(days=14), "property", now=NOW)
    assert admit(TODAY, "property", now=NOW)
    assert not admit(TODAY - timedelta(days=15), "property", now=NOW)
    assert not admit(TODAY + timedelta(days=1), "property", now=NOW)


def test_property_window_every_day_inside():
    for offset in range(0, 15):
        assert admit(TODAY - timedelta(days=offset), "property", now=NOW)


def test_lookback_is_configurable():
    assert not admit(TODAY - timedelta(days=8), "property", now=NOW, lookback_days=7)
    assert admit(TODAY - timedelta(days=7), "property", now=NOW, lookback_days=7)


def test_today_uses_reference_timezone():
    # 02:00 UTC on the 15th is still the 14th in New York
    now = datetime(2024, 3, 15, 2, 0, tzinfo=timezone.utc)
    assert today_in("America/New_York", now) == date(2024, 3, 14)
    assert admit(date(2024, 3, 14), "court", now=now, timezone="America/New_York")
    assert not admit(date(2024, 3, 15), "court", now=now, timezone="America/New_York")


def test_datetime_filing_dates_compare_by_day():
    assert admit(datetime(2024, 3, 14, 23, 59), "court", now=NOW)


def test_unknown_source_kind_raises():
    with pytest.raises(ValueError):
        admit(TODAY, "newspaper", now=NOW)
