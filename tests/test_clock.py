from datetime import datetime, timezone
import re

from buildwatch.clock import parse_iso, utcnow_iso


def test_utcnow_iso_is_fixed_width_utc():
    value = utcnow_iso()

    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", value)


def test_utcnow_iso_sorts_chronologically():
    first = utcnow_iso()
    second = utcnow_iso()

    assert first <= second


def test_parse_iso_accepts_zulu_and_offsets():
    expected = datetime(2026, 2, 16, 10, 0, 0, 123000, tzinfo=timezone.utc)

    assert parse_iso("2026-02-16T10:00:00.123Z") == expected
    assert parse_iso("2026-02-16T11:00:00.123+01:00") == expected
    assert parse_iso("2026-02-16T10:00:00.123") == expected
