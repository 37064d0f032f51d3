"""Tests for pair accuracy tiers and trading-session detection."""

from datetime import datetime, timedelta, timezone

import pytest

from fxsignal.market.pairs import FOREX_PAIRS
from fxsignal.strategy.session_filter import (
    PAIR_TIERS,
    get_pair_tier,
    get_session,
    is_hot_zone,
    is_strict_mode,
    session_for_hour,
)


class TestPairTiers:
    def test_every_configured_pair_has_a_tier(self):
        assert set(PAIR_TIERS) == set(FOREX_PAIRS)

    def test_known_tiers(self):
        assert get_pair_tier("EUR/USD") == "HIGH"
        assert get_pair_tier("USD/CAD") == "MEDIUM"
        assert get_pair_tier("GBP/JPY") == "LOW"

    def test_unlisted_pair_is_low(self):
        assert get_pair_tier("XAU/USD") == "LOW"


class TestSessions:
    @pytest.mark.parametrize(
        "hour,expected",
        [
            (6, "EVENING"),
            (7, "MORNING"),
            (11, "MORNING"),
            (12, "AFTERNOON"),
            (16, "AFTERNOON"),
            (17, "EVENING"),
            (0, "EVENING"),
        ],
    )
    def test_session_for_local_hour(self, hour, expected):
        assert session_for_hour(hour) == expected

    def test_utc_is_shifted_three_hours(self):
        base = datetime(2025, 1, 10, tzinfo=timezone.utc)
        assert get_session(base + timedelta(hours=4)) == "MORNING"     # 07:00 local
        assert get_session(base + timedelta(hours=9)) == "AFTERNOON"   # 12:00 local
        assert get_session(base + timedelta(hours=14)) == "EVENING"    # 17:00 local

    def test_naive_datetime_is_utc(self):
        assert get_session(datetime(2025, 1, 10, 9, 30)) == "AFTERNOON"

    def test_other_timezone_is_converted(self):
        tz = timezone(timedelta(hours=-5))
        # 04:00 UTC-5 = 09:00 UTC = 12:00 local
        assert get_session(datetime(2025, 1, 10, 4, 0, tzinfo=tz)) == "AFTERNOON"

    def test_default_is_current_time(self):
        assert get_session() in {"MORNING", "AFTERNOON", "EVENING"}


class TestModes:
    def test_hot_zone(self):
        assert is_hot_zone("MORNING")
        assert is_hot_zone("AFTERNOON")
        assert not is_hot_zone("EVENING")

    @pytest.mark.parametrize(
        "session,tier,expected",
        [
            ("AFTERNOON", "MEDIUM", True),
            ("AFTERNOON", "LOW", True),
            ("AFTERNOON", "HIGH", False),
            ("MORNING", "LOW", False),
            ("EVENING", "MEDIUM", False),
        ],
    )
    def test_strict_mode(self, session, tier, expected):
        assert is_strict_mode(session, tier) is expected
