"""Tests for expiration token parsing and expiry arithmetic."""

from datetime import datetime, timedelta

import pytest
from hypothesis import given, settings, strategies as st

from expiration import (MAX_AMOUNT, NEVER, Expiration, Unit, expires_in, parse,
                        to_absolute, utc_now)

NOW = datetime(2025, 6, 1, 8, 30, 0)


class TestParse:
    @pytest.mark.parametrize("token", [None, "", "never", "m", "h", "d", "5", "10s", "3w", "1D"])
    def test_never_tokens(self, token):
        assert parse(token) == NEVER

    @pytest.mark.parametrize(
        "token, expected",
        [
            ("30m", Expiration(Unit.MINUTES, 30)),
            ("1h", Expiration(Unit.HOURS, 1)),
            ("2d", Expiration(Unit.DAYS, 2)),
            ("0m", Expiration(Unit.MINUTES, 0)),
            ("007h", Expiration(Unit.HOURS, 7)),
        ],
    )
    def test_valid_tokens(self, token, expected):
        assert parse(token) == expected

    @pytest.mark.parametrize(
        "token, unit",
        [("xm", Unit.MINUTES), ("abch", Unit.HOURS), ("-5d", Unit.DAYS), ("1.5h", Unit.HOURS), ("+3m", Unit.MINUTES)],
    )
    def test_unparseable_prefix_is_zero(self, token, unit):
        assert parse(token) == Expiration(unit, 0)

    @pytest.mark.parametrize("unit", ["m", "h", "d"])
    def test_prefix_above_64_bit_range_is_zero(self, unit):
        assert parse(f"99999999999999999999{unit}") == Expiration(Unit(unit), 0)
        assert parse(f"{MAX_AMOUNT + 1}{unit}") == Expiration(Unit(unit), 0)
        assert parse(f"{MAX_AMOUNT}{unit}") == Expiration(Unit(unit), MAX_AMOUNT)

    def test_prefix_too_long_to_convert_is_zero(self):
        assert parse("1" * 5000 + "m") == Expiration(Unit.MINUTES, 0)
        assert parse("9" * 5000 + "d") == Expiration(Unit.DAYS, 0)

    @settings(max_examples=200)
    @given(token=st.text(max_size=12))
    def test_never_iff_empty_never_short_or_bad_unit(self, token):
        expect_never = (
            token == ""
            or token == "never"
            or len(token) < 2
            or token[-1] not in ("m", "h", "d")
        )
        assert parse(token).is_never == expect_never

    @settings(max_examples=100)
    @given(amount=st.integers(min_value=0, max_value=10**6), unit=st.sampled_from("mhd"))
    def test_numeric_prefix_round_trip(self, amount, unit):
        parsed = parse(f"{amount}{unit}")
        assert parsed.amount == amount
        assert parsed.unit is Unit(unit)


class TestToAbsolute:
    def test_never_has_no_expiry(self):
        assert to_absolute(NEVER, NOW) is None

    def test_minutes(self):
        assert to_absolute(parse("30m"), NOW) == NOW + timedelta(minutes=30)

    def test_hours(self):
        assert to_absolute(parse("3h"), NOW) == NOW + timedelta(hours=3)

    def test_days(self):
        assert to_absolute(parse("2d"), NOW) == NOW + timedelta(days=2)

    def test_zero_magnitude_expires_immediately(self):
        assert to_absolute(parse("xm"), NOW) == NOW

    def test_overflow_means_never(self):
        assert to_absolute(parse("99999999999999d"), NOW) is None
        assert to_absolute(parse(f"{MAX_AMOUNT}m"), NOW) is None

    def test_prefix_above_64_bit_range_expires_immediately(self):
        assert to_absolute(parse("99999999999999999999m"), NOW) == NOW


class TestExpiresIn:
    def test_no_expiry(self):
        assert expires_in(None, NOW) is None

    def test_expired(self):
        assert expires_in(NOW - timedelta(seconds=1), NOW) == "Expired"
        assert expires_in(NOW, NOW) == "Expired"

    def test_largest_unit_wins(self):
        assert expires_in(NOW + timedelta(days=3, hours=5), NOW) == "3 days"
        assert expires_in(NOW + timedelta(hours=5, minutes=10), NOW) == "5 hours"
        assert expires_in(NOW + timedelta(minutes=42, seconds=5), NOW) == "42 minutes"
        assert expires_in(NOW + timedelta(seconds=30), NOW) == "0 minutes"


def test_utc_now_is_naive():
    assert utc_now().tzinfo is None
