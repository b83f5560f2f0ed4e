"""
Startup connectivity and tracking-code allocation tests.
"""

from datetime import datetime

import pytest

from fieldops.database import connect_with_retry, ping_database
from fieldops.services import tracking_service
from fieldops.services.tracking_service import (
    TrackingCodeError,
    format_tracking_code,
    generate_tracking_code,
    is_tracking_code,
)


class _Flaky:
    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"refused #{self.calls}")
        return "connected"


# =============================================================================
# CONNECT WITH RETRY
# =============================================================================


class TestConnectWithRetry:

    def test_first_attempt_succeeds(self):
        sleeps = []
        assert connect_with_retry(_Flaky(0), sleep=sleeps.append) == "connected"
        assert sleeps == []

    def test_succeeds_on_third_attempt(self):
        sleeps = []
        connect = _Flaky(2)
        assert connect_with_retry(connect, sleep=sleeps.append) == "connected"
        assert connect.calls == 3
        assert sleeps == [2.0, 4.0]

    def test_last_failure_is_reraised(self):
        sleeps = []
        connect = _Flaky(5)
        with pytest.raises(ConnectionError, match="refused #3"):
            connect_with_retry(connect, sleep=sleeps.append)
        assert connect.calls == 3
        assert sleeps == [2.0, 4.0]

    def test_custom_schedule(self):
        sleeps = []
        connect_with_retry(_Flaky(3), attempts=4, base_delay=0.5, sleep=sleeps.append)
        assert sleeps == [1.0, 2.0, 4.0]

    def test_ping(self, app):
        ping_database()


# =============================================================================
# TRACKING CODES
# =============================================================================


class TestTrackingCodes:

    def test_format(self):
        assert format_tracking_code(datetime(2025, 1, 15), 42) == "DMG2501150042"
        assert format_tracking_code(datetime(2024, 12, 3), 9999) == "DMG2412039999"

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("DMG2501150042", True),
            ("DMG250115004", False),
            ("dmg2501150042", False),
            ("DMG25011500420", False),
            ("", False),
            (None, False),
        ],
    )
    def test_is_tracking_code(self, value, expected):
        assert is_tracking_code(value) is expected

    def test_skips_codes_in_use(self):
        draws = iter([7, 7, 8])
        taken = {"DMG2501150007"}
        code = generate_tracking_code(
            now=datetime(2025, 1, 15),
            rand=lambda lo, hi: next(draws),
            exists=taken.__contains__,
        )
        assert code == "DMG2501150008"

    def test_gives_up_after_max_draws(self):
        calls = []

        def exists(code):
            calls.append(code)
            return True

        with pytest.raises(TrackingCodeError):
            generate_tracking_code(now=datetime(2025, 1, 15), rand=lambda lo, hi: 1, exists=exists)
        assert len(calls) == tracking_service.MAX_DRAWS

    def test_draw_range(self):
        seen = []

        def rand(lo, hi):
            seen.append((lo, hi))
            return hi

        code = generate_tracking_code(now=datetime(2025, 1, 15), rand=rand, exists=lambda code: False)
        assert code == "DMG2501159999"
        assert seen == [(0, 9999)]

    def test_default_lookup_uses_claims(self, db_session, marketing, make_claim):
        make_claim(marketing, status="Approved", approved_pieces=10, tracking_id="DMG2501150001")
        draws = iter([1, 2])
        code = generate_tracking_code(now=datetime(2025, 1, 15), rand=lambda lo, hi: next(draws))
        assert code == "DMG2501150002"
