"""
Unit Tests for is_within_return_window().
"""

from datetime import datetime, timedelta, timezone

from evarae.services.returns import is_within_return_window

NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


class TestReturnWindow:

    def test_missing_paid_at_is_ineligible(self):
        assert is_within_return_window(None, now=NOW) is False

    def test_exactly_seven_days_is_eligible(self):
        assert is_within_return_window(NOW - timedelta(days=7), now=NOW) is True

    def test_just_past_seven_days_is_ineligible(self):
        assert is_within_return_window(NOW - timedelta(days=7.1), now=NOW) is False

    def test_fractional_days_are_not_truncated(self):
        assert is_within_return_window(NOW - timedelta(days=7, seconds=1), now=NOW) is False

    def test_same_moment_is_eligible(self):
        assert is_within_return_window(NOW, now=NOW) is True

    def test_future_paid_at_is_rejected(self):
        assert is_within_return_window(NOW + timedelta(minutes=5), now=NOW) is False

    def test_naive_timestamps_are_utc(self):
        naive = (NOW - timedelta(days=2)).replace(tzinfo=None)

        assert is_within_return_window(naive, now=NOW) is True

    def test_iso_string_input(self):
        assert is_within_return_window("2026-10-15T09:30:00Z", now=NOW) is True
        assert is_within_return_window("2026-10-01T09:30:00Z", now=NOW) is False

    def test_custom_window(self):
        paid = NOW - timedelta(days=10)

        assert is_within_return_window(paid, now=NOW, window_days=14) is True
        assert is_within_return_window(paid, now=NOW) is False

    def test_defaults_to_current_time(self):
        assert is_within_return_window(datetime.now(timezone.utc) - timedelta(days=1)) is True


class TestWindowSetting:

    def test_fractional_window_from_environment(self, monkeypatch):
        import importlib

        import evarae.config as config

        monkeypatch.setenv("RETURN_WINDOW_DAYS", "7.5")
        try:
            importlib.reload(config)
            window = config.Settings().RETURN_WINDOW_DAYS
        finally:
            monkeypatch.undo()
            importlib.reload(config)

        assert window == 7.5
        assert is_within_return_window(NOW - timedelta(days=7.4), now=NOW, window_days=window) is True
        assert is_within_return_window(NOW - timedelta(days=7.6), now=NOW, window_days=window) is False
