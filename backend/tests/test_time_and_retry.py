# Overview: Pytest coverage for UTC helpers and the transient-error retry loop.

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from utang.services import concurrency
from utang.time_utils import as_naive_utc, older_than, parse_iso_datetime, to_utc_z


class TestTimeUtils:
    def test_offsets_normalized_to_naive_utc(self):
        assert parse_iso_datetime("2026-03-01T08:00:00+08:00") == datetime(2026, 3, 1, 0, 0)
        assert parse_iso_datetime("2026-03-01T00:00:00Z") == datetime(2026, 3, 1, 0, 0)

    def test_date_only_and_blank(self):
        assert parse_iso_datetime("2026-03-01") == datetime(2026, 3, 1)
        assert parse_iso_datetime("   ") is None
        assert parse_iso_datetime(None) is None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_iso_datetime("next tuesday")

    def test_serialized_with_z(self):
        aware = datetime(2026, 3, 1, 8, 0, 0, 999, tzinfo=timezone(timedelta(hours=8)))
        assert to_utc_z(aware) == "2026-03-01T00:00:00Z"
        assert to_utc_z(None) is None

    def test_as_naive_utc_keeps_naive_values(self):
        naive = datetime(2026, 3, 1, 12, 30)
        assert as_naive_utc(naive) is naive

    def test_older_than(self):
        now = datetime(2026, 3, 1, 12, 0)
        assert older_than(now - timedelta(hours=3), timedelta(hours=2), now=now)
        assert not older_than(now - timedelta(hours=1), timedelta(hours=2), now=now)


def _locked():
    return OperationalError("UPDATE stores", {}, Exception("database is locked"))


class TestRunWithRetry:
    def test_transient_error_retried(self, db_session, monkeypatch):
        monkeypatch.setattr(concurrency.time, "sleep", lambda seconds: None)
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise _locked()
            return "done"

        assert concurrency.run_with_retry(flaky) == "done"
        assert len(calls) == 3

    def test_gives_up_after_attempts(self, db_session, monkeypatch):
        monkeypatch.setattr(concurrency.time, "sleep", lambda seconds: None)
        calls = []

        def always_locked():
            calls.append(1)
            raise _locked()

        with pytest.raises(OperationalError):
            concurrency.run_with_retry(always_locked, attempts=2)
        assert len(calls) == 2

    def test_other_errors_not_retried(self, db_session):
        calls = []

        def broken():
            calls.append(1)
            raise KeyError("boom")

        with pytest.raises(KeyError):
            concurrency.run_with_retry(broken)
        assert len(calls) == 1

    def test_backoff_doubles(self):
        assert [concurrency.backoff_delay(n, 0.1) for n in range(3)] == pytest.approx([0.1, 0.2, 0.4])
