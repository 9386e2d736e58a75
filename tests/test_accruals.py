from datetime import datetime, timedelta, timezone

import pytest

from tradepilot import accruals
from tradepilot.config import settings

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _user_balance(storage, user_id):
    return storage.get_user(user_id).balance


@pytest.mark.parametrize("age_days", [0, 1, 5, 29, 30, 45])
def test_catch_up_credits_elapsed_days(storage, age_days):
    user = storage.add_user("alice", balance=0)
    inv = storage.add_investment(user.id, daily_return=1000, created_at=NOW - timedelta(days=age_days))

    accruals.process_daily_returns(storage, now=NOW)

    days = min(age_days, 30)
    updated = storage.get_investment(inv.id)
    assert updated.total_earned == days * 1000
    assert _user_balance(storage, user.id) == days * 1000
    if days:
        assert updated.days_remaining == 30 - days
        assert updated.is_active is (days < 30)
    else:
        assert updated.days_remaining == 30
        assert updated.is_active is True


def test_catch_up_tops_up_shortfall_only(storage):
    user = storage.add_user("bob", balance=50_000)
    inv = storage.add_investment(
        user.id,
        daily_return=1000,
        created_at=NOW - timedelta(days=5),
        total_earned=3000,
        days_remaining=27,
    )

    result = accruals.process_daily_returns(storage, now=NOW)

    updated = storage.get_investment(inv.id)
    assert result.processed == 1
    assert result.total_credited == 2000
    assert _user_balance(storage, user.id) == 52_000
    assert updated.total_earned == 5000
    assert updated.days_remaining == 25
    assert updated.is_active is True


def test_catch_up_is_idempotent(storage):
    user = storage.add_user("carol")
    storage.add_investment(user.id, daily_return=250, created_at=NOW - timedelta(days=3))

    first = accruals.process_daily_returns(storage, now=NOW)
    balance = _user_balance(storage, user.id)
    second = accruals.process_daily_returns(storage, now=NOW + timedelta(hours=6))

    assert first.total_credited == 750
    assert second.processed == 0
    assert second.total_credited == 0
    assert _user_balance(storage, user.id) == balance


def test_catch_up_skips_inactive_and_finished(storage):
    user = storage.add_user("dave", balance=100)
    finished = storage.add_investment(
        user.id, daily_return=1000, created_at=NOW - timedelta(days=10), days_remaining=0
    )
    paused = storage.add_investment(
        user.id, daily_return=1000, created_at=NOW - timedelta(days=10), is_active=False
    )

    result = accruals.process_daily_returns(storage, now=NOW)

    assert result.processed == 0
    assert _user_balance(storage, user.id) == 100
    assert storage.get_investment(finished.id).total_earned == 0
    assert storage.get_investment(paused.id).total_earned == 0


def test_catch_up_uses_calendar_days():
    created = datetime(2026, 3, 9, 23, 59, tzinfo=timezone.utc)
    assert accruals.completed_days(created, datetime(2026, 3, 10, 0, 1, tzinfo=timezone.utc)) == 1
    assert accruals.completed_days(created, datetime(2026, 3, 9, 23, 59, 59, tzinfo=timezone.utc)) == 0


def test_completed_days_follows_service_timezone(monkeypatch):
    created = datetime(2026, 3, 10, 3, 0, tzinfo=timezone.utc)
    assert accruals.completed_days(created, NOW) == 0

    monkeypatch.setattr(settings, "TZ", "America/New_York")
    assert accruals.completed_days(created, NOW) == 1


def test_completed_days_future_creation_is_zero():
    assert accruals.completed_days(NOW + timedelta(days=2), NOW) == 0


def test_catch_up_skips_missing_user(storage):
    inv = storage.add_investment(999, daily_return=1000, created_at=NOW - timedelta(days=2))

    result = accruals.process_daily_returns(storage, now=NOW)

    assert result.processed == 0
    assert storage.get_investment(inv.id).total_earned == 0


def test_catch_up_continues_after_single_failure(storage, monkeypatch):
    broken = storage.add_user("broken")
    healthy = storage.add_user("healthy")
    storage.add_investment(broken.id, daily_return=100, created_at=NOW - timedelta(days=2))
    storage.add_investment(healthy.id, daily_return=100, created_at=NOW - timedelta(days=2))

    original = storage.update_user

    def flaky_update(user_id, **changes):
        if user_id == broken.id:
            raise RuntimeError("db is locked")
        return original(user_id, **changes)

    monkeypatch.setattr(storage, "update_user", flaky_update)

    result = accruals.process_daily_returns(storage, now=NOW)

    assert result.processed == 1
    assert _user_balance(storage, healthy.id) == 200
    assert _user_balance(storage, broken.id) == 0


def test_catch_up_load_failure_returns_empty_result(storage, monkeypatch):
    def boom():
        raise RuntimeError("connection refused")

    monkeypatch.setattr(storage, "get_all_investments", boom)

    result = accruals.process_daily_returns(storage, now=NOW)

    assert result.processed == 0
    assert result.total_credited == 0


def test_manual_credit_adds_one_day(storage):
    user = storage.add_user("erin", balance=1000)
    inv = storage.add_investment(user.id, daily_return=500, days_remaining=1, total_earned=14_500)
    other = storage.add_investment(user.id, daily_return=200)

    result = accruals.process_daily_returns_now(storage)

    assert result.processed == 2
    assert result.total_credited == 700
    assert _user_balance(storage, user.id) == 1700
    last = storage.get_investment(inv.id)
    assert last.total_earned == 15_000
    assert last.days_remaining == 0
    assert last.is_active is False
    assert storage.get_investment(other.id).days_remaining == 29


def test_manual_credit_failure_reports_zero(storage, monkeypatch):
    user = storage.add_user("frank")
    storage.add_investment(user.id, daily_return=500)

    def boom(user_id, **changes):
        raise RuntimeError("write failed")

    monkeypatch.setattr(storage, "update_user", boom)

    result = accruals.process_daily_returns_now(storage)

    assert result.processed == 0
    assert result.total_credited == 0


def test_is_local_hour():
    moment = datetime(2026, 3, 10, 16, 30, tzinfo=timezone.utc)
    assert accruals.is_local_hour("Asia/Tokyo", moment) is True
    assert accruals.is_local_hour("UTC", moment) is False
    assert accruals.is_local_hour("UTC", moment, hour=16) is True
    assert accruals.is_local_hour("Mars/Olympus_Mons", moment) is False


def test_local_time_credit_once_per_day(storage):
    user = storage.add_user("gina", balance=0, timezone="UTC")
    inv = storage.add_investment(user.id, daily_return=800, created_at=NOW - timedelta(days=3))
    one_am = datetime(2026, 3, 10, 1, 5, tzinfo=timezone.utc)

    first = accruals.process_returns_for_local_time(storage, now=one_am)
    second = accruals.process_returns_for_local_time(storage, now=one_am + timedelta(minutes=15))
    third = accruals.process_returns_for_local_time(storage, now=one_am + timedelta(minutes=45))

    assert first.processed == 1
    assert second.processed == 0
    assert third.processed == 0
    updated = storage.get_investment(inv.id)
    assert updated.total_earned == 800
    assert updated.days_remaining == 29
    assert updated.last_profit_date == "2026-03-10"
    assert _user_balance(storage, user.id) == 800


def test_local_time_credit_next_day(storage):
    user = storage.add_user("hank", timezone="UTC")
    inv = storage.add_investment(user.id, daily_return=800, last_profit_date="2026-03-09")

    result = accruals.process_returns_for_local_time(
        storage, now=datetime(2026, 3, 10, 1, 0, tzinfo=timezone.utc)
    )

    assert result.processed == 1
    assert storage.get_investment(inv.id).last_profit_date == "2026-03-10"


def test_local_time_uses_user_timezone(storage):
    tokyo = storage.add_user("ivy", timezone="Asia/Tokyo")
    london = storage.add_user("jack", timezone="Europe/London")
    storage.add_investment(tokyo.id, daily_return=100)
    storage.add_investment(london.id, daily_return=100)

    result = accruals.process_returns_for_local_time(
        storage, now=datetime(2026, 3, 10, 16, 30, tzinfo=timezone.utc)
    )

    assert result.processed == 1
    assert _user_balance(storage, tokyo.id) == 100
    assert _user_balance(storage, london.id) == 0


def test_local_time_skips_users_without_timezone(storage):
    nobody = storage.add_user("kate")
    bad = storage.add_user("leo", timezone="Not/AZone")
    storage.add_investment(nobody.id, daily_return=100)
    storage.add_investment(bad.id, daily_return=100)

    result = accruals.process_returns_for_local_time(
        storage, now=datetime(2026, 3, 10, 1, 0, tzinfo=timezone.utc)
    )

    assert result.processed == 0


def test_local_time_final_day_deactivates(storage):
    user = storage.add_user("mia", timezone="UTC")
    inv = storage.add_investment(user.id, daily_return=100, days_remaining=1, total_earned=2900)

    accruals.process_returns_for_local_time(storage, now=datetime(2026, 3, 10, 1, 0, tzinfo=timezone.utc))

    updated = storage.get_investment(inv.id)
    assert updated.days_remaining == 0
    assert updated.is_active is False
    assert updated.total_earned == 3000


def test_both_passes_can_credit_same_day(storage):
    user = storage.add_user("noah", timezone="UTC")
    inv = storage.add_investment(user.id, daily_return=100, created_at=datetime(2026, 3, 5, 12, tzinfo=timezone.utc))
    one_am = datetime(2026, 3, 10, 1, 0, tzinfo=timezone.utc)

    accruals.process_daily_returns(storage, now=one_am)
    accruals.process_returns_for_local_time(storage, now=one_am)

    updated = storage.get_investment(inv.id)
    assert updated.total_earned == 600
    assert updated.days_remaining == 24
    assert _user_balance(storage, user.id) == 600
