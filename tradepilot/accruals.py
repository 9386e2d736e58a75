"""Daily return accrual passes over active investments.

Two passes credit user balances:

* the catch-up pass recomputes the expected earnings from the number of
  calendar days elapsed since the investment was created and tops up the
  shortfall, so running it any number of times is safe;
* the local-time pass credits one fixed ``daily_return`` when it is
  ``LOCAL_PROFIT_HOUR`` o'clock in the user's timezone and the investment was
  not credited earlier the same UTC day.

Both passes log and skip failures for individual investments and never raise.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger

from .config import settings
from .formatting import fmt_money
from .storage import InvestmentRecord, Storage


@dataclass(slots=True)
class AccrualResult:
    processed: int = 0
    total_credited: int = 0

    def add(self, amount: int) -> None:
        self.processed += 1
        self.total_credited += amount


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _service_date(moment: datetime) -> date:
    return _to_utc(moment).astimezone(ZoneInfo(settings.TZ)).date()


def completed_days(created_at: datetime, now: Optional[datetime] = None) -> int:
    """Whole calendar days since ``created_at``, clamped to ``[0, INVESTMENT_DAYS]``.

    Both moments are truncated to midnight in the service timezone, so an
    investment made at 23:59 has one completed day a minute later.
    """
    elapsed = (_service_date(now or _now()) - _service_date(created_at)).days
    return max(0, min(elapsed, settings.INVESTMENT_DAYS))


def is_local_hour(tz_name: str, now: Optional[datetime] = None, hour: Optional[int] = None) -> bool:
    target = settings.LOCAL_PROFIT_HOUR if hour is None else hour
    try:
        zone = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        logger.warning("Unknown timezone {tz}: {exc}", tz=tz_name, exc=exc)
        return False
    return _to_utc(now or _now()).astimezone(zone).hour == target


def _active(investments: Iterable[InvestmentRecord]) -> list[InvestmentRecord]:
    return [inv for inv in investments if inv.is_active and inv.days_remaining > 0]


def _catch_up(storage: Storage, investment: InvestmentRecord, now: datetime) -> int:
    user = storage.get_user(investment.user_id)
    if user is None:
        logger.warning(
            "User #{user_id} of investment #{inv_id} not found, skipping",
            user_id=investment.user_id,
            inv_id=investment.id,
        )
        return 0

    days = completed_days(investment.created_at, now)
    expected = days * investment.daily_return
    if expected <= investment.total_earned:
        return 0

    missing = expected - investment.total_earned
    storage.update_user(user.id, balance=user.balance + missing)

    remaining = max(0, settings.INVESTMENT_DAYS - days)
    storage.update_user_investment(
        investment.id,
        total_earned=expected,
        days_remaining=remaining,
        is_active=remaining > 0,
    )
    logger.info(
        "Credited {username}: {amount} (day {day}, total {total})",
        username=user.username,
        amount=fmt_money(missing),
        day=days,
        total=fmt_money(expected),
    )
    return missing


def process_daily_returns(storage: Storage, now: Optional[datetime] = None) -> AccrualResult:
    """Catch-up pass: credit whatever the elapsed calendar days say is owed."""

    moment = now or _now()
    result = AccrualResult()
    try:
        investments = _active(storage.get_all_investments())
    except Exception:
        logger.exception("Failed to load investments for daily returns")
        return result

    logger.info("Processing daily returns for {count} active investments", count=len(investments))
    for investment in investments:
        try:
            credited = _catch_up(storage, investment, moment)
        except Exception:
            logger.exception("Daily return failed for investment #{inv_id}", inv_id=investment.id)
            continue
        if credited:
            result.add(credited)
    return result


def process_daily_returns_now(storage: Storage) -> AccrualResult:
    """Force one day's credit for every active investment.

    Manual trigger for demos and support; returns zero counts on failure.
    """

    result = AccrualResult()
    try:
        for investment in _active(storage.get_all_investments()):
            user = storage.get_user(investment.user_id)
            if user is None:
                continue

            daily = investment.daily_return
            storage.update_user(user.id, balance=user.balance + daily)
            remaining = max(0, investment.days_remaining - 1)
            storage.update_user_investment(
                investment.id,
                total_earned=investment.total_earned + daily,
                days_remaining=remaining,
                is_active=remaining > 0,
            )
            result.add(daily)
            logger.info("Manual credit for {username}: {amount}", username=user.username, amount=fmt_money(daily))
    except Exception:
        logger.exception("Manual daily returns processing failed")
        return AccrualResult()
    return result


def _credit_local_day(storage: Storage, investment: InvestmentRecord, moment: datetime) -> int:
    user = storage.get_user(investment.user_id)
    if user is None or not user.timezone:
        return 0
    if not is_local_hour(user.timezone, moment):
        return 0

    today = _to_utc(moment).date().isoformat()
    if investment.last_profit_date == today:
        return 0

    daily = investment.daily_return
    storage.update_user(user.id, balance=user.balance + daily)

    total = investment.total_earned + daily
    remaining = max(0, investment.days_remaining - 1)
    storage.update_user_investment(
        investment.id,
        total_earned=total,
        days_remaining=remaining,
        is_active=remaining > 0,
        last_profit_date=today,
    )
    logger.info(
        "{hour}:00 daily profit for {username} ({tz}): {amount} - day {day}",
        hour=settings.LOCAL_PROFIT_HOUR,
        username=user.username,
        tz=user.timezone,
        amount=fmt_money(daily),
        day=settings.INVESTMENT_DAYS - remaining,
    )

    # The catch-up pass credits independently; surface when the two disagree.
    scheduled = completed_days(investment.created_at, moment) * daily
    if total > scheduled:
        logger.warning(
            "Investment #{inv_id} earned {total}, ahead of catch-up schedule {scheduled}",
            inv_id=investment.id,
            total=fmt_money(total),
            scheduled=fmt_money(scheduled),
        )
    return daily


def process_returns_for_local_time(storage: Storage, now: Optional[datetime] = None) -> AccrualResult:
    """Local-time pass: one ``daily_return`` per investment at the user's profit hour."""

    moment = now or _now()
    result = AccrualResult()
    try:
        investments = _active(storage.get_all_investments())
    except Exception:
        logger.exception("Failed to load investments for local time returns")
        return result

    for investment in investments:
        try:
            credited = _credit_local_day(storage, investment, moment)
        except Exception:
            logger.exception("Local time return failed for investment #{inv_id}", inv_id=investment.id)
            continue
        if credited:
            result.add(credited)

    if result.processed:
        logger.info(
            "Processed {count} users at their local {hour}:00",
            count=result.processed,
            hour=settings.LOCAL_PROFIT_HOUR,
        )
    return result
