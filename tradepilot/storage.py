from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, Optional, Protocol, Sequence

from sqlalchemy.orm import Session, sessionmaker

from .config import settings
from .models import SystemSetting, User, UserInvestment


@dataclass(slots=True)
class UserRecord:
    id: int
    username: str
    balance: int
    timezone: Optional[str] = None
    country: Optional[str] = None


@dataclass(slots=True)
class InvestmentRecord:
    id: int
    user_id: int
    created_at: datetime
    daily_return: int
    total_earned: int = 0
    days_remaining: int = 30
    is_active: bool = True
    last_profit_date: Optional[str] = None


class Storage(Protocol):
    def get_all_investments(self) -> Sequence[InvestmentRecord]:
        ...

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        ...

    def update_user(self, user_id: int, **changes: Any) -> None:
        ...

    def update_user_investment(self, investment_id: int, **changes: Any) -> None:
        ...

    def get_system_settings(self) -> dict[str, Any]:
        ...

    def update_system_settings(self, patch: dict[str, Any]) -> None:
        ...


def deep_merge(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    merged = deepcopy(base)
    for key, value in patch.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


def _to_naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def _as_record(row: Any, record_cls: type) -> Any:
    return record_cls(**{f.name: getattr(row, f.name) for f in fields(record_cls)})


class SqlStorage:
    """Storage backed by the SQLAlchemy models; every call runs in its own session."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def add_user(
        self,
        username: str,
        balance: int = 0,
        timezone: str | None = None,
        country: str | None = None,
    ) -> UserRecord:
        with self._session_factory() as s:
            user = User(username=username, balance=balance, timezone=timezone, country=country)
            s.add(user)
            s.commit()
            return _as_record(user, UserRecord)

    def add_investment(
        self,
        user_id: int,
        daily_return: int,
        created_at: datetime | None = None,
        total_earned: int = 0,
        days_remaining: int | None = None,
        is_active: bool = True,
        last_profit_date: str | None = None,
    ) -> InvestmentRecord:
        created = _to_naive_utc(created_at or datetime.now(timezone.utc))
        with self._session_factory() as s:
            investment = UserInvestment(
                user_id=user_id,
                created_at=created,
                daily_return=daily_return,
                total_earned=total_earned,
                days_remaining=settings.INVESTMENT_DAYS if days_remaining is None else days_remaining,
                is_active=is_active,
                last_profit_date=last_profit_date,
            )
            s.add(investment)
            s.commit()
            return _as_record(investment, InvestmentRecord)

    def get_all_investments(self) -> list[InvestmentRecord]:
        with self._session_factory() as s:
            rows = s.query(UserInvestment).order_by(UserInvestment.id).all()
            return [_as_record(row, InvestmentRecord) for row in rows]

    def get_investment(self, investment_id: int) -> Optional[InvestmentRecord]:
        with self._session_factory() as s:
            row = s.get(UserInvestment, investment_id)
            return _as_record(row, InvestmentRecord) if row else None

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        with self._session_factory() as s:
            row = s.get(User, user_id)
            return _as_record(row, UserRecord) if row else None

    def update_user(self, user_id: int, **changes: Any) -> None:
        self._update(User, user_id, changes)

    def update_user_investment(self, investment_id: int, **changes: Any) -> None:
        if "created_at" in changes and changes["created_at"] is not None:
            changes["created_at"] = _to_naive_utc(changes["created_at"])
        self._update(UserInvestment, investment_id, changes)

    def get_system_settings(self) -> dict[str, Any]:
        with self._session_factory() as s:
            rows = s.query(SystemSetting).all()
            return {row.key: deepcopy(row.value) for row in rows}

    def update_system_settings(self, patch: dict[str, Any]) -> None:
        with self._session_factory() as s:
            for key, value in patch.items():
                row = s.get(SystemSetting, key)
                if row is None:
                    s.add(SystemSetting(key=key, value=deepcopy(value)))
                elif isinstance(row.value, dict) and isinstance(value, dict):
                    row.value = deep_merge(row.value, value)
                else:
                    row.value = deepcopy(value)
            s.commit()

    def _update(self, model: type, pk: int, changes: dict[str, Any]) -> None:
        with self._session_factory() as s:
            row = s.get(model, pk)
            if row is None:
                raise LookupError(f"{model.__tablename__} #{pk} not found")
            for name, value in changes.items():
                if not hasattr(model, name):
                    raise AttributeError(f"{model.__name__} has no column {name!r}")
                setattr(row, name, value)
            s.commit()
