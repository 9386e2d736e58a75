import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tradepilot import models  # noqa: F401  registers tables on Base
from tradepilot.config import settings
from tradepilot.db import Base
from tradepilot.storage import SqlStorage


@pytest.fixture(autouse=True)
def service_settings(monkeypatch):
    monkeypatch.setattr(settings, "TZ", "UTC")
    monkeypatch.setattr(settings, "INVESTMENT_DAYS", 30)
    monkeypatch.setattr(settings, "LOCAL_PROFIT_HOUR", 1)
    monkeypatch.setattr(settings, "ARBITRAGE_SEED", None)
    yield settings


@pytest.fixture
def storage():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    yield SqlStorage(factory)
    engine.dispose()
