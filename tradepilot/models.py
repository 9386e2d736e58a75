from sqlalchemy import JSON, BigInteger, Boolean, Column, DateTime, ForeignKey, Integer, String
from .db import Base

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False)
    balance = Column(BigInteger, default=0)      # cents
    timezone = Column(String, nullable=True)     # IANA name, e.g. "Europe/Berlin"
    country = Column(String, nullable=True)

class UserInvestment(Base):
    __tablename__ = "user_investments"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    created_at = Column(DateTime)                # naive UTC
    daily_return = Column(BigInteger, nullable=False)
    total_earned = Column(BigInteger, default=0)
    days_remaining = Column(Integer, default=30)
    is_active = Column(Boolean, default=True)
    last_profit_date = Column(String, nullable=True)  # "YYYY-MM-DD", UTC

class SystemSetting(Base):
    __tablename__ = "system_settings"
    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=False)
