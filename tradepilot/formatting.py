from __future__ import annotations

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

_CENT = Decimal("0.01")


def to_cents(value: float | int | str | Decimal) -> int:
    """Convert a dollar amount to integer cents, rounding half up."""
    amount = Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return int(amount * 100)


def fmt_amount(value: float | Decimal, precision: int = 2) -> str:
    """Format amounts with a comma as thousands separator."""
    if precision > 0:
        return f"{value:,.{precision}f}"
    return f"{value:,.0f}"


def fmt_money(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    return f"{sign}${fmt_amount(Decimal(abs(cents)) / 100)}"


def mask_wallet(address: str) -> str:
    if len(address) <= 16:
        return address
    return f"{address[:8]}...{address[-8:]}"


def _stamp(moment: Optional[datetime]) -> str:
    return (moment or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")


def format_new_registration(username: str, country: str, moment: Optional[datetime] = None) -> str:
    return (
        "🎉 *New User Registration*\n\n"
        f"👤 Username: {username}\n"
        f"🌍 Country: {country}\n"
        f"📅 Time: {_stamp(moment)}\n\n"
        "Welcome to TradePilot! 🚀"
    )


def format_user_login(username: str, country: str, moment: Optional[datetime] = None) -> str:
    return (
        "🔐 *User Login*\n\n"
        f"👤 Username: {username}\n"
        f"🌍 Country: {country}\n"
        f"📅 Time: {_stamp(moment)}"
    )


def format_support_ticket(
    username: str,
    subject: str,
    priority: str,
    moment: Optional[datetime] = None,
) -> str:
    return (
        "🎫 *New Support Ticket*\n\n"
        f"👤 User: {username}\n"
        f"📝 Subject: {subject}\n"
        f"⚡ Priority: {priority}\n"
        f"📅 Time: {_stamp(moment)}\n\n"
        "Please check the admin panel for details."
    )


def format_withdrawal_request(
    username: str,
    amount_cents: int,
    cryptocurrency: str,
    wallet_address: str,
    moment: Optional[datetime] = None,
) -> str:
    return (
        "💰 *New Withdrawal Request*\n\n"
        f"👤 User: {username}\n"
        f"💵 Amount: {fmt_money(amount_cents)}\n"
        f"💎 Currency: {cryptocurrency}\n"
        f"🏦 Wallet: {mask_wallet(wallet_address)}\n"
        f"📅 Time: {_stamp(moment)}\n\n"
        "Please review in the admin panel."
    )


def format_system_activity(
    activity: str,
    details: Optional[str] = None,
    moment: Optional[datetime] = None,
) -> str:
    lines = ["⚙️ *System Activity*", "", f"🔔 Activity: {activity}"]
    if details:
        lines.append(f"📋 Details: {details}")
    lines.append(f"📅 Time: {_stamp(moment)}")
    return "\n".join(lines)
