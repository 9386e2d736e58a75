from __future__ import annotations

from typing import Literal, Optional

import requests
from loguru import logger
from pydantic import BaseModel, Field

from . import formatting
from .config import settings
from .storage import Storage

Category = Literal[
    "new_registration",
    "user_login",
    "support_ticket",
    "withdrawal_request",
    "system_activity",
]


class NotificationSettingsError(RuntimeError):
    """Raised when CallMeBot settings cannot be persisted."""


class NotificationToggles(BaseModel):
    new_registration: bool = True
    user_login: bool = False
    support_ticket: bool = True
    withdrawal_request: bool = True
    system_activity: bool = True


class CallMeBotSettings(BaseModel):
    enabled: bool = False
    admin_whatsapp_number: str = ""
    api_key: str = ""
    notifications: NotificationToggles = Field(default_factory=NotificationToggles)


def get_settings(storage: Storage) -> CallMeBotSettings:
    try:
        raw = storage.get_system_settings().get("callmebot")
        return CallMeBotSettings.model_validate(raw) if raw else CallMeBotSettings()
    except Exception as exc:
        logger.error("Failed to get CallMeBot settings: {exc}", exc=exc)
        return CallMeBotSettings()


def update_settings(storage: Storage, new_settings: CallMeBotSettings) -> None:
    try:
        storage.update_system_settings({"callmebot": new_settings.model_dump()})
    except Exception as exc:
        logger.error("Failed to update CallMeBot settings: {exc}", exc=exc)
        raise NotificationSettingsError("Failed to update CallMeBot settings") from exc


def send_notification(storage: Storage, message: str, category: Category) -> bool:
    """Send ``message`` to the admin WhatsApp number; False when skipped or failed."""

    cfg = get_settings(storage)
    if not cfg.enabled or not getattr(cfg.notifications, category, False):
        return False
    if not cfg.admin_whatsapp_number or not cfg.api_key:
        logger.warning("CallMeBot not configured properly")
        return False

    params = {
        "phone": cfg.admin_whatsapp_number,
        "text": message,
        "apikey": cfg.api_key,
    }
    headers = {"User-Agent": settings.CALLMEBOT_USER_AGENT}
    try:
        response = requests.get(
            settings.CALLMEBOT_URL,
            params=params,
            headers=headers,
            timeout=settings.HTTP_TIMEOUT_SEC,
        )
    except requests.RequestException as exc:
        logger.error("Failed to send CallMeBot notification: {exc}", exc=exc)
        return False

    if response.ok:
        logger.info("CallMeBot notification sent: {category}", category=category)
        return True
    logger.error(
        "CallMeBot API error: {status} {reason}",
        status=response.status_code,
        reason=response.reason,
    )
    return False


def notify_new_registration(storage: Storage, username: str, country: str) -> bool:
    return send_notification(storage, formatting.format_new_registration(username, country), "new_registration")


def notify_user_login(storage: Storage, username: str, country: str) -> bool:
    return send_notification(storage, formatting.format_user_login(username, country), "user_login")


def notify_support_ticket(storage: Storage, username: str, subject: str, priority: str) -> bool:
    message = formatting.format_support_ticket(username, subject, priority)
    return send_notification(storage, message, "support_ticket")


def notify_withdrawal_request(
    storage: Storage,
    username: str,
    amount_cents: int,
    cryptocurrency: str,
    wallet_address: str,
) -> bool:
    message = formatting.format_withdrawal_request(username, amount_cents, cryptocurrency, wallet_address)
    return send_notification(storage, message, "withdrawal_request")


def notify_system_activity(storage: Storage, activity: str, details: Optional[str] = None) -> bool:
    return send_notification(storage, formatting.format_system_activity(activity, details), "system_activity")
