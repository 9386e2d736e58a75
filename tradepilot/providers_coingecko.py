from __future__ import annotations

from copy import deepcopy
from typing import Any

import requests
from loguru import logger

from .config import settings

COIN_IDS = (
    "bitcoin",
    "ethereum",
    "cardano",
    "binancecoin",
    "solana",
    "ripple",
    "polkadot",
    "dogecoin",
    "avalanche-2",
    "polygon",
)

# Last known prices, served whenever CoinGecko is unreachable or rate limited.
FALLBACK_PRICES: dict[str, dict[str, float]] = {
    "bitcoin": {"usd": 67500, "usd_24h_change": 2.1},
    "ethereum": {"usd": 3850, "usd_24h_change": 1.8},
    "cardano": {"usd": 0.65, "usd_24h_change": -0.5},
    "binancecoin": {"usd": 635, "usd_24h_change": 0.9},
    "solana": {"usd": 175, "usd_24h_change": 3.2},
    "ripple": {"usd": 0.58, "usd_24h_change": -1.1},
    "polkadot": {"usd": 7.25, "usd_24h_change": 1.5},
    "dogecoin": {"usd": 0.165, "usd_24h_change": 2.8},
    "avalanche-2": {"usd": 42, "usd_24h_change": 0.7},
    "polygon": {"usd": 1.15, "usd_24h_change": -0.3},
}

_CONVERT_IDS = {"BTC": "bitcoin", "ETH": "ethereum", "USDT": "tether"}

PriceTable = dict[str, dict[str, float]]


class ConversionError(RuntimeError):
    """Raised when an amount cannot be converted to USD."""


def _cg_get(params: dict[str, Any]) -> requests.Response:
    headers = {"Accept": "application/json", "User-Agent": settings.COINGECKO_USER_AGENT}
    return requests.get(
        f"{settings.COINGECKO_API}/simple/price",
        params=params,
        headers=headers,
        timeout=settings.HTTP_TIMEOUT_SEC,
    )


def get_fallback_prices() -> PriceTable:
    return deepcopy(FALLBACK_PRICES)


def get_crypto_prices() -> PriceTable:
    """USD prices and 24h change for ``COIN_IDS``; never raises."""

    params = {
        "ids": ",".join(COIN_IDS),
        "vs_currencies": "usd",
        "include_24hr_change": "true",
    }
    try:
        response = _cg_get(params)
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        status = getattr(getattr(exc, "response", None), "status_code", None)
        logger.warning("CoinGecko prices unavailable (status={status}): {exc}; using fallback prices", status=status, exc=exc)
        return get_fallback_prices()

    if not isinstance(payload, dict) or not payload:
        logger.warning("CoinGecko returned an empty price table; using fallback prices")
        return get_fallback_prices()
    return payload


def convert_to_usd(amount: float, cryptocurrency: str) -> float:
    symbol = (cryptocurrency or "").strip().upper()
    coin_id = _CONVERT_IDS.get(symbol)
    if not coin_id:
        raise ConversionError(f"unsupported cryptocurrency: {cryptocurrency}")
    if symbol == "USDT":
        return amount

    try:
        response = _cg_get({"ids": coin_id, "vs_currencies": "usd"})
        if response.status_code == 429:
            logger.info("CoinGecko rate limited, using fallback price for {coin}", coin=coin_id)
            price = FALLBACK_PRICES.get(coin_id, {}).get("usd", 1)
            return amount * price
        response.raise_for_status()
        price = response.json()[coin_id]["usd"]
    except (requests.RequestException, ValueError, KeyError, TypeError) as exc:
        logger.error("Failed to convert {amount} {symbol} to USD: {exc}", amount=amount, symbol=symbol, exc=exc)
        raise ConversionError("failed to convert to USD") from exc
    return amount * price
