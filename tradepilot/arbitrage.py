"""Display-only arbitrage rows derived from spot prices.

Rows are synthesized by pairing random exchanges and perturbing the spot price
by a random spread. They do not describe real market opportunities.
"""
from __future__ import annotations

import random
from dataclasses import asdict, dataclass
from typing import Any, Optional

from loguru import logger

from .config import settings
from .providers_coingecko import PriceTable, get_crypto_prices, get_fallback_prices

MAX_OPPORTUNITIES = 15

EXCHANGES = ["Binance", "Coinbase", "Kraken", "OKX", "Huobi", "Bitfinex", "KuCoin", "Gate.io"]


@dataclass(slots=True)
class Coin:
    id: str
    symbol: str
    name: str


@dataclass(slots=True)
class Opportunity:
    symbol: str
    name: str
    buy_exchange: str
    sell_exchange: str
    buy_price: float
    sell_price: float
    profit: float
    profit_percentage: float
    volume: float

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


COINS = [
    Coin("bitcoin", "BTC", "Bitcoin"),
    Coin("ethereum", "ETH", "Ethereum"),
    Coin("cardano", "ADA", "Cardano"),
    Coin("binancecoin", "BNB", "BNB"),
    Coin("solana", "SOL", "Solana"),
    Coin("ripple", "XRP", "XRP"),
    Coin("polkadot", "DOT", "Polkadot"),
    Coin("dogecoin", "DOGE", "Dogecoin"),
    Coin("avalanche-2", "AVAX", "Avalanche"),
    Coin("polygon", "MATIC", "Polygon"),
]

BACKUP_COINS = [COINS[0], COINS[1], COINS[4]]

_BASE_VOLUME = {"BTC": 500.0, "ETH": 300.0}


def make_rng(seed: Optional[int] = None) -> random.Random:
    """Unseeded unless ``seed`` or ``ARBITRAGE_SEED`` is given."""
    return random.Random(seed if seed is not None else settings.ARBITRAGE_SEED)


def _pick_pair(rng: random.Random) -> tuple[str, str]:
    buy, sell = rng.sample(EXCHANGES, 2)
    return buy, sell


def _build(
    coin: Coin,
    base_price: float,
    spread: float,
    buy_exchange: str,
    sell_exchange: str,
    volume: float,
    digits: int,
) -> Opportunity:
    buy = base_price * (1 - spread / 2)
    sell = base_price * (1 + spread / 2)
    return Opportunity(
        symbol=f"{coin.symbol}/USDT",
        name=coin.name,
        buy_exchange=buy_exchange,
        sell_exchange=sell_exchange,
        buy_price=round(buy, digits),
        sell_price=round(sell, digits),
        profit=round(sell - buy, digits),
        profit_percentage=round((sell - buy) / buy * 100, 2),
        volume=round(volume, 2),
    )


def generate_opportunities(prices: PriceTable, rng: Optional[random.Random] = None) -> list[Opportunity]:
    """Up to ``MAX_OPPORTUNITIES`` rows, best profit percentage first."""

    rng = rng or make_rng()
    rows: list[Opportunity] = []
    for coin in COINS:
        quote = prices.get(coin.id)
        if not quote:
            continue
        base_price = float(quote["usd"])
        count = 2 if coin.symbol in ("BTC", "ETH") else 1
        for _ in range(count):
            buy_exchange, sell_exchange = _pick_pair(rng)
            spread = 0.002 + rng.random() * 0.023
            base_volume = _BASE_VOLUME.get(coin.symbol, 100.0)
            volume = base_volume + rng.random() * base_volume
            rows.append(_build(coin, base_price, spread, buy_exchange, sell_exchange, volume, digits=5))

    rows.sort(key=lambda row: row.profit_percentage, reverse=True)
    return rows[:MAX_OPPORTUNITIES]


def generate_backup_opportunities(rng: Optional[random.Random] = None) -> list[Opportunity]:
    rng = rng or make_rng()
    prices = get_fallback_prices()
    rows = []
    for coin in BACKUP_COINS:
        spread = 0.01 + rng.random() * 0.02
        volume = 50 + rng.random() * 100
        rows.append(_build(coin, prices[coin.id]["usd"], spread, "Binance", "Coinbase", volume, digits=2))
    return rows


def get_arbitrage_opportunities(rng: Optional[random.Random] = None) -> list[Opportunity]:
    rng = rng or make_rng()
    try:
        return generate_opportunities(get_crypto_prices(), rng)
    except Exception as exc:
        logger.error("Failed to generate arbitrage opportunities: {exc}; using backup rows", exc=exc)
        return generate_backup_opportunities(rng)
