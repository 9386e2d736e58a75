from __future__ import annotations

import argparse

from tradepilot.accruals import (
    AccrualResult,
    process_daily_returns,
    process_daily_returns_now,
    process_returns_for_local_time,
)
from tradepilot.db import Base, SessionLocal, engine
from tradepilot.formatting import fmt_money
from tradepilot.storage import SqlStorage

PASSES = {
    "catch-up": process_daily_returns,
    "local-time": process_returns_for_local_time,
    "now": process_daily_returns_now,
}


def run(pass_name: str, storage: SqlStorage) -> AccrualResult:
    return PASSES[pass_name](storage)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run one daily returns pass")
    parser.add_argument(
        "mode",
        choices=sorted(PASSES),
        help="catch-up: credit days owed; local-time: 1 AM pass; now: force one day for everyone",
    )
    args = parser.parse_args(argv)

    Base.metadata.create_all(bind=engine)
    result = run(args.mode, SqlStorage(SessionLocal))
    print(f"processed={result.processed} credited={fmt_money(result.total_credited)}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
