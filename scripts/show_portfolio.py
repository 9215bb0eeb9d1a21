"""Print holdings and realized P/L recomputed from the transaction store."""

from __future__ import annotations

import argparse
import asyncio

from portfolio_service.config import get_settings
from portfolio_service.services.portfolio import PortfolioService
from portfolio_service.services.prices import PriceBook
from portfolio_service.services.repository import JsonFileRepository
from stock_ledger.engine import OversellPolicy


async def _run(store: str, policy: OversellPolicy) -> None:
    settings = get_settings()
    service = PortfolioService(
        JsonFileRepository(store),
        PriceBook(settings.default_usd_twd_rate),
        oversell=policy,
    )
    snapshot = await service.snapshot()
    result = snapshot.result
    print(f"{'Symbol':<10}{'Broker':<11}{'Shares':>14}{'Avg cost':>14}{'Value':>16}{'Unrealized':>16}")
    for holding in result.holdings:
        print(
            f"{holding.symbol:<10}{holding.broker.value:<11}{holding.shares:>14.4f}"
            f"{holding.avg_cost:>14.4f}{holding.market_value:>16.2f}{holding.unrealized_pl:>16.2f}"
        )
    stats = result.stats
    print(f"Realized P/L (native currencies summed): {result.total_realized_pl:.2f}")
    print(f"Unrealized P/L: {stats.total_unrealized_pl:.2f} ({stats.total_unrealized_pl_percent:.2f}%)")
    print(f"Total value in TWD @ {snapshot.usd_twd_rate}: {snapshot.consolidated_twd.total_value:.0f}")
    for issue in snapshot.issues:
        print(f"! {issue.kind.value} {issue.transaction_id}: {issue.message}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Show the FIFO portfolio for a JSON store")
    parser.add_argument("--store", default=get_settings().json_store_path)
    parser.add_argument("--policy", choices=[p.value for p in OversellPolicy], default=OversellPolicy.REPORT.value)
    args = parser.parse_args()
    asyncio.run(_run(args.store, OversellPolicy(args.policy)))


if __name__ == "__main__":
    main()
