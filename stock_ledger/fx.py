"""FX conversion helpers for display-currency totals.

The engine keeps every amount in the transaction's native currency. These
helpers fold TWD and USD figures together after the fact.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Mapping, Sequence, Tuple

from .engine import ZERO, safe_percent
from .models import Currency, HistoryEntry, Holding, PortfolioStats


@dataclass
class FXRateProvider:
    """Spot conversion rates keyed by ``(from_currency, to_currency)``."""

    rates: Dict[Tuple[Currency, Currency], Decimal]
    base_currency: Currency = Currency.TWD

    def rate(self, from_currency: Currency, to_currency: Currency | None = None) -> Decimal:
        """Return the conversion rate from ``from_currency`` to ``to_currency``."""

        target = to_currency or self.base_currency
        if from_currency == target:
            return Decimal("1")
        if (from_currency, target) in self.rates:
            return self.rates[(from_currency, target)]
        inverse = self.rates.get((target, from_currency))
        if inverse:
            return Decimal("1") / inverse
        raise KeyError(f"Missing FX rate for {from_currency.value}->{target.value}")

    def convert(self, amount: Decimal, from_currency: Currency, to_currency: Currency | None = None) -> Decimal:
        return amount * self.rate(from_currency, to_currency)


def usd_twd_provider(usd_twd_rate: Decimal) -> FXRateProvider:
    return FXRateProvider({(Currency.USD, Currency.TWD): Decimal(usd_twd_rate)})


def consolidate_stats(
    holdings: Sequence[Holding],
    realized_by_currency: Mapping[Currency, Decimal],
    provider: FXRateProvider,
    target: Currency | None = None,
) -> PortfolioStats:
    """Portfolio totals expressed in a single display currency."""

    target = target or provider.base_currency
    total_value = total_cost = total_unrealized = ZERO
    for holding in holdings:
        rate = provider.rate(holding.currency, target)
        total_value += holding.market_value * rate
        total_cost += holding.total_cost * rate
        total_unrealized += (holding.market_value - holding.total_cost) * rate
    total_realized = sum(
        (amount * provider.rate(currency, target) for currency, amount in realized_by_currency.items()),
        ZERO,
    )
    return PortfolioStats(
        total_value=total_value,
        total_cost=total_cost,
        total_unrealized_pl=total_unrealized,
        total_unrealized_pl_percent=safe_percent(total_unrealized, total_cost),
        total_realized_pl=total_realized,
    )


def _rate(gain: Decimal, cost: Decimal) -> Decimal:
    return gain / cost if cost else ZERO


def build_history_entry(day: date, holdings: Sequence[Holding], usd_twd_rate: Decimal) -> HistoryEntry:
    """Snapshot TWD and USD holdings for the daily history table.

    USD cost is converted at ``usd_twd_rate`` for the combined totals, so the
    combined rate reflects a "value today in TWD" view rather than historical
    conversion.
    """

    tw_value = tw_cost = us_value = us_cost = ZERO
    for holding in holdings:
        if holding.currency == Currency.TWD:
            tw_value += holding.market_value
            tw_cost += holding.total_cost
        else:
            us_value += holding.market_value
            us_cost += holding.total_cost

    rate = Decimal(usd_twd_rate)
    total_value = tw_value + us_value * rate
    total_cost = tw_cost + us_cost * rate
    return HistoryEntry(
        date=day,
        tw_market_value=tw_value,
        tw_cost=tw_cost,
        tw_pl_rate=_rate(tw_value - tw_cost, tw_cost),
        us_market_value_usd=us_value,
        us_cost_usd=us_cost,
        us_pl_rate=_rate(us_value - us_cost, us_cost),
        total_pl_rate=_rate(total_value - total_cost, total_cost),
        total_market_value_twd=total_value,
        total_cost_twd=total_cost,
    )


__all__ = [
    "FXRateProvider",
    "build_history_entry",
    "consolidate_stats",
    "usd_twd_provider",
]
