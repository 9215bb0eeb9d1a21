import asyncio
import inspect
import pathlib
import sys
from datetime import date
from decimal import Decimal

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from stock_ledger.models import Broker, Currency, Transaction, TransactionType  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            # Only the arguments the test declares; funcargs also holds their dependencies
            testargs = {arg: pyfuncitem.funcargs[arg] for arg in pyfuncitem._fixtureinfo.argnames}
            loop.run_until_complete(test_function(**testargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


def make_tx(
    id: str,
    day: date,
    type: str,
    shares: str,
    price: str,
    fee: str = "0",
    *,
    symbol: str = "AAPL",
    broker: Broker = Broker.FIRSTRADE,
    currency: Currency | None = None,
) -> Transaction:
    if currency is None:
        currency = Currency.TWD if broker == Broker.FUBON_TW else Currency.USD
    return Transaction(
        id=id,
        date=day,
        broker=broker,
        symbol=symbol,
        type=TransactionType(type),
        shares=Decimal(shares),
        price=Decimal(price),
        fee=Decimal(fee),
        currency=currency,
    )
