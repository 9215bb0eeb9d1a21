from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from conftest import make_tx
from portfolio_service.db.session import create_engine
from portfolio_service.services.repository import InMemoryRepository, JsonFileRepository, SqlRepository
from stock_ledger.models import Broker, HistoryEntry, IssueKind


def build_transactions():
    return [
        make_tx("t1", date(2024, 1, 2), "Buy", "10", "185.25", "1.5"),
        make_tx("t2", date(2024, 1, 2), "Sell", "4", "190", symbol="AAPL"),
        make_tx("t3", date(2023, 12, 1), "Buy", "1000", "560", "798", symbol="2330", broker=Broker.FUBON_TW),
    ]


def history(day: date, tw_value: str) -> HistoryEntry:
    return HistoryEntry(
        date=day,
        tw_market_value=Decimal(tw_value),
        tw_cost=Decimal("900"),
        tw_pl_rate=Decimal("0.1"),
        us_market_value_usd=Decimal("50"),
        us_cost_usd=Decimal("40"),
        us_pl_rate=Decimal("0.25"),
        total_pl_rate=Decimal("0.12"),
    )


@pytest.mark.asyncio
async def test_json_repository_round_trip(tmp_path: Path):
    repo = JsonFileRepository(tmp_path / "db.json")
    assert await repo.load() == []

    await repo.save(build_transactions())
    assert await JsonFileRepository(tmp_path / "db.json").load() == build_transactions()

    stored = json.loads((tmp_path / "db.json").read_text(encoding="utf-8"))
    assert stored["transactions"][0]["price"] == "185.25"


@pytest.mark.asyncio
async def test_json_repository_skips_malformed_rows(tmp_path: Path):
    path = tmp_path / "db.json"
    path.write_text(
        json.dumps(
            {
                "transactions": [
                    {"id": "ok", "date": "2024-01-02", "broker": "Firstrade", "symbol": "AAPL", "type": "Buy", "shares": 1, "price": 10, "fee": 0},
                    {"id": "bad", "date": "2024-01-03", "broker": "Firstrade", "symbol": "AAPL", "type": "Transfer", "shares": 1, "price": 10},
                ]
            }
        ),
        encoding="utf-8",
    )
    repo = JsonFileRepository(path)
    transactions = await repo.load()
    assert [tx.id for tx in transactions] == ["ok"]
    assert [(i.kind, i.transaction_id) for i in repo.issues] == [(IssueKind.MALFORMED, "bad")]


@pytest.mark.asyncio
async def test_json_history_upsert_replaces_same_day(tmp_path: Path):
    repo = JsonFileRepository(tmp_path / "db.json")
    await repo.save(build_transactions())
    await repo.upsert_history(history(date(2024, 5, 3), "1000"))
    await repo.upsert_history(history(date(2024, 5, 2), "990"))
    await repo.upsert_history(history(date(2024, 5, 3), "1010"))

    entries = await repo.list_history()
    assert [(e.date, e.tw_market_value) for e in entries] == [
        (date(2024, 5, 2), Decimal("990")),
        (date(2024, 5, 3), Decimal("1010")),
    ]
    assert len(await repo.load()) == 3


@pytest.mark.asyncio
async def test_in_memory_repository():
    repo = InMemoryRepository(build_transactions())
    await repo.save((await repo.load())[:1])
    assert [tx.id for tx in await repo.load()] == ["t1"]


@pytest.mark.asyncio
async def test_sql_repository_round_trip(tmp_path: Path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    repo = SqlRepository(engine)
    try:
        await repo.init()
        await repo.save(build_transactions())
        loaded = await repo.load()
        assert {tx.id: tx for tx in loaded} == {tx.id: tx for tx in build_transactions()}
        # Same-date rows come back in the order they were saved
        assert [tx.id for tx in loaded if tx.date == date(2024, 1, 2)] == ["t1", "t2"]

        await repo.save(loaded[:1])
        assert len(await repo.load()) == 1

        await repo.upsert_history(history(date(2024, 5, 3), "1000"))
        await repo.upsert_history(history(date(2024, 5, 3), "1010"))
        (entry,) = await repo.list_history()
        assert entry.tw_market_value == Decimal("1010")
        assert entry.total_cost_twd is None
    finally:
        await engine.dispose()
