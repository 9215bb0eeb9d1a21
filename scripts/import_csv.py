"""CLI wrapper for broker CSV import."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from portfolio_service.config import get_settings
from portfolio_service.core.logging import setup_logging
from portfolio_service.services.portfolio import PortfolioService
from portfolio_service.services.prices import PriceBook
from portfolio_service.services.repository import JsonFileRepository


async def _run(csv_path: Path, store: str) -> None:
    service = PortfolioService(JsonFileRepository(store), PriceBook())
    created = await service.import_csv(csv_path.read_text(encoding="utf-8-sig"))
    print(f"Imported {len(created)} transactions into {store}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Import a Fubon or US-broker trade export")
    parser.add_argument("file", type=Path)
    parser.add_argument("--store", default=get_settings().json_store_path)
    args = parser.parse_args()
    setup_logging()
    asyncio.run(_run(args.file, args.store))


if __name__ == "__main__":
    main()
