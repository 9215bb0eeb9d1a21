"""FastAPI service around the stock ledger."""
