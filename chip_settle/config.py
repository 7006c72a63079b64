from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str
    lock_timeout_seconds: int
    tolerance: Decimal
    max_settlement_amount: Decimal
    log_level: str


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./chip_settle.db"),
        lock_timeout_seconds=int(os.getenv("SETTLEMENT_LOCK_TIMEOUT_SECONDS", "300")),
        tolerance=Decimal(os.getenv("SETTLEMENT_TOLERANCE", "0.01")),
        max_settlement_amount=Decimal(os.getenv("SETTLEMENT_MAX_AMOUNT", "5000.00")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


settings = load_settings()
