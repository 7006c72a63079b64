from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from chip_settle.domain import PaymentMethod


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: Any | None = None


class SettlementResponse(BaseModel):
    """Amounts are fixed-point decimals and serialize as strings."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "examples": [
                {
                    "id": "0b7f5d0e-1f7e-4a55-9c1f-5f2b3c2d7f10",
                    "game_id": "3ed7c88a-c4d5-453a-a437-1ad033f89a4a",
                    "payer_id": "bob",
                    "payee_id": "alice",
                    "amount": "20.00",
                    "status": "pending",
                    "payment_method": None,
                    "created_at": "2026-01-04T21:15:00Z",
                    "completed_at": None,
                }
            ]
        },
    )

    id: str
    game_id: str
    payer_id: str
    payee_id: str
    amount: Decimal
    status: str
    payment_method: str | None = None
    created_at: datetime
    completed_at: datetime | None = None


class SettlementListResponse(BaseModel):
    game_id: str
    settlements: list[SettlementResponse]


class CompleteSettlementRequest(BaseModel):
    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH, examples=["venmo"])


class SettlementValidationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    game_id: str
    total_buyin: Decimal
    total_cashout: Decimal
    difference: Decimal
    is_valid: bool
    message: str


class AttemptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    game_id: str
    holder_id: str
    status: str
    error_message: str | None = None
    total_buyin: Decimal | None = None
    total_cashout: Decimal | None = None
    settlements_created: int
    started_at: datetime
    completed_at: datetime | None = None


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    settlement_id: str
    game_id: str
    action: str
    actor_id: str
    old_status: str | None = None
    new_status: str
    amount: Decimal
    created_at: datetime


class GameAuditResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    game_id: str
    attempts: list[AttemptResponse]
    changes: list[AuditEntryResponse]


class LockCleanupResponse(BaseModel):
    removed: int
