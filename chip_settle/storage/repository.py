from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from chip_settle.domain import ParticipantPosition, SettlementStatus, Transfer
from chip_settle.storage.models import (
    CalculationAttempt,
    CalculationLock,
    Game,
    GameParticipant,
    GroupMember,
    Settlement,
    SettlementAuditEntry,
)


@dataclass(slots=True)
class SettlementRow:
    id: str
    game_id: str
    payer_id: str
    payee_id: str
    amount: Decimal
    status: str
    payment_method: str | None
    created_at: datetime
    completed_at: datetime | None


@dataclass(slots=True)
class AttemptRow:
    id: int
    game_id: str
    holder_id: str
    status: str
    error_message: str | None
    total_buyin: Decimal | None
    total_cashout: Decimal | None
    settlements_created: int
    started_at: datetime
    completed_at: datetime | None


@dataclass(slots=True)
class AuditRow:
    id: int
    settlement_id: str
    game_id: str
    action: str
    actor_id: str
    old_status: str | None
    new_status: str
    amount: Decimal
    created_at: datetime


def to_settlement_row(settlement: Settlement) -> SettlementRow:
    return SettlementRow(
        id=settlement.id,
        game_id=settlement.game_id,
        payer_id=settlement.payer_id,
        payee_id=settlement.payee_id,
        amount=settlement.amount,
        status=settlement.status,
        payment_method=settlement.payment_method,
        created_at=settlement.created_at,
        completed_at=settlement.completed_at,
    )


def to_attempt_row(attempt: CalculationAttempt) -> AttemptRow:
    return AttemptRow(
        id=attempt.id,
        game_id=attempt.game_id,
        holder_id=attempt.holder_id,
        status=attempt.status,
        error_message=attempt.error_message,
        total_buyin=attempt.total_buyin,
        total_cashout=attempt.total_cashout,
        settlements_created=attempt.settlements_created,
        started_at=attempt.started_at,
        completed_at=attempt.completed_at,
    )


def to_audit_row(entry: SettlementAuditEntry) -> AuditRow:
    return AuditRow(
        id=entry.id,
        settlement_id=entry.settlement_id,
        game_id=entry.game_id,
        action=entry.action,
        actor_id=entry.actor_id,
        old_status=entry.old_status,
        new_status=entry.new_status,
        amount=entry.amount,
        created_at=entry.created_at,
    )


class SettlementRepository:
    """Queries over one caller-owned session; never commits."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_game(self, game_id: str, *, for_update: bool = False) -> Game | None:
        stmt = select(Game).where(Game.id == game_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.scalars(stmt).first()

    def is_group_admin(self, group_id: str, user_id: str) -> bool:
        role = self.db.scalar(
            select(GroupMember.role).where(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
        )
        return role == "admin"

    def get_positions(self, game_id: str, *, for_update: bool = False) -> list[ParticipantPosition]:
        stmt = select(GameParticipant).where(GameParticipant.game_id == game_id).order_by(GameParticipant.user_id)
        if for_update:
            stmt = stmt.with_for_update()
        return [
            ParticipantPosition(
                game_id=row.game_id,
                participant_id=row.user_id,
                total_buyin=row.total_buyin,
                total_cashout=row.total_cashout,
            )
            for row in self.db.scalars(stmt).all()
        ]

    def list_settlements(self, game_id: str) -> list[SettlementRow]:
        rows = self.db.scalars(
            select(Settlement)
            .where(Settlement.game_id == game_id)
            .order_by(Settlement.created_at, Settlement.position)
        ).all()
        return [to_settlement_row(row) for row in rows]

    def get_settlement(self, settlement_id: str, *, for_update: bool = False) -> Settlement | None:
        stmt = select(Settlement).where(Settlement.id == settlement_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.scalars(stmt).first()

    def get_pending_settlements(self, game_id: str, *, for_update: bool = False) -> list[Settlement]:
        stmt = (
            select(Settlement)
            .where(Settlement.game_id == game_id, Settlement.status == SettlementStatus.PENDING.value)
            .order_by(Settlement.created_at, Settlement.position)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return list(self.db.scalars(stmt).all())

    def add_settlements(self, game_id: str, transfers: Sequence[Transfer], created_at: datetime) -> list[Settlement]:
        settlements = [
            Settlement(
                game_id=game_id,
                payer_id=transfer.payer_id,
                payee_id=transfer.payee_id,
                amount=transfer.amount,
                status=SettlementStatus.PENDING.value,
                position=index,
                created_at=created_at,
            )
            for index, transfer in enumerate(transfers)
        ]
        self.db.add_all(settlements)
        self.db.flush()
        return settlements

    def holds_calculation_lock(self, game_id: str, holder_id: str) -> bool:
        """Locks the row so an expiry reclaim waits for this transaction to end."""
        holder = self.db.scalar(
            select(CalculationLock.holder_id).where(CalculationLock.game_id == game_id).with_for_update()
        )
        return holder == holder_id

    def settled_without_transfers(self, game_id: str) -> bool:
        # A balanced game where everyone broke even stores no settlement rows.
        return bool(
            self.db.scalar(
                select(
                    exists().where(
                        CalculationAttempt.game_id == game_id,
                        CalculationAttempt.status == "success",
                        CalculationAttempt.settlements_created == 0,
                    )
                )
            )
        )
