from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from chip_settle.services.clock import Clock, utcnow
from chip_settle.storage.models import CalculationAttempt, Settlement, SettlementAuditEntry
from chip_settle.storage.repository import AttemptRow, AuditRow, to_attempt_row, to_audit_row

logger = logging.getLogger(__name__)


class AttemptStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    ALREADY_CALCULATED = "already_calculated"
    CONFLICT = "conflict"
    LOCK_RELEASE_FAILED = "lock_release_failed"


class AuditAction(str, Enum):
    INSERT = "insert"
    UPDATE = "update"


@dataclass(slots=True)
class AttemptLogEntry:
    game_id: str
    holder_id: str
    status: AttemptStatus
    started_at: datetime
    completed_at: datetime | None = None
    error_message: str | None = None
    total_buyin: Decimal | None = None
    total_cashout: Decimal | None = None
    settlements_created: int = 0


@dataclass(slots=True)
class GameAuditSummary:
    game_id: str
    attempts: list[AttemptRow]
    changes: list[AuditRow]


class AuditRecorder:
    """Append-only trail of calculation attempts and settlement mutations."""

    def __init__(self, session_factory: sessionmaker[Session], *, clock: Clock = utcnow) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def append(self, entry: AttemptLogEntry) -> None:
        # Own transaction: the attempt must survive a rollback of the calculation itself.
        with self._session_factory() as db:
            db.add(
                CalculationAttempt(
                    game_id=entry.game_id,
                    holder_id=entry.holder_id,
                    status=entry.status.value,
                    error_message=entry.error_message,
                    total_buyin=entry.total_buyin,
                    total_cashout=entry.total_cashout,
                    settlements_created=entry.settlements_created,
                    started_at=entry.started_at,
                    completed_at=entry.completed_at,
                )
            )
            db.commit()
        logger.debug("attempt logged game_id=%s status=%s", entry.game_id, entry.status.value)

    def record_settlement_change(
        self,
        db: Session,
        settlement: Settlement,
        *,
        action: AuditAction,
        actor_id: str,
        old_status: str | None = None,
    ) -> None:
        """Stages the entry on the caller's session so it commits with the mutation."""
        db.add(
            SettlementAuditEntry(
                settlement_id=settlement.id,
                game_id=settlement.game_id,
                action=action.value,
                actor_id=actor_id,
                old_status=old_status,
                new_status=settlement.status,
                amount=settlement.amount,
                created_at=self._clock(),
            )
        )

    def settlement_history(self, settlement_id: str) -> list[AuditRow]:
        with self._session_factory() as db:
            rows = db.scalars(
                select(SettlementAuditEntry)
                .where(SettlementAuditEntry.settlement_id == settlement_id)
                .order_by(SettlementAuditEntry.id)
            ).all()
            return [to_audit_row(row) for row in rows]

    def attempts_for_game(self, game_id: str) -> list[AttemptRow]:
        with self._session_factory() as db:
            rows = db.scalars(
                select(CalculationAttempt)
                .where(CalculationAttempt.game_id == game_id)
                .order_by(CalculationAttempt.id)
            ).all()
            return [to_attempt_row(row) for row in rows]

    def game_audit_summary(self, game_id: str) -> GameAuditSummary:
        with self._session_factory() as db:
            changes = db.scalars(
                select(SettlementAuditEntry)
                .where(SettlementAuditEntry.game_id == game_id)
                .order_by(SettlementAuditEntry.id)
            ).all()
            change_rows = [to_audit_row(row) for row in changes]
        return GameAuditSummary(game_id=game_id, attempts=self.attempts_for_game(game_id), changes=change_rows)
