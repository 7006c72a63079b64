from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.orm import Session, sessionmaker

from chip_settle.domain import (
    DEFAULT_MAX_AMOUNT,
    GameNotFoundError,
    PaymentMethod,
    SettlementNotFoundError,
    SettlementStatus,
    UnauthorizedError,
    ensure_transition,
    validate_transfer,
)
from chip_settle.services.audit import AuditAction, AuditRecorder
from chip_settle.services.clock import Clock, utcnow
from chip_settle.storage.models import Settlement
from chip_settle.storage.repository import SettlementRepository, SettlementRow, to_settlement_row

logger = logging.getLogger(__name__)


class SettlementStatusService:
    """pending -> completed by a party or group admin; pending -> cancelled by admins only."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        audit: AuditRecorder,
        *,
        max_amount: Decimal = DEFAULT_MAX_AMOUNT,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._audit = audit
        self._max_amount = max_amount
        self._clock = clock

    def mark_complete(
        self,
        settlement_id: str,
        actor_id: str,
        payment_method: PaymentMethod = PaymentMethod.CASH,
    ) -> SettlementRow:
        with self._session_factory() as db:
            repo = SettlementRepository(db)
            settlement = self._get_for_update(repo, settlement_id)

            is_party = actor_id in (settlement.payer_id, settlement.payee_id)
            if not is_party and not self._is_admin(repo, settlement.game_id, actor_id):
                raise UnauthorizedError(
                    "only the payer, the payee or a group admin can complete a settlement",
                    details={"settlement_id": settlement_id, "actor_id": actor_id},
                )
            ensure_transition(settlement.status, SettlementStatus.COMPLETED)
            validate_transfer(
                settlement.payer_id,
                settlement.payee_id,
                settlement.amount,
                max_amount=self._max_amount,
            )

            old_status = settlement.status
            settlement.status = SettlementStatus.COMPLETED.value
            settlement.completed_at = self._clock()
            settlement.payment_method = PaymentMethod(payment_method).value
            self._audit.record_settlement_change(
                db, settlement, action=AuditAction.UPDATE, actor_id=actor_id, old_status=old_status
            )
            row = to_settlement_row(settlement)
            db.commit()

        logger.info("settlement completed settlement_id=%s actor_id=%s", settlement_id, actor_id)
        return row

    def cancel(self, settlement_id: str, actor_id: str) -> SettlementRow:
        with self._session_factory() as db:
            repo = SettlementRepository(db)
            settlement = self._get_for_update(repo, settlement_id)
            self._ensure_admin(repo, settlement.game_id, actor_id)
            ensure_transition(settlement.status, SettlementStatus.CANCELLED)

            self._cancel(db, settlement, actor_id)
            row = to_settlement_row(settlement)
            db.commit()

        logger.info("settlement cancelled settlement_id=%s actor_id=%s", settlement_id, actor_id)
        return row

    def cancel_game_settlements(self, game_id: str, actor_id: str) -> list[SettlementRow]:
        with self._session_factory() as db:
            repo = SettlementRepository(db)
            self._ensure_admin(repo, game_id, actor_id)

            cancelled = []
            for settlement in repo.get_pending_settlements(game_id, for_update=True):
                self._cancel(db, settlement, actor_id)
                cancelled.append(to_settlement_row(settlement))
            db.commit()

        logger.info("cancelled %d pending settlements game_id=%s actor_id=%s", len(cancelled), game_id, actor_id)
        return cancelled

    def _cancel(self, db: Session, settlement: Settlement, actor_id: str) -> None:
        old_status = settlement.status
        settlement.status = SettlementStatus.CANCELLED.value
        self._audit.record_settlement_change(
            db, settlement, action=AuditAction.UPDATE, actor_id=actor_id, old_status=old_status
        )

    @staticmethod
    def _get_for_update(repo: SettlementRepository, settlement_id: str) -> Settlement:
        settlement = repo.get_settlement(settlement_id, for_update=True)
        if settlement is None:
            raise SettlementNotFoundError(
                f"settlement {settlement_id} not found",
                details={"settlement_id": settlement_id},
            )
        return settlement

    @staticmethod
    def _is_admin(repo: SettlementRepository, game_id: str, actor_id: str) -> bool:
        game = repo.get_game(game_id)
        if game is None:
            raise GameNotFoundError(f"game {game_id} not found", details={"game_id": game_id})
        return repo.is_group_admin(game.group_id, actor_id)

    def _ensure_admin(self, repo: SettlementRepository, game_id: str, actor_id: str) -> None:
        if not self._is_admin(repo, game_id, actor_id):
            raise UnauthorizedError(
                "only a group admin can cancel settlements",
                details={"game_id": game_id, "actor_id": actor_id},
            )
