"""Idempotent, lock-guarded settlement calculation for a finished game."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session, sessionmaker

from chip_settle.domain import (
    DEFAULT_MAX_AMOUNT,
    DEFAULT_TOLERANCE,
    AlreadyInProgressError,
    CalculationFailedError,
    GameNotFoundError,
    GameNotSettleableError,
    GameStatus,
    LockLostError,
    SettlementError,
    Transfer,
    calculate_settlements,
    quantize_amount,
    summarize_positions,
    validate_transfer,
)
from chip_settle.services.audit import AttemptLogEntry, AttemptStatus, AuditAction, AuditRecorder
from chip_settle.services.clock import Clock, utcnow
from chip_settle.services.lock_manager import LockManager
from chip_settle.storage.repository import SettlementRepository, SettlementRow, to_settlement_row

logger = logging.getLogger(__name__)

Calculator = Callable[..., list[Transfer]]


@dataclass(slots=True)
class SettlementValidation:
    game_id: str
    total_buyin: Decimal
    total_cashout: Decimal
    difference: Decimal
    is_valid: bool
    message: str


class SettlementOrchestrator:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        lock_manager: LockManager,
        audit: AuditRecorder,
        *,
        tolerance: Decimal = DEFAULT_TOLERANCE,
        max_amount: Decimal = DEFAULT_MAX_AMOUNT,
        calculator: Calculator = calculate_settlements,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._locks = lock_manager
        self._audit = audit
        self._tolerance = tolerance
        self._max_amount = max_amount
        self._calculator = calculator
        self._clock = clock

    def list_settlements(self, game_id: str) -> list[SettlementRow]:
        with self._session_factory() as db:
            return SettlementRepository(db).list_settlements(game_id)

    def get_or_calculate_settlements(self, game_id: str, requester_id: str) -> list[SettlementRow]:
        with self._session_factory() as db:
            repo = SettlementRepository(db)
            game = repo.get_game(game_id)
            if game is None:
                raise GameNotFoundError(f"game {game_id} not found", details={"game_id": game_id})
            existing = repo.list_settlements(game_id)
            if existing or repo.settled_without_transfers(game_id):
                return existing
            _ensure_completed(game_id, game.status)

        started_at = self._clock()
        if not self._locks.acquire(game_id, requester_id):
            self._record(
                AttemptLogEntry(
                    game_id=game_id,
                    holder_id=requester_id,
                    status=AttemptStatus.CONFLICT,
                    started_at=started_at,
                    completed_at=self._clock(),
                    error_message="calculation already in progress",
                )
            )
            raise AlreadyInProgressError(
                "calculation already in progress, please retry shortly",
                details={"game_id": game_id},
            )

        entry = AttemptLogEntry(
            game_id=game_id,
            holder_id=requester_id,
            status=AttemptStatus.FAILED,
            started_at=started_at,
        )
        try:
            return self._calculate_locked(game_id, requester_id, entry)
        except Exception as exc:
            if entry.error_message is None:
                entry.error_message = str(exc)
            raise
        finally:
            self._release(game_id, requester_id)
            entry.completed_at = self._clock()
            self._record(entry)

    def validate_game(self, game_id: str) -> SettlementValidation:
        with self._session_factory() as db:
            repo = SettlementRepository(db)
            if repo.get_game(game_id) is None:
                raise GameNotFoundError(f"game {game_id} not found", details={"game_id": game_id})
            positions = repo.get_positions(game_id)

        totals = summarize_positions(positions)
        difference = quantize_amount(totals.difference)
        is_valid = bool(positions) and totals.is_balanced(self._tolerance)
        if not positions:
            message = "No participants found for this game"
        elif is_valid:
            message = "Buy-ins and cash-outs match"
        else:
            message = (
                f"Buy-ins ({totals.total_buyin}) do not match cash-outs ({totals.total_cashout}). "
                f"Difference: {abs(difference)}"
            )
        return SettlementValidation(
            game_id=game_id,
            total_buyin=totals.total_buyin,
            total_cashout=totals.total_cashout,
            difference=difference,
            is_valid=is_valid,
            message=message,
        )

    def _calculate_locked(self, game_id: str, requester_id: str, entry: AttemptLogEntry) -> list[SettlementRow]:
        with self._session_factory() as db:
            repo = SettlementRepository(db)

            # Game row first: a competing holder blocks here until this transaction ends.
            game = repo.get_game(game_id, for_update=True)
            if game is None:
                raise GameNotFoundError(f"game {game_id} not found", details={"game_id": game_id})

            existing = repo.list_settlements(game_id)
            if existing or repo.settled_without_transfers(game_id):
                entry.status = AttemptStatus.ALREADY_CALCULATED
                entry.settlements_created = 0
                logger.info("settlements appeared while waiting for lock game_id=%s", game_id)
                return existing
            _ensure_completed(game_id, game.status)

            # Snapshot, calculate and persist form one unit; nothing is written unless all succeed.
            try:
                positions = repo.get_positions(game_id, for_update=True)
                totals = summarize_positions(positions)
                entry.total_buyin = totals.total_buyin
                entry.total_cashout = totals.total_cashout

                transfers = self._calculator(positions, tolerance=self._tolerance)
                self._validate_transfers(transfers)

                if not repo.holds_calculation_lock(game_id, requester_id):
                    raise LockLostError(
                        "calculation lock expired and was taken over before settlements were saved",
                        details={"holder_id": requester_id},
                    )
                settlements = repo.add_settlements(game_id, transfers, created_at=self._clock())
                for settlement in settlements:
                    self._audit.record_settlement_change(
                        db, settlement, action=AuditAction.INSERT, actor_id=requester_id
                    )
                rows = [to_settlement_row(settlement) for settlement in settlements]
                db.commit()
            except Exception as exc:
                db.rollback()
                entry.error_message = str(exc)
                logger.warning("settlement calculation failed game_id=%s error=%s", game_id, exc)
                raise _calculation_failed(game_id, exc) from exc

        entry.status = AttemptStatus.SUCCESS
        entry.settlements_created = len(rows)
        logger.info("settlements calculated game_id=%s count=%d", game_id, len(rows))
        return rows

    def _validate_transfers(self, transfers: Sequence[Transfer]) -> None:
        for transfer in transfers:
            validate_transfer(
                transfer.payer_id,
                transfer.payee_id,
                transfer.amount,
                max_amount=self._max_amount,
            )

    def _release(self, game_id: str, holder_id: str) -> None:
        try:
            self._locks.release(game_id, holder_id)
        except Exception as exc:
            logger.exception("failed to release calculation lock game_id=%s holder_id=%s", game_id, holder_id)
            now = self._clock()
            self._record(
                AttemptLogEntry(
                    game_id=game_id,
                    holder_id=holder_id,
                    status=AttemptStatus.LOCK_RELEASE_FAILED,
                    started_at=now,
                    completed_at=now,
                    error_message=str(exc),
                )
            )

    def _record(self, entry: AttemptLogEntry) -> None:
        try:
            self._audit.append(entry)
        except Exception:
            logger.exception(
                "failed to append calculation attempt game_id=%s holder_id=%s status=%s error=%s",
                entry.game_id,
                entry.holder_id,
                entry.status.value,
                entry.error_message,
            )


def _ensure_completed(game_id: str, status: str) -> None:
    if status != GameStatus.COMPLETED.value:
        raise GameNotSettleableError(
            f"cannot calculate settlements for {status} game",
            details={"game_id": game_id, "status": status},
        )


def _calculation_failed(game_id: str, exc: Exception) -> CalculationFailedError:
    details: dict[str, object] = {"game_id": game_id}
    if isinstance(exc, SettlementError):
        details["reason"] = exc.code
        details.update(exc.details)
        message = exc.message
    else:
        details["reason"] = type(exc).__name__
        message = "settlement calculation failed"
    return CalculationFailedError(message, details=details)
