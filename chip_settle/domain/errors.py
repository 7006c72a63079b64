"""Failure taxonomy for settlement calculation, locking and status changes."""

from __future__ import annotations

from typing import Any


class SettlementError(Exception):
    """Base class; ``code`` is stable and safe to hand to API clients."""

    code = "settlement_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class CalculationError(SettlementError):
    code = "calculation_error"


class EmptyPositionsError(CalculationError):
    code = "empty_input"


class InvalidPositionError(CalculationError):
    code = "invalid_position"


class UnbalancedPositionsError(CalculationError):
    code = "unbalanced"


class AlreadyInProgressError(SettlementError):
    code = "already_in_progress"


class CalculationFailedError(SettlementError):
    code = "calculation_failed"


class GameNotFoundError(SettlementError):
    code = "game_not_found"


class GameNotSettleableError(SettlementError):
    code = "game_not_settleable"


class SettlementNotFoundError(SettlementError):
    code = "settlement_not_found"


class UnauthorizedError(SettlementError):
    code = "unauthorized"


class InvalidTransitionError(SettlementError):
    code = "invalid_transition"


class SettlementIntegrityError(SettlementError):
    code = "integrity_violation"


class LockLostError(SettlementError):
    code = "lock_lost"
