from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status

from chip_settle.domain import (
    AlreadyInProgressError,
    CalculationError,
    CalculationFailedError,
    EmptyPositionsError,
    GameNotFoundError,
    GameNotSettleableError,
    InvalidPositionError,
    InvalidTransitionError,
    SettlementError,
    SettlementIntegrityError,
    SettlementNotFoundError,
    UnauthorizedError,
    UnbalancedPositionsError,
)

INPUT_ERROR_CODES = frozenset(
    {EmptyPositionsError.code, InvalidPositionError.code, UnbalancedPositionsError.code}
)

GENERIC_FAILURE_MESSAGE = "settlement calculation failed, please try again"

_STATUS_BY_ERROR: tuple[tuple[type[SettlementError], int], ...] = (
    (CalculationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (GameNotFoundError, status.HTTP_404_NOT_FOUND),
    (SettlementNotFoundError, status.HTTP_404_NOT_FOUND),
    (AlreadyInProgressError, status.HTTP_409_CONFLICT),
    (GameNotSettleableError, status.HTTP_409_CONFLICT),
    (UnauthorizedError, status.HTTP_403_FORBIDDEN),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (SettlementIntegrityError, status.HTTP_409_CONFLICT),
)


def api_error(
    *,
    code: str,
    message: str,
    details: Any | None = None,
    status_code: int = status.HTTP_400_BAD_REQUEST,
) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "code": code,
            "message": message,
            "details": details,
        },
    )


def settlement_error_to_http(exc: SettlementError) -> HTTPException:
    if isinstance(exc, CalculationFailedError):
        # Input problems stay actionable; anything else is hidden behind a retry message
        # and kept in full in the attempt log.
        if exc.details.get("reason") in INPUT_ERROR_CODES:
            return api_error(
                code=exc.details["reason"],
                message=exc.message,
                details=exc.details,
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            )
        return api_error(
            code=exc.code,
            message=GENERIC_FAILURE_MESSAGE,
            details={"game_id": exc.details.get("game_id")},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return api_error(code=exc.code, message=exc.message, details=exc.details, status_code=status_code)
    return api_error(code=exc.code, message=exc.message, details=exc.details)
