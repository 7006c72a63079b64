from .errors import (
    AlreadyInProgressError,
    CalculationError,
    CalculationFailedError,
    EmptyPositionsError,
    GameNotFoundError,
    GameNotSettleableError,
    InvalidPositionError,
    InvalidTransitionError,
    LockLostError,
    SettlementError,
    SettlementIntegrityError,
    SettlementNotFoundError,
    UnauthorizedError,
    UnbalancedPositionsError,
)
from .game import (
    DEFAULT_TOLERANCE,
    GameStatus,
    ParticipantPosition,
    PositionTotals,
    quantize_amount,
    summarize_positions,
    validate_positions,
)
from .settlement import (
    DEFAULT_MAX_AMOUNT,
    PaymentMethod,
    SettlementStatus,
    Transfer,
    calculate_settlements,
    ensure_transition,
    validate_transfer,
)

__all__ = [
    "AlreadyInProgressError",
    "CalculationError",
    "CalculationFailedError",
    "DEFAULT_MAX_AMOUNT",
    "DEFAULT_TOLERANCE",
    "EmptyPositionsError",
    "GameNotFoundError",
    "GameNotSettleableError",
    "GameStatus",
    "InvalidPositionError",
    "InvalidTransitionError",
    "LockLostError",
    "ParticipantPosition",
    "PaymentMethod",
    "PositionTotals",
    "SettlementError",
    "SettlementIntegrityError",
    "SettlementNotFoundError",
    "SettlementStatus",
    "Transfer",
    "UnauthorizedError",
    "UnbalancedPositionsError",
    "calculate_settlements",
    "ensure_transition",
    "quantize_amount",
    "summarize_positions",
    "validate_positions",
    "validate_transfer",
]
