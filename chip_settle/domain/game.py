from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from .errors import EmptyPositionsError, InvalidPositionError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
DEFAULT_TOLERANCE = Decimal("0.01")


class GameStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so that 0.1 becomes Decimal("0.1") and not its binary expansion
    return Decimal(str(value))


def quantize_amount(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def has_cent_precision(value: Decimal) -> bool:
    return value == value.quantize(CENT)


@dataclass(frozen=True, slots=True)
class ParticipantPosition:
    game_id: str
    participant_id: str
    total_buyin: Decimal
    total_cashout: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "total_buyin", to_decimal(self.total_buyin))
        object.__setattr__(self, "total_cashout", to_decimal(self.total_cashout))

    @property
    def net(self) -> Decimal:
        return self.total_cashout - self.total_buyin


@dataclass(frozen=True, slots=True)
class PositionTotals:
    total_buyin: Decimal
    total_cashout: Decimal

    @property
    def difference(self) -> Decimal:
        return self.total_buyin - self.total_cashout

    def is_balanced(self, tolerance: Decimal = DEFAULT_TOLERANCE) -> bool:
        return abs(self.difference) <= tolerance


def validate_positions(positions: Sequence[ParticipantPosition]) -> None:
    if not positions:
        raise EmptyPositionsError("no participant positions to settle")

    seen: set[str] = set()
    for position in positions:
        participant = position.participant_id
        if participant in seen:
            raise InvalidPositionError(
                f"participant {participant} appears more than once",
                details={"participant_id": participant},
            )
        seen.add(participant)

        for field_name in ("total_buyin", "total_cashout"):
            value = getattr(position, field_name)
            if value < 0:
                raise InvalidPositionError(
                    f"{field_name} for participant {participant} is negative",
                    details={"participant_id": participant, "field": field_name, "value": str(value)},
                )
            if not has_cent_precision(value):
                raise InvalidPositionError(
                    f"{field_name} for participant {participant} has more than 2 decimal places",
                    details={"participant_id": participant, "field": field_name, "value": str(value)},
                )


def summarize_positions(positions: Sequence[ParticipantPosition]) -> PositionTotals:
    return PositionTotals(
        total_buyin=sum((p.total_buyin for p in positions), ZERO),
        total_cashout=sum((p.total_cashout for p in positions), ZERO),
    )
