"""Debt-netting and settlement lifecycle rules."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from .errors import InvalidTransitionError, SettlementIntegrityError, UnbalancedPositionsError
from .game import (
    DEFAULT_TOLERANCE,
    ZERO,
    ParticipantPosition,
    has_cent_precision,
    quantize_amount,
    summarize_positions,
    validate_positions,
)

DEFAULT_MAX_AMOUNT = Decimal("5000.00")


class SettlementStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    PAYPAL = "paypal"
    VENMO = "venmo"
    ZELLE = "zelle"


ALLOWED_TRANSITIONS: Mapping[SettlementStatus, frozenset[SettlementStatus]] = {
    SettlementStatus.PENDING: frozenset({SettlementStatus.COMPLETED, SettlementStatus.CANCELLED}),
    SettlementStatus.COMPLETED: frozenset(),
    SettlementStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True, slots=True)
class Transfer:
    payer_id: str
    payee_id: str
    amount: Decimal


def calculate_settlements(
    positions: Sequence[ParticipantPosition],
    *,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> list[Transfer]:
    """Reduce net positions to a minimal list of debtor -> creditor transfers.

    Greedy largest-first pairing: the biggest remaining debt is matched with the
    biggest remaining credit until one side runs out. Equal amounts are ordered
    by participant id so the output is deterministic. Raises a
    ``CalculationError`` subclass for empty, invalid or unbalanced input and
    never returns a partial result.
    """
    validate_positions(positions)
    totals = summarize_positions(positions)
    if not totals.is_balanced(tolerance):
        raise UnbalancedPositionsError(
            f"buy-ins {totals.total_buyin} and cash-outs {totals.total_cashout} "
            f"differ by {totals.difference}",
            details={
                "total_buyin": str(totals.total_buyin),
                "total_cashout": str(totals.total_cashout),
                "difference": str(totals.difference),
            },
        )

    creditors: dict[str, Decimal] = {}
    debtors: dict[str, Decimal] = {}
    for position in positions:
        net = quantize_amount(position.net)
        if net > ZERO:
            creditors[position.participant_id] = net
        elif net < ZERO:
            debtors[position.participant_id] = -net

    transfers: list[Transfer] = []
    while creditors and debtors:
        creditor_id = _largest(creditors)
        debtor_id = _largest(debtors)

        amount = quantize_amount(min(creditors[creditor_id], debtors[debtor_id]))
        if amount > ZERO:
            transfers.append(Transfer(payer_id=debtor_id, payee_id=creditor_id, amount=amount))

        creditors[creditor_id] = quantize_amount(creditors[creditor_id] - amount)
        debtors[debtor_id] = quantize_amount(debtors[debtor_id] - amount)
        if creditors[creditor_id] <= ZERO:
            del creditors[creditor_id]
        if debtors[debtor_id] <= ZERO:
            del debtors[debtor_id]

    return transfers


def _largest(balances: Mapping[str, Decimal]) -> str:
    participant_id, _ = min(balances.items(), key=lambda item: (-item[1], item[0]))
    return participant_id


def validate_transfer(
    payer_id: str,
    payee_id: str,
    amount: Decimal,
    *,
    max_amount: Decimal = DEFAULT_MAX_AMOUNT,
) -> None:
    if payer_id == payee_id:
        raise SettlementIntegrityError(
            "payer and payee must be different people",
            details={"participant_id": payer_id},
        )
    if amount <= ZERO:
        raise SettlementIntegrityError(
            f"settlement amount {amount} must be positive",
            details={"amount": str(amount)},
        )
    if amount > max_amount:
        raise SettlementIntegrityError(
            f"settlement amount {amount} exceeds maximum {max_amount}",
            details={"amount": str(amount), "max_amount": str(max_amount)},
        )
    if not has_cent_precision(amount):
        raise SettlementIntegrityError(
            f"settlement amount {amount} has more than 2 decimal places",
            details={"amount": str(amount)},
        )


def ensure_transition(current: SettlementStatus | str, target: SettlementStatus) -> None:
    current_status = SettlementStatus(current)
    if target not in ALLOWED_TRANSITIONS[current_status]:
        raise InvalidTransitionError(
            f"settlement cannot move from {current_status.value} to {target.value}",
            details={"from": current_status.value, "to": target.value},
        )
