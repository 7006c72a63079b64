from decimal import Decimal

import pytest

from chip_settle.domain import (
    InvalidTransitionError,
    SettlementIntegrityError,
    SettlementStatus,
    ensure_transition,
    validate_transfer,
)


@pytest.mark.parametrize("target", [SettlementStatus.COMPLETED, SettlementStatus.CANCELLED])
def test_pending_can_move_to_terminal_states(target: SettlementStatus) -> None:
    ensure_transition("pending", target)


@pytest.mark.parametrize("current", ["completed", "cancelled"])
@pytest.mark.parametrize("target", list(SettlementStatus))
def test_terminal_states_never_move(current: str, target: SettlementStatus) -> None:
    with pytest.raises(InvalidTransitionError):
        ensure_transition(current, target)


def test_pending_to_pending_is_not_a_transition() -> None:
    with pytest.raises(InvalidTransitionError):
        ensure_transition(SettlementStatus.PENDING, SettlementStatus.PENDING)


def test_valid_transfer_passes() -> None:
    validate_transfer("bob", "alice", Decimal("20.00"))


@pytest.mark.parametrize(
    "payer, payee, amount",
    [
        ("alice", "alice", Decimal("5.00")),
        ("bob", "alice", Decimal("0.00")),
        ("bob", "alice", Decimal("-3.00")),
        ("bob", "alice", Decimal("5000.01")),
        ("bob", "alice", Decimal("1.005")),
    ],
    ids=["self_payment", "zero", "negative", "above_maximum", "sub_cent"],
)
def test_invalid_transfers_are_rejected(payer: str, payee: str, amount: Decimal) -> None:
    with pytest.raises(SettlementIntegrityError):
        validate_transfer(payer, payee, amount)


def test_maximum_is_configurable() -> None:
    validate_transfer("bob", "alice", Decimal("9000.00"), max_amount=Decimal("10000.00"))
