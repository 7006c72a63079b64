from decimal import Decimal

import pytest

from chip_settle.domain import (
    InvalidTransitionError,
    PaymentMethod,
    SettlementIntegrityError,
    SettlementNotFoundError,
    UnauthorizedError,
)
from chip_settle.storage.models import Settlement


@pytest.fixture
def settled(orchestrator, three_player_game):
    """(game_id, [carol->alice 20.00, bob->alice 10.00])"""
    return three_player_game, orchestrator.get_or_calculate_settlements(three_player_game, "alice")


def test_payer_marks_settlement_complete(statuses, settled, clock) -> None:
    _, (carol_pays, _) = settled

    row = statuses.mark_complete(carol_pays.id, "carol", payment_method=PaymentMethod.VENMO)

    assert row.status == "completed"
    assert row.payment_method == "venmo"
    assert row.completed_at == clock.now


def test_payee_can_complete(statuses, settled) -> None:
    _, (carol_pays, _) = settled

    assert statuses.mark_complete(carol_pays.id, "alice").status == "completed"


def test_group_admin_can_complete_for_others(statuses, settled) -> None:
    _, (_, bob_pays) = settled

    row = statuses.mark_complete(bob_pays.id, "admin")

    assert row.status == "completed"
    assert row.payment_method == "cash"


def test_unrelated_user_cannot_complete(statuses, orchestrator, settled) -> None:
    game_id, (carol_pays, _) = settled

    with pytest.raises(UnauthorizedError):
        statuses.mark_complete(carol_pays.id, "bob")

    stored = {row.id: row for row in orchestrator.list_settlements(game_id)}
    assert stored[carol_pays.id].status == "pending"
    assert stored[carol_pays.id].completed_at is None


def test_completing_twice_is_rejected(statuses, settled) -> None:
    _, (carol_pays, _) = settled
    statuses.mark_complete(carol_pays.id, "carol")

    with pytest.raises(InvalidTransitionError):
        statuses.mark_complete(carol_pays.id, "carol")


def test_unknown_settlement(statuses) -> None:
    with pytest.raises(SettlementNotFoundError):
        statuses.mark_complete("missing", "alice")


def test_completion_is_audited(statuses, audit, settled) -> None:
    _, (carol_pays, _) = settled

    statuses.mark_complete(carol_pays.id, "carol")

    history = audit.settlement_history(carol_pays.id)
    assert [(entry.action, entry.old_status, entry.new_status, entry.actor_id) for entry in history] == [
        ("insert", None, "pending", "alice"),
        ("update", "pending", "completed", "carol"),
    ]
    assert history[-1].amount == Decimal("20.00")


def test_admin_cancels_single_settlement(statuses, audit, settled) -> None:
    _, (carol_pays, _) = settled

    row = statuses.cancel(carol_pays.id, "admin")

    assert row.status == "cancelled"
    assert audit.settlement_history(carol_pays.id)[-1].new_status == "cancelled"


def test_party_cannot_cancel(statuses, settled) -> None:
    _, (carol_pays, _) = settled

    with pytest.raises(UnauthorizedError):
        statuses.cancel(carol_pays.id, "carol")


def test_cancelled_settlement_cannot_be_completed(statuses, settled) -> None:
    _, (carol_pays, _) = settled
    statuses.cancel(carol_pays.id, "admin")

    with pytest.raises(InvalidTransitionError):
        statuses.mark_complete(carol_pays.id, "carol")


def test_cancel_game_settlements_skips_completed(statuses, orchestrator, settled) -> None:
    game_id, (carol_pays, bob_pays) = settled
    statuses.mark_complete(carol_pays.id, "carol")

    cancelled = statuses.cancel_game_settlements(game_id, "admin")

    assert [row.id for row in cancelled] == [bob_pays.id]
    stored = {row.id: row.status for row in orchestrator.list_settlements(game_id)}
    assert stored == {carol_pays.id: "completed", bob_pays.id: "cancelled"}


def test_cancel_game_settlements_requires_admin(statuses, orchestrator, settled) -> None:
    game_id, _ = settled

    with pytest.raises(UnauthorizedError):
        statuses.cancel_game_settlements(game_id, "alice")

    assert all(row.status == "pending" for row in orchestrator.list_settlements(game_id))


def test_admin_of_another_group_is_not_admin_here(statuses, make_game, orchestrator) -> None:
    make_game({}, group_id="group-2", admins=("other-admin",))
    game_id = make_game({"alice": ("10.00", "15.00"), "bob": ("10.00", "5.00")})
    [row] = orchestrator.get_or_calculate_settlements(game_id, "alice")

    with pytest.raises(UnauthorizedError):
        statuses.mark_complete(row.id, "other-admin")


def test_corrupted_amount_is_rejected_on_completion(statuses, orchestrator, session_factory, settled) -> None:
    game_id, (carol_pays, _) = settled
    with session_factory() as db:
        db.get(Settlement, carol_pays.id).amount = Decimal("7500.00")
        db.commit()

    with pytest.raises(SettlementIntegrityError):
        statuses.mark_complete(carol_pays.id, "carol")

    stored = {row.id: row for row in orchestrator.list_settlements(game_id)}
    assert stored[carol_pays.id].status == "pending"
    assert stored[carol_pays.id].completed_at is None
