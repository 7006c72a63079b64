from sqlalchemy import select

from chip_settle.storage.models import CalculationLock


def test_first_holder_acquires_and_second_is_refused(locks) -> None:
    assert locks.acquire("game-1", "alice") is True
    assert locks.acquire("game-1", "bob") is False


def test_locks_are_per_game(locks) -> None:
    assert locks.acquire("game-1", "alice") is True
    assert locks.acquire("game-2", "bob") is True


def test_same_holder_cannot_reenter_live_lock(locks) -> None:
    assert locks.acquire("game-1", "alice") is True
    assert locks.acquire("game-1", "alice") is False


def test_release_frees_the_game(locks) -> None:
    locks.acquire("game-1", "alice")

    assert locks.release("game-1", "alice") is True
    assert locks.acquire("game-1", "bob") is True


def test_release_by_other_holder_keeps_lock(locks, session_factory) -> None:
    locks.acquire("game-1", "alice")

    assert locks.release("game-1", "bob") is False
    with session_factory() as db:
        lock = db.scalars(select(CalculationLock).where(CalculationLock.game_id == "game-1")).one()
    assert lock.holder_id == "alice"


def test_expired_lock_is_reclaimed(locks, clock, session_factory) -> None:
    locks.acquire("game-1", "alice")
    clock.advance(minutes=6)

    assert locks.acquire("game-1", "bob") is True
    with session_factory() as db:
        lock = db.scalars(select(CalculationLock).where(CalculationLock.game_id == "game-1")).one()
    assert lock.holder_id == "bob"


def test_lock_younger_than_timeout_is_not_reclaimed(locks, clock) -> None:
    locks.acquire("game-1", "alice")
    clock.advance(minutes=4)

    assert locks.acquire("game-1", "bob") is False


def test_previous_holder_cannot_release_reclaimed_lock(locks, clock) -> None:
    locks.acquire("game-1", "alice")
    clock.advance(minutes=6)
    locks.acquire("game-1", "bob")

    assert locks.release("game-1", "alice") is False
    assert locks.acquire("game-1", "carol") is False


def test_cleanup_removes_only_expired_locks(locks, clock, session_factory) -> None:
    locks.acquire("game-old", "alice")
    clock.advance(minutes=10)
    locks.acquire("game-new", "bob")

    assert locks.cleanup_expired() == 1
    with session_factory() as db:
        remaining = db.scalars(select(CalculationLock.game_id)).all()
    assert remaining == ["game-new"]


def test_cleanup_with_nothing_expired(locks) -> None:
    locks.acquire("game-1", "alice")

    assert locks.cleanup_expired() == 0
