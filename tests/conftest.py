from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from chip_settle.services.audit import AuditRecorder
from chip_settle.services.lock_manager import LockManager
from chip_settle.services.orchestrator import SettlementOrchestrator
from chip_settle.services.status_service import SettlementStatusService
from chip_settle.storage.database import Base
from chip_settle.storage.models import Game, GameParticipant, GroupMember


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 4, 20, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def session_factory() -> Iterator[sessionmaker[Session]]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    engine.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def locks(session_factory: sessionmaker[Session], clock: FakeClock) -> LockManager:
    return LockManager(session_factory, timeout=timedelta(minutes=5), clock=clock)


@pytest.fixture
def audit(session_factory: sessionmaker[Session], clock: FakeClock) -> AuditRecorder:
    return AuditRecorder(session_factory, clock=clock)


@pytest.fixture
def orchestrator(
    session_factory: sessionmaker[Session], locks: LockManager, audit: AuditRecorder, clock: FakeClock
) -> SettlementOrchestrator:
    return SettlementOrchestrator(session_factory, locks, audit, clock=clock)


@pytest.fixture
def statuses(session_factory: sessionmaker[Session], audit: AuditRecorder, clock: FakeClock) -> SettlementStatusService:
    return SettlementStatusService(session_factory, audit, clock=clock)


def seed_game(
    session_factory: sessionmaker[Session],
    positions: dict[str, tuple[str, str]],
    *,
    status: str = "completed",
    group_id: str = "group-1",
    admins: tuple[str, ...] = ("admin",),
) -> str:
    """positions maps participant id -> (total_buyin, total_cashout)."""
    with session_factory() as db:
        game = Game(group_id=group_id, status=status)
        db.add(game)
        db.flush()
        for user_id, (buyin, cashout) in positions.items():
            db.add(
                GameParticipant(
                    game_id=game.id,
                    user_id=user_id,
                    total_buyin=Decimal(buyin),
                    total_cashout=Decimal(cashout),
                )
            )
        for admin in admins:
            if db.query(GroupMember).filter_by(group_id=group_id, user_id=admin).first() is None:
                db.add(GroupMember(group_id=group_id, user_id=admin, role="admin"))
        db.commit()
        return game.id


@pytest.fixture
def three_player_game(make_game) -> str:
    # nets: alice +30, bob -10, carol -20
    return make_game(
        {"alice": ("20.00", "50.00"), "bob": ("20.00", "10.00"), "carol": ("20.00", "0.00")},
    )


@pytest.fixture
def make_game(session_factory: sessionmaker[Session]):
    def _make(positions: dict[str, tuple[str, str]], **kwargs: object) -> str:
        return seed_game(session_factory, positions, **kwargs)

    return _make
