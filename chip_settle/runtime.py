from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.orm import Session, sessionmaker

from chip_settle.config import Settings, settings
from chip_settle.services.audit import AuditRecorder
from chip_settle.services.clock import Clock, utcnow
from chip_settle.services.lock_manager import LockManager
from chip_settle.services.orchestrator import SettlementOrchestrator
from chip_settle.services.status_service import SettlementStatusService
from chip_settle.storage.database import SessionLocal


@dataclass(slots=True)
class Services:
    locks: LockManager
    audit: AuditRecorder
    orchestrator: SettlementOrchestrator
    statuses: SettlementStatusService


def build_services(
    session_factory: sessionmaker[Session],
    config: Settings = settings,
    clock: Clock = utcnow,
) -> Services:
    locks = LockManager(session_factory, timeout=timedelta(seconds=config.lock_timeout_seconds), clock=clock)
    audit = AuditRecorder(session_factory, clock=clock)
    orchestrator = SettlementOrchestrator(
        session_factory,
        locks,
        audit,
        tolerance=config.tolerance,
        max_amount=config.max_settlement_amount,
        clock=clock,
    )
    statuses = SettlementStatusService(session_factory, audit, max_amount=config.max_settlement_amount, clock=clock)
    return Services(locks=locks, audit=audit, orchestrator=orchestrator, statuses=statuses)


services = build_services(SessionLocal)


def get_services() -> Services:
    return services
