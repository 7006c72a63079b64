"""Per-game calculation lock kept in the database.

Several API processes may race for the same game, so the lock lives in the
``settlement_calculation_locks`` table: the primary key on ``game_id`` makes
the insert atomic and a conditional UPDATE reclaims a lock whose holder has
been silent for longer than the timeout. Every call commits immediately so
other processes see the change.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from chip_settle.services.clock import Clock, utcnow
from chip_settle.storage.models import CalculationLock

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = timedelta(minutes=5)


class LockManager:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        timeout: timedelta = DEFAULT_LOCK_TIMEOUT,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self.timeout = timeout
        self._clock = clock

    def acquire(self, game_id: str, holder_id: str) -> bool:
        """Non-blocking: returns False at once while another holder's lock is live."""
        now = self._clock()
        with self._session_factory() as db:
            db.add(CalculationLock(game_id=game_id, holder_id=holder_id, acquired_at=now))
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
            else:
                logger.info("calculation lock acquired game_id=%s holder_id=%s", game_id, holder_id)
                return True

            result = db.execute(
                update(CalculationLock)
                .where(
                    CalculationLock.game_id == game_id,
                    CalculationLock.acquired_at < now - self.timeout,
                )
                .values(holder_id=holder_id, acquired_at=now)
                .execution_options(synchronize_session=False)
            )
            db.commit()

        if result.rowcount == 1:
            logger.warning("expired calculation lock reclaimed game_id=%s holder_id=%s", game_id, holder_id)
            return True

        logger.info("calculation lock busy game_id=%s requested_by=%s", game_id, holder_id)
        return False

    def release(self, game_id: str, holder_id: str) -> bool:
        """Deletes the lock only while ``holder_id`` still owns it."""
        with self._session_factory() as db:
            result = db.execute(
                delete(CalculationLock)
                .where(CalculationLock.game_id == game_id, CalculationLock.holder_id == holder_id)
                .execution_options(synchronize_session=False)
            )
            db.commit()

        released = result.rowcount == 1
        if released:
            logger.info("calculation lock released game_id=%s holder_id=%s", game_id, holder_id)
        else:
            logger.warning("calculation lock not held on release game_id=%s holder_id=%s", game_id, holder_id)
        return released

    def cleanup_expired(self) -> int:
        cutoff = self._clock() - self.timeout
        with self._session_factory() as db:
            result = db.execute(
                delete(CalculationLock)
                .where(CalculationLock.acquired_at < cutoff)
                .execution_options(synchronize_session=False)
            )
            db.commit()

        if result.rowcount:
            logger.info("removed %d expired calculation locks", result.rowcount)
        return result.rowcount
