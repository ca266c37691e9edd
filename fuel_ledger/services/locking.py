"""
Serialización por tanque.

Cada tanque tiene su propio lock; una operación que toca varios tanques
los adquiere en orden ascendente de id para no generar deadlocks entre
traspasos en sentidos opuestos. Si un lock no se obtiene dentro de la
espera máxima la operación falla con Busy (reintentable).
"""
import logging
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from fuel_ledger.core.config import settings
from fuel_ledger.core.exceptions import Busy, FuelLedgerError, LedgerInconsistency
from fuel_ledger.crud import crud_lot

logger = logging.getLogger(__name__)


class TankLockManager:
    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        self._locks: Dict[int, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, tank_id: int) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(tank_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[tank_id] = lock
            return lock

    @contextmanager
    def hold(self, tank_ids: Iterable[int], timeout_seconds: Optional[float] = None) -> Iterator[List[int]]:
        """ Adquiere los locks de los tanques (orden ascendente) y los libera al salir. """
        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        ordered = sorted(set(tank_ids))
        acquired: List[threading.Lock] = []
        try:
            for tank_id in ordered:
                lock = self._lock_for(tank_id)
                if not lock.acquire(timeout=timeout):
                    logger.warning("Tank %s busy, lock not acquired within %.2fs", tank_id, timeout)
                    raise Busy(f"Tank {tank_id} is busy with another operation, retry later")
                acquired.append(lock)
            yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()


tank_locks = TankLockManager(settings.LOCK_TIMEOUT_SECONDS)


@contextmanager
def ledger_operation(
    db: Session,
    tank_ids: Iterable[int],
    name: str,
    locks: Optional[TankLockManager] = None,
) -> Iterator[Session]:
    """
    Unidad de trabajo de una operación del libro:
    locks de los tanques -> cuerpo -> verificación de consistencia -> commit.
    Cualquier error hace rollback completo antes de propagarse.
    """
    locks = locks or tank_locks
    tank_ids = sorted(set(tank_ids))
    start = time.perf_counter()
    logger.info("Starting %s on tanks %s", name, tank_ids)

    with locks.hold(tank_ids):
        try:
            yield db
            inconsistent = [
                report for report in (crud_lot.check_consistency(db, tank_id) for tank_id in tank_ids)
                if not report.is_consistent
            ]
            if inconsistent:
                details = ", ".join(
                    f"{r.tank_identifier} (difference {r.difference_liters} L)" for r in inconsistent
                )
                raise LedgerInconsistency(f"Ledger inconsistency after {name}: {details}")
            db.commit()
        except OperationalError as e:
            db.rollback()
            logger.warning("%s rolled back, database busy: %s", name, e)
            raise Busy(f"Database busy during {name}, retry later") from e
        except FuelLedgerError as e:
            db.rollback()
            logger.info("%s rejected: %s", name, e.message)
            raise
        except Exception:
            db.rollback()
            logger.exception("%s rolled back", name)
            raise

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info("Completed %s in %.2fms", name, elapsed_ms)
