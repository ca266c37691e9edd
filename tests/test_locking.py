import threading
import time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from fuel_ledger.core.exceptions import Busy, LedgerInconsistency, ValidationError
from fuel_ledger.crud import crud_lot, crud_tank
from fuel_ledger.db.base import Base
from fuel_ledger.schemas import intake as intake_schema
from fuel_ledger.schemas import tank as tank_schema
from fuel_ledger.services import consumption_engine, intake_processor, summary_aggregator, transfer_engine
from fuel_ledger.services.locking import TankLockManager, ledger_operation

from conftest import JET, intake_header


class TestTankLockManager:
    def test_busy_when_lock_not_acquired_in_time(self):
        locks = TankLockManager(timeout_seconds=0.05)
        with locks.hold([1]):
            with pytest.raises(Busy):
                with locks.hold([1]):
                    pass

    def test_locks_released_on_exit(self):
        locks = TankLockManager(timeout_seconds=0.05)
        with locks.hold([1, 2]):
            pass
        with locks.hold([2, 1]) as held:
            assert held == [1, 2]

    def test_partial_acquisition_is_released(self):
        locks = TankLockManager(timeout_seconds=0.05)
        with locks.hold([2]):
            with pytest.raises(Busy):
                with locks.hold([1, 2]):
                    pass
            # El lock del tanque 1 se liberó al fallar el 2
            with locks.hold([1]):
                pass

    def test_opposite_direction_operations_do_not_deadlock(self):
        locks = TankLockManager(timeout_seconds=5.0)
        errors = []

        def worker(tank_ids):
            try:
                for _ in range(300):
                    with locks.hold(tank_ids):
                        pass
            except Busy as e:
                errors.append(e)

        threads = [
            threading.Thread(target=worker, args=([1, 2],)),
            threading.Thread(target=worker, args=([2, 1],)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert not any(thread.is_alive() for thread in threads)
        assert errors == []

    def test_busy_is_retryable_error(self):
        assert Busy("x").status_code == 503
        assert Busy.retry_after_seconds > 0


class TestLedgerOperation:
    def test_consume_fails_busy_while_tank_is_held(self, db, locks, two_lot_tank):
        held = threading.Event()
        release = threading.Event()

        def holder():
            with locks.hold([two_lot_tank_id]):
                held.set()
                release.wait(timeout=5)

        two_lot_tank_id = two_lot_tank.id
        thread = threading.Thread(target=holder)
        thread.start()
        try:
            assert held.wait(timeout=5)
            with pytest.raises(Busy):
                consumption_engine.consume(db, two_lot_tank_id, 100.0, "EC-MIG", locks=locks)
        finally:
            release.set()
            thread.join(timeout=5)

        assert two_lot_tank.current_quantity_liters == 5000.0
        # Una vez liberado, el reintento funciona
        consumption_engine.consume(db, two_lot_tank_id, 100.0, "EC-MIG", locks=locks)
        assert two_lot_tank.current_quantity_liters == 4900.0

    def test_transfer_busy_when_destination_held(self, db, locks, two_lot_tank, make_tank):
        tank_c = make_tank()
        with locks.hold([tank_c.id]):
            with pytest.raises(Busy):
                transfer_engine.transfer(db, two_lot_tank.id, tank_c.id, 100.0, locks=locks)
        assert two_lot_tank.current_quantity_liters == 5000.0

    def test_inconsistency_rolls_back(self, db, locks, two_lot_tank):
        with pytest.raises(LedgerInconsistency):
            with ledger_operation(db, [two_lot_tank.id], "corrupt", locks=locks):
                tank = crud_tank.get_tank_for_update(db, two_lot_tank.id)
                tank._current_quantity_liters = 1.0

        assert two_lot_tank.current_quantity_liters == 5000.0
        assert crud_lot.check_consistency(db, two_lot_tank.id).is_consistent

    def test_database_lock_errors_become_busy(self, db, locks, two_lot_tank):
        with pytest.raises(Busy):
            with ledger_operation(db, [two_lot_tank.id], "locked", locks=locks):
                raise OperationalError("UPDATE tanks", {}, Exception("database is locked"))

    def test_ledger_errors_propagate_and_roll_back(self, db, locks, two_lot_tank):
        with pytest.raises(ValidationError):
            with ledger_operation(db, [two_lot_tank.id], "partial", locks=locks):
                tank = crud_tank.get_tank_for_update(db, two_lot_tank.id)
                crud_lot.consume(db, tank, 1000.0)
                raise ValidationError("abort after draining")

        assert two_lot_tank.current_quantity_liters == 5000.0
        assert crud_lot.total_remaining(db, two_lot_tank.id) == 5000.0

    def test_locks_released_after_failure(self, db, locks, two_lot_tank):
        with pytest.raises(ValidationError):
            with ledger_operation(db, [two_lot_tank.id], "failing", locks=locks):
                raise ValidationError("boom")
        with locks.hold([two_lot_tank.id]):
            pass


class TestConcurrentOperations:
    """ Operaciones reales desde varios hilos contra una base SQLite en fichero. """

    @pytest.fixture
    def file_session_factory(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'ledger.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(bind=engine)
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
        engine.dispose()

    def _run(self, session_factory, operations):
        session = session_factory()
        try:
            for operation in operations:
                # Busy es reintentable: el cliente vuelve a intentarlo
                for _ in range(50):
                    try:
                        operation(session)
                        break
                    except Busy:
                        time.sleep(0.01)
                else:
                    raise AssertionError("operation never acquired its locks")
        finally:
            session.close()

    def test_threads_keep_tanks_consistent_and_fuel_conserved(self, file_session_factory):
        locks = TankLockManager(timeout_seconds=5.0)
        setup = file_session_factory()
        tank_ids = []
        for identifier in ("A", "B", "C"):
            tank = crud_tank.create_tank(setup, tank_schema.TankCreate(
                identifier=identifier, name=f"Tank {identifier}", capacity_liters=10000.0, fuel_type=JET,
            ))
            tank_ids.append(tank.id)
        tank_a, tank_b, tank_c = tank_ids
        intake_processor.submit_intake(
            setup, intake_header(3000.0, mrn="MRN-0"),
            [intake_schema.TankDistribution(tank_id=tank_a, quantity_liters=3000.0)], locks=locks,
        )
        setup.close()

        consumptions = [
            lambda s: consumption_engine.consume(s, tank_a, 50.0, "EC-MIG", locks=locks)
            for _ in range(20)
        ]
        round_trips = []
        for _ in range(10):
            round_trips.append(lambda s: transfer_engine.transfer(s, tank_a, tank_b, 100.0, locks=locks))
            round_trips.append(lambda s: transfer_engine.transfer(s, tank_b, tank_a, 100.0, locks=locks))
        intakes = [
            lambda s, n=n: intake_processor.submit_intake(
                s, intake_header(500.0, mrn=f"MRN-{n}"),
                [intake_schema.TankDistribution(tank_id=tank_c, quantity_liters=500.0)], locks=locks,
            )
            for n in range(1, 4)
        ]

        errors = []

        def worker(operations):
            try:
                self._run(file_session_factory, operations)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(ops,)) for ops in (consumptions, round_trips, intakes)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        assert not any(thread.is_alive() for thread in threads)
        assert errors == []

        check = file_session_factory()
        try:
            for tank_id in tank_ids:
                assert crud_lot.check_consistency(check, tank_id).is_consistent
            quantities = {t.id: t.current_quantity_liters for t in crud_tank.get_tanks(check)}
            # Entró 3000 + 3 x 500, salieron 20 x 50 hacia aeronaves
            assert quantities[tank_a] + quantities[tank_b] == 2000.0
            assert quantities[tank_b] == 0.0
            assert quantities[tank_c] == 1500.0
            assert summary_aggregator.grand_total(check).quantity_liters == 3500.0
        finally:
            check.close()
