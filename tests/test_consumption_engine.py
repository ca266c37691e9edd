import datetime

import pytest

from fuel_ledger.core.exceptions import (
    CapacityExceeded,
    FuelTypeMismatch,
    InsufficientFuel,
    NotFound,
    TankNotActive,
    ValidationError,
)
from fuel_ledger.crud import crud_lot, crud_tank, crud_transaction
from fuel_ledger.models.tank import TankStatus
from fuel_ledger.models.transaction import TransactionType
from fuel_ledger.services import consumption_engine

from conftest import AVGAS


def _lots(db, tank):
    return [(l.mrn, l.remaining_liters) for l in crud_lot.get_lots(db, tank.id)]


class TestConsume:
    def test_aircraft_fueling_drains_fifo(self, db, locks, two_lot_tank):
        result = consumption_engine.consume(db, two_lot_tank.id, 2500.0, "EC-MIG", locks=locks)

        assert [(f.mrn, f.quantity_drained) for f in result.drained] == [("MRN-1", 2000.0), ("MRN-2", 500.0)]
        assert two_lot_tank.current_quantity_liters == 2500.0
        assert _lots(db, two_lot_tank) == [("MRN-1", 0.0), ("MRN-2", 2500.0)]

        transaction = result.transaction
        assert transaction.type == TransactionType.consumption
        assert transaction.quantity_liters == -2500.0
        assert transaction.counterpart == "EC-MIG"
        assert [(l.mrn, l.quantity_liters) for l in transaction.lots] == [("MRN-1", 2000.0), ("MRN-2", 500.0)]

    def test_drain_uses_same_path(self, db, locks, two_lot_tank):
        result = consumption_engine.consume(db, two_lot_tank.id, 20.0, "DRAIN", notes="Water check")

        assert result.sink_reference == "DRAIN"
        assert result.transaction.notes == "Water check"
        assert crud_transaction.get_transactions(db, tank_id=two_lot_tank.id, type=TransactionType.consumption)[0].counterpart == "DRAIN"

    def test_more_than_remaining_is_rejected(self, db, locks, two_lot_tank):
        with pytest.raises(InsufficientFuel):
            consumption_engine.consume(db, two_lot_tank.id, 5001.0, "EC-MIG", locks=locks)

        assert two_lot_tank.current_quantity_liters == 5000.0
        assert crud_transaction.get_transactions(db, type=TransactionType.consumption) == []

    def test_inactive_tank(self, db, locks, two_lot_tank):
        crud_tank.update_tank_status(db, two_lot_tank.id, TankStatus.INACTIVE)
        with pytest.raises(TankNotActive):
            consumption_engine.consume(db, two_lot_tank.id, 100.0, "EC-MIG", locks=locks)

    def test_sink_reference_required(self, db, locks, two_lot_tank):
        with pytest.raises(ValidationError):
            consumption_engine.consume(db, two_lot_tank.id, 100.0, "  ", locks=locks)

    def test_unknown_tank(self, db, locks):
        with pytest.raises(NotFound):
            consumption_engine.consume(db, 999, 100.0, "EC-MIG", locks=locks)

    def test_pinned_newer_lot_warns(self, db, locks, two_lot_tank):
        pinned = next(l.id for l in crud_lot.get_lots(db, two_lot_tank.id) if l.mrn == "MRN-2")
        result = consumption_engine.consume(db, two_lot_tank.id, 100.0, "EC-MIG", pinned_lot_id=pinned, locks=locks)

        assert [w.code for w in result.warnings] == ["older_lot_bypassed"]
        assert _lots(db, two_lot_tank) == [("MRN-1", 2000.0), ("MRN-2", 2900.0)]


class TestReverseConsumption:
    def test_returns_newest_drained_fragment_first(self, db, locks, two_lot_tank):
        consumed = consumption_engine.consume(db, two_lot_tank.id, 2500.0, "DRAIN", locks=locks)

        result = consumption_engine.reverse_consumption(
            db, consumed.transaction.id, two_lot_tank.id, 700.0, locks=locks
        )

        assert [(l.mrn, l.quantity_received_liters, l.date_received) for l in result.created_lots] == [
            ("MRN-2", 500.0, datetime.datetime(2024, 2, 1, 8, 0)),
            ("MRN-1", 200.0, datetime.datetime(2024, 1, 1, 8, 0)),
        ]
        assert result.quantity_liters == 700.0
        assert result.transaction.type == TransactionType.adjustment
        assert result.transaction.reverses_transaction_id == consumed.transaction.id
        assert two_lot_tank.current_quantity_liters == 3200.0
        assert crud_lot.check_consistency(db, two_lot_tank.id).is_consistent

    def test_cannot_return_more_than_was_drained(self, db, locks, two_lot_tank):
        consumed = consumption_engine.consume(db, two_lot_tank.id, 2500.0, "DRAIN", locks=locks)
        consumption_engine.reverse_consumption(db, consumed.transaction.id, two_lot_tank.id, 700.0, locks=locks)

        with pytest.raises(ValidationError):
            consumption_engine.reverse_consumption(db, consumed.transaction.id, two_lot_tank.id, 1900.0, locks=locks)

        rest = consumption_engine.reverse_consumption(db, consumed.transaction.id, two_lot_tank.id, 1800.0, locks=locks)
        assert [(l.mrn, l.quantity_received_liters) for l in rest.created_lots] == [("MRN-1", 1800.0)]
        assert two_lot_tank.current_quantity_liters == 5000.0

    def test_into_another_tank(self, db, locks, two_lot_tank, make_tank):
        spare = make_tank(capacity=1000.0)
        consumed = consumption_engine.consume(db, two_lot_tank.id, 300.0, "DRAIN", locks=locks)

        result = consumption_engine.reverse_consumption(db, consumed.transaction.id, spare.id, 300.0, locks=locks)

        assert result.destination_tank_id == spare.id
        assert _lots(db, spare) == [("MRN-1", 300.0)]

    def test_destination_capacity(self, db, locks, two_lot_tank, make_tank):
        spare = make_tank(capacity=100.0)
        consumed = consumption_engine.consume(db, two_lot_tank.id, 300.0, "DRAIN", locks=locks)

        with pytest.raises(CapacityExceeded):
            consumption_engine.reverse_consumption(db, consumed.transaction.id, spare.id, 300.0, locks=locks)

    def test_destination_fuel_type(self, db, locks, two_lot_tank, make_tank):
        avgas = make_tank(fuel_type=AVGAS)
        consumed = consumption_engine.consume(db, two_lot_tank.id, 300.0, "DRAIN", locks=locks)

        with pytest.raises(FuelTypeMismatch):
            consumption_engine.reverse_consumption(db, consumed.transaction.id, avgas.id, 300.0, locks=locks)

    def test_only_consumptions_can_be_reversed(self, db, locks, two_lot_tank):
        intake = crud_transaction.get_transactions(db, tank_id=two_lot_tank.id, type=TransactionType.intake)[0]
        with pytest.raises(ValidationError):
            consumption_engine.reverse_consumption(db, intake.id, two_lot_tank.id, 10.0, locks=locks)

    def test_unknown_transaction(self, db, locks, two_lot_tank):
        with pytest.raises(NotFound):
            consumption_engine.reverse_consumption(db, 999, two_lot_tank.id, 10.0, locks=locks)
