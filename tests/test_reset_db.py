from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fuel_ledger.crud import crud_tank
from fuel_ledger.models.tank import Tank
from fuel_ledger.schemas import tank as tank_schema
from fuel_ledger.scripts.reset_db import reset_database

LEDGER_TABLES = {
    "tanks",
    "customs_lots",
    "fuel_transactions",
    "fuel_transaction_lots",
    "intake_records",
    "intake_distributions",
}


def test_reset_creates_ledger_tables_and_drops_data():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    reset_database(bind=engine)
    assert LEDGER_TABLES <= set(inspect(engine).get_table_names())

    session = sessionmaker(bind=engine)()
    crud_tank.create_tank(session, tank_schema.TankCreate(
        identifier="FIX-01", name="Fixed 1", capacity_liters=1000.0, fuel_type="JET A-1",
    ))
    session.close()

    reset_database(bind=engine)

    session = sessionmaker(bind=engine)()
    assert session.query(Tank).count() == 0
    session.close()
    engine.dispose()
