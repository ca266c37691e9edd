"""
Fixtures compartidos: base SQLite en memoria por test, locks con espera
corta, fábricas de tanques y recepciones, y un cliente HTTP con la
sesión de test inyectada.
"""
import datetime
import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fuel_ledger.crud import crud_tank
from fuel_ledger.db.base import Base
from fuel_ledger.db.database import get_db
from fuel_ledger.db.mongodb import get_operation_log_collection
from fuel_ledger.main import app
from fuel_ledger.models.tank import TankKind, TankStatus
from fuel_ledger.schemas import intake as intake_schema
from fuel_ledger.schemas import tank as tank_schema
from fuel_ledger.services import intake_processor
from fuel_ledger.services.locking import TankLockManager

JET = "JET A-1"
AVGAS = "AVGAS 100LL"


class FakeCursor:
    def __init__(self, documents):
        self._documents = list(documents)
        self._limit = None

    def sort(self, keys):
        # Orden estable: se aplica de la última clave a la primera
        for field, direction in reversed(keys):
            self._documents.sort(key=lambda doc: doc[field], reverse=direction < 0)
        return self

    def limit(self, limit):
        self._limit = limit
        return self

    async def to_list(self, length=None):
        documents = self._documents
        if self._limit is not None:
            documents = documents[: self._limit]
        return [dict(doc) for doc in documents]


class FakeOperationLog:
    """ Colección async en memoria con la parte de la API de motor que se usa """

    def __init__(self):
        self.documents = []
        self._ids = itertools.count(1)

    async def insert_many(self, documents):
        for doc in documents:
            self.documents.append({"_id": next(self._ids), **doc})

    def find(self, query):
        return FakeCursor(
            doc for doc in self.documents
            if all(doc.get(field) == value for field, value in query.items())
        )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def locks():
    return TankLockManager(timeout_seconds=0.2)


@pytest.fixture
def make_tank(db):
    counter = itertools.count(1)

    def _make_tank(
        capacity=10000.0,
        fuel_type=JET,
        kind=TankKind.fixed,
        status=TankStatus.ACTIVE,
        identifier=None,
    ):
        n = next(counter)
        return crud_tank.create_tank(db, tank_schema.TankCreate(
            identifier=identifier or f"T-{n}",
            name=f"Tank {n}",
            kind=kind,
            capacity_liters=capacity,
            fuel_type=fuel_type,
            status=status,
        ))

    return _make_tank


def intake_header(
    quantity,
    mrn="MRN-1",
    fuel_type=JET,
    intake_datetime=datetime.datetime(2024, 1, 1, 8, 0),
    supplier="CEPSA",
) -> intake_schema.IntakeHeader:
    return intake_schema.IntakeHeader(
        delivery_vehicle_plate="1234-BCD",
        delivery_vehicle_driver_name="J. Perez",
        intake_datetime=intake_datetime,
        quantity_liters_received=quantity,
        quantity_kg_received=round(quantity * 0.8, 3),
        specific_gravity=0.8,
        fuel_type=fuel_type,
        supplier_name=supplier,
        delivery_note_number="DN-001",
        customs_declaration_number=mrn,
    )


@pytest.fixture
def make_intake(db, locks):
    """ Recepción repartida en [(tanque, litros), ...] """

    def _make_intake(distributions, quantity=None, **header_fields):
        received = quantity if quantity is not None else sum(q for _, q in distributions)
        return intake_processor.submit_intake(
            db,
            intake_header(received, **header_fields),
            [intake_schema.TankDistribution(tank_id=tank.id, quantity_liters=q) for tank, q in distributions],
            locks=locks,
        )

    return _make_intake


@pytest.fixture
def two_lot_tank(make_tank, make_intake):
    """ Tanque con MRN-1 2000 L (2024-01-01) y MRN-2 3000 L (2024-02-01) """
    tank = make_tank(capacity=10000.0, identifier="A")
    make_intake([(tank, 2000.0)], mrn="MRN-1", intake_datetime=datetime.datetime(2024, 1, 1, 8, 0))
    make_intake([(tank, 3000.0)], mrn="MRN-2", intake_datetime=datetime.datetime(2024, 2, 1, 8, 0))
    return tank


@pytest.fixture
def operation_log():
    return FakeOperationLog()


@pytest.fixture
def client(session_factory, operation_log):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_operation_log_collection] = lambda: operation_log
    yield TestClient(app)
    app.dependency_overrides.clear()
