import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from fuel_ledger.core.constants import round_quantity
from fuel_ledger.core.exceptions import InvalidOperation, NotFound, ValidationError
from fuel_ledger.models.tank import Tank, TankKind, TankStatus
from fuel_ledger.schemas import tank as tank_schema

logger = logging.getLogger(__name__)

# Campos que no se pueden cambiar una vez creado el tanque
IMMUTABLE_FIELDS = {"id", "identifier"}
# Solo los modifica el libro de lotes
LEDGER_FIELDS = {"current_quantity_liters"}
UPDATABLE_FIELDS = {"name", "kind", "capacity_liters", "fuel_type", "location"}
# No admiten null en la base
REQUIRED_FIELDS = {"name", "kind", "capacity_liters", "fuel_type"}


def _validate_capacity(capacity_liters: Any) -> None:
    if capacity_liters is None or float(capacity_liters) <= 0:
        raise ValidationError("capacity_liters must be greater than 0")

def _validate_fuel_type(fuel_type: Any) -> None:
    if not fuel_type or not str(fuel_type).strip():
        raise ValidationError("fuel_type must not be empty")

def _coerce_status(status: Any) -> TankStatus:
    try:
        return TankStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in TankStatus)
        raise ValidationError(f"Unknown tank status '{status}'. Allowed: {allowed}")

def _coerce_kind(kind: Any) -> TankKind:
    try:
        return TankKind(kind)
    except ValueError:
        raise ValidationError(f"Unknown tank kind '{kind}'. Allowed: fixed, mobile")


def get_tank(db: Session, tank_id: int) -> Tank:
    """ Obtiene un tanque por su ID o lanza NotFound. """
    tank = db.query(Tank).filter(Tank.id == tank_id).first()
    if tank is None:
        raise NotFound(f"Tank {tank_id} not found")
    return tank

def get_tank_for_update(db: Session, tank_id: int) -> Tank:
    """
    Igual que get_tank pero bloqueando la fila (SELECT ... FOR UPDATE)
    en las bases que lo soportan. Se usa dentro de operaciones del libro.
    """
    tank = db.query(Tank).filter(Tank.id == tank_id).with_for_update().first()
    if tank is None:
        raise NotFound(f"Tank {tank_id} not found")
    return tank

def get_tank_by_identifier(db: Session, identifier: str) -> Tank | None:
    return db.query(Tank).filter(Tank.identifier == identifier).first()

def get_tanks(
    db: Session,
    kind: Optional[TankKind] = None,
    status: Optional[TankStatus] = None,
    fuel_type: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[Tank]:
    query = db.query(Tank)
    if kind is not None:
        query = query.filter(Tank.kind == kind)
    if status is not None:
        query = query.filter(Tank.status == status)
    if fuel_type:
        query = query.filter(Tank.fuel_type == fuel_type)
    return query.order_by(Tank.id).offset(skip).limit(limit).all()


def create_tank(db: Session, tank_data: tank_schema.TankCreate) -> Tank:
    _validate_capacity(tank_data.capacity_liters)
    _validate_fuel_type(tank_data.fuel_type)
    status = _coerce_status(tank_data.status)
    kind = _coerce_kind(tank_data.kind)
    if not tank_data.identifier or not tank_data.identifier.strip():
        raise ValidationError("identifier must not be empty")
    if get_tank_by_identifier(db, tank_data.identifier):
        raise ValidationError(f"Tank identifier '{tank_data.identifier}' already registered")

    db_tank = Tank(
        identifier=tank_data.identifier.strip(),
        name=tank_data.name,
        kind=kind,
        capacity_liters=float(tank_data.capacity_liters),
        fuel_type=tank_data.fuel_type.strip(),
        status=status,
        location=tank_data.location,
    )
    db_tank._current_quantity_liters = 0.0
    db.add(db_tank)
    db.commit()
    db.refresh(db_tank)
    logger.info("Tank %s (%s, %s) created with capacity %.3f L", db_tank.identifier, kind.value, db_tank.fuel_type, db_tank.capacity_liters)
    return db_tank


def _clean_metadata(fields: Dict[str, Any]) -> Dict[str, Any]:
    for field in fields:
        if field in IMMUTABLE_FIELDS:
            raise InvalidOperation(f"Field '{field}' cannot be changed after creation")
        if field in LEDGER_FIELDS:
            raise InvalidOperation(f"Field '{field}' is maintained by the lot ledger and cannot be set directly")
        if field == "status":
            raise InvalidOperation("Use the status endpoint to change a tank status")
        if field not in UPDATABLE_FIELDS:
            raise ValidationError(f"Unknown tank field '{field}'")
        if field in REQUIRED_FIELDS and fields[field] is None:
            raise ValidationError(f"Field '{field}' cannot be null")

    cleaned = dict(fields)
    if "name" in cleaned:
        cleaned["name"] = str(cleaned["name"]).strip()
    if "capacity_liters" in cleaned:
        _validate_capacity(cleaned["capacity_liters"])
        cleaned["capacity_liters"] = float(cleaned["capacity_liters"])
    if "fuel_type" in cleaned:
        _validate_fuel_type(cleaned["fuel_type"])
        cleaned["fuel_type"] = str(cleaned["fuel_type"]).strip()
    if "kind" in cleaned:
        cleaned["kind"] = _coerce_kind(cleaned["kind"])
    return cleaned


def update_tank_metadata(db: Session, tank_id: int, fields: Dict[str, Any], locks=None) -> Tank:
    """
    Actualiza metadatos (solo campos enviados).
    Rechaza cambios de identificador y de la cantidad actual.

    Corre bajo el lock del tanque: una recepción o un traspaso concurrente
    no puede llenar el tanque entre la verificación de capacidad y el commit.
    """
    # Import local: locking depende de crud_lot, que depende de este módulo
    from fuel_ledger.services.locking import ledger_operation

    cleaned = _clean_metadata(fields)

    with ledger_operation(db, [tank_id], f"tank update {tank_id}", locks=locks):
        db_tank = get_tank_for_update(db, tank_id)
        current = round_quantity(db_tank.current_quantity_liters)

        if "capacity_liters" in cleaned and current > round_quantity(cleaned["capacity_liters"]):
            raise ValidationError(
                f"Capacity {cleaned['capacity_liters']} L is below the current quantity "
                f"{current} L of tank {db_tank.identifier}"
            )
        if "fuel_type" in cleaned and cleaned["fuel_type"] != db_tank.fuel_type and current > 0:
            raise InvalidOperation(
                f"Tank {db_tank.identifier} still holds {current} L of "
                f"{db_tank.fuel_type}; empty it before changing the fuel type"
            )

        for field, value in cleaned.items():
            setattr(db_tank, field, value)

    db.refresh(db_tank)
    logger.info("Tank %s metadata updated: %s", db_tank.identifier, ", ".join(sorted(cleaned)))
    return db_tank


def update_tank_status(db: Session, tank_id: int, new_status: Any, locks=None) -> Tank:
    """ Cualquier estado es alcanzable desde cualquier otro. """
    from fuel_ledger.services.locking import ledger_operation

    status = _coerce_status(new_status)
    with ledger_operation(db, [tank_id], f"tank status {tank_id}", locks=locks):
        db_tank = get_tank_for_update(db, tank_id)
        previous = db_tank.status
        db_tank.status = status

    db.refresh(db_tank)
    logger.info("Tank %s status %s -> %s", db_tank.identifier, previous.value, status.value)
    return db_tank
