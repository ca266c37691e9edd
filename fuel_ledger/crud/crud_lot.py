"""
Libro de lotes aduaneros (MRN) por tanque.

Cada tanque guarda sus lotes ordenados por (date_received, id): ese orden
define FIFO. La cantidad actual del tanque solo cambia aquí, siempre junto
con los lotes, de modo que tank.current_quantity_liters == suma de
remaining_liters de sus lotes.

Estas funciones no hacen commit: las operaciones (recepción, traspaso,
consumo) son dueñas de la transacción.
"""
import datetime
import logging
from typing import List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from fuel_ledger.core.constants import QUANTITY_TOLERANCE, round_quantity
from fuel_ledger.core.timeutils import normalize_datetime
from fuel_ledger.core.exceptions import (
    CapacityExceeded,
    InsufficientFuel,
    NotFound,
    ValidationError,
)
from fuel_ledger.crud import crud_tank
from fuel_ledger.models.lot import CustomsLot
from fuel_ledger.models.tank import Tank
from fuel_ledger.schemas import lot as lot_schema

logger = logging.getLogger(__name__)


def _fifo_query(db: Session, tank_id: int):
    return (
        db.query(CustomsLot)
        .filter(CustomsLot.tank_id == tank_id)
        .order_by(CustomsLot.date_received.asc(), CustomsLot.id.asc())
    )


def get_lot(db: Session, lot_id: int) -> CustomsLot:
    lot = db.query(CustomsLot).filter(CustomsLot.id == lot_id).first()
    if lot is None:
        raise NotFound(f"Customs lot {lot_id} not found")
    return lot


def add_lot(
    db: Session,
    tank: Tank,
    mrn: str,
    quantity_liters: float,
    date_received: datetime.datetime,
    supplier: Optional[str] = None,
    source_lot_id: Optional[int] = None,
    intake_id: Optional[int] = None,
) -> CustomsLot:
    """
    Agrega un lote con remaining = quantity e incrementa la cantidad del tanque.
    """
    if not mrn or not str(mrn).strip():
        raise ValidationError("A customs lot needs an MRN")
    quantity = round_quantity(quantity_liters)
    if quantity <= 0:
        raise ValidationError(f"Lot quantity must be greater than 0 (got {quantity_liters})")
    if quantity > round_quantity(tank.free_capacity_liters):
        raise CapacityExceeded(
            f"Adding {quantity} L to tank {tank.identifier} would exceed its capacity of "
            f"{tank.capacity_liters} L. Free: {round_quantity(tank.free_capacity_liters)} L."
        )

    lot = CustomsLot(
        tank_id=tank.id,
        mrn=str(mrn).strip(),
        quantity_received_liters=quantity,
        remaining_liters=quantity,
        date_received=normalize_datetime(date_received),
        supplier=supplier,
        source_lot_id=source_lot_id,
        intake_id=intake_id,
    )
    db.add(lot)
    tank._current_quantity_liters = round_quantity(tank.current_quantity_liters + quantity)
    db.add(tank)
    db.flush()
    logger.info("Lot %s (MRN %s, %.3f L) added to tank %s", lot.id, lot.mrn, quantity, tank.identifier)
    return lot


def consume(
    db: Session,
    tank: Tank,
    quantity_liters: float,
    pinned_lot_id: Optional[int] = None,
) -> List[lot_schema.DrainedFragment]:
    """
    Drena `quantity_liters` del tanque.

    Con `pinned_lot_id` solo se drena ese lote. Sin él, se recorren los lotes
    del más antiguo al más nuevo vaciando cada uno antes de pasar al siguiente.
    Todo o nada: si no alcanza, no se modifica ningún lote.
    """
    quantity = round_quantity(quantity_liters)
    if quantity <= 0:
        raise ValidationError(f"Quantity to drain must be greater than 0 (got {quantity_liters})")

    if pinned_lot_id is not None:
        lot = get_lot(db, pinned_lot_id)
        if lot.tank_id != tank.id:
            raise NotFound(f"Customs lot {pinned_lot_id} does not belong to tank {tank.identifier}")
        if quantity > lot.remaining_liters:
            raise InsufficientFuel(
                f"Lot {lot.id} (MRN {lot.mrn}) holds {lot.remaining_liters} L, {quantity} L requested"
            )
        candidates = [lot]
    else:
        candidates = _fifo_query(db, tank.id).filter(CustomsLot.remaining_liters > 0).all()
        available = round_quantity(sum(l.remaining_liters for l in candidates))
        if quantity > available:
            raise InsufficientFuel(
                f"Not enough fuel in tank {tank.identifier}: {available} L available, {quantity} L requested"
            )

    fragments: List[lot_schema.DrainedFragment] = []
    left = quantity
    for lot in candidates:
        if left <= 0:
            break
        drained = round_quantity(min(lot.remaining_liters, left))
        if drained <= 0:
            continue
        logger.debug("Draining %.3f L from lot %s (MRN %s, remaining %.3f L)", drained, lot.id, lot.mrn, lot.remaining_liters)
        lot.remaining_liters = round_quantity(lot.remaining_liters - drained)
        db.add(lot)
        fragments.append(lot_schema.DrainedFragment(
            lot_id=lot.id,
            quantity_drained=drained,
            mrn=lot.mrn,
            date_received=lot.date_received,
        ))
        left = round_quantity(left - drained)

    total = round_quantity(sum(f.quantity_drained for f in fragments))
    tank._current_quantity_liters = round_quantity(tank.current_quantity_liters - total)
    db.add(tank)
    db.flush()
    return fragments


def total_remaining(db: Session, tank_id: int) -> float:
    total = (
        db.query(func.coalesce(func.sum(CustomsLot.remaining_liters), 0.0))
        .filter(CustomsLot.tank_id == tank_id)
        .scalar()
    )
    return round_quantity(total or 0.0)


def oldest_lot(db: Session, tank_id: int) -> CustomsLot | None:
    """ Primer lote en orden FIFO con saldo, o None. """
    return _fifo_query(db, tank_id).filter(CustomsLot.remaining_liters > 0).first()


def older_lots_with_fuel(db: Session, lot: CustomsLot) -> List[CustomsLot]:
    """ Lotes del mismo tanque, anteriores en FIFO al lote dado, que aún tienen saldo. """
    return (
        _fifo_query(db, lot.tank_id)
        .filter(CustomsLot.remaining_liters > 0)
        .filter(
            or_(
                CustomsLot.date_received < lot.date_received,
                and_(CustomsLot.date_received == lot.date_received, CustomsLot.id < lot.id),
            )
        )
        .all()
    )


def breakdown(db: Session, tank_id: int) -> List[CustomsLot]:
    """ Lotes con saldo del tanque, para reportes aduaneros. """
    crud_tank.get_tank(db, tank_id)
    return _fifo_query(db, tank_id).filter(CustomsLot.remaining_liters > 0).all()


def get_lots(db: Session, tank_id: int, include_exhausted: bool = True) -> List[CustomsLot]:
    query = _fifo_query(db, tank_id)
    if not include_exhausted:
        query = query.filter(CustomsLot.remaining_liters > 0)
    return query.all()


def check_consistency(db: Session, tank_id: int) -> lot_schema.TankConsistency:
    """
    Compara la cantidad del tanque con la suma de saldos de sus lotes.
    """
    tank = crud_tank.get_tank(db, tank_id)
    lots = get_lots(db, tank_id, include_exhausted=False)
    lot_sum = round_quantity(sum(l.remaining_liters for l in lots))
    difference = round_quantity(abs(tank.current_quantity_liters - lot_sum))
    is_consistent = difference <= QUANTITY_TOLERANCE

    if is_consistent:
        logger.debug("Tank %s consistent: %.3f L = %.3f L", tank.identifier, tank.current_quantity_liters, lot_sum)
    else:
        logger.warning(
            "Tank %s inconsistent: tank holds %.3f L, lots sum %.3f L (difference %.3f L)",
            tank.identifier, tank.current_quantity_liters, lot_sum, difference,
        )

    return lot_schema.TankConsistency(
        tank_id=tank.id,
        tank_identifier=tank.identifier,
        current_quantity_liters=tank.current_quantity_liters,
        sum_lot_remaining_liters=lot_sum,
        difference_liters=difference,
        is_consistent=is_consistent,
        lots=[lot_schema.CustomsLot.model_validate(l) for l in lots],
    )
