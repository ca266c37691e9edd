"""
Salidas de combustible hacia un destino externo: carga de aeronaves y
drenajes/descartes. Ambos se distinguen solo por `sink_reference`.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from fuel_ledger.core.constants import QUANTITY_TOLERANCE, round_quantity
from fuel_ledger.core.exceptions import (
    CapacityExceeded,
    FuelTypeMismatch,
    InsufficientFuel,
    ValidationError,
)
from fuel_ledger.crud import crud_lot, crud_tank, crud_transaction
from fuel_ledger.models.transaction import FuelTransactionLot, TransactionType
from fuel_ledger.schemas import consumption as consumption_schema
from fuel_ledger.schemas import lot as lot_schema
from fuel_ledger.schemas import transaction as transaction_schema
from fuel_ledger.services.locking import TankLockManager, ledger_operation
from fuel_ledger.services.transfer_engine import ensure_active, pinned_lot_warnings

logger = logging.getLogger(__name__)


def consume(
    db: Session,
    tank_id: int,
    quantity_liters: float,
    sink_reference: str,
    pinned_lot_id: Optional[int] = None,
    notes: Optional[str] = None,
    locks: Optional[TankLockManager] = None,
) -> consumption_schema.ConsumptionResult:
    if not sink_reference or not sink_reference.strip():
        raise ValidationError("sink_reference is required (aircraft registration, drain reference...)")
    quantity = round_quantity(quantity_liters)
    if quantity <= 0:
        raise ValidationError(f"Consumption quantity must be greater than 0 (got {quantity_liters})")

    operation_id = crud_transaction.new_operation_id("consumption")

    with ledger_operation(db, [tank_id], f"consumption {operation_id}", locks=locks):
        tank = crud_tank.get_tank_for_update(db, tank_id)
        available = crud_lot.total_remaining(db, tank.id)
        if quantity > available:
            raise InsufficientFuel(
                f"Not enough fuel in tank {tank.identifier}: {available} L available, {quantity} L requested"
            )
        ensure_active(tank)

        warnings = pinned_lot_warnings(db, tank, pinned_lot_id)
        drained = crud_lot.consume(db, tank, quantity, pinned_lot_id)
        consumed = round_quantity(sum(f.quantity_drained for f in drained))
        db_transaction = crud_transaction.append_transaction(
            db,
            operation_id=operation_id,
            type=TransactionType.consumption,
            tank=tank,
            quantity_liters=-consumed,
            lots=[(f.lot_id, f.mrn, f.quantity_drained) for f in drained],
            counterpart=sink_reference.strip(),
            notes=notes,
        )

    logger.info("Consumption %s committed: %.3f L from tank %s to %s", operation_id, consumed, tank_id, sink_reference)
    return consumption_schema.ConsumptionResult(
        tank_id=tank_id,
        quantity_liters=consumed,
        sink_reference=sink_reference.strip(),
        drained=drained,
        transaction=transaction_schema.Transaction.model_validate(db_transaction),
        warnings=warnings,
    )


def _fragments_to_return(
    original_lots: List[FuelTransactionLot],
    already_returned: float,
    quantity: float,
) -> List[Tuple[FuelTransactionLot, float]]:
    """
    Reparte la devolución sobre los fragmentos drenados originalmente,
    empezando por el último drenado y saltando lo ya devuelto.
    """
    skip = already_returned
    left = quantity
    parts = []
    for fragment in reversed(original_lots):
        if left <= 0:
            break
        available = fragment.quantity_liters
        if skip > 0:
            skipped = min(skip, available)
            skip = round_quantity(skip - skipped)
            available = round_quantity(available - skipped)
        if available <= 0:
            continue
        take = round_quantity(min(available, left))
        parts.append((fragment, take))
        left = round_quantity(left - take)
    return parts


def reverse_consumption(
    db: Session,
    consumption_transaction_id: int,
    destination_tank_id: int,
    quantity_liters: float,
    notes: Optional[str] = None,
    locks: Optional[TankLockManager] = None,
) -> consumption_schema.ConsumptionReverseResult:
    """
    Devuelve combustible drenado a un tanque (ej: después de filtrarlo).
    Los lotes se recrean con el MRN y la fecha de los fragmentos originales.
    """
    quantity = round_quantity(quantity_liters)
    if quantity <= 0:
        raise ValidationError(f"Quantity to return must be greater than 0 (got {quantity_liters})")

    original = crud_transaction.get_transaction(db, consumption_transaction_id)
    if original.type != TransactionType.consumption:
        raise ValidationError(f"Transaction {original.id} is a {original.type.value}, only consumptions can be reversed")

    operation_id = crud_transaction.new_operation_id("reversal")

    # El lock del tanque original serializa devoluciones de un mismo consumo
    with ledger_operation(db, [original.tank_id, destination_tank_id], f"reversal {operation_id}", locks=locks):
        already_returned = round_quantity(sum(t.quantity_liters for t in crud_transaction.get_reversals(db, original.id)))
        returnable = round_quantity(abs(original.quantity_liters) - already_returned)
        if quantity - returnable > QUANTITY_TOLERANCE:
            raise ValidationError(
                f"Quantity to return ({quantity} L) exceeds what is left of the original consumption ({returnable} L)"
            )

        destination = crud_tank.get_tank_for_update(db, destination_tank_id)
        if destination.fuel_type != original.fuel_type:
            raise FuelTypeMismatch(
                f"Drained fuel is {original.fuel_type}, tank {destination.identifier} holds {destination.fuel_type}"
            )
        free = round_quantity(destination.free_capacity_liters)
        if quantity > free:
            raise CapacityExceeded(
                f"Not enough capacity in tank {destination.identifier}. Available: {free} L."
            )
        ensure_active(destination)

        created = []
        for fragment, take in _fragments_to_return(original.lots, already_returned, min(quantity, returnable)):
            source_lot = crud_lot.get_lot(db, fragment.lot_id)
            created.append(crud_lot.add_lot(
                db,
                destination,
                mrn=fragment.mrn,
                quantity_liters=take,
                date_received=source_lot.date_received,
                supplier=source_lot.supplier,
                source_lot_id=source_lot.id,
            ))
        if not created:
            raise InsufficientFuel(f"Nothing left to return from transaction {original.id}")

        returned = round_quantity(sum(l.quantity_received_liters for l in created))
        db_transaction = crud_transaction.append_transaction(
            db,
            operation_id=operation_id,
            type=TransactionType.adjustment,
            tank=destination,
            quantity_liters=returned,
            lots=[(l.id, l.mrn, l.quantity_received_liters) for l in created],
            counterpart=original.counterpart,
            notes=notes or f"Return of drained fuel from transaction {original.id}",
            reverses_transaction_id=original.id,
        )

    logger.info("Reversal %s committed: %.3f L returned to tank %s", operation_id, returned, destination_tank_id)
    return consumption_schema.ConsumptionReverseResult(
        reversed_transaction_id=consumption_transaction_id,
        destination_tank_id=destination_tank_id,
        quantity_liters=returned,
        created_lots=[lot_schema.CustomsLot.model_validate(l) for l in created],
        transaction=transaction_schema.Transaction.model_validate(db_transaction),
    )
