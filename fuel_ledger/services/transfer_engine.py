"""
Traspasos tanque -> tanque y tanque -> cisterna móvil.

El combustible conserva su procedencia: por cada fragmento drenado del
origen se crea en el destino un lote con el mismo MRN y la misma fecha de
recepción original, de modo que FIFO y los reportes aduaneros siguen
siendo correctos aguas abajo.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from fuel_ledger.core.constants import round_quantity
from fuel_ledger.core.exceptions import (
    CapacityExceeded,
    FuelTypeMismatch,
    InsufficientFuel,
    TankNotActive,
    ValidationError,
)
from fuel_ledger.crud import crud_lot, crud_tank, crud_transaction
from fuel_ledger.models.tank import Tank, TankStatus
from fuel_ledger.models.transaction import TransactionType
from fuel_ledger.schemas import lot as lot_schema
from fuel_ledger.schemas import transaction as transaction_schema
from fuel_ledger.schemas import transfer as transfer_schema
from fuel_ledger.services.locking import TankLockManager, ledger_operation

logger = logging.getLogger(__name__)

OLDER_LOT_BYPASSED = "older_lot_bypassed"


def ensure_active(tank: Tank) -> None:
    if tank.status != TankStatus.ACTIVE:
        raise TankNotActive(f"Tank {tank.identifier} is {tank.status.value}, operation requires ACTIVE")


def pinned_lot_warnings(db: Session, tank: Tank, pinned_lot_id: Optional[int]) -> List[transaction_schema.OperationWarning]:
    """
    Un lote forzado con lotes más antiguos con saldo en el mismo tanque
    no bloquea la operación: se devuelve una advertencia.
    """
    if pinned_lot_id is None:
        return []
    lot = crud_lot.get_lot(db, pinned_lot_id)
    if lot.tank_id != tank.id:
        return []
    older = crud_lot.older_lots_with_fuel(db, lot)
    if not older:
        return []
    logger.warning(
        "FIFO bypassed on tank %s: lot %s (MRN %s) pinned while %d older lot(s) hold fuel (oldest MRN %s)",
        tank.identifier, lot.id, lot.mrn, len(older), older[0].mrn,
    )
    return [transaction_schema.OperationWarning(
        code=OLDER_LOT_BYPASSED,
        message="older lot bypassed",
    )]


def transfer(
    db: Session,
    source_tank_id: int,
    destination_tank_id: int,
    quantity_liters: float,
    pinned_lot_id: Optional[int] = None,
    notes: Optional[str] = None,
    locks: Optional[TankLockManager] = None,
) -> transfer_schema.TransferResult:
    if source_tank_id == destination_tank_id:
        raise ValidationError("Source and destination tank must be different")
    quantity = round_quantity(quantity_liters)
    if quantity <= 0:
        raise ValidationError(f"Transfer quantity must be greater than 0 (got {quantity_liters})")

    transfer_id = crud_transaction.new_operation_id("transfer")

    with ledger_operation(db, [source_tank_id, destination_tank_id], f"transfer {transfer_id}", locks=locks):
        source = crud_tank.get_tank_for_update(db, source_tank_id)
        destination = crud_tank.get_tank_for_update(db, destination_tank_id)

        # Sin mezcla implícita de tipos de combustible
        if source.fuel_type != destination.fuel_type:
            raise FuelTypeMismatch(
                f"Cannot transfer {source.fuel_type} from tank {source.identifier} "
                f"into tank {destination.identifier} holding {destination.fuel_type}"
            )
        available = crud_lot.total_remaining(db, source.id)
        if quantity > available:
            raise InsufficientFuel(
                f"Not enough fuel in tank {source.identifier}: {available} L available, {quantity} L requested"
            )
        free = round_quantity(destination.free_capacity_liters)
        if quantity > free:
            raise CapacityExceeded(
                f"Transfer would exceed tank {destination.identifier} capacity. Available: {free} L."
            )
        ensure_active(source)
        ensure_active(destination)

        warnings = pinned_lot_warnings(db, source, pinned_lot_id)
        drained = crud_lot.consume(db, source, quantity, pinned_lot_id)

        created = []
        for fragment in drained:
            created.append(crud_lot.add_lot(
                db,
                destination,
                mrn=fragment.mrn,
                quantity_liters=fragment.quantity_drained,
                date_received=fragment.date_received,
                supplier=None,
                source_lot_id=fragment.lot_id,
            ))

        moved = round_quantity(sum(f.quantity_drained for f in drained))
        transactions = [
            crud_transaction.append_transaction(
                db,
                operation_id=transfer_id,
                type=TransactionType.transfer_out,
                tank=source,
                quantity_liters=-moved,
                lots=[(f.lot_id, f.mrn, f.quantity_drained) for f in drained],
                counterpart=f"tank:{destination.identifier}",
                notes=notes,
            ),
            crud_transaction.append_transaction(
                db,
                operation_id=transfer_id,
                type=TransactionType.transfer_in,
                tank=destination,
                quantity_liters=moved,
                lots=[(lot.id, lot.mrn, lot.quantity_received_liters) for lot in created],
                counterpart=f"tank:{source.identifier}",
                notes=notes,
            ),
        ]

    logger.info(
        "Transfer %s committed: %.3f L from tank %s to tank %s across %d lot(s)",
        transfer_id, moved, source_tank_id, destination_tank_id, len(drained),
    )
    return transfer_schema.TransferResult(
        transfer_id=transfer_id,
        source_tank_id=source_tank_id,
        destination_tank_id=destination_tank_id,
        quantity_liters=moved,
        drained=drained,
        created_lots=[lot_schema.CustomsLot.model_validate(l) for l in created],
        transactions=[transaction_schema.Transaction.model_validate(t) for t in transactions],
        warnings=warnings,
    )
