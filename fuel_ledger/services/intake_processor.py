"""
Recepción de combustible: una entrega se reparte entre uno o más tanques.

La entrega se asigna completa o se rechaza completa; cada tanque destino
recibe un lote nuevo con el MRN de la declaración aduanera y la fecha de
recepción.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from fuel_ledger.core.constants import QUANTITY_TOLERANCE, round_quantity
from fuel_ledger.core.exceptions import (
    CapacityExceeded,
    FuelTypeMismatch,
    TankNotActive,
    ValidationError,
)
from fuel_ledger.core.timeutils import normalize_datetime
from fuel_ledger.crud import crud_intake, crud_lot, crud_tank, crud_transaction
from fuel_ledger.models.intake import IntakeDistribution, IntakeRecord
from fuel_ledger.models.tank import TankStatus
from fuel_ledger.models.transaction import TransactionType
from fuel_ledger.schemas import intake as intake_schema
from fuel_ledger.schemas import lot as lot_schema
from fuel_ledger.schemas import transaction as transaction_schema
from fuel_ledger.services.locking import TankLockManager, ledger_operation

logger = logging.getLogger(__name__)

REQUIRED_HEADER_FIELDS = (
    "delivery_vehicle_plate",
    "intake_datetime",
    "fuel_type",
    "customs_declaration_number",
)
POSITIVE_HEADER_FIELDS = (
    "quantity_liters_received",
    "quantity_kg_received",
    "specific_gravity",
)


def _validate_header(header: intake_schema.IntakeHeader) -> None:
    for field in REQUIRED_HEADER_FIELDS:
        value = getattr(header, field, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"Missing required intake field: {field}")
    for field in POSITIVE_HEADER_FIELDS:
        value = getattr(header, field, None)
        if value is None or value <= 0:
            raise ValidationError(f"Intake field {field} must be greater than 0")


def _validate_distributions(
    header: intake_schema.IntakeHeader,
    distributions: List[intake_schema.TankDistribution],
) -> None:
    if not distributions:
        raise ValidationError("Tank distributions are required if quantity is received")

    seen = set()
    for dist in distributions:
        if dist.quantity_liters is None or dist.quantity_liters <= 0:
            raise ValidationError(
                f"Each tank distribution needs a positive quantity_liters (tank {dist.tank_id})"
            )
        if dist.tank_id in seen:
            raise ValidationError(f"Tank {dist.tank_id} appears more than once in the distribution")
        seen.add(dist.tank_id)

    total = round_quantity(sum(d.quantity_liters for d in distributions))
    received = round_quantity(header.quantity_liters_received)
    if abs(total - received) > QUANTITY_TOLERANCE:
        raise ValidationError(
            f"Total distributed quantity ({total:.2f} L) must match received quantity ({received:.2f} L)"
        )


def submit_intake(
    db: Session,
    header: intake_schema.IntakeHeader,
    distributions: List[intake_schema.TankDistribution],
    locks: Optional[TankLockManager] = None,
) -> intake_schema.IntakeResult:
    """
    Registra una recepción y crea un lote por tanque destino.

    Todo o nada: cualquier tanque inexistente, inactivo, de otro tipo de
    combustible o sin capacidad libre aborta la recepción entera.
    """
    _validate_header(header)
    _validate_distributions(header, distributions)

    operation_id = crud_transaction.new_operation_id("intake")
    intake_datetime = normalize_datetime(header.intake_datetime)
    fuel_type = header.fuel_type.strip()
    tank_ids = [d.tank_id for d in distributions]

    with ledger_operation(db, tank_ids, f"intake {operation_id}", locks=locks):
        tanks = {tank_id: crud_tank.get_tank_for_update(db, tank_id) for tank_id in tank_ids}

        for dist in distributions:
            tank = tanks[dist.tank_id]
            if tank.status != TankStatus.ACTIVE:
                raise TankNotActive(f"Tank {tank.identifier} is {tank.status.value}, intake requires ACTIVE")
            if tank.fuel_type != fuel_type:
                raise FuelTypeMismatch(
                    f"Tank {tank.identifier} is for {tank.fuel_type}, but intake is for {fuel_type}"
                )
            quantity = round_quantity(dist.quantity_liters)
            free = round_quantity(tank.free_capacity_liters)
            if quantity > free:
                raise CapacityExceeded(
                    f"Transferring {quantity} L to tank {tank.identifier} would exceed its capacity of "
                    f"{tank.capacity_liters} L. Current: {tank.current_quantity_liters} L, Free: {free} L."
                )

        db_intake = IntakeRecord(
            operation_id=operation_id,
            delivery_vehicle_plate=header.delivery_vehicle_plate.strip(),
            delivery_vehicle_driver_name=header.delivery_vehicle_driver_name,
            intake_datetime=intake_datetime,
            quantity_liters_received=round_quantity(header.quantity_liters_received),
            quantity_kg_received=header.quantity_kg_received,
            specific_gravity=header.specific_gravity,
            fuel_type=fuel_type,
            supplier_name=header.supplier_name,
            delivery_note_number=header.delivery_note_number,
            customs_declaration_number=header.customs_declaration_number.strip(),
        )
        db.add(db_intake)
        db.flush()

        lots = []
        transactions = []
        for dist in distributions:
            tank = tanks[dist.tank_id]
            lot = crud_lot.add_lot(
                db,
                tank,
                mrn=db_intake.customs_declaration_number,
                quantity_liters=dist.quantity_liters,
                date_received=intake_datetime,
                supplier=header.supplier_name,
                intake_id=db_intake.id,
            )
            db.add(IntakeDistribution(
                intake_id=db_intake.id,
                tank_id=tank.id,
                quantity_liters=lot.quantity_received_liters,
                lot_id=lot.id,
            ))
            transactions.append(crud_transaction.append_transaction(
                db,
                operation_id=operation_id,
                type=TransactionType.intake,
                tank=tank,
                quantity_liters=lot.quantity_received_liters,
                lots=[(lot.id, lot.mrn, lot.quantity_received_liters)],
                counterpart=header.supplier_name or header.delivery_vehicle_plate,
                notes=f"Intake {db_intake.id} (delivery note {header.delivery_note_number or '-'})",
            ))
            lots.append(lot)

    logger.info(
        "Intake %s committed: %.3f L of %s (MRN %s) into tanks %s",
        db_intake.id, db_intake.quantity_liters_received, db_intake.fuel_type,
        db_intake.customs_declaration_number, tank_ids,
    )
    return intake_schema.IntakeResult(
        intake=intake_schema.IntakeRecord.model_validate(crud_intake.get_intake(db, db_intake.id)),
        lots=[lot_schema.CustomsLot.model_validate(l) for l in lots],
        transactions=[transaction_schema.Transaction.model_validate(t) for t in transactions],
    )
