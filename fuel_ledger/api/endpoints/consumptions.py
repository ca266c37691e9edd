from fastapi import APIRouter, BackgroundTasks, Depends
from motor.motor_asyncio import AsyncIOMotorCollection
from sqlalchemy.orm import Session
from fuel_ledger.db.database import get_db
from fuel_ledger.db.mongodb import get_operation_log_collection
from fuel_ledger.crud import crud_operation_log
from fuel_ledger.schemas import consumption as consumption_schema
from fuel_ledger.services import consumption_engine
from typing import Optional

router = APIRouter()

@router.post("/consumptions", response_model=consumption_schema.ConsumptionResult)
def create_consumption(
    consumption: consumption_schema.ConsumptionCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    operation_log: Optional[AsyncIOMotorCollection] = Depends(get_operation_log_collection),
):
    """
    Carga de aeronave o drenaje: el combustible sale del tanque en orden FIFO.
    """
    result = consumption_engine.consume(
        db,
        tank_id=consumption.tank_id,
        quantity_liters=consumption.quantity_liters,
        sink_reference=consumption.sink_reference,
        pinned_lot_id=consumption.pinned_lot_id,
        notes=consumption.notes,
    )
    background_tasks.add_task(crud_operation_log.mirror_transactions, operation_log, [result.transaction])
    return result

@router.post("/consumptions/{transaction_id}/reverse", response_model=consumption_schema.ConsumptionReverseResult)
def reverse_consumption(
    transaction_id: int,
    reverse_in: consumption_schema.ConsumptionReverseCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    operation_log: Optional[AsyncIOMotorCollection] = Depends(get_operation_log_collection),
):
    """
    Devuelve a un tanque combustible drenado (ej: después de filtrarlo).
    """
    result = consumption_engine.reverse_consumption(
        db,
        consumption_transaction_id=transaction_id,
        destination_tank_id=reverse_in.destination_tank_id,
        quantity_liters=reverse_in.quantity_liters,
        notes=reverse_in.notes,
    )
    background_tasks.add_task(crud_operation_log.mirror_transactions, operation_log, [result.transaction])
    return result
