from fastapi import APIRouter, BackgroundTasks, Depends
from motor.motor_asyncio import AsyncIOMotorCollection
from sqlalchemy.orm import Session
from fuel_ledger.db.database import get_db
from fuel_ledger.db.mongodb import get_operation_log_collection
from fuel_ledger.crud import crud_operation_log
from fuel_ledger.schemas import transfer as transfer_schema
from fuel_ledger.services import transfer_engine
from typing import Optional

router = APIRouter()

@router.post("/transfers", response_model=transfer_schema.TransferResult)
def create_transfer(
    transfer_in: transfer_schema.TransferCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    operation_log: Optional[AsyncIOMotorCollection] = Depends(get_operation_log_collection),
):
    """
    Traspaso entre tanques (o a una cisterna móvil) conservando los MRN.
    Con pinned_lot_id se drena solo ese lote; si había lotes más antiguos
    con saldo la respuesta trae una advertencia.
    """
    result = transfer_engine.transfer(
        db,
        source_tank_id=transfer_in.source_tank_id,
        destination_tank_id=transfer_in.destination_tank_id,
        quantity_liters=transfer_in.quantity_liters,
        pinned_lot_id=transfer_in.pinned_lot_id,
        notes=transfer_in.notes,
    )
    background_tasks.add_task(crud_operation_log.mirror_transactions, operation_log, result.transactions)
    return result
