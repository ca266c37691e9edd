from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorCollection
from fuel_ledger.db.mongodb import get_operation_log_collection
from fuel_ledger.crud import crud_operation_log
from fuel_ledger.schemas import transaction as transaction_schema
from typing import List, Optional

router = APIRouter()

@router.get("/operations/log", response_model=List[transaction_schema.OperationLogEntry])
async def read_operation_log(
    tank_id: Optional[int] = None,
    limit: int = Query(100, ge=1, le=1000),
    operation_log: Optional[AsyncIOMotorCollection] = Depends(get_operation_log_collection),
):
    """
    Lee el espejo en Mongo del registro de movimientos (más recientes primero).
    """
    if operation_log is None:
        raise HTTPException(status_code=503, detail="Operation log mirror is not configured (MONGO_URL)")
    return await crud_operation_log.get_operation_log(operation_log, tank_id=tank_id, limit=limit)
