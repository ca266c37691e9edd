from pydantic import BaseModel
from fuel_ledger.schemas.lot import CustomsLot, DrainedFragment
from fuel_ledger.schemas.transaction import OperationWarning, Transaction
from typing import List, Optional

class TransferCreate(BaseModel):
    source_tank_id: int
    destination_tank_id: int
    quantity_liters: float
    # Forzar un lote concreto (salta el orden FIFO, con advertencia)
    pinned_lot_id: Optional[int] = None
    notes: Optional[str] = None

class TransferResult(BaseModel):
    transfer_id: str
    source_tank_id: int
    destination_tank_id: int
    quantity_liters: float
    drained: List[DrainedFragment]
    created_lots: List[CustomsLot]
    transactions: List[Transaction]
    warnings: List[OperationWarning] = []
