from pydantic import BaseModel
from fuel_ledger.schemas.lot import CustomsLot, DrainedFragment
from fuel_ledger.schemas.transaction import OperationWarning, Transaction
from typing import List, Optional

class ConsumptionCreate(BaseModel):
    tank_id: int
    quantity_liters: float
    # Matrícula de la aeronave, "DRAIN", etc.
    sink_reference: str
    pinned_lot_id: Optional[int] = None
    notes: Optional[str] = None

class ConsumptionResult(BaseModel):
    tank_id: int
    quantity_liters: float
    sink_reference: str
    drained: List[DrainedFragment]
    transaction: Transaction
    warnings: List[OperationWarning] = []

class ConsumptionReverseCreate(BaseModel):
    """ Devolución de combustible drenado (ej: filtrado) a un tanque """
    destination_tank_id: int
    quantity_liters: float
    notes: Optional[str] = None

class ConsumptionReverseResult(BaseModel):
    reversed_transaction_id: int
    destination_tank_id: int
    quantity_liters: float
    created_lots: List[CustomsLot]
    transaction: Transaction
