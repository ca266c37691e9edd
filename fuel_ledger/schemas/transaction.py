from pydantic import BaseModel
from fuel_ledger.models.transaction import TransactionType
from typing import List, Optional
import datetime

class TransactionLot(BaseModel):
    lot_id: int
    mrn: str
    quantity_liters: float

    class Config:
        from_attributes = True

class Transaction(BaseModel):
    id: int
    operation_id: str
    type: TransactionType
    tank_id: int
    quantity_liters: float
    fuel_type: str
    timestamp: datetime.datetime
    counterpart: Optional[str] = None
    reverses_transaction_id: Optional[int] = None
    notes: Optional[str] = None
    lots: List[TransactionLot] = []

    class Config:
        from_attributes = True

class OperationWarning(BaseModel):
    """ Condición no fatal devuelta junto a un resultado exitoso """
    code: str
    message: str

class OperationLogEntry(BaseModel):
    """ Documento del espejo en Mongo (el campo _id se descarta) """
    transaction_id: int
    operation_id: str
    type: TransactionType
    tank_id: int
    quantity_liters: float
    fuel_type: str
    timestamp: datetime.datetime
    counterpart: Optional[str] = None
    reverses_transaction_id: Optional[int] = None
    lots: List[TransactionLot] = []
