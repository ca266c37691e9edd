from pydantic import BaseModel
from fuel_ledger.schemas.lot import CustomsLot
from fuel_ledger.schemas.transaction import Transaction
from typing import List, Optional
import datetime

class TankDistribution(BaseModel):
    tank_id: int
    quantity_liters: float

class IntakeHeader(BaseModel):
    """ Datos de la entrega (camión cisterna + documentos) """
    delivery_vehicle_plate: str
    delivery_vehicle_driver_name: Optional[str] = None
    intake_datetime: datetime.datetime
    quantity_liters_received: float
    quantity_kg_received: float
    specific_gravity: float
    fuel_type: str
    supplier_name: Optional[str] = None
    delivery_note_number: Optional[str] = None
    customs_declaration_number: str

class IntakeCreate(IntakeHeader):
    tank_distributions: List[TankDistribution]

class IntakeDistribution(BaseModel):
    tank_id: int
    quantity_liters: float
    lot_id: Optional[int] = None

    class Config:
        from_attributes = True

class IntakeRecord(IntakeHeader):
    id: int
    operation_id: str
    distributions: List[IntakeDistribution] = []

    class Config:
        from_attributes = True

class IntakeResult(BaseModel):
    intake: IntakeRecord
    lots: List[CustomsLot]
    transactions: List[Transaction]
