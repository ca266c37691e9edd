from pydantic import BaseModel
from typing import List, Optional
import datetime

class CustomsLot(BaseModel):
    id: int
    tank_id: int
    mrn: str
    quantity_received_liters: float
    remaining_liters: float
    date_received: datetime.datetime
    supplier: Optional[str] = None
    source_lot_id: Optional[int] = None
    intake_id: Optional[int] = None

    class Config:
        from_attributes = True

class DrainedFragment(BaseModel):
    """ Parte de un lote consumida en una operación (orden FIFO) """
    lot_id: int
    quantity_drained: float
    mrn: str
    date_received: datetime.datetime

class TankConsistency(BaseModel):
    tank_id: int
    tank_identifier: str
    current_quantity_liters: float
    sum_lot_remaining_liters: float
    difference_liters: float
    is_consistent: bool
    lots: List[CustomsLot] = []
