from pydantic import BaseModel
from fuel_ledger.models.tank import TankKind, TankStatus
from fuel_ledger.schemas.lot import CustomsLot
from typing import List, Optional

class TankBase(BaseModel):
    identifier: str
    name: str
    kind: TankKind = TankKind.fixed
    capacity_liters: float
    fuel_type: str
    location: Optional[str] = None

class TankCreate(TankBase):
    status: TankStatus = TankStatus.ACTIVE

class TankUpdate(BaseModel):
    name: Optional[str] = None
    kind: Optional[TankKind] = None
    capacity_liters: Optional[float] = None
    fuel_type: Optional[str] = None
    location: Optional[str] = None

    # Campos extra (identifier, current_quantity_liters...) llegan al CRUD,
    # que los rechaza con InvalidOperation en vez de ignorarlos en silencio.
    class Config:
        extra = 'allow'

class TankStatusUpdate(BaseModel):
    status: TankStatus

class Tank(TankBase):
    id: int
    status: TankStatus
    current_quantity_liters: float

    class Config:
        from_attributes = True

class TankState(Tank):
    """ Estado completo de un tanque: cantidades y lotes con saldo """
    free_capacity_liters: float
    fill_percentage: float
    lots: List[CustomsLot] = []
