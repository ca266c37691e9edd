from pydantic import BaseModel
from fuel_ledger.models.tank import TankKind, TankStatus
from typing import List

class FuelTypeTotal(BaseModel):
    fuel_type: str
    tank_count: int
    capacity_liters: float
    quantity_liters: float

class TankKindTotal(BaseModel):
    kind: TankKind
    tank_count: int
    capacity_liters: float
    quantity_liters: float

class TankTotal(BaseModel):
    tank_id: int
    identifier: str
    kind: TankKind
    fuel_type: str
    status: TankStatus
    capacity_liters: float
    quantity_liters: float
    fill_percentage: float

class GrandTotal(BaseModel):
    tank_count: int
    capacity_liters: float
    quantity_liters: float

class FuelSummary(BaseModel):
    """ Resumen general de inventario (se recalcula en cada lectura) """
    by_fuel_type: List[FuelTypeTotal]
    by_tank_kind: List[TankKindTotal]
    by_tank: List[TankTotal]
    grand_total: GrandTotal
