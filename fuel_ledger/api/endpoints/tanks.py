from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from fuel_ledger.db.database import get_db
from fuel_ledger.crud import crud_lot, crud_tank
from fuel_ledger.models.tank import TankKind, TankStatus
from fuel_ledger.schemas import lot as lot_schema, tank as tank_schema
from fuel_ledger.services import summary_aggregator
from typing import List, Optional

router = APIRouter()

@router.post("/tanks", response_model=tank_schema.Tank, status_code=status.HTTP_201_CREATED)
def create_tank(tank: tank_schema.TankCreate, db: Session = Depends(get_db)):
    return crud_tank.create_tank(db=db, tank_data=tank)

@router.get("/tanks", response_model=List[tank_schema.Tank])
def read_tanks(
    kind: Optional[TankKind] = None,
    tank_status: Optional[TankStatus] = Query(None, alias="status"),
    fuel_type: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    """
    Lista de tanques, con filtros opcionales por tipo, estado y combustible.
    """
    return crud_tank.get_tanks(db, kind=kind, status=tank_status, fuel_type=fuel_type, skip=skip, limit=limit)

@router.get("/tanks/{tank_id}", response_model=tank_schema.TankState)
def read_tank(tank_id: int, db: Session = Depends(get_db)):
    """
    Estado completo del tanque: cantidad, capacidad libre y lotes con saldo.
    """
    return summary_aggregator.get_tank_state(db, tank_id)

@router.patch("/tanks/{tank_id}", response_model=tank_schema.Tank)
def update_tank(
    tank_id: int,
    tank_in: tank_schema.TankUpdate,
    db: Session = Depends(get_db),
):
    fields = {**tank_in.model_dump(exclude_unset=True), **(tank_in.model_extra or {})}
    return crud_tank.update_tank_metadata(db, tank_id, fields)

@router.put("/tanks/{tank_id}/status", response_model=tank_schema.Tank)
def update_tank_status(
    tank_id: int,
    status_in: tank_schema.TankStatusUpdate,
    db: Session = Depends(get_db),
):
    return crud_tank.update_tank_status(db, tank_id, status_in.status)

@router.get("/tanks/{tank_id}/customs-breakdown", response_model=List[lot_schema.CustomsLot])
def read_customs_breakdown(tank_id: int, db: Session = Depends(get_db)):
    """
    Lotes con saldo del tanque en orden FIFO (para reportes aduaneros).
    """
    return summary_aggregator.customs_breakdown(db, tank_id)

@router.get("/tanks/{tank_id}/consistency", response_model=lot_schema.TankConsistency)
def read_tank_consistency(tank_id: int, db: Session = Depends(get_db)):
    return crud_lot.check_consistency(db, tank_id)
