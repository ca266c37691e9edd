from fastapi import APIRouter, BackgroundTasks, Depends, status
from motor.motor_asyncio import AsyncIOMotorCollection
from sqlalchemy.orm import Session
from fuel_ledger.db.database import get_db
from fuel_ledger.db.mongodb import get_operation_log_collection
from fuel_ledger.crud import crud_intake, crud_operation_log
from fuel_ledger.schemas import intake as intake_schema
from fuel_ledger.services import intake_processor
from typing import List, Optional
import datetime

router = APIRouter()

@router.post("/intakes", response_model=intake_schema.IntakeResult, status_code=status.HTTP_201_CREATED)
def create_intake(
    intake: intake_schema.IntakeCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    operation_log: Optional[AsyncIOMotorCollection] = Depends(get_operation_log_collection),
):
    """
    Registra una recepción de combustible y la reparte entre los tanques indicados.
    La suma de las distribuciones debe coincidir con la cantidad recibida.
    """
    result = intake_processor.submit_intake(db, intake, intake.tank_distributions)
    background_tasks.add_task(crud_operation_log.mirror_transactions, operation_log, result.transactions)
    return result

@router.get("/intakes", response_model=List[intake_schema.IntakeRecord])
def read_intakes(
    fuel_type: Optional[str] = None,
    supplier_name: Optional[str] = None,
    delivery_vehicle_plate: Optional[str] = None,
    start_date: Optional[datetime.datetime] = None,
    end_date: Optional[datetime.datetime] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    return crud_intake.get_intakes(
        db,
        fuel_type=fuel_type,
        supplier_name=supplier_name,
        delivery_vehicle_plate=delivery_vehicle_plate,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )

@router.get("/intakes/{intake_id}", response_model=intake_schema.IntakeRecord)
def read_intake(intake_id: int, db: Session = Depends(get_db)):
    return crud_intake.get_intake(db, intake_id)
