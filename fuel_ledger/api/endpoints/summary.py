from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from fuel_ledger.db.database import get_db
from fuel_ledger.schemas import summary as summary_schema
from fuel_ledger.services import summary_aggregator

router = APIRouter()

@router.get(
    "/summary",
    response_model=summary_schema.FuelSummary,
    summary="Resumen de inventario por tipo de combustible, tipo de tanque y tanque"
)
def get_fuel_summary(db: Session = Depends(get_db)):
    return summary_aggregator.get_summary(db)
