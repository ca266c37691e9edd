from sqlalchemy.orm import Session, selectinload
from fuel_ledger.core.exceptions import NotFound
from fuel_ledger.core.timeutils import normalize_datetime
from fuel_ledger.models.intake import IntakeRecord
from typing import List, Optional
import datetime

def get_intake(db: Session, intake_id: int) -> IntakeRecord:
    intake = (
        db.query(IntakeRecord)
        .options(selectinload(IntakeRecord.distributions))
        .filter(IntakeRecord.id == intake_id)
        .first()
    )
    if intake is None:
        raise NotFound(f"Intake record {intake_id} not found")
    return intake

def get_intakes(
    db: Session,
    fuel_type: Optional[str] = None,
    supplier_name: Optional[str] = None,
    delivery_vehicle_plate: Optional[str] = None,
    start_date: Optional[datetime.datetime] = None,
    end_date: Optional[datetime.datetime] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[IntakeRecord]:
    """
    Lista de recepciones (más recientes primero) con filtros opcionales.
    """
    query = db.query(IntakeRecord).options(selectinload(IntakeRecord.distributions))
    if fuel_type:
        query = query.filter(IntakeRecord.fuel_type == fuel_type)
    if supplier_name:
        query = query.filter(IntakeRecord.supplier_name == supplier_name)
    if delivery_vehicle_plate:
        query = query.filter(IntakeRecord.delivery_vehicle_plate == delivery_vehicle_plate)
    if start_date:
        query = query.filter(IntakeRecord.intake_datetime >= normalize_datetime(start_date))
    if end_date:
        query = query.filter(IntakeRecord.intake_datetime <= normalize_datetime(end_date))
    return query.order_by(IntakeRecord.intake_datetime.desc(), IntakeRecord.id.desc()).offset(skip).limit(limit).all()
