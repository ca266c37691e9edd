from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from fuel_ledger.db.database import get_db
from fuel_ledger.crud import crud_transaction
from fuel_ledger.models.transaction import TransactionType
from fuel_ledger.schemas import transaction as transaction_schema
from typing import List, Optional

router = APIRouter()

@router.get("/transactions", response_model=List[transaction_schema.Transaction])
def read_transactions(
    tank_id: Optional[int] = None,
    type: Optional[TransactionType] = None,
    operation_id: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    """
    Historial de movimientos (más recientes primero).
    """
    return crud_transaction.get_transactions(
        db, tank_id=tank_id, type=type, operation_id=operation_id, skip=skip, limit=limit
    )

@router.get("/transactions/{transaction_id}", response_model=transaction_schema.Transaction)
def read_transaction(transaction_id: int, db: Session = Depends(get_db)):
    return crud_transaction.get_transaction(db, transaction_id)
