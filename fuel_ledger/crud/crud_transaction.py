import logging
import uuid
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from fuel_ledger.core.constants import round_quantity
from fuel_ledger.core.exceptions import NotFound
from fuel_ledger.core.timeutils import utcnow
from fuel_ledger.models.tank import Tank
from fuel_ledger.models.transaction import FuelTransaction, FuelTransactionLot, TransactionType

logger = logging.getLogger(__name__)


def new_operation_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


def append_transaction(
    db: Session,
    operation_id: str,
    type: TransactionType,
    tank: Tank,
    quantity_liters: float,
    lots: Iterable[Tuple[int, str, float]],
    counterpart: Optional[str] = None,
    notes: Optional[str] = None,
    reverses_transaction_id: Optional[int] = None,
) -> FuelTransaction:
    """
    Agrega un movimiento inmutable. `lots` son tuplas (lot_id, mrn, litros).
    El detalle por lote se arma antes del flush: después el registro ya no se toca.
    """
    db_transaction = FuelTransaction(
        operation_id=operation_id,
        type=type,
        tank_id=tank.id,
        quantity_liters=round_quantity(quantity_liters),
        fuel_type=tank.fuel_type,
        timestamp=utcnow(),
        counterpart=counterpart,
        notes=notes,
        reverses_transaction_id=reverses_transaction_id,
        lots=[
            FuelTransactionLot(lot_id=lot_id, mrn=mrn, quantity_liters=round_quantity(quantity))
            for lot_id, mrn, quantity in lots
        ],
    )
    db.add(db_transaction)
    db.flush()
    logger.debug("Transaction %s (%s, %.3f L) appended for tank %s", db_transaction.id, type.value, db_transaction.quantity_liters, tank.identifier)
    return db_transaction


def get_transaction(db: Session, transaction_id: int) -> FuelTransaction:
    db_transaction = (
        db.query(FuelTransaction)
        .options(selectinload(FuelTransaction.lots))
        .filter(FuelTransaction.id == transaction_id)
        .first()
    )
    if db_transaction is None:
        raise NotFound(f"Transaction {transaction_id} not found")
    return db_transaction

def get_transactions(
    db: Session,
    tank_id: Optional[int] = None,
    type: Optional[TransactionType] = None,
    operation_id: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[FuelTransaction]:
    """ Historial de movimientos, del más reciente al más antiguo. """
    query = db.query(FuelTransaction).options(selectinload(FuelTransaction.lots))
    if tank_id is not None:
        query = query.filter(FuelTransaction.tank_id == tank_id)
    if type is not None:
        query = query.filter(FuelTransaction.type == type)
    if operation_id:
        query = query.filter(FuelTransaction.operation_id == operation_id)
    return query.order_by(FuelTransaction.id.desc()).offset(skip).limit(limit).all()

def get_reversals(db: Session, transaction_id: int) -> List[FuelTransaction]:
    return (
        db.query(FuelTransaction)
        .filter(FuelTransaction.reverses_transaction_id == transaction_id)
        .order_by(FuelTransaction.id)
        .all()
    )
