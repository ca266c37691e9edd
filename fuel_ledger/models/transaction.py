from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum as SAEnum, event
from sqlalchemy.orm import relationship
from fuel_ledger.db.database import Base
from fuel_ledger.core.exceptions import InvalidOperation
import enum

class TransactionType(str, enum.Enum):
    intake = "intake"
    transfer_out = "transfer_out"
    transfer_in = "transfer_in"
    consumption = "consumption"
    adjustment = "adjustment"

class FuelTransaction(Base):
    __tablename__ = "fuel_transactions"

    id = Column(Integer, primary_key=True, index=True)
    # Agrupa los movimientos de una misma operación (ej: transfer_out + transfer_in)
    operation_id = Column(String, index=True, nullable=False)
    type = Column(SAEnum(TransactionType), nullable=False)
    tank_id = Column(Integer, ForeignKey("tanks.id"), index=True, nullable=False)
    # Con signo: positivo entra al tanque, negativo sale
    quantity_liters = Column(Float, nullable=False)
    fuel_type = Column(String, nullable=False)
    timestamp = Column(DateTime, nullable=False)
    # Otro tanque, aeronave, proveedor...
    counterpart = Column(String, nullable=True)
    reverses_transaction_id = Column(Integer, ForeignKey("fuel_transactions.id"), nullable=True)
    notes = Column(String, nullable=True)

    lots = relationship("FuelTransactionLot", back_populates="transaction", order_by="FuelTransactionLot.id")

class FuelTransactionLot(Base):
    """ Detalle por lote de un movimiento: (lot_id, cantidad) """
    __tablename__ = "fuel_transaction_lots"

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(Integer, ForeignKey("fuel_transactions.id"), nullable=False)
    lot_id = Column(Integer, ForeignKey("customs_lots.id"), nullable=False)
    mrn = Column(String, nullable=False)
    quantity_liters = Column(Float, nullable=False)

    transaction = relationship("FuelTransaction", back_populates="lots")


# El registro de movimientos es append-only
@event.listens_for(FuelTransaction, "before_update")
@event.listens_for(FuelTransactionLot, "before_update")
def _forbid_transaction_update(mapper, connection, target):
    raise InvalidOperation("Fuel transactions are append-only and cannot be modified")

@event.listens_for(FuelTransaction, "before_delete")
@event.listens_for(FuelTransactionLot, "before_delete")
def _forbid_transaction_delete(mapper, connection, target):
    raise InvalidOperation("Fuel transactions are append-only and cannot be deleted")
