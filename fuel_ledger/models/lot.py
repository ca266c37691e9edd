from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, CheckConstraint, Index, event, func
from sqlalchemy.orm import relationship
from fuel_ledger.db.database import Base
from fuel_ledger.core.exceptions import InvalidOperation

class CustomsLot(Base):
    """
    Cantidad de combustible dentro de un tanque, trazable a un MRN
    (declaración aduanera) y a su fecha de recepción.
    Orden FIFO: (date_received, id) ascendente.
    """
    __tablename__ = "customs_lots"
    __table_args__ = (
        CheckConstraint("quantity_received_liters > 0", name="ck_lot_received_positive"),
        CheckConstraint("remaining_liters >= 0", name="ck_lot_remaining_non_negative"),
        CheckConstraint("remaining_liters <= quantity_received_liters", name="ck_lot_remaining_within_received"),
        Index("ix_customs_lots_fifo", "tank_id", "date_received", "id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tank_id = Column(Integer, ForeignKey("tanks.id"), nullable=False)
    mrn = Column(String, index=True, nullable=False)
    quantity_received_liters = Column(Float, nullable=False)
    remaining_liters = Column(Float, nullable=False)
    date_received = Column(DateTime, nullable=False)
    supplier = Column(String, nullable=True)

    # Trazabilidad: lote de origen (traspasos) o recepción que lo creó
    source_lot_id = Column(Integer, ForeignKey("customs_lots.id"), nullable=True)
    intake_id = Column(Integer, ForeignKey("intake_records.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    tank = relationship("Tank")


@event.listens_for(CustomsLot, "before_delete")
def _forbid_lot_delete(mapper, connection, target):
    # Un lote nunca se borra, solo se agota (remaining_liters = 0)
    raise InvalidOperation(f"Customs lot {target.id} cannot be deleted, only exhausted")
