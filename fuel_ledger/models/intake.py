from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from fuel_ledger.db.database import Base

class IntakeRecord(Base):
    """ Cabecera de una recepción de combustible (camión cisterna) """
    __tablename__ = "intake_records"

    id = Column(Integer, primary_key=True, index=True)
    operation_id = Column(String, index=True, nullable=False)
    delivery_vehicle_plate = Column(String, nullable=False)
    delivery_vehicle_driver_name = Column(String, nullable=True)
    intake_datetime = Column(DateTime, nullable=False)
    quantity_liters_received = Column(Float, nullable=False)
    quantity_kg_received = Column(Float, nullable=False)
    specific_gravity = Column(Float, nullable=False)
    fuel_type = Column(String, index=True, nullable=False)
    supplier_name = Column(String, index=True, nullable=True)
    delivery_note_number = Column(String, nullable=True)
    customs_declaration_number = Column(String, index=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())

    distributions = relationship(
        "IntakeDistribution", back_populates="intake", order_by="IntakeDistribution.id"
    )

class IntakeDistribution(Base):
    __tablename__ = "intake_distributions"

    id = Column(Integer, primary_key=True, index=True)
    intake_id = Column(Integer, ForeignKey("intake_records.id"), nullable=False)
    tank_id = Column(Integer, ForeignKey("tanks.id"), nullable=False)
    quantity_liters = Column(Float, nullable=False)
    lot_id = Column(Integer, ForeignKey("customs_lots.id"), nullable=True)

    intake = relationship("IntakeRecord", back_populates="distributions")
