from sqlalchemy import Column, Integer, String, Float, DateTime, CheckConstraint, Enum as SAEnum, func
from sqlalchemy.ext.hybrid import hybrid_property
from fuel_ledger.db.database import Base
from fuel_ledger.core.exceptions import InvalidOperation
import enum

class TankKind(str, enum.Enum):
    fixed = "fixed"
    mobile = "mobile"

class TankStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    MAINTENANCE = "MAINTENANCE"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"

class Tank(Base):
    __tablename__ = "tanks"
    __table_args__ = (
        CheckConstraint("capacity_liters > 0", name="ck_tank_capacity_positive"),
        CheckConstraint("current_quantity_liters >= 0", name="ck_tank_quantity_non_negative"),
        CheckConstraint("current_quantity_liters <= capacity_liters", name="ck_tank_quantity_within_capacity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    identifier = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    kind = Column(SAEnum(TankKind), nullable=False, default=TankKind.fixed)
    capacity_liters = Column(Float, nullable=False)
    fuel_type = Column(String, nullable=False)
    status = Column(SAEnum(TankStatus), nullable=False, default=TankStatus.ACTIVE)
    location = Column(String, nullable=True)

    # Solo lo modifica el libro de lotes (crud_lot)
    _current_quantity_liters = Column("current_quantity_liters", Float, nullable=False, default=0.0)

    created_at = Column(DateTime, server_default=func.now())

    @hybrid_property
    def current_quantity_liters(self):
        return self._current_quantity_liters

    @current_quantity_liters.setter
    def current_quantity_liters(self, value):
        raise InvalidOperation(
            "current_quantity_liters is maintained by the lot ledger and cannot be set directly"
        )

    @property
    def free_capacity_liters(self) -> float:
        return self.capacity_liters - (self._current_quantity_liters or 0.0)
