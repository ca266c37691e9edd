# Importa todos los modelos para que Base.metadata los conozca
# (create_all / drop_all y la resolución de relaciones por nombre).
from fuel_ledger.db.database import Base  # noqa: F401
from fuel_ledger.models.tank import Tank  # noqa: F401
from fuel_ledger.models.lot import CustomsLot  # noqa: F401
from fuel_ledger.models.intake import IntakeRecord, IntakeDistribution  # noqa: F401
from fuel_ledger.models.transaction import FuelTransaction, FuelTransactionLot  # noqa: F401
