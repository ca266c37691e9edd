# reset_db.py
import logging
from fuel_ledger.core.logging_config import configure_logging
from fuel_ledger.db.base import Base
from fuel_ledger.db.database import engine

logger = logging.getLogger(__name__)

def reset_database(bind=None):
    bind = bind if bind is not None else engine
    logger.warning("Dropping all tables...")
    Base.metadata.drop_all(bind=bind)
    logger.info("Tables dropped.")

    logger.info("Creating all tables...")
    Base.metadata.create_all(bind=bind)
    logger.info("Database created.")

if __name__ == "__main__":
    configure_logging()
    print("ADVERTENCIA: Esto eliminará TODOS los datos del libro de combustible (tanques, lotes y movimientos).")
    confirm = input("¿Estás seguro? Escribe 'si' para continuar: ")

    if confirm.lower() == 'si':
        reset_database()
    else:
        print("Operación cancelada.")
