# fuel_ledger/db/mongodb.py
import logging
from typing import Optional

import motor.motor_asyncio
from fuel_ledger.core.config import settings

logger = logging.getLogger(__name__)

client: Optional[motor.motor_asyncio.AsyncIOMotorClient] = None
db_ledger: Optional[motor.motor_asyncio.AsyncIOMotorDatabase] = None

async def connect_to_mongo():
    """ Sin MONGO_URL el espejo del log de operaciones queda desactivado. """
    global client, db_ledger
    if not settings.MONGO_URL:
        logger.info("MONGO_URL not set, operation log mirror disabled")
        return
    logger.info("Connecting to MongoDB...")
    client = motor.motor_asyncio.AsyncIOMotorClient(settings.MONGO_URL)

    db_ledger = client[settings.MONGO_DB_NAME]

    logger.info("Connected to MongoDB. DB: '%s', collection: '%s'", settings.MONGO_DB_NAME, settings.MONGO_OPERATION_LOG_COLLECTION)

async def close_mongo_connection():
    global client, db_ledger
    if client:
        client.close()
        client = None
        db_ledger = None
        logger.info("Disconnected from MongoDB.")


def get_operation_log_collection() -> Optional[motor.motor_asyncio.AsyncIOMotorCollection]:
    """
    Dependencia de FastAPI:
    Devuelve la colección del log de operaciones, o None si Mongo no está configurado
    """
    if db_ledger is None:
        return None
    return db_ledger[settings.MONGO_OPERATION_LOG_COLLECTION]
