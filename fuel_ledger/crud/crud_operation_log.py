"""
Espejo del registro de movimientos en Mongo.

La tabla de movimientos en SQL es el registro durable; este espejo es
best-effort y se escribe después del commit (tarea en segundo plano).
Un fallo de Mongo se registra en el log y no afecta a la operación.
"""
import logging
from typing import Iterable, List, Optional

import pymongo
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from fuel_ledger.schemas import transaction as transaction_schema

logger = logging.getLogger(__name__)


def transaction_document(transaction: transaction_schema.Transaction) -> dict:
    return {
        "transaction_id": transaction.id,
        "operation_id": transaction.operation_id,
        "type": transaction.type.value,
        "tank_id": transaction.tank_id,
        "quantity_liters": transaction.quantity_liters,
        "fuel_type": transaction.fuel_type,
        "timestamp": transaction.timestamp,
        "counterpart": transaction.counterpart,
        "reverses_transaction_id": transaction.reverses_transaction_id,
        "notes": transaction.notes,
        "lots": [lot.model_dump() for lot in transaction.lots],
    }


async def mirror_transactions(
    collection: Optional[AsyncIOMotorCollection],
    transactions: Iterable[transaction_schema.Transaction],
) -> int:
    """ Copia los movimientos al log de operaciones. Devuelve cuántos se escribieron. """
    documents = [transaction_document(t) for t in transactions]
    if collection is None or not documents:
        return 0
    try:
        await collection.insert_many(documents)
    except PyMongoError as e:
        logger.warning(
            "Operation log mirror failed for operation %s (%d transaction(s)): %s",
            documents[0]["operation_id"], len(documents), e,
        )
        return 0
    logger.debug("Mirrored %d transaction(s) of operation %s", len(documents), documents[0]["operation_id"])
    return len(documents)


async def get_operation_log(
    collection: AsyncIOMotorCollection,
    tank_id: Optional[int] = None,
    limit: int = 100,
) -> List[transaction_schema.OperationLogEntry]:
    """ Últimos movimientos espejados, del más reciente al más antiguo. """
    query = {}
    if tank_id is not None:
        query["tank_id"] = tank_id
    # transaction_id crece con cada movimiento: orden del libro
    cursor = collection.find(query).sort([("transaction_id", pymongo.DESCENDING)]).limit(limit)
    documents = await cursor.to_list(length=limit)
    return [transaction_schema.OperationLogEntry.model_validate(doc) for doc in documents]
