import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from fuel_ledger.core.config import settings
from fuel_ledger.core.exceptions import Busy, FuelLedgerError
from fuel_ledger.core.logging_config import configure_logging
from fuel_ledger.db.base import Base
from fuel_ledger.db.database import engine
from fuel_ledger.db.mongodb import connect_to_mongo, close_mongo_connection
from fuel_ledger.api.endpoints import tanks, intakes, transfers, consumptions, transactions, summary, operations
from fastapi.middleware.cors import CORSMiddleware

logger = logging.getLogger(__name__)

# Evento de ciclo de vida: logging, tablas y conexión a MongoDB al iniciar/apagar
@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    Base.metadata.create_all(bind=engine)
    await connect_to_mongo()
    yield
    await close_mongo_connection()

app = FastAPI(
    title="API de Inventario de Combustible",
    description="Libro de combustible del aeropuerto: tanques, lotes aduaneros (MRN) y consumo FIFO.",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,  # Lista de orígenes permitidos
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(FuelLedgerError)
async def fuel_ledger_error_handler(request: Request, exc: FuelLedgerError):
    headers = None
    if isinstance(exc, Busy):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    if exc.status_code >= 500 and not isinstance(exc, Busy):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )

# Incluir los routers
app.include_router(tanks.router, prefix="/api", tags=["Tanks"])
app.include_router(intakes.router, prefix="/api", tags=["Intakes"])
app.include_router(transfers.router, prefix="/api", tags=["Transfers"])
app.include_router(consumptions.router, prefix="/api", tags=["Consumptions"])
app.include_router(transactions.router, prefix="/api", tags=["Transactions"])
app.include_router(summary.router, prefix="/api", tags=["Summary"])
app.include_router(operations.router, prefix="/api", tags=["Operation log"])

@app.get("/api/health")
def health_check():
    return {"status": "ok"}
