from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./fuel_ledger.db"

    #log de operaciones (espejo en Mongo, opcional)
    MONGO_URL: Optional[str] = None
    MONGO_DB_NAME: str = "fuel_ledger"
    MONGO_OPERATION_LOG_COLLECTION: str = "operation_log"

    # Espera máxima por el lock de un tanque antes de responder Busy
    LOCK_TIMEOUT_SECONDS: float = 5.0

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173", # Puerto por defecto de Vite
        "http://localhost:3000", # Puerto por defecto de Create React App
        "http://localhost",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]

    class Config:
        env_file = ".env"

settings = Settings()
