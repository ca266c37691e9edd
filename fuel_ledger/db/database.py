from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from fuel_ledger.core.config import settings

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # FastAPI atiende requests sync en un threadpool
    connect_args = {"check_same_thread": False}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    """ Dependencia de FastAPI: una sesión por request """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
