from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from shuttle.config import settings

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    """Request-scoped database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db(bind=None):
    """Create all tables that do not exist yet"""
    # Models must be imported so they register on Base.metadata
    from shuttle import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
