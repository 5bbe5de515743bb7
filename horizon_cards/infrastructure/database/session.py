"""Database engine and per-request sessions"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from horizon_cards.config import settings

# Pool recycles connections hourly so idle ones are never stale
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_recycle=3600,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db() -> Session:
    """Yield a session for one request; the route decides commit or rollback"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
