from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from pcm.core.config import settings

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, echo=settings.DB_ECHO)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
