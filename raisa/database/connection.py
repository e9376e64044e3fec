from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from raisa.config import settings

DB_URL = settings.SUPABASE_DB_URL


def build_engine(url: str, **kwargs):
    """Cria o engine; SQLite local precisa liberar uso entre threads do FastAPI."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, **kwargs)


engine = build_engine(DB_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()
