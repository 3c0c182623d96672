"""
Engine, session factory and declarative Base.

Production points DATABASE_URL at the hosted Postgres; without it the app
runs on a local SQLite file.
"""
import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./local.db"


def normalize_database_url(url: str | None) -> str:
    """Empty -> local SQLite; postgres:// -> postgresql+psycopg2://."""
    url = (url or "").strip() or DEFAULT_DATABASE_URL
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg2://", 1)
    return url


def engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # Request handlers run in FastAPI's threadpool
        return {"connect_args": {"check_same_thread": False}}
    # Hosted Postgres drops idle connections
    return {"pool_pre_ping": True, "pool_recycle": 300}


DATABASE_URL = normalize_database_url(os.getenv("DATABASE_URL"))

engine = create_engine(DATABASE_URL, future=True, **engine_options(DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def describe_engine() -> str:
    return f"backend={engine.url.get_backend_name()} url={engine.url.render_as_string(hide_password=True)}"
