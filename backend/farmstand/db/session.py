from functools import lru_cache

from sqlmodel import create_engine, Session
import os

DEFAULT_DATABASE_URL = "sqlite:///./farmstand.db"


def get_database_url() -> str:
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


@lru_cache(maxsize=None)
def _engine_for(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    echo = os.getenv("SQL_ECHO", "").lower() in ("1", "true", "yes")
    return create_engine(url, echo=echo, connect_args=connect_args)


def get_engine():
    return _engine_for(get_database_url())


def get_session() -> Session:
    return Session(get_engine())
