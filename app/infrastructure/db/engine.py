from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase


PSYCOPG_SCHEME = "postgresql+psycopg://"


class Base(DeclarativeBase):
    pass


def normalize_dsn(dsn: str) -> str:
    """Route bare postgres DSNs to the psycopg 3 driver."""
    for scheme in ("postgresql://", "postgres://"):
        if dsn.startswith(scheme):
            return PSYCOPG_SCHEME + dsn[len(scheme):]
    return dsn


@lru_cache(maxsize=4)
def get_engine(dsn: str):
    return create_engine(normalize_dsn(dsn), pool_pre_ping=True)
