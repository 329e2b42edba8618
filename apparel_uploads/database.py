from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.pool import StaticPool

from .config import get_settings
from .db import models  # noqa: F401  (registers table models on SQLModel.metadata)


def build_engine(db_url: str, echo: bool = False):
    # Choose engine options based on database scheme
    engine_kwargs = {}
    if db_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            engine_kwargs["poolclass"] = StaticPool
    else:
        # Better resiliency for managed Postgres
        engine_kwargs.update({
            "pool_pre_ping": True,
            "pool_recycle": 300,
            "pool_size": 5,
            "max_overflow": 10,
        })
    return create_engine(db_url, echo=echo, **engine_kwargs)


engine = build_engine(get_settings().DATABASE_URL)


def create_db_and_tables(target_engine=None):
    SQLModel.metadata.create_all(target_engine or engine)


def get_session():
    with Session(engine) as session:
        yield session
