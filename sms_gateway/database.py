from sqlmodel import SQLModel, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

# Table modules must be imported before create_all
from .db import models  # noqa: F401


def build_engine(db_url: str, echo: bool = False) -> Engine:
    """Create an engine with options suited to the database scheme."""
    engine_kwargs = {}

    if db_url.startswith("sqlite"):
        # SQLite specific connect args; sessions run in worker threads
        engine_kwargs.update({
            "connect_args": {"check_same_thread": False}
        })
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise each thread sees an empty database
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


def create_db_and_tables(target: Engine):
    SQLModel.metadata.create_all(target)
