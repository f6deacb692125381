from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker


@dataclass(frozen=True)
class DatabaseConfig:
    database_url: str
    echo: bool = False

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


def create_db_engine(cfg: DatabaseConfig) -> Engine:
    connect_args: dict[str, Any] = {}
    if cfg.is_sqlite:
        # Scheduled passes run on an APScheduler worker thread.
        connect_args["check_same_thread"] = False
    return create_engine(
        cfg.database_url, echo=cfg.echo, pool_pre_ping=True, connect_args=connect_args
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def registry_session_factory(cfg: DatabaseConfig) -> sessionmaker[Session]:
    """Engine plus session factory for the SQL registry backend."""
    return create_session_factory(create_db_engine(cfg))
