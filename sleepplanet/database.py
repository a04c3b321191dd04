"""Database engine, session factory and declarative base"""
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from sleepplanet.config import Settings
from sleepplanet.errors import ConfigError

Base = declarative_base()


def build_engine(settings: Settings) -> Engine:
    """Create the pooled engine described by ``settings.database``.

    SQLite (tests, local runs) gets neither pool sizing nor a statement timeout.
    """
    db = settings.database
    if db.url.startswith("sqlite"):
        return create_engine(db.url, connect_args={"check_same_thread": False})

    connect_args = {}
    if db.url.startswith("postgresql"):
        connect_args["options"] = f"-c statement_timeout={db.statement_timeout_ms}"

    return create_engine(
        db.url,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def check_connection(engine: Engine) -> None:
    """Run ``SELECT 1``; raise ConfigError when the database is unreachable."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise ConfigError(f"database unreachable: {exc.__class__.__name__}") from exc


def get_db(request: Request) -> Generator[Session, None, None]:
    """Yield a session bound to the application's engine, closed after the request."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
