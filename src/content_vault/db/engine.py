"""
Database engine and session management
PostgreSQL in staging/prod, SQLite accepted for local development and tests
"""
import logging
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import config
from ..exceptions import ContentVaultError

logger = logging.getLogger(__name__)


def create_database_engine(database_url: str = None) -> Engine:
    """Create an engine with pool settings appropriate for the backend"""
    url = database_url or config.DATABASE_URL or "sqlite:///./content_vault.db"

    if url.startswith("postgresql"):
        engine = create_engine(
            url,
            pool_pre_ping=True,
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_recycle=config.DB_POOL_RECYCLE,
            pool_timeout=config.DB_POOL_TIMEOUT,
            echo=False,
            connect_args={
                "connect_timeout": 10,
                "application_name": "content_vault",
            },
        )
        logger.info(
            f"PostgreSQL engine configured (pool_size={config.DB_POOL_SIZE}, "
            f"max_overflow={config.DB_MAX_OVERFLOW}, recycle={config.DB_POOL_RECYCLE}s)"
        )
        return engine

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": 30}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees an empty database
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
        configure_sqlite(engine)
        logger.info(f"SQLite engine configured: {url}")
        return engine

    return create_engine(url, pool_pre_ping=True)


def configure_sqlite(engine: Engine) -> None:
    """
    Take over transaction control from pysqlite.

    Every transaction starts with BEGIN IMMEDIATE so writers queue on the
    database lock instead of failing on lock upgrade, and SAVEPOINT works.
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


engine = create_database_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator:
    """
    Get database session.
    Use as FastAPI dependency: db: Session = Depends(get_db)

    Commits when the request handler returns, rolls back on any exception.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except ContentVaultError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Database session error: {e}", exc_info=True)
        raise
    finally:
        db.close()
