# database.py
"""
SQLAlchemy database connection and session management.

This module provides:
- Engine configuration for Azure SQL (MS SQL Server), or any DATABASE_URL
- Session factory for dependency injection
- Connection utilities
- Unique-violation detection for IntegrityError translation

Usage:
     from database import get_session, engine

     # In FastAPI routes:
     @router.get("/items")
     def get_items(db: Session = Depends(get_session)):
          return db.query(Item).all()
"""
from contextlib import contextmanager
from typing import Generator

import structlog
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from config import settings

logger = structlog.get_logger(__name__)


def _enable_sqlite_savepoints(engine: Engine) -> None:
     """
     pysqlite starts transactions lazily, which breaks SAVEPOINT handling.
     Take over BEGIN so nested transactions behave like on a server database.
     """

     @event.listens_for(engine, "connect")
     def _on_connect(dbapi_connection, connection_record):
          dbapi_connection.isolation_level = None

     @event.listens_for(engine, "begin")
     def _on_begin(conn):
          conn.exec_driver_sql("BEGIN")


def create_db_engine(url: str, **kwargs) -> Engine:
     """
     Build an engine for the given URL.

     Server databases get a bounded QueuePool; SQLite (local runs, tests) gets
     cross-thread access and savepoint support.
     """
     if url.startswith("sqlite"):
          connect_args = kwargs.pop("connect_args", {})
          connect_args.setdefault("check_same_thread", False)
          engine = create_engine(url, connect_args=connect_args, echo=settings.SQL_ECHO, **kwargs)
          _enable_sqlite_savepoints(engine)
          return engine

     return create_engine(
          url,
          poolclass=QueuePool,
          pool_size=5,
          max_overflow=10,
          pool_timeout=30,
          pool_recycle=1800,  # Recycle connections after 30 minutes
          echo=settings.SQL_ECHO,
          **kwargs,
     )


engine = create_db_engine(settings.DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(
     bind=engine,
     autocommit=False,
     autoflush=False,
     expire_on_commit=False,
)


def get_session() -> Generator[Session, None, None]:
     """
     FastAPI dependency that provides a database session.

     Commits when the request handler returns, rolls back if it raises.

     Yields:
          Session: SQLAlchemy database session
     """
     session = SessionLocal()
     try:
          yield session
          session.commit()
     except Exception:
          session.rollback()
          raise
     finally:
          session.close()


@contextmanager
def get_session_context() -> Generator[Session, None, None]:
     """
     Context manager for database sessions (for scheduled jobs and scripts).

     Usage:
          with get_session_context() as db:
               generate_monthly_invoices(db, organization_id=1, created_by=1)
     """
     session = SessionLocal()
     try:
          yield session
          session.commit()
     except Exception:
          session.rollback()
          raise
     finally:
          session.close()


def init_db() -> None:
     """
     Create all tables defined in the models if they don't exist.
     For production, use Alembic migrations instead.
     """
     from models import Base
     Base.metadata.create_all(bind=engine)


def check_connection() -> bool:
     """Test database connectivity."""
     try:
          with engine.connect() as conn:
               conn.execute(text("SELECT 1"))
          return True
     except Exception as e:
          logger.error("database_connection_failed", error=str(e))
          return False


def is_unique_violation(error: IntegrityError, name: str, table: str, *columns: str) -> bool:
     """
     True when `error` was raised by the unique constraint or index `name`.
     Server databases report the name; SQLite only lists table.column pairs.
     """
     message = str(error.orig)
     if name in message:
          return True
     return "UNIQUE constraint failed" in message and all(f"{table}.{column}" in message for column in columns)
