"""Database connection and session management for the SQL store."""

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .models import Base
from ..config.settings import get_settings
from ..utils.logging import get_logger


logger = get_logger("store.database")


class DatabaseManager:
    """Owns the engine and session factory for one database URL.

    SQLite databases share a single connection (``StaticPool``) so that
    in-memory databases survive across sessions. Other backends get a
    pre-pinged, recycled connection pool.
    """

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        store_settings = get_settings().store
        self.database_url = database_url or store_settings.database_url
        self.url = make_url(self.database_url)
        echo = store_settings.echo_sql if echo is None else echo

        self.engine = create_engine(self.url, echo=echo, **self._engine_options())
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine
        )

        logger.info("Database manager initialized", database_url=self.safe_url)

    @property
    def is_sqlite(self) -> bool:
        return self.url.get_backend_name() == "sqlite"

    @property
    def safe_url(self) -> str:
        """The database URL with any password masked, for logs."""
        return self.url.render_as_string(hide_password=True)

    @property
    def sqlite_path(self) -> Optional[Path]:
        """Filesystem path of a file-backed SQLite database, else None."""
        if not self.is_sqlite or self.url.database in (None, "", ":memory:"):
            return None
        return Path(self.url.database)

    def _engine_options(self) -> Dict[str, Any]:
        if self.is_sqlite:
            return {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False, "timeout": 20},
            }
        return {"pool_pre_ping": True, "pool_recycle": 300}

    def create_tables(self) -> None:
        """Create the entry table, and the SQLite file's directory if needed."""
        db_path = self.sqlite_path
        if db_path is not None:
            db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            Base.metadata.create_all(bind=self.engine)
        except Exception as e:
            logger.error("Failed to create database tables", database_url=self.safe_url, error=str(e))
            raise

        logger.info("Database tables ready", tables=sorted(Base.metadata.tables))

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Run a block in one transaction: commit on success, roll back on error."""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error("Database transaction rolled back", error_type=type(e).__name__, error=str(e))
            raise
        finally:
            session.close()

    def test_connection(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            with self.session_scope() as session:
                session.execute(text("SELECT 1"))
        except Exception as e:
            logger.error("Database connection test failed", database_url=self.safe_url, error=str(e))
            return False

        logger.debug("Database connection test successful")
        return True

    def close(self) -> None:
        """Dispose of pooled connections."""
        self.engine.dispose()
        logger.info("Database connections closed", database_url=self.safe_url)
