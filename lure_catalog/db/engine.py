"""Database engine and session management.

The catalog and the work queue share one database. ``DATABASE_URL`` may hold
either a full SQLAlchemy URL (``postgresql+psycopg://...``) or a bare SQLite
file path; when unset the database lives under ``~/.lure_catalog``.
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

DEFAULT_DB_PATH = Path.home() / ".lure_catalog" / "lure_catalog.db"

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

# The worker and the CLI may hold the SQLite file open at the same time.
SQLITE_BUSY_TIMEOUT_MS = 5000

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _sqlite_url(path: Path) -> str:
    path = path.expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{path}"


def get_database_url(db_path: Path | str | None = None) -> str:
    """Resolve the connection URL from an explicit path, the environment or the default."""
    if db_path is not None:
        return _sqlite_url(Path(db_path))

    configured = os.environ.get("DATABASE_URL", "").strip()
    if not configured:
        return _sqlite_url(DEFAULT_DB_PATH)
    if "://" in configured:
        return configured
    return _sqlite_url(Path(configured))


def _configure_sqlite(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute(f"PRAGMA busy_timeout = {SQLITE_BUSY_TIMEOUT_MS}")
    cursor.close()


def create_db_engine(db_path: Path | str | None = None, echo: bool = False) -> Engine:
    """
    Build a new engine without touching the shared one.

    Args:
        db_path: Optional SQLite file path; overrides DATABASE_URL.
        echo: Log every SQL statement.
    """
    url = get_database_url(db_path)
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})
    event.listen(engine, "connect", _configure_sqlite)
    return engine


def get_engine(db_path: Path | str | None = None, echo: bool = False) -> Engine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = create_db_engine(db_path, echo)
    return _engine


def get_session_factory(db_path: Path | str | None = None) -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(db_path), autoflush=False)
    return _session_factory


def reset_engine() -> None:
    """Dispose of the shared engine so the next call re-reads DATABASE_URL."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine, _session_factory = None, None


@contextmanager
def get_session(db_path: Path | str | None = None) -> Generator[Session, None, None]:
    """
    Open a session bound to the shared engine.

    Repositories commit their own writes; the session is always closed on
    exit, which rolls back anything left uncommitted.
    """
    session = get_session_factory(db_path)()
    try:
        yield session
    finally:
        session.close()


def init_db(db_path: Path | str | None = None) -> None:
    """Create any missing tables directly from the ORM metadata."""
    from lure_catalog.db.models import Base

    Base.metadata.create_all(bind=get_engine(db_path))


def run_migrations(db_path: Path | str | None = None, revision: str = "head") -> None:
    """
    Upgrade the database schema with Alembic.

    Args:
        db_path: Optional SQLite file path; overrides DATABASE_URL.
        revision: Target revision, "head" by default.

    Raises:
        FileNotFoundError: If alembic.ini is not next to the package.
    """
    alembic_ini = Path(__file__).resolve().parents[2] / "alembic.ini"
    if not alembic_ini.exists():
        raise FileNotFoundError(f"Alembic config not found: {alembic_ini}")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    config.set_main_option("sqlalchemy.url", get_database_url(db_path))
    command.upgrade(config, revision)
