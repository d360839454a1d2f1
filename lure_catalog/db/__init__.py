"""Database initialization and persistence layer."""

from lure_catalog.db.engine import (
    create_db_engine,
    get_database_url,
    get_engine,
    get_session,
    get_session_factory,
    init_db,
    reset_engine,
    run_migrations,
)
from lure_catalog.db.models import (
    Base,
    CatalogRowDB,
    WorkItemDB,
)
from lure_catalog.db.repositories import (
    CatalogRepository,
    CatalogStore,
    TaskQueueStore,
    WorkItemRepository,
)

__all__ = [
    # Engine
    "create_db_engine",
    "get_database_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_db",
    "reset_engine",
    "run_migrations",
    # Models
    "Base",
    "WorkItemDB",
    "CatalogRowDB",
    # Stores
    "TaskQueueStore",
    "CatalogStore",
    "WorkItemRepository",
    "CatalogRepository",
]
