"""Database utilities - engine, session, migrations."""

from src.cybertask.core.db.engine import dispose_engine, get_engine
from src.cybertask.core.db.migrations import run_migrations_async, run_migrations_sync
from src.cybertask.core.db.session import get_session, get_session_factory

__all__ = [
    # Engine
    "dispose_engine",
    "get_engine",
    # Session
    "get_session",
    "get_session_factory",
    # Migrations
    "run_migrations_async",
    "run_migrations_sync",
]
