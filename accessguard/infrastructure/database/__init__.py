from .async_db import (
    AsyncSessionFactory,
    check_database_health,
    create_async_db_and_tables,
    engine,
    get_async_db,
)

__all__ = [
    "AsyncSessionFactory",
    "check_database_health",
    "create_async_db_and_tables",
    "engine",
    "get_async_db",
]
