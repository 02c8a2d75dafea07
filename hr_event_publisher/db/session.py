"""Database engine utilities.

This module centralizes database connectivity primitives to enforce the db-layer
boundary for all SQLAlchemy usage.
"""

from sqlalchemy import Engine, create_engine


def db_create_engine(database_url: str, pool_size: int | None = None) -> Engine:
    """Create a SQLAlchemy engine for event-store or reference database access.

    Lanes publish concurrently, so callers size the pool to the lane count plus
    headroom for the API and checkpoint writer.

    Args:
        database_url: SQLAlchemy database URL.
        pool_size: Optional connection pool size.

    Returns:
        Engine: Configured SQLAlchemy engine.

    Raises:
        ValueError: Raised when the database URL is blank or the pool size is invalid.
    """

    if not database_url.strip():
        raise ValueError("database_url must not be blank")
    if pool_size is not None and pool_size < 1:
        raise ValueError("pool_size must be >= 1")

    if pool_size is None or database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)
    return create_engine(database_url, pool_pre_ping=True, pool_size=pool_size, max_overflow=pool_size)
