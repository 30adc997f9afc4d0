from sqlalchemy import create_engine
from sqlalchemy.engine import Engine


def init_db(
    database_url: str,
    *,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout_seconds: int = 30,
    pool_recycle_seconds: int = 1800,
    connect_timeout_seconds: int = 5,
) -> Engine:
    # Engine creation is lazy; no connection is opened until first use.
    connect_args = {}
    if database_url.startswith("postgresql"):
        connect_args = {
            "connect_timeout": max(1, int(connect_timeout_seconds)),
            "options": "-c application_name=course_api -c timezone=UTC",
        }
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=max(1, int(pool_size)),
        max_overflow=max(0, int(max_overflow)),
        pool_timeout=max(1, int(pool_timeout_seconds)),
        pool_recycle=max(1, int(pool_recycle_seconds)),
        connect_args=connect_args,
        future=True,
    )
