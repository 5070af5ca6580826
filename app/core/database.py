import base64
import logging
from typing import Any, Dict, List

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from app.core.config import Settings

logger = logging.getLogger(__name__)


class QueryExecutionError(Exception):
    """The store rejected or failed the query. The message is for logs only."""


def normalize_row(mapping) -> Dict[str, Any]:
    """Binary columns become base64 text so rows are always JSON-safe."""
    return {
        key: base64.b64encode(bytes(value)).decode("ascii")
        if isinstance(value, (bytes, bytearray, memoryview))
        else value
        for key, value in mapping.items()
    }


def build_database_url(settings: Settings) -> URL:
    if settings.DATABASE_URL:
        return make_url(settings.DATABASE_URL)

    return URL.create(
        "mysql+aiomysql",
        username=settings.DB_USER,
        password=settings.DB_PASSWORD,
        host=settings.DB_HOST,
        port=settings.DB_PORT,
        database=settings.DB_NAME,
    )


def create_engine(settings: Settings) -> AsyncEngine:
    """Pooled async engine; requests queue for a connection once the pool is busy."""
    url = build_database_url(settings)
    if url.get_backend_name() == "sqlite":
        return create_async_engine(url, echo=False)

    return create_async_engine(
        url,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=0,
        pool_pre_ping=True,
    )


class DataFetcher:
    """Runs already validated SELECT text against the store."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def fetch(self, sql: str) -> List[Dict[str, Any]]:
        """
        Execute `sql` and return its rows as dicts, in result order.

        An empty list means the query ran and matched nothing.

        Raises:
            QueryExecutionError: on any driver or database error.
        """
        try:
            # Leaving the block rolls back, nothing is ever committed
            async with self.engine.connect() as conn:
                # no_parameters keeps "%" and ":name" in the text literal
                result = await conn.exec_driver_sql(
                    sql, execution_options={"no_parameters": True}
                )
                rows = [normalize_row(row._mapping) for row in result]
        except SQLAlchemyError as error:
            logger.error(f"Error executing SQL query: {error}")
            raise QueryExecutionError(str(error)) from error

        logger.info(f"Query executed successfully. Number of records: {len(rows)}")
        return rows
