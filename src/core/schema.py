"""Code-first SQLite schema built from the registered modules."""

import logging

from src.core import db_client
from src.core.module_registry import get_all_indexes, get_all_table_schemas


logger = logging.getLogger(__name__)


async def init_db(*, db_path: str | None = None) -> None:
    """Create every registered table and index if it does not exist yet."""
    schemas = get_all_table_schemas()
    indexes = get_all_indexes()

    conn = await db_client.get_connection(db_path=db_path)
    try:
        for table_name, ddl in schemas.items():
            await conn.execute(ddl)
            logger.debug("Ensured table", extra={"table": table_name})
        for ddl in indexes:
            await conn.execute(ddl)
        await conn.commit()
    except Exception as e:
        logger.error("schema_init_failed", extra={"error": str(e)})
        msg = f"Failed to initialise schema: {e}"
        raise db_client.DatabaseError(msg) from e

    logger.info("Database schema ready", extra={"tables": sorted(schemas), "index_count": len(indexes)})
