from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Tuple
import aiosqlite
from campus.settings import settings
from campus.utils.logging import logger


@asynccontextmanager
async def get_new_db_connection():
    conn = None
    try:
        conn = await aiosqlite.connect(settings.sqlite_db_path)
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA synchronous = NORMAL")
        yield conn
    except Exception:
        if conn:
            await conn.rollback()
        raise
    finally:
        if conn:
            await conn.close()


async def execute_db_operation(
    operation: str,
    params=None,
    fetch_one: bool = False,
    fetch_all: bool = False,
    get_last_row_id: bool = False,
):
    """Run a single statement on a fresh connection.

    Exactly one of ``fetch_one``, ``fetch_all`` or ``get_last_row_id`` decides
    the return value; write statements are committed before returning.
    """
    async with get_new_db_connection() as conn:
        cursor = await conn.cursor()

        try:
            if params is not None:
                await cursor.execute(operation, params)
            else:
                await cursor.execute(operation)

            if fetch_one:
                return await cursor.fetchone()
            if fetch_all:
                return await cursor.fetchall()

            await conn.commit()

            if get_last_row_id:
                return cursor.lastrowid

            return cursor.rowcount
        except Exception as e:
            logger.error(f"Database operation failed: {type(e).__name__}: {e}")
            raise


async def execute_multiple_db_operations(commands_and_params: List[Tuple[str, tuple]]):
    """Run several statements in one transaction."""
    async with get_new_db_connection() as conn:
        cursor = await conn.cursor()

        try:
            for command, params in commands_and_params:
                await cursor.execute(command, params)

            await conn.commit()
        except Exception as e:
            logger.error(f"Database transaction failed: {type(e).__name__}: {e}")
            raise


def format_sqlite_datetime(dt: datetime) -> str:
    """Format a datetime as the UTC-naive string SQLite's CURRENT_TIMESTAMP uses."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def utc_now_str() -> str:
    return format_sqlite_datetime(datetime.now(timezone.utc))
