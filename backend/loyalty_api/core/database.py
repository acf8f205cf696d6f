"""
Conexión a base de datos PostgreSQL

All database access goes through psycopg2 with raw, parameterized SQL:
- get_db_connection_with_retry: tuple rows, retries transient failures
- get_db_connection_dict_with_retry: same, with RealDictCursor rows
- get_db_connection_dict: what repositories call
- transaction(): commit on success, rollback on error, always close
- escape_like: user text for ILIKE patterns
"""
import time
import logging
from contextlib import contextmanager

import psycopg2
from psycopg2.extras import RealDictCursor

from .config import settings

logger = logging.getLogger(__name__)


def _connect(cursor_factory=None):
    database_url = settings.DATABASE_URL
    if not database_url:
        raise Exception("DATABASE_URL not configured")

    kwargs = {"connect_timeout": settings.DB_CONNECT_TIMEOUT}
    if cursor_factory is not None:
        kwargs["cursor_factory"] = cursor_factory
    return psycopg2.connect(database_url, **kwargs)


def _connect_with_retry(cursor_factory=None, max_retries=None, retry_delay=None):
    """
    Open a connection, retrying OperationalError with exponential backoff.

    Non-connection errors fail immediately.
    """
    max_retries = max_retries or settings.DB_MAX_RETRIES
    retry_delay = settings.DB_RETRY_DELAY if retry_delay is None else retry_delay
    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Database connection attempt {attempt}/{max_retries}")
            conn = _connect(cursor_factory)

            # Test connection with a simple query
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.close()

            logger.debug(f"Database connection successful on attempt {attempt}")
            return conn

        except psycopg2.OperationalError as e:
            last_error = e
            logger.warning(f"Connection error on attempt {attempt}/{max_retries}: {e}")

            if attempt < max_retries:
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)
            else:
                logger.error(f"All {max_retries} connection attempts failed")
                raise

        except Exception as e:
            logger.error(f"Unexpected error during connection: {e}")
            raise

    raise last_error if last_error else Exception("Connection failed after all retries")


def get_db_connection_with_retry(max_retries=None, retry_delay=None):
    """
    Get a psycopg2 connection (tuple rows) with automatic retry

    Args:
        max_retries: Maximum number of connection attempts (default: DB_MAX_RETRIES)
        retry_delay: Initial delay between retries in seconds (default: DB_RETRY_DELAY)

    Returns:
        psycopg2 connection object

    Raises:
        psycopg2.OperationalError: If all retry attempts fail
    """
    return _connect_with_retry(None, max_retries, retry_delay)


def get_db_connection_dict_with_retry(max_retries=None, retry_delay=None):
    """
    Get a psycopg2 connection with RealDictCursor and automatic retry

    Same as get_db_connection_with_retry but rows come back as dicts.
    """
    return _connect_with_retry(RealDictCursor, max_retries, retry_delay)


def get_db_connection_dict():
    """
    Connection used by the repository layer (dict rows, retried).

    Example:
        conn = get_db_connection_dict()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT * FROM products WHERE id = %s", (product_id,))
            row = cursor.fetchone()
        finally:
            cursor.close()
            conn.close()
    """
    return get_db_connection_dict_with_retry()


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user text matches literally (pair with ESCAPE '\\')."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@contextmanager
def transaction():
    """
    Yield a dict cursor inside a single transaction.

    Commits when the block exits normally, rolls back and re-raises on any
    exception, and always closes the cursor and connection.

    Usage:
        with transaction() as cursor:
            cursor.execute("UPDATE customers SET points = points - %s WHERE id = %s", (cost, cid))
            cursor.execute("INSERT INTO reward_redemptions ...")
    """
    conn = get_db_connection_dict()
    cursor = conn.cursor()
    try:
        yield cursor
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cursor.close()
        conn.close()


def health_check() -> dict:
    """Run SELECT 1 with a single fast attempt and report latency."""
    start = time.time()
    try:
        conn = get_db_connection_with_retry(max_retries=1, retry_delay=0.5)
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.fetchone()
            cursor.close()
        finally:
            conn.close()
        return {
            "status": "connected",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "error": None,
        }
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return {"status": "disconnected", "latency_ms": None, "error": str(e)}
