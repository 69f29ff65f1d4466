import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from psycopg2.pool import PoolError, ThreadedConnectionPool

from config.settings import get_settings

logger = logging.getLogger(__name__)

_pool: Optional["BlockingConnectionPool"] = None
_pool_lock = threading.Lock()


class BlockingConnectionPool:
    """Wraps a psycopg2 pool so getconn() waits for a free connection.

    ThreadedConnectionPool raises PoolError as soon as maxconn connections are
    checked out; here callers queue on a semaphore instead, for up to
    ``timeout`` seconds (forever when None).
    """

    def __init__(self, pool, maxconn: int, timeout: Optional[float] = None):
        self._pool = pool
        self._slots = threading.BoundedSemaphore(maxconn)
        self._timeout = timeout

    def getconn(self):
        if not self._slots.acquire(timeout=self._timeout):
            raise PoolError("timed out waiting for a database connection")
        try:
            return self._pool.getconn()
        except Exception:
            self._slots.release()
            raise

    def putconn(self, conn):
        try:
            self._pool.putconn(conn)
        finally:
            self._slots.release()

    def closeall(self):
        self._pool.closeall()


def get_pool() -> BlockingConnectionPool:
    """Return the shared connection pool, creating it on first use"""
    global _pool
    if _pool is None:
        with _pool_lock:
            if _pool is None:
                settings = get_settings()
                if not settings.database_url:
                    raise RuntimeError("DATABASE_URL is missing")
                _pool = BlockingConnectionPool(
                    ThreadedConnectionPool(
                        settings.db_pool_min,
                        settings.db_pool_max,
                        dsn=settings.database_url,
                    ),
                    settings.db_pool_max,
                    timeout=settings.db_pool_timeout,
                )
    return _pool


def close_pool():
    """Close every pooled connection (called on shutdown)"""
    global _pool
    with _pool_lock:
        if _pool is not None:
            _pool.closeall()
            _pool = None


@contextmanager
def get_db_connection() -> Iterator:
    """Borrow a connection for a single operation.

    Commits when the block exits cleanly, rolls back otherwise, and always
    hands the connection back to the pool.
    """
    pool = get_pool()
    conn = pool.getconn()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        pool.putconn(conn)


def test_connection():
    """Test database connection"""
    try:
        with get_db_connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


def create_tables():
    """Create the users and contacts tables if they do not exist yet"""
    with get_db_connection() as conn:
        with conn.cursor() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id uuid PRIMARY KEY DEFAULT gen_random_uuid() NOT NULL,
                    clerk_user_id text NOT NULL UNIQUE,
                    email text,
                    created_at timestamp with time zone DEFAULT now(),
                    updated_at timestamp with time zone DEFAULT now()
                )
            """)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS contacts_birthdays (
                    id uuid PRIMARY KEY DEFAULT gen_random_uuid() NOT NULL,
                    user_id uuid NOT NULL REFERENCES users(id),
                    name text NOT NULL,
                    birthday_year integer,
                    birthday_month integer NOT NULL,
                    birthday_day integer NOT NULL,
                    notes text,
                    created_at timestamp with time zone DEFAULT now(),
                    updated_at timestamp with time zone DEFAULT now()
                )
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS contacts_birthdays_user_id_idx
                ON contacts_birthdays (user_id)
            """)
    logger.info("Database tables are ready")
