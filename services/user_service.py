import logging
from typing import Any, Dict, Optional

from psycopg2.extras import RealDictCursor

from config.database import get_db_connection

logger = logging.getLogger(__name__)


class UserStore:
    """Maps Clerk user ids to internal user rows"""

    def __init__(self, connection_factory=get_db_connection):
        self._connect = connection_factory

    def get_by_clerk_id(self, clerk_user_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute("""
                    SELECT id, clerk_user_id, email, created_at, updated_at
                    FROM users
                    WHERE clerk_user_id = %s
                    LIMIT 1
                """, (clerk_user_id,))
                row = cursor.fetchone()
                return dict(row) if row else None

    def upsert(self, clerk_user_id: str, email: Optional[str]) -> Dict[str, Any]:
        """
        Insert the user on first sync; afterwards refresh email and updated_at
        on the same row (clerk_user_id is unique).
        """
        with self._connect() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute("""
                    INSERT INTO users (clerk_user_id, email)
                    VALUES (%s, %s)
                    ON CONFLICT (clerk_user_id)
                    DO UPDATE SET email = EXCLUDED.email, updated_at = now()
                    RETURNING id, clerk_user_id, email, created_at, updated_at
                """, (clerk_user_id, email))
                return dict(cursor.fetchone())
