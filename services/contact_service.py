import logging
from typing import Any, Dict, List, Optional

from psycopg2 import sql
from psycopg2.extras import RealDictCursor

from config.database import get_db_connection
from utils.helpers import is_valid_uuid

logger = logging.getLogger(__name__)

CONTACT_COLUMNS = """
    id,
    user_id,
    name,
    birthday_year,
    birthday_month,
    birthday_day,
    notes,
    created_at,
    updated_at
"""

UPDATABLE_COLUMNS = ("name", "birthday_year", "birthday_month", "birthday_day", "notes")


class ContactStore:
    """Birthday contacts, always scoped to the owning user.

    Every statement keyed by a contact id also filters on ``user_id``, so a
    contact owned by somebody else looks exactly like a missing one.
    """

    def __init__(self, connection_factory=get_db_connection):
        self._connect = connection_factory

    def list_contacts(self, user_id: str) -> List[Dict[str, Any]]:
        """All contacts owned by user_id"""
        with self._connect() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(f"""
                    SELECT {CONTACT_COLUMNS}
                    FROM contacts_birthdays
                    WHERE user_id = %s
                    ORDER BY birthday_month, birthday_day, name
                """, (user_id,))
                return [dict(row) for row in cursor.fetchall()]

    def get_contact(self, contact_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        if not is_valid_uuid(contact_id):
            return None
        with self._connect() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(f"""
                    SELECT {CONTACT_COLUMNS}
                    FROM contacts_birthdays
                    WHERE id = %s AND user_id = %s
                    LIMIT 1
                """, (contact_id, user_id))
                row = cursor.fetchone()
                return dict(row) if row else None

    def create_contact(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        with self._connect() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(f"""
                    INSERT INTO contacts_birthdays
                        (user_id, name, birthday_year, birthday_month, birthday_day, notes)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    RETURNING {CONTACT_COLUMNS}
                """, (
                    user_id,
                    data["name"],
                    data.get("birthday_year"),
                    data["birthday_month"],
                    data["birthday_day"],
                    data.get("notes"),
                ))
                created = dict(cursor.fetchone())
        logger.info(f"Created contact {created['id']} for user {user_id}")
        return created

    def update_contact(self, contact_id: str, user_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply only the given column changes; None when the contact is not found"""
        if not is_valid_uuid(contact_id):
            return None

        assignments = [
            sql.SQL("{} = %s").format(sql.Identifier(column))
            for column in UPDATABLE_COLUMNS if column in changes
        ]
        values = [changes[column] for column in UPDATABLE_COLUMNS if column in changes]
        assignments.append(sql.SQL("updated_at = now()"))

        query = sql.SQL("""
            UPDATE contacts_birthdays
            SET {assignments}
            WHERE id = %s AND user_id = %s
            RETURNING {columns}
        """).format(
            assignments=sql.SQL(", ").join(assignments),
            columns=sql.SQL(CONTACT_COLUMNS),
        )

        with self._connect() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(query, (*values, contact_id, user_id))
                row = cursor.fetchone()
                return dict(row) if row else None

    def delete_contact(self, contact_id: str, user_id: str) -> bool:
        """True when a contact owned by user_id was removed"""
        if not is_valid_uuid(contact_id):
            return False
        with self._connect() as conn:
            with conn.cursor() as cursor:
                cursor.execute("""
                    DELETE FROM contacts_birthdays
                    WHERE id = %s AND user_id = %s
                """, (contact_id, user_id))
                deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted contact {contact_id} for user {user_id}")
        return deleted
