import logging
from typing import Any, Dict, Optional

from langchain_core.tools import BaseTool, StructuredTool
from pydantic import BaseModel

from services.contact_service import ContactStore
from utils.helpers import format_birthday

logger = logging.getLogger(__name__)

GET_CONTACTS_TOOL = "getContacts"

USER_NOT_FOUND_MESSAGE = "User not found. Please ensure you are logged in."
NO_CONTACTS_MESSAGE = "No contacts found. The user hasn't added any birthdays yet."


class GetContactsInput(BaseModel):
    """The tool takes no arguments; the caller's identity is bound server-side"""


def format_contact(contact: Dict[str, Any]) -> str:
    """One line per contact, e.g. "- Ada: December 10, 1815 | Notes: likes maths" """
    birthday = format_birthday(
        contact["birthday_month"],
        contact["birthday_day"],
        contact.get("birthday_year"),
    )
    notes = f" | Notes: {contact['notes']}" if contact.get("notes") else ""
    return f"- {contact['name']}: {birthday}{notes}"


def build_contact_lookup_tool(store: ContactStore, user_id: Optional[str]) -> BaseTool:
    def get_contacts() -> str:
        if not user_id:
            return USER_NOT_FOUND_MESSAGE

        contacts = store.list_contacts(str(user_id))
        logger.info(f"getContacts returned {len(contacts)} contact(s) for user {user_id}")
        if not contacts:
            return NO_CONTACTS_MESSAGE

        contact_list = "\n".join(format_contact(contact) for contact in contacts)
        return f"{len(contacts)} contact(s):\n{contact_list}"

    return StructuredTool.from_function(
        func=get_contacts,
        name=GET_CONTACTS_TOOL,
        description=(
            "Get all contacts and their birthdays. Use when user asks about birthdays, "
            "contacts, upcoming celebrations, or specific people."
        ),
        args_schema=GetContactsInput,
    )


def create_tools(store: ContactStore, user_id: Optional[str]) -> Dict[str, BaseTool]:
    """Tools exposed to the model, keyed by tool name"""
    tools = [build_contact_lookup_tool(store, user_id)]
    return {tool.name: tool for tool in tools}
