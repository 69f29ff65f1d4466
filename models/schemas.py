from datetime import datetime
from typing import Any, List, Literal, Optional
import uuid

from pydantic import BaseModel, ConfigDict, StrictInt, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError


class CamelModel(BaseModel):
    # Request bodies are camelCase only
    model_config = ConfigDict(alias_generator=to_camel)


def _check_range(value, low: int, high: int, message: str):
    if value is not None and not low <= value <= high:
        raise PydanticCustomError("out_of_range", message)
    return value


class ContactCreate(CamelModel):
    name: str
    birthday_month: StrictInt
    birthday_day: StrictInt
    birthday_year: Optional[StrictInt] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        if len(value) < 1:
            raise PydanticCustomError("too_short", "Name is required")
        return value

    @field_validator("birthday_month")
    @classmethod
    def month_in_range(cls, value: int) -> int:
        return _check_range(value, 1, 12, "Month must be between 1 and 12")

    @field_validator("birthday_day")
    @classmethod
    def day_in_range(cls, value: int) -> int:
        # Not checked against the month's length: 31 February is accepted
        return _check_range(value, 1, 31, "Day must be between 1 and 31")


class ContactUpdate(CamelModel):
    name: Optional[str] = None
    birthday_month: Optional[StrictInt] = None
    birthday_day: Optional[StrictInt] = None
    birthday_year: Optional[StrictInt] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value) < 1:
            raise PydanticCustomError("too_short", "Name cannot be empty")
        return value

    @field_validator("birthday_month")
    @classmethod
    def month_in_range(cls, value: Optional[int]) -> Optional[int]:
        return _check_range(value, 1, 12, "Month must be between 1 and 12")

    @field_validator("birthday_day")
    @classmethod
    def day_in_range(cls, value: Optional[int]) -> Optional[int]:
        return _check_range(value, 1, 31, "Day must be between 1 and 31")

    @model_validator(mode="after")
    def at_least_one_field(self) -> "ContactUpdate":
        if not self.model_fields_set:
            raise PydanticCustomError("empty_update", "At least one field must be provided for update")
        return self

    @field_validator("birthday_month", "birthday_day", "name")
    @classmethod
    def not_null(cls, value):
        # Required columns may be omitted from an update but never cleared
        if value is None:
            raise PydanticCustomError("null_value", "Field cannot be null")
        return value

    def changes(self) -> dict:
        """Only the fields the caller actually sent, keyed by column name"""
        return self.model_dump(exclude_unset=True)


class Contact(CamelModel):
    # Built from snake_case database rows, serialized as camelCase
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    birthday_year: Optional[int] = None
    birthday_month: int
    birthday_day: int
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SyncResponse(BaseModel):
    success: bool


class MessagePart(CamelModel):
    """A text part, or a tool part such as "tool-getContacts" carrying call and result"""

    type: str
    text: Optional[str] = None
    tool_call_id: Optional[str] = None
    state: Optional[str] = None
    input: Optional[Any] = None
    output: Optional[Any] = None

    @property
    def tool_name(self) -> Optional[str]:
        return self.type[len("tool-"):] if self.type.startswith("tool-") else None


class ChatMessage(BaseModel):
    id: Optional[str] = None
    role: Literal["system", "user", "assistant"]
    content: Optional[str] = None
    parts: Optional[List[MessagePart]] = None

    def text(self) -> str:
        """Flatten the message into plain text (text parts only)"""
        if self.parts:
            return "".join(part.text or "" for part in self.parts if part.type == "text")
        return self.content or ""


class ChatRequest(BaseModel):
    messages: List[ChatMessage]
