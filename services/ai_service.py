import asyncio
import json
import logging
import uuid
from datetime import date, datetime
from typing import Any, AsyncIterator, Dict, List, Optional
from zoneinfo import ZoneInfo

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
    message_chunk_to_message,
)
from langchain_groq import ChatGroq

from config.settings import Settings, get_settings
from models.schemas import ChatMessage
from services.contact_service import ContactStore
from services.tools import create_tools
from utils.helpers import format_long_date

logger = logging.getLogger(__name__)

# Upper bound on chained model calls (and therefore tool rounds) per request
MAX_STEPS = 3

SYSTEM_PROMPT = """You are Wishday Assistant, a friendly AI for managing birthdays and celebrations.

CAPABILITIES:
- Look up user's contacts and birthdays using the getContacts tool
- Suggest gift ideas based on contact notes/preferences
- Help with celebration planning tips

INSTRUCTIONS:
- Use getContacts when users ask about birthdays, contacts, or specific people
- After using a tool, respond naturally with the results
- Never invent contacts or birthdays that the tool did not return
- Be warm and concise, use occasional emojis 🎂
- Keep responses SHORT (max 2-3 sentences for simple questions, max 5-6 for complex ones)
- For lists, show max 5 items unless user asks for more
- Avoid long explanations or verbose formatting

Today's date: {today}"""


def build_system_prompt(today: date) -> str:
    return SYSTEM_PROMPT.format(today=format_long_date(today))


def _tool_output_text(output: Any) -> str:
    return output if isinstance(output, str) else json.dumps(output, default=str)


def _assistant_messages(message: ChatMessage) -> List[BaseMessage]:
    """
    Replay an assistant turn: text is kept, and every finished tool part becomes
    an AIMessage carrying the call followed by the ToolMessage with its result.
    """
    if not message.parts:
        return [AIMessage(content=message.content)] if message.content else []

    converted: List[BaseMessage] = []
    text = ""
    for part in message.parts:
        if part.type == "text":
            text += part.text or ""
        elif part.tool_name and part.state == "output-available" and part.tool_call_id:
            converted.append(AIMessage(content=text, tool_calls=[{
                "name": part.tool_name,
                "args": part.input if isinstance(part.input, dict) else {},
                "id": part.tool_call_id,
            }]))
            converted.append(ToolMessage(content=_tool_output_text(part.output), tool_call_id=part.tool_call_id))
            text = ""
    if text:
        converted.append(AIMessage(content=text))
    return converted


def to_lc_messages(messages: List[ChatMessage]) -> List[BaseMessage]:
    """Convert client chat messages into langchain messages, skipping empty ones"""
    converted: List[BaseMessage] = []
    for message in messages:
        if message.role == "assistant":
            converted.extend(_assistant_messages(message))
            continue
        text = message.text()
        if not text:
            continue
        if message.role == "user":
            converted.append(HumanMessage(content=text))
        else:
            converted.append(SystemMessage(content=text))
    return converted


class AIService:
    def __init__(
        self,
        llm=None,
        contact_store: Optional[ContactStore] = None,
        settings: Optional[Settings] = None,
        max_steps: int = MAX_STEPS,
    ):
        self.settings = settings or get_settings()
        self.llm = llm if llm is not None else self._build_llm()
        self.contact_store = contact_store or ContactStore()
        self.max_steps = max_steps

    def _build_llm(self):
        return ChatGroq(
            model=self.settings.assistant_model,
            api_key=self.settings.groq_api_key,
            temperature=self.settings.temperature,
            timeout=self.settings.llm_timeout,
            max_retries=0,
        )

    def today(self) -> date:
        """Current date in the configured time zone (server-local when unset)"""
        if self.settings.assistant_timezone:
            return datetime.now(ZoneInfo(self.settings.assistant_timezone)).date()
        return date.today()

    async def stream_chat(
        self,
        messages: List[ChatMessage],
        user_id: Optional[str],
        today: Optional[date] = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        """
        Stream an assistant reply as UI message stream parts.

        The model may call getContacts; each tool result is appended to the
        conversation before the next model call. At most ``max_steps`` model
        calls are made. Failures after the stream has started are reported as
        an ``error`` part; parts already sent stay sent.
        """
        yield {"type": "start", "messageId": f"msg-{uuid.uuid4().hex}"}
        text_id = None

        try:
            tools = create_tools(self.contact_store, user_id)
            model = self.llm.bind_tools(list(tools.values()))
            history: List[BaseMessage] = [SystemMessage(content=build_system_prompt(today or self.today()))]
            history.extend(to_lc_messages(messages))

            for step in range(1, self.max_steps + 1):
                yield {"type": "start-step"}

                gathered = None
                async for chunk in model.astream(history):
                    gathered = chunk if gathered is None else gathered + chunk
                    text = chunk.content if isinstance(chunk.content, str) else ""
                    if not text:
                        continue
                    if text_id is None:
                        text_id = f"text-{uuid.uuid4().hex}"
                        yield {"type": "text-start", "id": text_id}
                    yield {"type": "text-delta", "id": text_id, "delta": text}

                if text_id is not None:
                    yield {"type": "text-end", "id": text_id}
                    text_id = None

                if gathered is None:
                    yield {"type": "finish-step"}
                    break

                reply = message_chunk_to_message(gathered)
                history.append(reply)

                tool_calls = list(getattr(reply, "tool_calls", None) or [])
                invalid_calls = list(getattr(reply, "invalid_tool_calls", None) or [])
                for call in tool_calls:
                    yield {
                        "type": "tool-input-available",
                        "toolCallId": call["id"],
                        "toolName": call["name"],
                        "input": call["args"],
                    }
                    output = await self._run_tool(tools, call)
                    history.append(ToolMessage(content=output, tool_call_id=call["id"]))
                    yield {
                        "type": "tool-output-available",
                        "toolCallId": call["id"],
                        "output": output,
                    }
                for call in invalid_calls:
                    logger.warning(f"Model sent malformed arguments for tool {call.get('name')}")
                    history.append(ToolMessage(
                        content=f"Invalid arguments for tool: {call.get('name')}",
                        tool_call_id=call.get("id") or "",
                    ))

                yield {"type": "finish-step"}

                if not tool_calls and not invalid_calls:
                    break
                if step == self.max_steps:
                    logger.info(f"Step limit of {self.max_steps} reached for user {user_id}")

            yield {"type": "finish"}
        except asyncio.CancelledError:
            logger.info(f"Client disconnected, abandoning generation for user {user_id}")
            raise
        except Exception as e:
            logger.exception(f"Assistant streaming failed: {e}")
            if text_id is not None:
                yield {"type": "text-end", "id": text_id}
            yield {"type": "error", "errorText": "Internal server error"}

    async def _run_tool(self, tools: Dict[str, Any], call: Dict[str, Any]) -> str:
        tool = tools.get(call["name"])
        if tool is None:
            logger.warning(f"Model requested unknown tool {call['name']}")
            return f"Unknown tool: {call['name']}"
        result = await tool.ainvoke(call.get("args") or {})
        return str(result)
