"""The multi-step tool-calling conversation loop."""

import asyncio
import json
import logging
from collections.abc import Iterable
from enum import Enum
from typing import Any

from wingman.constants import TITLE_SUMMARY_INTERVAL
from wingman.llm.base import CompletionService
from wingman.service.chat.context import ToolProvider, collect_context
from wingman.service.chat.errors import (
    ErrorCode,
    classify_completion_error,
    is_missing_finish_reason,
    tool_error,
)
from wingman.service.chat.models import (
    Chat,
    Message,
    Model,
    Role,
    Tool,
    ToolCall,
    ToolContext,
    ToolResult,
)
from wingman.service.chat.resource import parse_resource
from wingman.service.chat.store import ChatStore

logger = logging.getLogger(__name__)


class ConversationState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    TOOL_DISPATCH = "tool_dispatch"
    SETTLED = "settled"


class ChatOrchestrator:
    """Drives one chat through streaming completions and tool calls.

    A turn alternates between streaming a completion and dispatching the
    tool calls it requests until the model answers without tools:

        IDLE -> STREAMING -> (TOOL_DISPATCH -> STREAMING)* -> SETTLED

    Every intermediate state is written to the chat store, so observers see
    the placeholder fill up as text streams in and tool results arrive.
    Failures of the completion end the turn with a classified assistant
    error; failures of a single tool become a tool message the model can
    react to.
    """

    def __init__(
        self,
        completion: CompletionService,
        chat_store: ChatStore | None = None,
        model: Model | None = None,
        tool_providers: Iterable[ToolProvider] | None = None,
        max_iterations: int | None = None,
    ) -> None:
        self.completion = completion
        self.chat_store = chat_store or ChatStore()
        self.model = model
        self.tool_providers = list(tool_providers or [])
        self.max_iterations = max_iterations
        self.chat_id: str | None = None
        self.state = ConversationState.IDLE
        self._background: set[asyncio.Task] = set()

    @property
    def chat(self) -> Chat | None:
        if self.chat_id is None:
            return None
        return self.chat_store.get_chat(self.chat_id)

    def select_chat(self, chat_id: str | None) -> None:
        if chat_id is not None and self.chat_store.get_chat(chat_id) is None:
            raise KeyError(chat_id)
        self.chat_id = chat_id

    def _get_or_create_chat(self) -> tuple[Chat, Model]:
        if self.model is None:
            raise ValueError("no model selected")

        chat = self.chat
        if chat is None:
            chat = self.chat_store.create_chat(model=self.model)
            self.chat_id = chat.id
        return chat, self.model

    async def send_message(
        self,
        message: Message,
        tools: list[Tool] | None = None,
        instructions: str | None = None,
        extras: dict[str, Any] | None = None,
    ) -> Chat:
        """Append a user message and run the turn to completion.

        Args:
            message: The user message
            tools: Extra tools for this turn, offered after provider tools
            instructions: Base system instructions
            extras: Values passed to tools through ToolContext.extras

        Returns:
            Chat: The chat after the turn settled

        Raises:
            ValueError: If no model is selected
            DuplicateToolError: If two tool sources share a name
        """
        chat, model = self._get_or_create_chat()
        merged_tools, merged_instructions = collect_context(self.tool_providers, tools, instructions)
        tool_map = {tool.name: tool for tool in merged_tools}

        conversation = [*chat.messages, message]
        turn_length = len(conversation)
        context = ToolContext(
            chat_id=chat.id,
            attachments=list(message.attachments or []),
            extras=dict(extras or {}),
        )

        try:
            conversation = await self._run_loop(
                chat.id, model, conversation, merged_tools, merged_instructions, tool_map, context
            )
        except Exception as e:
            self.state = ConversationState.SETTLED
            if is_missing_finish_reason(e):
                logger.warning(f"⚠️ Ignoring stream without finish reason: {e}")
                self._drop_empty_placeholder(chat.id)
                return self.chat_store.get_chat(chat.id)

            logger.error(f"❌ Completion failed: {e}", exc_info=True)
            error = classify_completion_error(e)
            self._write(
                chat.id,
                [
                    *self._without_placeholder(chat.id),
                    Message(role=Role.ASSISTANT, content=error.message, error=error),
                ],
            )
            return self.chat_store.get_chat(chat.id)

        self.state = ConversationState.SETTLED
        if not chat.title or turn_length % TITLE_SUMMARY_INTERVAL == 0:
            self._schedule_title(chat.id, model, conversation)
        return self.chat_store.get_chat(chat.id)

    async def _run_loop(
        self,
        chat_id: str,
        model: Model,
        conversation: list[Message],
        tools: list[Tool],
        instructions: str,
        tool_map: dict[str, Tool],
        context: ToolContext,
    ) -> list[Message]:
        iterations = 0
        while True:
            self.state = ConversationState.STREAMING
            self._write(chat_id, [*conversation, Message(role=Role.ASSISTANT)])

            base = conversation

            def on_snapshot(delta: str, snapshot: str) -> None:
                self._write(chat_id, [*base, Message(role=Role.ASSISTANT, content=snapshot)])

            completion = await self.completion.complete(
                model.id, instructions, conversation, tools, on_snapshot
            )
            conversation = [*conversation, completion]
            self._write(chat_id, conversation)

            if not completion.tool_calls:
                return conversation

            self.state = ConversationState.TOOL_DISPATCH
            for call in completion.tool_calls:
                result = await self._dispatch(call, tool_map, context)
                conversation = [*conversation, result]
                self._write(chat_id, conversation)

            iterations += 1
            if self.max_iterations is not None and iterations >= self.max_iterations:
                logger.warning(f"⚠️ Stopping tool loop after {iterations} iterations")
                return conversation

    async def _dispatch(
        self, call: ToolCall, tool_map: dict[str, Tool], context: ToolContext
    ) -> Message:
        """Run one tool call and wrap its outcome as a tool message."""
        tool = tool_map.get(call.name)
        if tool is None:
            logger.warning(f"⚠️ Model requested unknown tool '{call.name}'")
            return self._error_result(
                call, ErrorCode.TOOL_NOT_FOUND, f"Tool '{call.name}' not found"
            )

        logger.info(f"🔧 Calling tool '{call.name}'")
        try:
            args = json.loads(call.arguments or "{}")
            if not isinstance(args, dict):
                raise ValueError("Tool arguments must be a JSON object")
            data = await tool.function(args, context)
        except Exception as e:
            logger.error(f"❌ Tool '{call.name}' failed: {e}", exc_info=True)
            return self._error_result(
                call, ErrorCode.TOOL_EXECUTION_ERROR, f"Tool '{call.name}' failed: {e}"
            )

        if not isinstance(data, str):
            data = json.dumps(data)

        parsed = parse_resource(data)
        return Message(
            role=Role.TOOL,
            content=parsed.content,
            attachments=parsed.attachments or None,
            tool_result=ToolResult(id=call.id, name=call.name, arguments=call.arguments, data=data),
        )

    @staticmethod
    def _error_result(call: ToolCall, code: ErrorCode, text: str) -> Message:
        error = tool_error(code, text)
        content = json.dumps({"error": {"code": error.code, "message": error.message}})
        return Message(
            role=Role.TOOL,
            content=content,
            error=error,
            tool_result=ToolResult(id=call.id, name=call.name, arguments=call.arguments, data=content),
        )

    def _write(self, chat_id: str, messages: list[Message]) -> None:
        self.chat_store.set_messages(chat_id, messages)

    def _without_placeholder(self, chat_id: str) -> list[Message]:
        """Chat messages minus a trailing in-progress assistant message."""
        chat = self.chat_store.get_chat(chat_id)
        if chat is None:
            return []
        messages = list(chat.messages)
        if messages and messages[-1].role == Role.ASSISTANT and not messages[-1].tool_calls:
            messages.pop()
        return messages

    def _drop_empty_placeholder(self, chat_id: str) -> None:
        chat = self.chat_store.get_chat(chat_id)
        if chat is None or not chat.messages:
            return
        last = chat.messages[-1]
        if last.role == Role.ASSISTANT and not last.content and not last.tool_calls:
            self._write(chat_id, chat.messages[:-1])

    def _schedule_title(self, chat_id: str, model: Model, messages: list[Message]) -> None:
        task = asyncio.create_task(self._summarize_title(chat_id, model, list(messages)))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _summarize_title(self, chat_id: str, model: Model, messages: list[Message]) -> None:
        try:
            title = (await self.completion.summarize(model.id, messages)).strip()
        except Exception as e:
            logger.warning(f"⚠️ Title summarization failed: {e}")
            return

        if title:
            self.chat_store.update_chat(chat_id, title=title)
            logger.debug(f"Chat {chat_id} titled '{title}'")

    async def wait_for_background(self) -> None:
        """Wait for pending title summaries to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
