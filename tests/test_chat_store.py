"""Tests for chat storage and tool context collection."""

import pytest

from wingman.service.chat import (
    CHAT_DELETED,
    CHAT_UPDATED,
    ChatStore,
    DuplicateToolError,
    Message,
    Role,
    collect_context,
    collect_instructions,
    collect_tools,
)
from wingman.service.events import EventEmitter


class Provider:
    def __init__(self, tools, instructions, always_instructs=False):
        self._tools = tools
        self._instructions = instructions
        self.always_instructs = always_instructs

    def tools(self):
        return self._tools

    def instructions(self):
        return self._instructions


class TestChatStore:
    """Tests for ChatStore."""

    def test_create_and_update(self, model):
        store = ChatStore()
        events = []
        store.events.subscribe(CHAT_UPDATED, lambda chat: events.append(chat.id))

        chat = store.create_chat(model)
        store.set_messages(chat.id, [Message(role=Role.USER, content="hi")])
        store.update_chat(chat.id, title="Greeting")

        stored = store.get_chat(chat.id)
        assert stored.title == "Greeting"
        assert stored.model == model
        assert [m.content for m in stored.messages] == ["hi"]
        assert events == [chat.id] * 3

    def test_update_unknown_chat(self):
        assert ChatStore().update_chat("missing", title="x") is None

    def test_list_most_recent_first(self):
        store = ChatStore()
        older = store.create_chat()
        newer = store.create_chat()
        store.update_chat(older.id, title="touched")

        assert [c.id for c in store.list_chats()] == [older.id, newer.id]

    def test_delete(self):
        store = ChatStore()
        deleted = []
        store.events.subscribe(CHAT_DELETED, deleted.append)
        chat = store.create_chat()

        assert store.delete_chat(chat.id) is True
        assert store.delete_chat(chat.id) is False
        assert deleted == [chat.id]


class TestEventEmitter:
    def test_failing_handler_does_not_block_others(self):
        emitter = EventEmitter()
        received = []

        def broken(payload):
            raise RuntimeError("handler bug")

        emitter.subscribe("evt", broken)
        emitter.subscribe("evt", received.append)
        emitter.emit("evt", 1)

        assert received == [1]

    def test_unsubscribe(self):
        emitter = EventEmitter()
        received = []
        unsubscribe = emitter.subscribe("evt", received.append)

        unsubscribe()
        emitter.emit("evt", 1)

        assert received == []


class TestCollectContext:
    """Tests for tool and instruction collection."""

    def test_collect_tools_flattens_in_order(self, make_tool):
        tools = collect_tools([make_tool("a"), make_tool("b")], [], [make_tool("c")])
        assert [t.name for t in tools] == ["a", "b", "c"]

    def test_duplicate_names_raise(self, make_tool):
        with pytest.raises(DuplicateToolError, match="shared"):
            collect_tools([make_tool("shared")], [make_tool("shared")])

    def test_collect_instructions_skips_blank(self):
        assert collect_instructions("one", None, "  ", "two\n") == "one\n\ntwo"

    def test_providers_without_tools_are_silent(self, make_tool):
        providers = [
            Provider([make_tool("x")], "Use x."),
            Provider([], "Nothing to use."),
            Provider([], "Inlined files.", always_instructs=True),
        ]

        tools, instructions = collect_context(providers, [make_tool("own")], "Base.")

        assert [t.name for t in tools] == ["x", "own"]
        assert instructions == "Base.\n\nUse x.\n\nInlined files."
