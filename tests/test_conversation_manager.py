"""Unit tests for ConversationManager."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import gc
import threading
import pytest
from unittest.mock import Mock
from errors import ConversationNotFoundError, DatastoreError, EmptyInputError
from services.conversation_manager import (
    ConversationManager,
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_TITLE,
    generate_title,
)
from services.llm_client import LLMClient, LLMClientError, LLMError, LLMResponse
from fake_supabase import FakeAPIError


def llm_response(text):
    return LLMResponse(text=text, tokens_input=10, tokens_output=5, latency_ms=1, model_used="test-model")


@pytest.fixture
def llm_client():
    mock_llm_client = Mock(spec=LLMClient)
    replies = iter(f"reply {i}" for i in range(1000))
    mock_llm_client.generate.side_effect = lambda **kwargs: llm_response(next(replies))
    return mock_llm_client


@pytest.fixture
def manager(supabase, llm_client):
    return ConversationManager(llm_client, client=supabase)


class TestGenerateTitle:

    def test_first_sentence(self):
        assert generate_title("What is entropy? And why does it grow?") == "What is entropy"

    def test_truncated_to_60_chars(self):
        assert generate_title("x" * 100) == "x" * 60

    def test_fallback(self):
        assert generate_title("...") == DEFAULT_TITLE


class TestConversationManager:
    """Test suite for ConversationManager."""

    def test_new_conversation(self, manager, supabase, llm_client):
        result = manager.chat("What is a derivative? I'm stuck.")

        assert result.is_new_conversation
        assert result.conversation_id.startswith("conv_")
        assert result.response == "reply 0"

        conversation = supabase.tables["conversations"][0]
        assert conversation["title"] == "What is a derivative"

        messages = supabase.tables["chat_messages"]
        assert [(m["role"], m["sequence_number"]) for m in messages] == [("user", 1), ("assistant", 2)]
        assert result.message_id == messages[1]["id"]

        kwargs = llm_client.generate.call_args.kwargs
        assert kwargs["prompt"] == "What is a derivative? I'm stuck."
        assert kwargs["messages"] == []
        assert kwargs["system_prompt"] == DEFAULT_SYSTEM_PROMPT

    def test_two_new_chats_create_distinct_conversations(self, manager, supabase):
        first = manager.chat("Hello")
        second = manager.chat("Hello")

        assert first.conversation_id != second.conversation_id
        assert len(supabase.tables["conversations"]) == 2
        assert len(supabase.tables["chat_messages"]) == 4

    def test_continuing_conversation_keeps_order(self, manager, llm_client):
        first = manager.chat("What is a vector?")
        second = manager.chat("And a matrix?", conversation_id=first.conversation_id)

        assert second.conversation_id == first.conversation_id
        assert not second.is_new_conversation

        history = manager.get_history(first.conversation_id)
        assert [(m.role, m.content) for m in history] == [
            ("user", "What is a vector?"),
            ("assistant", "reply 0"),
            ("user", "And a matrix?"),
            ("assistant", "reply 1"),
        ]
        assert [m.sequence_number for m in history] == [1, 2, 3, 4]

        context = llm_client.generate.call_args.kwargs["messages"]
        assert context == [
            {"role": "user", "content": "What is a vector?"},
            {"role": "assistant", "content": "reply 0"},
        ]

    def test_history_window_is_most_recent_messages(self, supabase, llm_client):
        manager = ConversationManager(llm_client, client=supabase, history_limit=4)
        conversation_id = manager.chat("turn 0").conversation_id
        for turn in range(1, 4):
            manager.chat(f"turn {turn}", conversation_id=conversation_id)

        context = llm_client.generate.call_args.kwargs["messages"]
        assert [m["content"] for m in context] == ["turn 1", "reply 1", "turn 2", "reply 2"]

    def test_custom_system_prompt(self, manager, llm_client):
        manager.chat("Hi", system_prompt="Answer in French.")
        assert llm_client.generate.call_args.kwargs["system_prompt"] == "Answer in French."

    def test_empty_message(self, manager, llm_client):
        with pytest.raises(EmptyInputError):
            manager.chat("   ")
        llm_client.generate.assert_not_called()

    def test_unknown_conversation_id(self, manager, supabase, llm_client):
        with pytest.raises(ConversationNotFoundError):
            manager.chat("Hi", conversation_id="conv_doesnotexist")

        llm_client.generate.assert_not_called()
        assert supabase.tables["conversations"] == []

    def test_llm_failure_persists_nothing(self, manager, supabase, llm_client):
        llm_client.generate.side_effect = LLMClientError(
            LLMError(code="RATE_LIMIT_ERROR", message="Rate limit exceeded.", details={})
        )

        with pytest.raises(LLMClientError):
            manager.chat("Hello")

        assert supabase.tables["conversations"] == []
        assert supabase.tables["chat_messages"] == []

    def test_llm_failure_on_existing_conversation_leaves_history_unchanged(self, manager, supabase, llm_client):
        conversation_id = manager.chat("Hello").conversation_id
        updated_at = supabase.tables["conversations"][0]["updated_at"]
        llm_client.generate.side_effect = LLMClientError(
            LLMError(code="TIMEOUT_ERROR", message="Request timed out.", details={})
        )

        with pytest.raises(LLMClientError):
            manager.chat("Follow up", conversation_id=conversation_id)

        assert len(supabase.tables["chat_messages"]) == 2
        assert supabase.tables["conversations"][0]["updated_at"] == updated_at

    def test_commit_failure_raises_datastore_error(self, manager, supabase):
        supabase.failures[("rpc", "commit_chat_turn")] = FakeAPIError("deadlock detected")

        with pytest.raises(DatastoreError, match="deadlock detected"):
            manager.chat("Hello")

        assert supabase.tables["chat_messages"] == []

    def test_turn_refreshes_updated_at(self, manager, supabase):
        conversation_id = manager.chat("Hello").conversation_id
        before = supabase.tables["conversations"][0]["updated_at"]

        manager.chat("Again", conversation_id=conversation_id)

        assert supabase.tables["conversations"][0]["updated_at"] > before

    def test_concurrent_turns_on_one_conversation(self, manager, supabase):
        conversation_id = manager.chat("start").conversation_id
        errors = []

        def send(i):
            try:
                manager.chat(f"message {i}", conversation_id=conversation_id)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=send, args=(i,)) for i in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        history = manager.get_history(conversation_id)
        assert [m.sequence_number for m in history] == list(range(1, 13))
        roles = [m.role for m in history]
        assert roles == ["user", "assistant"] * 6

    def test_turn_locks_are_released_after_use(self, manager):
        conversation_ids = [manager.chat(f"topic {i}").conversation_id for i in range(20)]
        for conversation_id in conversation_ids:
            manager.chat("follow up", conversation_id=conversation_id)

        held = manager._lock_for(conversation_ids[0])
        assert manager._lock_for(conversation_ids[0]) is held

        del held
        gc.collect()
        assert len(manager._locks) == 0

    def test_create_and_get_conversation(self, manager):
        created = manager.create_conversation("Thermodynamics")
        fetched = manager.get_conversation(created.conversation_id)

        assert fetched.title == "Thermodynamics"
        assert fetched.messages == []
        assert fetched.message_count == 0

    def test_get_conversation_with_messages(self, manager):
        conversation_id = manager.chat("Hello").conversation_id
        conversation = manager.get_conversation(conversation_id)

        assert conversation.message_count == 2
        assert [m.role for m in conversation.messages] == ["user", "assistant"]
        assert manager.get_conversation("conv_missing") is None

    def test_list_conversations(self, manager):
        first = manager.chat("First topic").conversation_id
        second = manager.chat("Second topic").conversation_id
        manager.chat("More on first", conversation_id=first)

        conversations, total = manager.list_conversations(limit=10)

        assert total == 2
        assert [c.conversation_id for c in conversations] == [first, second]
        assert conversations[0].message_count == 4

        page, total = manager.list_conversations(limit=1, offset=1)
        assert total == 2
        assert [c.conversation_id for c in page] == [second]

    def test_list_conversations_validation(self, manager):
        with pytest.raises(ValueError):
            manager.list_conversations(limit=0)

    def test_delete_conversation(self, manager, supabase):
        conversation_id = manager.chat("Hello").conversation_id

        assert manager.delete_conversation(conversation_id) is True
        assert supabase.tables["chat_messages"] == []
        assert manager.delete_conversation(conversation_id) is False
