"""Conversation manager for multi-turn tutoring chat."""
import logging
import re
import threading
import uuid
import weakref
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from supabase import Client

from config import CHAT_HISTORY_LIMIT, CHAT_MAX_TOKENS, DEFAULT_TEMPERATURE
from errors import ConversationNotFoundError, DatastoreError, EmptyInputError
from models.conversation import ChatResult, Conversation, Message, USER_ROLE
from services.llm_client import LLMClient
from services.supabase_client import (
    embedded_count,
    first_row,
    get_supabase_client,
    parse_timestamp,
    rows,
)

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Conversation"
TITLE_MAX_CHARS = 60

DEFAULT_SYSTEM_PROMPT = """You are an expert AI tutor assistant helping students learn. Your responsibilities:

- Provide clear, accurate, and comprehensive explanations
- Break down complex concepts into simpler parts
- Answer questions directly and thoroughly
- Use examples and analogies when helpful
- Encourage deeper understanding through follow-up suggestions
- Be patient, supportive, and encouraging
- Maintain context from previous messages in this conversation
- Adapt your explanations to the student's apparent level of understanding

Remember: You're helping a student learn. Make sure your responses are educational and promote understanding."""


def generate_title(first_message: str) -> str:
    """First sentence of the message, at most 60 characters."""
    first_sentence = re.split(r"[.!?]", first_message or "", maxsplit=1)[0]
    title = first_sentence[:TITLE_MAX_CHARS].strip()
    return title or DEFAULT_TITLE


class ConversationManager:
    """
    Owns conversation state and runs chat turns against the LLM.

    A turn reads the bounded history, calls the model, and only then writes:
    the conversation (when new), the user message, the assistant message and
    the timestamp refresh are committed together by the ``commit_chat_turn``
    database function. A failed model call or commit leaves nothing behind.

    Messages carry an explicit per-conversation ``sequence_number``; history
    order never depends on wall-clock timestamps.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        client: Optional[Client] = None,
        history_limit: int = CHAT_HISTORY_LIMIT,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        max_tokens: int = CHAT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE
    ):
        """
        Initialize the conversation manager.

        Args:
            llm_client: Generation client
            client: Supabase client (created from environment settings if omitted)
            history_limit: Most recent messages included as context per turn
            system_prompt: Default tutoring persona
            max_tokens: Generation budget per reply
            temperature: Sampling temperature
        """
        if history_limit < 0:
            raise ValueError("history_limit cannot be negative")

        self.llm_client = llm_client
        self.client: Client = client if client is not None else get_supabase_client()
        self.history_limit = history_limit
        self.system_prompt = system_prompt
        self.max_tokens = max_tokens
        self.temperature = temperature

        # Entries vanish once no turn holds or waits on the lock
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

        logger.info("ConversationManager initialized with Supabase")

    def chat(
        self,
        message: str,
        conversation_id: Optional[str] = None,
        system_prompt: Optional[str] = None
    ) -> ChatResult:
        """
        Run one chat turn.

        Args:
            message: User message
            conversation_id: Existing conversation; a new one is created when omitted
            system_prompt: Overrides the default tutoring persona for this turn

        Returns:
            ChatResult with the conversation id, assistant message id and reply

        Raises:
            EmptyInputError: If the message is blank
            ConversationNotFoundError: If conversation_id does not exist
            LLMClientError: If generation fails (nothing is persisted)
            DatastoreError: If the commit fails (nothing is persisted)
        """
        if not message or not message.strip():
            raise EmptyInputError("Message cannot be empty")
        message = message.strip()

        if not conversation_id:
            new_id = self._generate_conversation_id()
            return self._run_turn(new_id, message, system_prompt, title=generate_title(message))

        # Turns on the same conversation are serialized so that history reads
        # and sequence numbers cannot interleave.
        with self._lock_for(conversation_id):
            if not self._conversation_exists(conversation_id):
                raise ConversationNotFoundError(
                    f"Conversation {conversation_id} not found",
                    {"conversation_id": conversation_id}
                )
            return self._run_turn(conversation_id, message, system_prompt, title=None)

    def _run_turn(
        self,
        conversation_id: str,
        message: str,
        system_prompt: Optional[str],
        title: Optional[str]
    ) -> ChatResult:
        is_new = title is not None
        history = [] if is_new else self.get_history(conversation_id, limit=self.history_limit)
        logger.info(f"Retrieved {len(history)} messages of context for conversation {conversation_id}")

        llm_response = self.llm_client.generate(
            prompt=message,
            messages=[{"role": m.role, "content": m.content} for m in history],
            system_prompt=system_prompt or self.system_prompt,
            max_tokens=self.max_tokens,
            temperature=self.temperature
        )

        try:
            response = self.client.rpc(
                "commit_chat_turn",
                {
                    "p_conversation_id": conversation_id,
                    "p_user_content": message,
                    "p_assistant_content": llm_response.text,
                    "p_title": title
                }
            ).execute()
        except Exception as e:
            error_msg = f"Failed to commit chat turn for conversation {conversation_id}: {str(e)}"
            logger.error(error_msg)
            raise DatastoreError(error_msg, {"conversation_id": conversation_id}) from e

        message_id = response.data
        if isinstance(message_id, list):
            message_id = message_id[0] if message_id else None
        if isinstance(message_id, dict):
            message_id = next(iter(message_id.values()), None)
        if message_id is None:
            raise DatastoreError(f"Chat turn commit for {conversation_id} returned no message id")

        if is_new:
            logger.info(f"Created new conversation: {conversation_id}")
        logger.info(f"Response generated successfully ({len(llm_response.text)} chars)")

        return ChatResult(
            conversation_id=conversation_id,
            message_id=int(message_id),
            response=llm_response.text,
            is_new_conversation=is_new
        )

    def create_conversation(self, title: Optional[str] = None) -> Conversation:
        """Create an empty conversation explicitly."""
        conversation_id = self._generate_conversation_id()
        now = datetime.now(timezone.utc)
        record = {
            "conversation_id": conversation_id,
            "title": (title or "").strip()[:255] or DEFAULT_TITLE,
            "created_at": now.isoformat(),
            "updated_at": now.isoformat()
        }

        try:
            response = self.client.table("conversations").insert(record).execute()
        except Exception as e:
            logger.error(f"Error creating conversation: {e}")
            raise DatastoreError(f"Failed to create conversation: {str(e)}") from e

        row = first_row(response.data) or record
        logger.info(f"Created new conversation: {conversation_id}")
        return self._to_conversation(row)

    def get_history(self, conversation_id: str, limit: Optional[int] = None) -> List[Message]:
        """
        Messages of a conversation in turn order.

        Args:
            conversation_id: ID of the conversation
            limit: Keep only the most recent ``limit`` messages

        Returns:
            Messages ordered by sequence number, oldest first
        """
        query = (
            self.client.table("chat_messages")
            .select("*")
            .eq("conversation_id", conversation_id)
        )

        if limit is not None:
            if limit == 0:
                return []
            result = query.order("sequence_number", desc=True).limit(limit).execute()
            message_rows = list(reversed(rows(result)))
        else:
            result = query.order("sequence_number", desc=False).execute()
            message_rows = rows(result)

        return [self._to_message(row) for row in message_rows]

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """Conversation metadata with every message, or None."""
        result = (
            self.client.table("conversations")
            .select("*")
            .eq("conversation_id", conversation_id)
            .execute()
        )
        row = first_row(result.data)
        if row is None:
            return None

        conversation = self._to_conversation(row)
        conversation.messages = self.get_history(conversation_id)
        conversation.message_count = len(conversation.messages)
        return conversation

    def list_conversations(self, limit: int = 20, offset: int = 0) -> Tuple[List[Conversation], int]:
        """
        Conversations, most recently updated first.

        Returns:
            (page of conversations, total number of conversations)
        """
        if limit <= 0 or offset < 0:
            raise ValueError("limit must be positive and offset non-negative")

        result = (
            self.client.table("conversations")
            .select("*, chat_messages(count)", count="exact")
            .order("updated_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        conversations = [self._to_conversation(row) for row in rows(result)]
        total = result.count if result.count is not None else len(conversations)
        return conversations, total

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation and its messages. Returns False if it did not exist."""
        result = (
            self.client.table("conversations")
            .delete()
            .eq("conversation_id", conversation_id)
            .execute()
        )
        deleted = bool(rows(result))
        if deleted:
            logger.info(f"Deleted conversation {conversation_id}")
        with self._locks_guard:
            self._locks.pop(conversation_id, None)
        return deleted

    def _conversation_exists(self, conversation_id: str) -> bool:
        result = (
            self.client.table("conversations")
            .select("conversation_id")
            .eq("conversation_id", conversation_id)
            .execute()
        )
        return bool(rows(result))

    def _lock_for(self, conversation_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(conversation_id)
            if lock is None:
                lock = self._locks[conversation_id] = threading.Lock()
            return lock

    def _generate_conversation_id(self) -> str:
        """
        Generate a unique conversation ID.

        Returns:
            Unique conversation ID string
        """
        return f"conv_{uuid.uuid4().hex[:12]}"

    @staticmethod
    def _to_message(row: dict) -> Message:
        return Message(
            conversation_id=row["conversation_id"],
            role=row.get("role", USER_ROLE),
            content=row["content"],
            sequence_number=row["sequence_number"],
            message_id=row.get("id"),
            created_at=parse_timestamp(row.get("created_at"))
        )

    @staticmethod
    def _to_conversation(row: dict) -> Conversation:
        return Conversation(
            conversation_id=row["conversation_id"],
            title=row.get("title") or DEFAULT_TITLE,
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
            message_count=embedded_count(row, "chat_messages")
        )
