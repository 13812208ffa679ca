"""Data models for the Study Assistant RAG backend."""
from .document import Document, DocumentContent, IngestionResult
from .chunk import Chunk, ScoredChunk
from .conversation import Conversation, Message, ChatResult, USER_ROLE, ASSISTANT_ROLE
from .quiz import QuizQuestion, GeneratedQuiz
from .study import DocumentSummary, TopicExplanation

__all__ = [
    "Document",
    "DocumentContent",
    "IngestionResult",
    "Chunk",
    "ScoredChunk",
    "Conversation",
    "Message",
    "ChatResult",
    "USER_ROLE",
    "ASSISTANT_ROLE",
    "QuizQuestion",
    "GeneratedQuiz",
    "DocumentSummary",
    "TopicExplanation",
]
