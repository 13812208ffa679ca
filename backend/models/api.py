"""Request and response schemas for the HTTP API."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from config import DEFAULT_TOP_K, EXPLAIN_MAX_TOKENS, SUMMARY_MAX_TOKENS


class IngestionResponse(BaseModel):
    document_id: int
    chunks_processed: int
    total_chunks: int
    message: str
    warnings: List[str] = Field(default_factory=list)


class DocumentResponse(BaseModel):
    document_id: int
    title: str
    subject: str
    description: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    chunk_count: int = 0


class QueryRequest(BaseModel):
    query: str = Field(..., min_length=1)
    subject: Optional[str] = None
    top_k: int = Field(DEFAULT_TOP_K, ge=1, le=50)


class ContextItem(BaseModel):
    text: str
    document_title: str
    document_subject: str
    similarity: float


class QueryResponse(BaseModel):
    query: str
    context: List[ContextItem]
    results_count: int


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    conversation_id: Optional[str] = None
    system_prompt: Optional[str] = None


class ChatResponse(BaseModel):
    conversation_id: str
    message_id: int
    message: str
    is_new_conversation: bool


class MessageResponse(BaseModel):
    message_id: Optional[int] = None
    sequence_number: int
    role: str
    content: str
    created_at: Optional[datetime] = None


class ConversationResponse(BaseModel):
    conversation_id: str
    title: str
    message_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    messages: List[MessageResponse] = Field(default_factory=list)


class ConversationListResponse(BaseModel):
    conversations: List[ConversationResponse]
    total: int


class QuizRequest(BaseModel):
    document_ids: List[int] = Field(..., min_length=1)
    title: Optional[str] = None


class QuizQuestionResponse(BaseModel):
    question: str
    options: List[str]
    correct_answer: int
    explanation: Optional[str] = None


class QuizResponse(BaseModel):
    quiz_id: int
    document_ids: List[int]
    title: str
    subject: str
    created_at: Optional[datetime] = None
    questions: List[QuizQuestionResponse]


class QuizSummaryResponse(BaseModel):
    quiz_id: int
    document_ids: List[int]
    title: str
    subject: str
    created_at: Optional[datetime] = None


class QuizListResponse(BaseModel):
    document_id: int
    quizzes: List[QuizSummaryResponse]


class SummaryRequest(BaseModel):
    max_tokens: int = Field(SUMMARY_MAX_TOKENS, ge=1, le=8192)


class SummaryResponse(BaseModel):
    document_id: int
    title: str
    subject: str
    summary: str
    source_length: int


class ExplainRequest(BaseModel):
    topic: str = Field(..., min_length=1)
    max_tokens: int = Field(EXPLAIN_MAX_TOKENS, ge=1, le=8192)


class ExplanationResponse(BaseModel):
    document_id: int
    title: str
    topic: str
    explanation: str
