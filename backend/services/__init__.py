"""Services for the Study Assistant RAG backend."""
from .sanitizer import sanitize
from .text_extractor import TextExtractor, ExtractionStrategy
from .chunking_engine import ChunkingEngine
from .embedding_model import EmbeddingModel, normalize_embedding
from .vector_store import VectorStore
from .document_store import DocumentStore
from .retrieval_engine import RetrievalEngine
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .conversation_manager import ConversationManager
from .quiz_generator import QuizGenerator, parse_quiz_response
from .document_tutor import DocumentTutor
from .ingestion_pipeline import IngestionPipeline

__all__ = [
    'sanitize',
    'TextExtractor',
    'ExtractionStrategy',
    'ChunkingEngine',
    'EmbeddingModel',
    'normalize_embedding',
    'VectorStore',
    'DocumentStore',
    'RetrievalEngine',
    'LLMClient',
    'LLMResponse',
    'LLMError',
    'LLMClientError',
    'ConversationManager',
    'QuizGenerator',
    'parse_quiz_response',
    'DocumentTutor',
    'IngestionPipeline',
]
