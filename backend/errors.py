"""Error taxonomy for the ingestion, retrieval and generation pipeline."""
from typing import Any, Dict, Optional


class RAGPipelineError(Exception):
    """Base error with a machine-readable code and structured details."""

    code = "PIPELINE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for API error bodies."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(RAGPipelineError, ValueError):
    """A required credential or setting is missing. Never retried."""

    code = "CONFIGURATION_ERROR"


class DatastoreError(RAGPipelineError):
    code = "DATASTORE_ERROR"


# Ingestion

class EmptyInputError(RAGPipelineError):
    code = "EMPTY_INPUT"


class ExtractionFailedError(RAGPipelineError):
    """Every text extraction strategy failed or produced nothing."""

    code = "EXTRACTION_FAILED"


class NoTextExtractedError(RAGPipelineError):
    code = "NO_TEXT_EXTRACTED"


class NoChunksGeneratedError(RAGPipelineError):
    code = "NO_CHUNKS_GENERATED"


class AllChunksFailedError(RAGPipelineError):
    code = "ALL_CHUNKS_FAILED"


# Embedding provider

class UnexpectedResponseFormatError(RAGPipelineError):
    code = "UNEXPECTED_RESPONSE_FORMAT"


class EmbeddingProviderError(RAGPipelineError):
    """Auth, rate limit, HTTP or network failure from the embedding provider."""

    code = "EMBEDDING_PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        details = dict(details or {})
        if status_code is not None:
            details.setdefault("status_code", status_code)
        super().__init__(message, details)


# Lookups

class DocumentNotFoundError(RAGPipelineError):
    code = "DOCUMENT_NOT_FOUND"


class ConversationNotFoundError(RAGPipelineError):
    code = "CONVERSATION_NOT_FOUND"


class EmptyDocumentError(RAGPipelineError):
    """The document exists but has no stored chunks to work from."""

    code = "EMPTY_DOCUMENT"


# Quiz generation

class NoDocumentsFoundError(RAGPipelineError):
    code = "NO_DOCUMENTS_FOUND"


class QuizParseError(ExtractionFailedError):
    """No JSON array could be recovered from the model output."""

    code = "QUIZ_PARSE_ERROR"


class InvalidQuestionError(RAGPipelineError):
    code = "INVALID_QUESTION"


class InvalidCorrectAnswerError(InvalidQuestionError):
    code = "INVALID_CORRECT_ANSWER"


class WrongQuestionCountError(RAGPipelineError):
    code = "WRONG_QUESTION_COUNT"
