"""Document summaries and topic explanations."""
import logging

from config import (
    EXPLAIN_MAX_TOKENS,
    EXPLAIN_TEMPERATURE,
    SUMMARY_MAX_TOKENS,
    SUMMARY_TEMPERATURE,
    TUTOR_CONTENT_MAX_CHARS,
)
from errors import DocumentNotFoundError, EmptyDocumentError, EmptyInputError
from models.document import DocumentContent
from models.study import DocumentSummary, TopicExplanation
from services.document_store import DocumentStore
from services.llm_client import LLMClient

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = """You are an expert at summarizing educational documents.
Provide clear, concise summaries that capture the key points and concepts.
Format the summary in easy-to-read paragraphs."""

SUMMARY_PROMPT = """Please provide a concise summary of the following document titled "{title}" (Subject: {subject}):

{content}

Summary:"""

EXPLAIN_SYSTEM_PROMPT = """You are an expert educational tutor.
Explain concepts clearly and make them easy to understand.
Use examples and analogies when helpful."""

EXPLAIN_PROMPT = """Based on the following document about "{subject}":

{content}

Please explain: {topic}

Provide a clear, educational explanation with examples if applicable."""


class DocumentTutor:
    """Summarizes documents and explains topics from their stored chunks."""

    def __init__(
        self,
        llm_client: LLMClient,
        document_store: DocumentStore,
        max_content_chars: int = TUTOR_CONTENT_MAX_CHARS
    ):
        self.llm_client = llm_client
        self.document_store = document_store
        self.max_content_chars = max_content_chars

    def summarize_document(self, document_id: int, max_tokens: int = SUMMARY_MAX_TOKENS) -> DocumentSummary:
        """
        Summarize a document's text, rebuilt from its chunks in chunk-index order.

        Raises:
            DocumentNotFoundError: If no such document exists
            EmptyDocumentError: If the document has no stored chunks
            LLMClientError: If generation fails
        """
        logger.info(f"Summarizing document ID: {document_id}")
        document = self._load(document_id)
        content = self._truncate(document.content)

        llm_response = self.llm_client.generate(
            prompt=SUMMARY_PROMPT.format(title=document.title, subject=document.subject, content=content),
            system_prompt=SUMMARY_SYSTEM_PROMPT,
            max_tokens=max_tokens,
            temperature=SUMMARY_TEMPERATURE
        )
        logger.info(f"Summary generated ({len(llm_response.text)} characters)")

        return DocumentSummary(
            document_id=document.document_id,
            title=document.title,
            subject=document.subject,
            summary=llm_response.text,
            source_length=len(content)
        )

    def explain_topic(self, document_id: int, topic: str, max_tokens: int = EXPLAIN_MAX_TOKENS) -> TopicExplanation:
        """
        Explain a topic using a document's text as grounding.

        Raises:
            EmptyInputError: If the topic is blank
            DocumentNotFoundError: If no such document exists
            EmptyDocumentError: If the document has no stored chunks
            LLMClientError: If generation fails
        """
        if not topic or not topic.strip():
            raise EmptyInputError("Topic cannot be empty")
        topic = topic.strip()

        logger.info(f"Explaining topic '{topic[:100]}' from document ID: {document_id}")
        document = self._load(document_id)

        llm_response = self.llm_client.generate(
            prompt=EXPLAIN_PROMPT.format(
                subject=document.subject,
                content=self._truncate(document.content),
                topic=topic
            ),
            system_prompt=EXPLAIN_SYSTEM_PROMPT,
            max_tokens=max_tokens,
            temperature=EXPLAIN_TEMPERATURE
        )

        return TopicExplanation(
            document_id=document.document_id,
            title=document.title,
            topic=topic,
            explanation=llm_response.text
        )

    def _load(self, document_id: int) -> DocumentContent:
        documents = self.document_store.aggregate_content([document_id])
        if not documents:
            raise DocumentNotFoundError(f"Document {document_id} not found", {"document_id": document_id})

        document = documents[0]
        if not document.content.strip():
            raise EmptyDocumentError(
                f"No chunks found for document {document_id}",
                {"document_id": document_id}
            )
        return document

    def _truncate(self, content: str) -> str:
        if len(content) > self.max_content_chars:
            logger.info(f"Truncating document text from {len(content)} to {self.max_content_chars} characters")
            return content[:self.max_content_chars]
        return content
