"""Summary and explanation data models."""
from dataclasses import dataclass


@dataclass
class DocumentSummary:
    """LLM summary of one document's full text."""
    document_id: int
    title: str
    subject: str
    summary: str
    source_length: int  # characters of document text sent to the model


@dataclass
class TopicExplanation:
    """LLM explanation of a topic, grounded in one document."""
    document_id: int
    title: str
    topic: str
    explanation: str
