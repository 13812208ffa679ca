"""Generated quiz data models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class QuizQuestion:
    """One validated multiple-choice question."""
    question: str
    options: List[str]
    correct_answer: int  # 0-based index into options
    explanation: Optional[str] = None

    def to_record(self) -> dict:
        return {
            "question": self.question,
            "options": list(self.options),
            "correct_answer": self.correct_answer,
            "explanation": self.explanation,
        }


@dataclass
class GeneratedQuiz:
    """A quiz generated from one or more documents."""
    document_ids: List[int]
    title: str
    subject: str
    questions: List[QuizQuestion] = field(default_factory=list)
    quiz_id: Optional[int] = None
    created_at: Optional[datetime] = None
