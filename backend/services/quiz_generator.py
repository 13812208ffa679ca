"""Quiz generation from uploaded documents."""
import json
import logging
import re
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple
from supabase import Client

from config import (
    DEFAULT_TEMPERATURE,
    QUIZ_CONTENT_MAX_CHARS,
    QUIZ_MAX_TOKENS,
    QUIZ_OPTION_COUNT,
    QUIZ_QUESTION_COUNT,
)
from errors import (
    DatastoreError,
    InvalidCorrectAnswerError,
    InvalidQuestionError,
    NoDocumentsFoundError,
    QuizParseError,
    WrongQuestionCountError,
)
from models.document import DocumentContent
from models.quiz import GeneratedQuiz, QuizQuestion
from services.document_store import DocumentStore
from services.llm_client import LLMClient
from services.supabase_client import first_row, get_supabase_client, parse_timestamp, rows

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)
_JSON_ARRAY = re.compile(r"\[\s*\{[\s\S]*\}\s*\]")

SYSTEM_PROMPT = """You are an expert educational quiz creator. Your task is to generate high-quality multiple-choice questions based on the provided document content.

CRITICAL INSTRUCTIONS:
1. Generate EXACTLY {count} questions
2. Each question must have EXACTLY {options} options
3. correctAnswer MUST be 0, 1, 2, or 3 (the INDEX of the correct option, starting from 0)
4. Only return a valid JSON array, no markdown, no extra text
5. Each question object must have these exact fields:
   - question (string): the question text
   - options (array of {options} strings): the answer choices
   - correctAnswer (integer 0-3): which option is correct (0 for first option, 1 for second, etc.)
   - explanation (string): why this answer is correct

NEVER use correctAnswer values like 1-4 or 4+. ALWAYS use 0-3."""

USER_PROMPT = """Based on the following educational content about "{titles}", create {count} multiple-choice questions with {options} options each:

CONTENT:
{content}

Return ONLY a valid JSON array with no additional text:
[
  {{
    "question": "What is...?",
    "options": ["First option", "Second option", "Third option", "Fourth option"],
    "correctAnswer": 0,
    "explanation": "Explanation of why the first option is correct..."
  }},
  ...
]

REMEMBER: correctAnswer must be 0, 1, 2, or 3 only!"""


def strip_code_fences(raw: str) -> str:
    """Remove markdown code fence markers left around model output."""
    return _CODE_FENCE.sub("", raw or "").strip()


def _normalize_correct_answer(value: Any, index: int, option_count: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidCorrectAnswerError(
            f"Question {index}: correctAnswer must be a number, got {value!r}",
            {"question_index": index, "correct_answer": value}
        )
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidCorrectAnswerError(
                f"Question {index}: correctAnswer must be a whole number, got {value}",
                {"question_index": index, "correct_answer": value}
            )
        value = int(value)

    if 0 <= value < option_count:
        return value

    # Models sometimes answer with 1-based indexes
    if 1 <= value <= option_count:
        logger.warning(f"Question {index}: corrected correctAnswer from {value} to {value - 1}")
        return value - 1

    raise InvalidCorrectAnswerError(
        f"Question {index}: correctAnswer must be 0-{option_count - 1}, got {value}",
        {"question_index": index, "correct_answer": value}
    )


def validate_question(item: Any, index: int, option_count: int = QUIZ_OPTION_COUNT) -> QuizQuestion:
    """
    Validate one parsed question and build a QuizQuestion.

    Raises:
        InvalidQuestionError: Missing/invalid question text, options or explanation
        InvalidCorrectAnswerError: correctAnswer not repairable into range
    """
    if not isinstance(item, dict):
        raise InvalidQuestionError(f"Question {index}: expected an object", {"question_index": index})

    question = item.get("question")
    if not isinstance(question, str) or not question.strip():
        raise InvalidQuestionError(f"Question {index}: Invalid question text", {"question_index": index})

    options = item.get("options")
    if (
        not isinstance(options, list)
        or len(options) != option_count
        or not all(isinstance(option, str) for option in options)
    ):
        raise InvalidQuestionError(
            f"Question {index}: Must have exactly {option_count} string options",
            {"question_index": index}
        )

    raw_answer = item.get("correctAnswer", item.get("correct_answer"))
    correct_answer = _normalize_correct_answer(raw_answer, index, option_count)

    explanation = item.get("explanation")
    if not isinstance(explanation, str) or not explanation.strip():
        raise InvalidQuestionError(f"Question {index}: Missing explanation", {"question_index": index})

    return QuizQuestion(
        question=question.strip(),
        options=[option.strip() for option in options],
        correct_answer=correct_answer,
        explanation=explanation.strip()
    )


def parse_quiz_response(
    raw: str,
    expected_count: int = QUIZ_QUESTION_COUNT,
    option_count: int = QUIZ_OPTION_COUNT
) -> List[QuizQuestion]:
    """
    Tolerant parse, strict validation of a model's quiz output.

    Code fences are stripped and the first JSON-array-shaped substring is
    decoded. The batch must hold exactly ``expected_count`` questions and
    every question must validate; nothing partial is ever returned.

    Raises:
        QuizParseError: No JSON array found, or it is not valid JSON
        WrongQuestionCountError: Question count differs from expected_count
        InvalidQuestionError, InvalidCorrectAnswerError: A question fails validation
    """
    cleaned = strip_code_fences(raw)
    match = _JSON_ARRAY.search(cleaned)
    if not match:
        logger.error(f"No JSON array in LLM response: {raw[:500]!r}")
        raise QuizParseError("Failed to extract valid JSON from LLM response")

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in LLM response: {e}")
        raise QuizParseError(f"Failed to parse quiz questions: {e}") from e

    if not isinstance(parsed, list):
        raise QuizParseError("Quiz response is not a JSON array")

    if len(parsed) != expected_count:
        raise WrongQuestionCountError(
            f"Expected {expected_count} questions, got {len(parsed)}",
            {"expected": expected_count, "received": len(parsed)}
        )

    return [validate_question(item, index, option_count) for index, item in enumerate(parsed)]


class QuizGenerator:
    """Builds, validates and stores multiple-choice quizzes from documents."""

    def __init__(
        self,
        llm_client: LLMClient,
        document_store: DocumentStore,
        client: Optional[Client] = None,
        question_count: int = QUIZ_QUESTION_COUNT,
        option_count: int = QUIZ_OPTION_COUNT,
        max_content_chars: int = QUIZ_CONTENT_MAX_CHARS,
        max_tokens: int = QUIZ_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE
    ):
        self.llm_client = llm_client
        self.document_store = document_store
        self.client: Client = client if client is not None else get_supabase_client()
        self.question_count = question_count
        self.option_count = option_count
        self.max_content_chars = max_content_chars
        self.max_tokens = max_tokens
        self.temperature = temperature

    def generate(self, document_ids: Sequence[int], title: Optional[str] = None) -> GeneratedQuiz:
        """
        Generate and store a quiz for the given documents.

        Args:
            document_ids: Source documents
            title: Optional quiz title (defaults to "Quiz: <document titles>")

        Returns:
            The stored quiz, with quiz_id set

        Raises:
            NoDocumentsFoundError: If none of the ids match a document
            LLMClientError: If generation fails
            QuizParseError, WrongQuestionCountError, InvalidQuestionError,
            InvalidCorrectAnswerError: If the output fails validation
            DatastoreError: If the quiz could not be stored
        """
        document_ids = list(dict.fromkeys(document_ids or []))
        if not document_ids:
            raise NoDocumentsFoundError("No document IDs provided")

        logger.info(f"Starting quiz generation for documents: {document_ids}")
        documents = self.document_store.aggregate_content(document_ids)
        if not documents:
            raise NoDocumentsFoundError(
                f"No documents found for IDs: {', '.join(str(i) for i in document_ids)}",
                {"document_ids": document_ids}
            )
        logger.info(f"Fetched {len(documents)} documents")

        titles = ", ".join(document.title for document in documents)
        content = self.build_content(documents)

        llm_response = self.llm_client.generate(
            prompt=USER_PROMPT.format(
                titles=titles,
                count=self.question_count,
                options=self.option_count,
                content=content
            ),
            system_prompt=SYSTEM_PROMPT.format(count=self.question_count, options=self.option_count),
            max_tokens=self.max_tokens,
            temperature=self.temperature
        )

        questions = parse_quiz_response(llm_response.text, self.question_count, self.option_count)
        logger.info(f"Generated {len(questions)} questions")

        quiz = GeneratedQuiz(
            document_ids=[document.document_id for document in documents],
            title=(title or "").strip() or f"Quiz: {titles}",
            subject=documents[0].subject,
            questions=questions
        )
        quiz.quiz_id, quiz.created_at = self._store(quiz)
        logger.info(f"Quiz stored with ID: {quiz.quiz_id}")
        return quiz

    def build_content(self, documents: List[DocumentContent]) -> str:
        """Concatenate document contents and truncate to the prompt budget."""
        combined = "\n\n---\n\n".join(
            f"Document: {document.title}\nSubject: {document.subject}\n\n{document.content}"
            for document in documents
        )
        if len(combined) > self.max_content_chars:
            logger.info(f"Truncating quiz content from {len(combined)} to {self.max_content_chars} characters")
            combined = combined[:self.max_content_chars]
        return combined

    def _store(self, quiz: GeneratedQuiz) -> Tuple[int, Optional[datetime]]:
        """Insert the quiz and its questions as one transaction; returns (id, created_at)."""
        try:
            response = self.client.rpc(
                "create_generated_quiz",
                {
                    "p_document_ids": quiz.document_ids,
                    "p_title": quiz.title,
                    "p_subject": quiz.subject,
                    "p_questions": [question.to_record() for question in quiz.questions]
                }
            ).execute()
        except Exception as e:
            error_msg = f"Failed to store quiz '{quiz.title}': {str(e)}"
            logger.error(error_msg)
            raise DatastoreError(error_msg) from e

        row = first_row(response.data)
        if not row or row.get("id") is None:
            raise DatastoreError(f"Quiz insert for '{quiz.title}' returned no id")
        return int(row["id"]), parse_timestamp(row.get("created_at"))

    def get_quiz(self, quiz_id: int) -> Optional[GeneratedQuiz]:
        """A stored quiz with its questions in presentation order, or None."""
        quiz_result = self.client.table("generated_quizzes").select("*").eq("id", quiz_id).execute()
        row = first_row(quiz_result.data)
        if row is None:
            return None

        questions_result = (
            self.client.table("quiz_questions")
            .select("*")
            .eq("quiz_id", quiz_id)
            .order("question_order", desc=False)
            .execute()
        )

        return GeneratedQuiz(
            document_ids=list(row.get("document_ids") or []),
            title=row["title"],
            subject=row["subject"],
            quiz_id=row["id"],
            created_at=parse_timestamp(row.get("created_at")),
            questions=[
                QuizQuestion(
                    question=q["question_text"],
                    options=q["options"] if isinstance(q["options"], list) else json.loads(q["options"]),
                    correct_answer=q["correct_answer"],
                    explanation=q.get("explanation")
                )
                for q in rows(questions_result)
            ]
        )

    def list_quizzes_for_document(self, document_id: int) -> List[GeneratedQuiz]:
        """Quizzes generated from a document, newest first. Questions are not loaded."""
        result = (
            self.client.table("generated_quizzes")
            .select("id, document_ids, title, subject, created_at")
            .contains("document_ids", [document_id])
            .order("created_at", desc=True)
            .execute()
        )
        return [
            GeneratedQuiz(
                document_ids=list(row.get("document_ids") or []),
                title=row["title"],
                subject=row["subject"],
                quiz_id=row["id"],
                created_at=parse_timestamp(row.get("created_at"))
            )
            for row in rows(result)
        ]

    def delete_quiz(self, quiz_id: int) -> bool:
        """
        Delete a quiz; its questions go with it (ON DELETE CASCADE).

        Returns:
            False if no such quiz existed
        """
        result = self.client.table("generated_quizzes").delete().eq("id", quiz_id).execute()
        deleted = bool(rows(result))
        if deleted:
            logger.info(f"Deleted quiz {quiz_id}")
        return deleted
