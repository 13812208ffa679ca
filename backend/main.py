"""Main entry point for the Study Assistant RAG API."""
import logging
import shutil
import uuid
from pathlib import Path
from typing import Optional
from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import CORS_ORIGINS, LOG_LEVEL, PORT, UPLOAD_DIR
from errors import (
    AllChunksFailedError,
    ConfigurationError,
    ConversationNotFoundError,
    DocumentNotFoundError,
    EmbeddingProviderError,
    EmptyDocumentError,
    EmptyInputError,
    ExtractionFailedError,
    InvalidQuestionError,
    NoChunksGeneratedError,
    NoDocumentsFoundError,
    NoTextExtractedError,
    QuizParseError,
    RAGPipelineError,
    UnexpectedResponseFormatError,
    WrongQuestionCountError,
)
from logger import setup_logging
from models.api import (
    ChatRequest,
    ChatResponse,
    ContextItem,
    ConversationListResponse,
    ConversationResponse,
    DocumentResponse,
    ExplainRequest,
    ExplanationResponse,
    IngestionResponse,
    MessageResponse,
    QueryRequest,
    QueryResponse,
    QuizListResponse,
    QuizQuestionResponse,
    QuizRequest,
    QuizResponse,
    QuizSummaryResponse,
    SummaryRequest,
    SummaryResponse,
)
from models.conversation import Conversation
from models.quiz import GeneratedQuiz
from services.chunking_engine import ChunkingEngine
from services.conversation_manager import ConversationManager
from services.document_store import DocumentStore
from services.document_tutor import DocumentTutor
from services.embedding_model import EmbeddingModel
from services.ingestion_pipeline import IngestionPipeline
from services.llm_client import LLMClient, LLMClientError
from services.quiz_generator import QuizGenerator
from services.retrieval_engine import RetrievalEngine
from services.supabase_client import get_supabase_client
from services.text_extractor import TextExtractor
from services.vector_store import VectorStore

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Study Assistant RAG API",
    description="Document ingestion, retrieval, tutoring chat and quiz generation",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
document_store: DocumentStore = None
ingestion_pipeline: IngestionPipeline = None
retrieval_engine: RetrievalEngine = None
conversation_manager: ConversationManager = None
quiz_generator: QuizGenerator = None
document_tutor: DocumentTutor = None

_STATUS_BY_ERROR = [
    (DocumentNotFoundError, 404),
    (EmptyDocumentError, 404),
    (ConversationNotFoundError, 404),
    (NoDocumentsFoundError, 404),
    (EmptyInputError, 400),
    ((QuizParseError, WrongQuestionCountError, InvalidQuestionError, UnexpectedResponseFormatError), 502),
    ((NoTextExtractedError, NoChunksGeneratedError, ExtractionFailedError), 422),
    ((AllChunksFailedError, EmbeddingProviderError), 502),
    (ConfigurationError, 500),
]


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global document_store, ingestion_pipeline, retrieval_engine
    global conversation_manager, quiz_generator, document_tutor

    setup_logging(LOG_LEVEL)
    logger.info("Initializing Study Assistant RAG services...")

    try:
        client = get_supabase_client()

        embedding_model = EmbeddingModel()
        vector_store = VectorStore(client=client)
        document_store = DocumentStore(client=client)
        retrieval_engine = RetrievalEngine(vector_store, embedding_model)

        ingestion_pipeline = IngestionPipeline(
            document_store=document_store,
            text_extractor=TextExtractor(),
            chunking_engine=ChunkingEngine(),
            embedding_model=embedding_model,
            vector_store=vector_store
        )

        llm_client = LLMClient()
        conversation_manager = ConversationManager(llm_client, client=client)
        quiz_generator = QuizGenerator(llm_client, document_store, client=client)
        document_tutor = DocumentTutor(llm_client, document_store)

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.exception_handler(RAGPipelineError)
async def pipeline_error_handler(request, exc: RAGPipelineError):
    """Structured error body; no stack traces leave the process."""
    status_code = 500
    for error_types, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_types):
            status_code = code
            break
    logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"error": exc.to_dict()})


@app.exception_handler(LLMClientError)
async def llm_error_handler(request, exc: LLMClientError):
    logger.error(f"LLM client error on {request.url.path}: {exc.error.message}")
    return JSONResponse(
        status_code=503,
        content={
            "error": {
                "code": exc.error.code,
                "message": exc.error.message,
                "details": exc.error.details
            }
        }
    )


@app.exception_handler(ValueError)
async def value_error_handler(request, exc: ValueError):
    return JSONResponse(
        status_code=400,
        content={"error": {"code": "INVALID_REQUEST", "message": str(exc), "details": {}}}
    )


@app.get("/health")
async def health():
    """Health check."""
    return {
        "status": "healthy",
        "service": "study-assistant-rag",
        "version": "1.0.0"
    }


@app.post("/documents", response_model=IngestionResponse)
def upload_document(
    pdf: UploadFile = File(...),
    title: str = Form(...),
    subject: str = Form(...),
    description: Optional[str] = Form(None)
) -> IngestionResponse:
    """Upload a PDF and index it for retrieval."""
    filename = pdf.filename or "upload.pdf"
    if not (filename.lower().endswith(".pdf") or pdf.content_type in ("application/pdf", "application/x-pdf")):
        raise HTTPException(status_code=400, detail=f"Only PDF files are allowed (received {pdf.content_type})")
    if not title.strip() or not subject.strip():
        raise HTTPException(status_code=400, detail="Title and subject are required")

    upload_dir = Path(UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    file_path = upload_dir / f"{uuid.uuid4().hex}.pdf"

    with file_path.open("wb") as out:
        shutil.copyfileobj(pdf.file, out)
    logger.info(f"File received: {filename} -> {file_path}")

    result = ingestion_pipeline.ingest(file_path, title, subject, description)

    return IngestionResponse(
        document_id=result.document_id,
        chunks_processed=result.chunks_processed,
        total_chunks=result.total_chunks,
        message=(
            f"Document uploaded and vectorized successfully "
            f"({result.chunks_processed}/{result.total_chunks} chunks processed)"
        ),
        warnings=result.warnings
    )


@app.get("/documents", response_model=list[DocumentResponse])
def list_documents():
    return [
        DocumentResponse(
            document_id=document.document_id,
            title=document.title,
            subject=document.subject,
            description=document.description,
            uploaded_at=document.uploaded_at,
            chunk_count=document.chunk_count
        )
        for document in document_store.list_documents()
    ]


@app.delete("/documents/{document_id}")
def delete_document(document_id: int):
    document_store.delete_document(document_id)
    return {"success": True, "message": "Document deleted successfully"}


@app.post("/documents/{document_id}/summary", response_model=SummaryResponse)
def summarize_document(document_id: int, request: Optional[SummaryRequest] = None) -> SummaryResponse:
    """Summarize a stored document. The body is optional."""
    request = request or SummaryRequest()
    summary = document_tutor.summarize_document(document_id, max_tokens=request.max_tokens)
    return SummaryResponse(
        document_id=summary.document_id,
        title=summary.title,
        subject=summary.subject,
        summary=summary.summary,
        source_length=summary.source_length
    )


@app.post("/documents/{document_id}/explain", response_model=ExplanationResponse)
def explain_topic(document_id: int, request: ExplainRequest) -> ExplanationResponse:
    """Explain a topic using a stored document as grounding."""
    explanation = document_tutor.explain_topic(document_id, request.topic, max_tokens=request.max_tokens)
    return ExplanationResponse(
        document_id=explanation.document_id,
        title=explanation.title,
        topic=explanation.topic,
        explanation=explanation.explanation
    )


@app.get("/documents/{document_id}/quizzes", response_model=QuizListResponse)
def list_document_quizzes(document_id: int) -> QuizListResponse:
    quizzes = quiz_generator.list_quizzes_for_document(document_id)
    return QuizListResponse(
        document_id=document_id,
        quizzes=[
            QuizSummaryResponse(
                quiz_id=quiz.quiz_id,
                document_ids=quiz.document_ids,
                title=quiz.title,
                subject=quiz.subject,
                created_at=quiz.created_at
            )
            for quiz in quizzes
        ]
    )


@app.post("/query", response_model=QueryResponse)
def query_documents(request: QueryRequest) -> QueryResponse:
    """Rank stored chunks against a free-text query."""
    if not request.query.strip():
        raise HTTPException(status_code=400, detail="Query is required")

    logger.info(f"Processing query: {request.query[:100]} (top_k: {request.top_k})")
    chunks = retrieval_engine.retrieve(request.query, top_k=request.top_k, category=request.subject)

    return QueryResponse(
        query=request.query,
        context=[
            ContextItem(
                text=chunk.text,
                document_title=chunk.document_title,
                document_subject=chunk.document_subject,
                similarity=chunk.similarity
            )
            for chunk in chunks
        ],
        results_count=len(chunks)
    )


@app.post("/chat", response_model=ChatResponse, status_code=201)
def chat(request: ChatRequest) -> ChatResponse:
    """Send a message, creating the conversation when no id is given."""
    result = conversation_manager.chat(
        request.message,
        conversation_id=request.conversation_id,
        system_prompt=request.system_prompt
    )
    return ChatResponse(
        conversation_id=result.conversation_id,
        message_id=result.message_id,
        message=result.response,
        is_new_conversation=result.is_new_conversation
    )


@app.get("/chat", response_model=ConversationListResponse)
def list_conversations(limit: int = 20, offset: int = 0) -> ConversationListResponse:
    if limit <= 0 or offset < 0:
        raise HTTPException(status_code=400, detail="limit must be positive and offset non-negative")
    conversations, total = conversation_manager.list_conversations(limit=limit, offset=offset)
    return ConversationListResponse(
        conversations=[_conversation_response(c) for c in conversations],
        total=total
    )


@app.get("/chat/{conversation_id}", response_model=ConversationResponse)
def get_conversation(conversation_id: str) -> ConversationResponse:
    conversation = conversation_manager.get_conversation(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail=f"Conversation {conversation_id} not found")
    return _conversation_response(conversation)


@app.delete("/chat/{conversation_id}")
def delete_conversation(conversation_id: str):
    if not conversation_manager.delete_conversation(conversation_id):
        raise HTTPException(status_code=404, detail=f"Conversation {conversation_id} not found")
    return {"success": True, "message": "Conversation deleted successfully"}


@app.post("/quizzes", response_model=QuizResponse, status_code=201)
def create_quiz(request: QuizRequest) -> QuizResponse:
    """Generate a 10-question quiz from the given documents."""
    quiz = quiz_generator.generate(request.document_ids, title=request.title)
    return _quiz_response(quiz)


@app.get("/quizzes/{quiz_id}", response_model=QuizResponse)
def get_quiz(quiz_id: int) -> QuizResponse:
    quiz = quiz_generator.get_quiz(quiz_id)
    if quiz is None:
        raise HTTPException(status_code=404, detail=f"Quiz {quiz_id} not found")
    return _quiz_response(quiz)


@app.delete("/quizzes/{quiz_id}")
def delete_quiz(quiz_id: int):
    if not quiz_generator.delete_quiz(quiz_id):
        raise HTTPException(status_code=404, detail=f"Quiz {quiz_id} not found")
    return {"success": True, "message": f"Quiz {quiz_id} deleted successfully"}


def _conversation_response(conversation: Conversation) -> ConversationResponse:
    return ConversationResponse(
        conversation_id=conversation.conversation_id,
        title=conversation.title,
        message_count=conversation.message_count,
        created_at=conversation.created_at,
        updated_at=conversation.updated_at,
        messages=[
            MessageResponse(
                message_id=message.message_id,
                sequence_number=message.sequence_number,
                role=message.role,
                content=message.content,
                created_at=message.created_at
            )
            for message in conversation.messages
        ]
    )


def _quiz_response(quiz: GeneratedQuiz) -> QuizResponse:
    return QuizResponse(
        quiz_id=quiz.quiz_id,
        document_ids=quiz.document_ids,
        title=quiz.title,
        subject=quiz.subject,
        created_at=quiz.created_at,
        questions=[
            QuizQuestionResponse(
                question=question.question,
                options=question.options,
                correct_answer=question.correct_answer,
                explanation=question.explanation
            )
            for question in quiz.questions
        ]
    )


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Study Assistant RAG API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
