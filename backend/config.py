"""Configuration management for the Study Assistant RAG backend."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:8081"
).split(",")

# Model Configuration
EMBEDDING_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
EMBEDDING_DIMENSION = 384
EMBEDDING_MAX_CHARS = 512  # provider input limit, in characters
GENERATION_MODEL = "llama-3.1-8b-instant"
DEFAULT_TEMPERATURE = 0.7

# Extraction / Chunking Configuration
MAX_EXTRACT_PAGES = 100
CHUNK_SIZE = 500  # words
CHUNK_OVERLAP = 50  # words

# Retrieval Configuration
DEFAULT_TOP_K = 5

# Chat Configuration
CHAT_HISTORY_LIMIT = 20  # messages
CHAT_MAX_TOKENS = 2048

# Quiz Configuration
QUIZ_QUESTION_COUNT = 10
QUIZ_OPTION_COUNT = 4
QUIZ_MAX_TOKENS = 4000
QUIZ_CONTENT_MAX_CHARS = 12000

# Summary / Explanation Configuration
SUMMARY_MAX_TOKENS = 1000
SUMMARY_TEMPERATURE = 0.5
EXPLAIN_MAX_TOKENS = 1500
EXPLAIN_TEMPERATURE = 0.6
TUTOR_CONTENT_MAX_CHARS = 12000

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
