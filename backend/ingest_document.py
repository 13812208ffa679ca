"""
Document Ingestion Script for the Study Assistant.

This script:
1. Stores the document metadata in Supabase
2. Extracts text from the PDF
3. Chunks the text into overlapping word windows
4. Generates embeddings using HuggingFace API
5. Stores everything in Supabase pgvector

Usage:
    python ingest_document.py notes.pdf --title "Linear Algebra" --subject Math
"""
import argparse
import sys
import logging
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from config import LOG_LEVEL
from logger import setup_logging
from services.chunking_engine import ChunkingEngine
from services.document_store import DocumentStore
from services.embedding_model import EmbeddingModel
from services.ingestion_pipeline import IngestionPipeline
from services.supabase_client import get_supabase_client
from services.text_extractor import TextExtractor
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ingest a PDF into the study assistant knowledge base")
    parser.add_argument("pdf", type=Path, help="Path to the PDF file")
    parser.add_argument("--title", required=True, help="Document title")
    parser.add_argument("--subject", required=True, help="Document subject, used as the retrieval category")
    parser.add_argument("--description", default=None, help="Optional description")
    parser.add_argument("--skip-warmup", action="store_true", help="Do not warm up the embedding model first")
    return parser


def main(argv=None) -> int:
    """Main ingestion process."""
    args = build_parser().parse_args(argv)
    setup_logging(LOG_LEVEL)

    try:
        logger.info("=" * 60)
        logger.info(f"Starting ingestion of {args.pdf}")
        logger.info("=" * 60)

        client = get_supabase_client()
        embedding_model = EmbeddingModel()

        if not args.skip_warmup:
            logger.info("Warming up embedding model...")
            logger.info("This may take 15-20 seconds on first run (HuggingFace free tier)...")
            embedding_model.warmup()

        pipeline = IngestionPipeline(
            document_store=DocumentStore(client=client),
            text_extractor=TextExtractor(),
            chunking_engine=ChunkingEngine(),
            embedding_model=embedding_model,
            vector_store=VectorStore(client=client)
        )

        result = pipeline.ingest(args.pdf, args.title, args.subject, args.description)

        logger.info("=" * 60)
        logger.info("INGESTION COMPLETE!")
        logger.info(f"Document ID: {result.document_id}")
        logger.info(f"Chunks stored: {result.chunks_processed}/{result.total_chunks}")
        for warning in result.warnings:
            logger.warning(warning)
        logger.info("=" * 60)
        return 0

    except KeyboardInterrupt:
        logger.warning("Ingestion interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Ingestion failed: {str(e)}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
