"""Shared fixtures for the backend test suite."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest

from fake_supabase import FakeSupabase


@pytest.fixture
def supabase():
    """Fresh in-memory Supabase client."""
    return FakeSupabase()


@pytest.fixture
def make_pdf(tmp_path):
    """Write a small text PDF with one page per entry in ``pages``."""
    import fitz  # PyMuPDF

    def _make(pages, name="notes.pdf"):
        path = tmp_path / name
        pdf_document = fitz.open()
        for page_text in pages:
            page = pdf_document.new_page()
            page.insert_text((72, 72), page_text, fontsize=11)
        pdf_document.save(str(path))
        pdf_document.close()
        return path

    return _make
