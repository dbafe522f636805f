"""
Shared Test Fixtures for the Analysis Pipeline Tests

This file contains:
- Fake model client wiring (see fakes.py)
- Service fixtures wired to the fake client
- FastAPI TestClient setup
- Test data generators
"""
import pytest
from typing import AsyncGenerator, Generator
from unittest.mock import patch
from fastapi.testclient import TestClient
from httpx import AsyncClient, ASGITransport
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from doc_analysis.main import app
from doc_analysis.services.chunking_service import ChunkingService
from doc_analysis.services.document_analyzer import DocumentAnalyzer
from tests.fakes import FakeLLM


# ═══════════════════════════════════════════════════════════════
# SERVICE FIXTURES
# ═══════════════════════════════════════════════════════════════

@pytest.fixture
def fake_llm() -> FakeLLM:
    """Fake model client returning a small valid JSON object."""
    return FakeLLM()


@pytest.fixture
def chunking_service() -> ChunkingService:
    return ChunkingService()


@pytest.fixture
def analyzer(fake_llm, chunking_service) -> DocumentAnalyzer:
    """Document analyzer wired to the fake model client."""
    return DocumentAnalyzer(llm=fake_llm, chunking_service=chunking_service)


# ═══════════════════════════════════════════════════════════════
# FASTAPI CLIENT FIXTURES
# ═══════════════════════════════════════════════════════════════

@pytest.fixture
def client(analyzer, fake_llm) -> Generator[TestClient, None, None]:
    """Synchronous FastAPI test client with the fake model behind every route."""
    with patch("doc_analysis.main.get_document_analyzer", return_value=analyzer), \
         patch("doc_analysis.main.get_llm_service", return_value=fake_llm):
        with TestClient(app) as c:
            yield c


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Asynchronous FastAPI test client (real services)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ═══════════════════════════════════════════════════════════════
# TEST DATA FIXTURES
# ═══════════════════════════════════════════════════════════════

PROSE_SENTENCE = "The quick brown fox jumps over the lazy dog. "


@pytest.fixture
def short_text() -> str:
    return "short doc"


@pytest.fixture
def prose_9000() -> str:
    """9000 characters of plain prose (45-char sentences)."""
    text = PROSE_SENTENCE * 200
    assert len(text) == 9000
    return text


@pytest.fixture
def paragraph_text() -> str:
    """Several paragraphs separated by blank lines, ~3300 characters."""
    paragraph = (PROSE_SENTENCE * 12).strip()
    return "\n\n".join([paragraph] * 6)


@pytest.fixture
def sample_pdf_text() -> str:
    """Head of a PDF file read as text."""
    return "%PDF-1.4\n1 0 obj << /Type /Catalog /Pages 2 0 R >> endobj\n"
