"""
Document Analysis API
Analyze plain text or uploaded Word documents with an LLM.
"""
from fastapi import FastAPI, HTTPException, UploadFile, File, Form
from fastapi.middleware.cors import CORSMiddleware
from typing import List, Optional
import asyncio
import logging
import structlog
import os
import tempfile

from doc_analysis.config import get_settings
from doc_analysis.models.schemas import (
    AnalysisOptions,
    AnalysisResult,
    AnalysisType,
    AnalyzeRequest,
    Document,
    LLMStatusResponse,
    SummaryFormat,
)
from doc_analysis.services.document_analyzer import get_document_analyzer
from doc_analysis.services.document_parser import get_document_parser
from doc_analysis.services.llm_service import get_llm_service

settings = get_settings()

logging.basicConfig(level=settings.log_level.upper(), format="%(message)s")

# Configure logging for terminal readability
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.processors.TimeStamper(fmt="%H:%M:%S"),
        structlog.dev.ConsoleRenderer()  # Human-readable format in terminal
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()

# Create FastAPI app
app = FastAPI(
    title="Document Analysis Service",
    description="Chunked LLM analysis of documents: insights, entities, summaries",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─────────────────────────────────────────────────────────────
# API 1: Analyze Text
# ─────────────────────────────────────────────────────────────

@app.post("/analyze", response_model=AnalysisResult)
async def analyze_text(request: AnalyzeRequest):
    """
    Analyze raw document text.

    Analysis failures come back as an envelope with success=false.
    """
    document = Document(text=request.content, name=request.name)
    analyzer = get_document_analyzer()
    return await analyzer.analyze_document(document, request.analysis_type, request.options)


# ─────────────────────────────────────────────────────────────
# API 2: Upload and Analyze
# ─────────────────────────────────────────────────────────────

@app.post("/analyze/upload", response_model=AnalysisResult)
async def analyze_upload(
    file: UploadFile = File(...),
    analysis_type: AnalysisType = Form(AnalysisType.GENERAL),
    entity_types: Optional[List[str]] = Form(None),
    max_length: int = Form(500),
    summary_format: SummaryFormat = Form(SummaryFormat.PARAGRAPH),
):
    """
    Parse an uploaded .doc/.docx/.txt/.md file and analyze its text.
    """
    parser = get_document_parser()
    try:
        ext = parser.validate(file.filename)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Received upload '{file.filename}'", analysis_type=analysis_type.value)

    content = await file.read()
    fd, local_path = tempfile.mkstemp(prefix="doc_analysis_", suffix=ext)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        document = await asyncio.to_thread(parser.parse, local_path, file.filename)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    finally:
        if os.path.exists(local_path):
            os.remove(local_path)

    options = AnalysisOptions(max_length=max_length, format=summary_format)
    if entity_types:
        options.entity_types = entity_types

    analyzer = get_document_analyzer()
    return await analyzer.analyze_document(document, analysis_type, options)


# ─────────────────────────────────────────────────────────────
# Helper Endpoints
# ─────────────────────────────────────────────────────────────

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/llm/status", response_model=LLMStatusResponse)
async def llm_status():
    """Report whether the LLM backend answers. Informational only."""
    try:
        available = await get_llm_service().check_availability()
        return LLMStatusResponse(success=True, available=available)
    except Exception as e:
        logger.error(f"LLM status check failed: {str(e)}")
        return LLMStatusResponse(success=False, available=False, error=str(e))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("doc_analysis.main:app", host="0.0.0.0", port=8000, reload=True)
