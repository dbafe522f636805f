"""
Document Analyzer
Top-level pipeline: validate -> clean -> chunk -> analyze chunks concurrently -> synthesize.
"""
import asyncio
from typing import Any, List, Optional, Union
import structlog

from doc_analysis.config import get_settings
from doc_analysis.models.schemas import (
    AnalysisMeta,
    AnalysisOptions,
    AnalysisResult,
    AnalysisType,
    Chunk,
    ChunkResult,
    SummaryFormat,
)
from doc_analysis.services.chunk_analyzer import ChunkAnalyzer
from doc_analysis.services.chunking_service import ChunkingService, get_chunking_service
from doc_analysis.services.llm_service import ModelClient, get_llm_service
from doc_analysis.services.prompts import document_preview
from doc_analysis.services.synthesis_service import NO_VALID_RESULTS, SynthesisService
from doc_analysis.services.text_cleaner import (
    clean_text_content,
    extract_document_name,
    extract_document_text,
    is_binary_content,
)

logger = structlog.get_logger()

INVALID_CONTENT_ERROR = "Invalid or binary content detected"


class DocumentAnalyzer:
    """
    Runs the analysis pipeline for one document per call.

    Holds no per-document state, so one instance can serve concurrent requests.
    Every outcome, including internal faults, comes back as an AnalysisResult.
    """

    def __init__(
        self,
        llm: Optional[ModelClient] = None,
        chunking_service: Optional[ChunkingService] = None,
        max_concurrency: Optional[int] = None,
    ):
        self.settings = get_settings()
        self.llm = llm or get_llm_service()
        self.chunking_service = chunking_service or get_chunking_service()
        self.chunk_analyzer = ChunkAnalyzer(self.llm)
        self.synthesis_service = SynthesisService(self.llm)
        self.max_concurrency = max(1, max_concurrency or self.settings.max_concurrency)

    async def analyze_document(
        self,
        document: Any,
        analysis_type: Union[AnalysisType, str] = AnalysisType.GENERAL,
        options: Optional[AnalysisOptions] = None,
    ) -> AnalysisResult:
        """
        Analyze a document.

        Args:
            document: Document, plain string, or object with a content/text/data field
            analysis_type: general, entities or summary
            options: Chunking and model options

        Returns:
            The result envelope; never raises
        """
        options = options or AnalysisOptions()
        meta = AnalysisMeta(analysis_type=AnalysisType.GENERAL)

        try:
            analysis_type = AnalysisType(analysis_type)
            meta.analysis_type = analysis_type
            meta.document_name = extract_document_name(document)

            logger.info("Starting analysis", analysis_type=analysis_type.value, document=meta.document_name)

            content = extract_document_text(document)
            if not content or is_binary_content(content):
                logger.warning("Rejected document content", document=meta.document_name)
                return AnalysisResult.failed(INVALID_CONTENT_ERROR, meta)

            content = clean_text_content(content)
            meta.document_length = len(content)
            if not content.strip():
                return AnalysisResult.failed(INVALID_CONTENT_ERROR, meta)

            chunks = self.chunking_service.split(
                content,
                max_chunk_size=options.max_chunk_size,
                overlap_size=options.overlap_size,
            )
            meta.chunk_count = len(chunks)
            logger.info("Document split into chunks", chunk_count=len(chunks), document_length=len(content))

            results = await self._analyze_chunks(chunks, analysis_type, options)

            meta.failed_chunks = sum(1 for r in results if not r.success)
            meta.repaired_chunks = sum(1 for r in results if r.success and r.was_repaired)

            valid = [r for r in results if r.success]
            if not valid:
                errors = "; ".join(sorted({r.error or "unknown error" for r in results}))
                logger.warning("All chunks failed analysis", errors=errors)
                return AnalysisResult.failed(f"{NO_VALID_RESULTS}: {errors}", meta)

            if len(chunks) == 1:
                data = valid[0].data
            else:
                data = await self.synthesis_service.synthesize(
                    results, analysis_type, document_preview(content)
                )

            logger.info(
                "Analysis complete",
                chunk_count=meta.chunk_count,
                failed_chunks=meta.failed_chunks,
            )
            return AnalysisResult.succeeded(data, meta)

        except Exception as e:
            logger.error("Analysis error", error=str(e), exc_info=True)
            return AnalysisResult.failed(str(e) or type(e).__name__, meta)

    async def _analyze_chunks(
        self,
        chunks: List[Chunk],
        analysis_type: AnalysisType,
        options: AnalysisOptions,
    ) -> List[ChunkResult]:
        """Fan out over all chunks; transport faults become Failed results for that chunk."""
        semaphore = asyncio.Semaphore(self.max_concurrency)
        chunk_count = len(chunks)

        async def run(chunk: Chunk) -> ChunkResult:
            async with semaphore:
                try:
                    return await self.chunk_analyzer.analyze_chunk(
                        chunk, analysis_type, options, chunk_count=chunk_count
                    )
                except Exception as e:
                    logger.error("Chunk analysis failed", chunk_index=chunk.index, error=str(e))
                    return ChunkResult.failed(chunk.index, str(e) or type(e).__name__, "")

        results = await asyncio.gather(*(run(chunk) for chunk in chunks))
        return sorted(results, key=lambda r: r.chunk_index)

    async def extract_entities(
        self,
        document: Any,
        entity_types: Union[List[str], str, None] = None,
        options: Optional[AnalysisOptions] = None,
    ) -> AnalysisResult:
        options = (options or AnalysisOptions()).model_copy()
        if isinstance(entity_types, str):
            entity_types = [entity_types]
        if entity_types:
            options.entity_types = list(entity_types)
        return await self.analyze_document(document, AnalysisType.ENTITIES, options)

    async def summarize_document(
        self,
        document: Any,
        max_length: int = 500,
        format: Union[SummaryFormat, str] = SummaryFormat.PARAGRAPH,
        options: Optional[AnalysisOptions] = None,
    ) -> AnalysisResult:
        try:
            options = (options or AnalysisOptions()).model_copy()
            options.max_length = max_length
            options.format = SummaryFormat(format)
        except ValueError as e:
            logger.warning("Invalid summary options", error=str(e))
            meta = AnalysisMeta(
                analysis_type=AnalysisType.SUMMARY,
                document_name=extract_document_name(document),
            )
            return AnalysisResult.failed(str(e), meta)
        return await self.analyze_document(document, AnalysisType.SUMMARY, options)


# Singleton
_document_analyzer: Optional[DocumentAnalyzer] = None


def get_document_analyzer() -> DocumentAnalyzer:
    """Get singleton document analyzer instance."""
    global _document_analyzer
    if _document_analyzer is None:
        _document_analyzer = DocumentAnalyzer()
    return _document_analyzer
