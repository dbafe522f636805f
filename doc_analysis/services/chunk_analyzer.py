"""
Chunk Analyzer
Sends one chunk to the model and turns the reply into a ChunkResult.
"""
from typing import Optional
import structlog

from doc_analysis.config import get_settings
from doc_analysis.models.schemas import AnalysisOptions, AnalysisType, Chunk, ChunkResult
from doc_analysis.services.llm_service import ModelClient, get_llm_service
from doc_analysis.services.prompts import build_chunk_prompts
from doc_analysis.services.response_parser import parse_model_response

logger = structlog.get_logger()

# Per-chunk completion budget, independent of the caller's token budget
CHUNK_MAX_TOKENS = 2000
JSON_RESPONSE_FORMAT = {"type": "json_object"}

EMPTY_RESPONSE_ERROR = "Empty response from LLM"
JSON_PARSE_ERROR = "JSON parsing failed"


class ChunkAnalyzer:
    """Analyzes a single chunk. Model-content problems never raise; transport errors do."""

    def __init__(self, llm: Optional[ModelClient] = None):
        self.settings = get_settings()
        self.llm = llm or get_llm_service()

    async def analyze_chunk(
        self,
        chunk: Chunk,
        analysis_type: AnalysisType,
        options: Optional[AnalysisOptions] = None,
        chunk_count: int = 1,
    ) -> ChunkResult:
        """
        Analyze one chunk.

        Args:
            chunk: The chunk to analyze
            analysis_type: general, entities or summary
            options: Analysis options
            chunk_count: Total chunks in the document, for "part i of N"

        Returns:
            ChunkResult.ok with the parsed object, or ChunkResult.failed with the raw text
        """
        options = options or AnalysisOptions()
        analysis_type = AnalysisType(analysis_type)

        system_prompt, user_prompt = build_chunk_prompts(
            chunk.content,
            analysis_type,
            options,
            chunk_index=chunk.index,
            chunk_count=chunk_count,
        )

        requested = options.max_tokens or self.settings.llm_max_tokens
        max_tokens = min(requested, CHUNK_MAX_TOKENS)

        logger.info(
            "Analyzing chunk",
            chunk_index=chunk.index,
            chunk_count=chunk_count,
            chunk_chars=len(chunk.content),
            analysis_type=analysis_type.value,
        )

        response = await self.llm.query(
            system_prompt,
            user_prompt,
            temperature=options.temperature,
            max_tokens=max_tokens,
            response_format=JSON_RESPONSE_FORMAT,
        )

        if not response or not response.strip():
            logger.warning("LLM returned empty response", chunk_index=chunk.index)
            return ChunkResult.failed(chunk.index, EMPTY_RESPONSE_ERROR, "")

        parsed, was_repaired = parse_model_response(response)
        if parsed is None:
            logger.warning(
                "Could not extract valid JSON from response",
                chunk_index=chunk.index,
                preview=response[:100],
            )
            return ChunkResult.failed(chunk.index, JSON_PARSE_ERROR, response)

        if was_repaired:
            logger.info("Used repaired JSON", chunk_index=chunk.index)

        return ChunkResult.ok(chunk.index, parsed, raw_content=response, was_repaired=was_repaired)
