"""
Synthesis Service
Merges per-chunk results into one document-level result.
"""
import json
from typing import Any, Dict, List, Optional, Sequence
import structlog

from doc_analysis.models.schemas import AnalysisType, ChunkResult
from doc_analysis.services.llm_service import ModelClient, get_llm_service
from doc_analysis.services.prompts import build_synthesis_prompts
from doc_analysis.services.response_parser import parse_model_response

logger = structlog.get_logger()

NO_VALID_RESULTS = "No valid analysis results to synthesize"

SYNTHESIS_TEMPERATURE = 0.3
SYNTHESIS_MAX_TOKENS = 2500


class SynthesisService:
    """Combines chunk results via a merge query, falling back to a deterministic combiner."""

    def __init__(self, llm: Optional[ModelClient] = None):
        self.llm = llm or get_llm_service()

    async def synthesize(
        self,
        chunk_results: Sequence[ChunkResult],
        analysis_type: AnalysisType,
        document_preview: str,
    ) -> Dict[str, Any]:
        """
        Merge chunk results (in chunk order) into one structure.

        Args:
            chunk_results: Results ordered by chunk index
            analysis_type: The analysis that produced them
            document_preview: Head of the document for context

        Returns:
            Merged data; the no-valid-results sentinel when every chunk failed
        """
        analysis_type = AnalysisType(analysis_type)
        ordered = sorted(chunk_results, key=lambda r: r.chunk_index)
        valid = [r.data for r in ordered if r.success and r.data is not None]

        if not valid:
            logger.warning("No valid chunk results to synthesize", chunk_count=len(ordered))
            return {"error": NO_VALID_RESULTS, "message": "All chunks failed analysis"}

        if len(valid) == 1:
            return valid[0]

        system_prompt, user_prompt = build_synthesis_prompts(valid, analysis_type, document_preview)

        logger.info("Synthesizing results", valid_count=len(valid), analysis_type=analysis_type.value)

        try:
            response = await self.llm.query(
                system_prompt,
                user_prompt,
                temperature=SYNTHESIS_TEMPERATURE,
                max_tokens=SYNTHESIS_MAX_TOKENS,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            logger.error("Synthesis query failed, using basic combination", error=str(e))
            return combine_results(valid)

        merged, _ = parse_model_response(response)
        if merged is None:
            logger.warning(
                "Synthesis response is not valid JSON, using basic combination",
                preview=(response or "")[:100],
            )
            return combine_results(valid)

        return merged


def combine_results(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Deterministically merge objects field by field, in order.

    Strings: distinct values joined by a blank line. Lists: union in
    first-seen order. Numbers: summed. Bools: any(). Objects: merged
    recursively. On a type mismatch the first value wins.
    """
    combined: Dict[str, Any] = {}
    for result in results:
        for key, value in result.items():
            if key not in combined:
                combined[key] = _copy(value)
            else:
                combined[key] = _merge_values(combined[key], value)
    return combined


def _merge_values(existing: Any, incoming: Any) -> Any:
    if isinstance(existing, bool) or isinstance(incoming, bool):
        if isinstance(existing, bool) and isinstance(incoming, bool):
            return existing or incoming
        return existing

    if isinstance(existing, (int, float)) and isinstance(incoming, (int, float)):
        return existing + incoming

    if isinstance(existing, str) and isinstance(incoming, str):
        if not incoming.strip() or incoming in existing.split("\n\n"):
            return existing
        if not existing.strip():
            return incoming
        return f"{existing}\n\n{incoming}"

    if isinstance(existing, list) and isinstance(incoming, list):
        merged = list(existing)
        seen = {_key(item) for item in merged}
        for item in incoming:
            k = _key(item)
            if k not in seen:
                seen.add(k)
                merged.append(_copy(item))
        return merged

    if isinstance(existing, dict) and isinstance(incoming, dict):
        return combine_results([existing, incoming])

    if existing is None:
        return _copy(incoming)

    return existing


def _key(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def _copy(value: Any) -> Any:
    if isinstance(value, list):
        return [_copy(v) for v in value]
    if isinstance(value, dict):
        return {k: _copy(v) for k, v in value.items()}
    return value


# Singleton
_synthesis_service: Optional[SynthesisService] = None


def get_synthesis_service() -> SynthesisService:
    """Get singleton synthesis service instance."""
    global _synthesis_service
    if _synthesis_service is None:
        _synthesis_service = SynthesisService()
    return _synthesis_service
