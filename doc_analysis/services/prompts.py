"""
Prompt templates for chunk analysis and synthesis.
"""
import json
from typing import Any, Dict, List, Tuple

from doc_analysis.models.schemas import AnalysisOptions, AnalysisType, SummaryFormat

JSON_ONLY_DIRECTIVE = (
    "IMPORTANT: Your entire response must be ONLY the JSON object. "
    "No explanations, no markdown, no code fences, no additional text. "
    "Use double quotes for all keys and string values."
)

GENERAL_SYSTEM_PROMPT = """You are a document analyzer. Extract key information from the text and return ONLY a JSON object with this exact structure:

{
  "title": "Document title",
  "summary": "Brief summary",
  "keyPoints": ["point 1", "point 2"],
  "topics": ["topic 1", "topic 2"]
}

"""

ENTITIES_SYSTEM_PROMPT = """You are an expert entity extraction system. Extract all {types} entities from the text.

Return ONLY a JSON object with one key per entity type and an array of unique entity names as each value, for example:

{example}

Only include entities that appear in the text. Use an empty array for a type with no matches.

"""

SUMMARY_SYSTEM_PROMPT = """You are an expert document summarizer. Summarize the text in {format} format in no more than {max_length} characters.

Return ONLY a JSON object with this exact structure:

{{
  "summary": "{summary_hint}",
  "format": "{format}",
  "keyPoints": ["point 1", "point 2"]
}}

"""

SYNTHESIS_SYSTEM_PROMPT = (
    "You are an expert at synthesizing multiple document analyses into a coherent "
    "and comprehensive assessment. Merge the {count} partial analyses of one document "
    "into a single unified analysis that captures the essence of the entire document.\n\n"
    + JSON_ONLY_DIRECTIVE
)

SYNTHESIS_USER_TEMPLATE = """I've analyzed a document in {count} parts and need you to synthesize these analyses into a single coherent assessment.

Document preview:
{preview}

Analysis type: {analysis_type}

Individual analysis results (in document order):
{results}

Please synthesize these results into a unified analysis that:
1. Maintains the same JSON structure as the individual analyses
2. Eliminates duplication
3. Resolves any contradictions
4. Preserves the most important insights
5. Represents the entire document rather than any single part

Your response should be a single JSON object that follows the same structure as the individual analyses."""

PREVIEW_LENGTH = 500


def _system_prompt(analysis_type: AnalysisType, options: AnalysisOptions) -> str:
    if analysis_type == AnalysisType.ENTITIES:
        entity_types = options.entity_types or ["person", "organization", "location"]
        example = json.dumps({t: ["..."] for t in entity_types}, indent=2)
        prompt = ENTITIES_SYSTEM_PROMPT.format(types=", ".join(entity_types), example=example)
    elif analysis_type == AnalysisType.SUMMARY:
        hint = "- point one\\n- point two" if options.format == SummaryFormat.BULLETS else "Summary paragraph"
        prompt = SUMMARY_SYSTEM_PROMPT.format(
            format=options.format.value,
            max_length=options.max_length,
            summary_hint=hint,
        )
    else:
        prompt = GENERAL_SYSTEM_PROMPT
    return prompt + JSON_ONLY_DIRECTIVE


def _task_line(analysis_type: AnalysisType, options: AnalysisOptions) -> str:
    if analysis_type == AnalysisType.ENTITIES:
        return f"Extract all entities of these types: {', '.join(options.entity_types)}."
    if analysis_type == AnalysisType.SUMMARY:
        return (
            f"Summarize the following text in {options.format.value} format. "
            f"The summary should be no longer than {options.max_length} characters."
        )
    return "Analyze this text."


def build_chunk_prompts(
    chunk_text: str,
    analysis_type: AnalysisType,
    options: AnalysisOptions,
    chunk_index: int = 0,
    chunk_count: int = 1,
) -> Tuple[str, str]:
    """
    Build the (system, user) prompt pair for one chunk.

    Multi-chunk documents get a "part i of N" note so the model knows
    it is looking at an excerpt.
    """
    system_prompt = _system_prompt(analysis_type, options)

    parts = [_task_line(analysis_type, options)]
    if chunk_count > 1:
        parts.append(
            f"Note: this is part {chunk_index + 1} of {chunk_count} of the full document."
        )
    parts.append(f"Text:\n{chunk_text}")
    return system_prompt, "\n\n".join(parts)


def document_preview(text: str, length: int = PREVIEW_LENGTH) -> str:
    """Short head of the document used as synthesis context."""
    return text[:length] + ("..." if len(text) > length else "")


def build_synthesis_prompts(
    results: List[Dict[str, Any]],
    analysis_type: AnalysisType,
    preview: str,
) -> Tuple[str, str]:
    system_prompt = SYNTHESIS_SYSTEM_PROMPT.format(count=len(results))
    user_prompt = SYNTHESIS_USER_TEMPLATE.format(
        count=len(results),
        preview=preview,
        analysis_type=analysis_type.value,
        results=json.dumps(results, indent=2, ensure_ascii=False),
    )
    return system_prompt, user_prompt
