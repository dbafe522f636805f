"""
Response Parser
Extracts a JSON object from free-form model output and repairs common malformations.

Models often wrap JSON in prose or code fences, or emit near-valid JSON.
Extraction and repair never invent data: if nothing parses, callers get None
and keep the raw text for diagnosis.
"""
import json
import re
from typing import Any, Callable, Dict, Optional, Tuple
import structlog

logger = structlog.get_logger()

_CODE_FENCE = re.compile(r"```(?:json|JSON)?")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
# A double-quoted string (kept as is) or a 'value' to rewrite as "value".
# Escaped quotes and in-word apostrophes (don't) are left alone.
_QUOTED_STRING = re.compile(r'"(?:[^"\\\n]|\\.)*"' r"|(?<![\\\w])'([^'\"\\\n]*)'(?!\w)")
_DOUBLE_ESCAPED_QUOTE = re.compile(r'\\\\"')
_OUTERMOST_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def extract_json_block(text: Optional[str]) -> Optional[str]:
    """Return the span from the first '{' to the last '}' inclusive, or None."""
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        return text[start:end + 1]
    return None


def parse_json_object(candidate: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parse ``candidate`` as JSON; only objects are accepted."""
    if not candidate:
        return None
    try:
        parsed = json.loads(candidate)
    except (ValueError, TypeError):
        return None
    return parsed if isinstance(parsed, dict) else None


# ─────────────────────────────────────────────────────────────
# Repair steps: str -> str | None, pure and total
# ─────────────────────────────────────────────────────────────

def strip_code_fences(text: str) -> Optional[str]:
    return _CODE_FENCE.sub("", text).strip()


def remove_trailing_commas(text: str) -> Optional[str]:
    return _TRAILING_COMMA.sub(r"\1", text)


def normalize_quotes(text: str) -> Optional[str]:
    def replace(match):
        if match.group(1) is None:
            return match.group(0)
        return f'"{match.group(1)}"'

    return _QUOTED_STRING.sub(replace, text)


def collapse_escaped_quotes(text: str) -> Optional[str]:
    return _DOUBLE_ESCAPED_QUOTE.sub(r'\\"', text)


def outermost_object(text: str) -> Optional[str]:
    match = _OUTERMOST_OBJECT.search(text)
    return match.group(0) if match else None


RepairStep = Callable[[str], Optional[str]]

REPAIR_STEPS: Tuple[RepairStep, ...] = (
    strip_code_fences,
    remove_trailing_commas,
    normalize_quotes,
    collapse_escaped_quotes,
    outermost_object,
)


def repair_json(
    candidate: Optional[str],
    steps: Tuple[RepairStep, ...] = REPAIR_STEPS,
) -> Optional[Dict[str, Any]]:
    """
    Best-effort repair of near-valid JSON.

    Steps are applied cumulatively and the parse is retried after each one.
    A step returning None leaves the text unchanged. Never raises.

    Args:
        candidate: Text that failed a direct parse
        steps: Ordered repair chain

    Returns:
        The parsed object, or None if every step failed
    """
    if not candidate:
        return None

    text = candidate
    for step in steps:
        try:
            repaired = step(text)
        except Exception as e:
            logger.debug("Repair step failed", step=step.__name__, error=str(e))
            continue
        if repaired is None:
            continue
        text = repaired
        parsed = parse_json_object(text)
        if parsed is not None:
            logger.debug("JSON repaired", step=step.__name__)
            return parsed

    return None


def parse_model_response(text: Optional[str]) -> Tuple[Optional[Dict[str, Any]], bool]:
    """
    Run extract-then-repair over raw model output.

    Returns:
        Tuple of (parsed object or None, was_repaired)
    """
    candidate = extract_json_block(text)
    if candidate is not None:
        parsed = parse_json_object(candidate)
        if parsed is not None:
            return parsed, False
        repaired = repair_json(candidate)
        if repaired is not None:
            return repaired, True
    # Fences or quote damage can hide the braces from extraction
    repaired = repair_json(text) if text else None
    return repaired, repaired is not None
