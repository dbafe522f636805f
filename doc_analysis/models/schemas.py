"""
Data models for the analysis pipeline.
"""
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field, model_validator
from typing import List, Optional, Dict, Any


class AnalysisType(str, Enum):
    GENERAL = "general"
    ENTITIES = "entities"
    SUMMARY = "summary"


class SummaryFormat(str, Enum):
    PARAGRAPH = "paragraph"
    BULLETS = "bullets"


DEFAULT_ENTITY_TYPES = ["person", "organization", "location"]


class Document(BaseModel):
    """Plain-text payload handed over by the ingestion layer."""
    text: str
    name: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def length(self) -> int:
        return len(self.text)


class Chunk(BaseModel):
    """A contiguous slice of the cleaned document text."""
    index: int
    content: str
    start: int
    end: int  # exclusive


class AnalysisOptions(BaseModel):
    """Per-request options. Unset sizes fall back to application settings."""
    max_chunk_size: Optional[int] = None
    overlap_size: Optional[int] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    # entities
    entity_types: List[str] = Field(default_factory=lambda: list(DEFAULT_ENTITY_TYPES))
    # summary
    max_length: int = 500
    format: SummaryFormat = SummaryFormat.PARAGRAPH


class ChunkResult(BaseModel):
    """
    Outcome of analyzing one chunk: Ok(data) or Failed(error, raw_content).

    Use the ``ok`` / ``failed`` constructors rather than building it directly.
    """
    chunk_index: int
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    raw_content: str = ""
    was_repaired: bool = False

    @classmethod
    def ok(
        cls,
        chunk_index: int,
        data: Dict[str, Any],
        raw_content: str = "",
        was_repaired: bool = False,
    ) -> "ChunkResult":
        return cls(
            chunk_index=chunk_index,
            success=True,
            data=data,
            raw_content=raw_content,
            was_repaired=was_repaired,
        )

    @classmethod
    def failed(cls, chunk_index: int, error: str, raw_content: str = "") -> "ChunkResult":
        return cls(chunk_index=chunk_index, success=False, error=error, raw_content=raw_content)


class AnalysisMeta(BaseModel):
    analysis_type: AnalysisType
    chunk_count: int = 0
    document_length: int = 0
    document_name: str = "unknown"
    failed_chunks: int = 0
    repaired_chunks: int = 0
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class AnalysisResult(BaseModel):
    """Envelope returned by every analysis entry point."""
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    meta: AnalysisMeta

    @model_validator(mode="after")
    def _check_envelope(self) -> "AnalysisResult":
        if self.success and (self.data is None or self.error is not None):
            raise ValueError("successful result needs data and no error")
        if not self.success and (self.error is None or self.data is not None):
            raise ValueError("failed result needs an error and no data")
        return self

    @classmethod
    def succeeded(cls, data: Dict[str, Any], meta: AnalysisMeta) -> "AnalysisResult":
        return cls(success=True, data=data, error=None, meta=meta)

    @classmethod
    def failed(cls, error: str, meta: AnalysisMeta) -> "AnalysisResult":
        return cls(success=False, data=None, error=error or "Analysis failed", meta=meta)


class AnalyzeRequest(BaseModel):
    """Request body for POST /analyze."""
    content: str
    name: Optional[str] = None
    analysis_type: AnalysisType = AnalysisType.GENERAL
    options: AnalysisOptions = Field(default_factory=AnalysisOptions)


class LLMStatusResponse(BaseModel):
    success: bool
    available: bool
    error: Optional[str] = None
