"""
Unit tests for the DocumentAnalyzer pipeline.
Runs against a scripted fake model client; no backend needed.
"""
import asyncio
import pytest

from doc_analysis.models.schemas import (
    AnalysisOptions,
    AnalysisResult,
    AnalysisType,
    Document,
    SummaryFormat,
)
from doc_analysis.services.document_analyzer import INVALID_CONTENT_ERROR, DocumentAnalyzer
from doc_analysis.services.synthesis_service import NO_VALID_RESULTS
from tests.fakes import FakeLLM

SPLIT_OPTIONS = AnalysisOptions(max_chunk_size=4000, overlap_size=200)


def assert_envelope(result: AnalysisResult):
    if result.success:
        assert result.data is not None and result.error is None
    else:
        assert result.error and result.data is None


class TestAnalyzeDocument:

    @pytest.mark.asyncio
    async def test_single_chunk_skips_synthesis(self, analyzer, fake_llm, short_text):
        result = await analyzer.analyze_document(short_text, AnalysisType.GENERAL)

        assert result.success is True
        assert result.data == {"title": "Doc"}
        assert result.meta.chunk_count == 1
        assert result.meta.document_length == len(short_text)
        assert len(fake_llm.calls) == 1
        assert fake_llm.synthesis_calls == []
        assert_envelope(result)

    @pytest.mark.asyncio
    async def test_long_document_is_chunked_and_synthesized(self, analyzer, fake_llm, prose_9000):
        fake_llm.responder = lambda system, user: (
            '{"title": "Whole"}' if "synthesizing" in system else '{"title": "Part"}'
        )

        result = await analyzer.analyze_document(
            Document(text=prose_9000, name="fox.txt"), "general", SPLIT_OPTIONS
        )

        assert result.success is True
        assert result.data == {"title": "Whole"}
        assert result.meta.chunk_count == 3
        assert result.meta.document_name == "fox.txt"
        assert len(fake_llm.chunk_calls) == 3
        assert len(fake_llm.synthesis_calls) == 1

    @pytest.mark.asyncio
    async def test_binary_content_rejected(self, analyzer, fake_llm, sample_pdf_text):
        result = await analyzer.analyze_document(sample_pdf_text)

        assert result.success is False
        assert result.error == INVALID_CONTENT_ERROR
        assert fake_llm.calls == []
        assert_envelope(result)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("document", ["", None, {"content": ""}])
    async def test_empty_content_rejected(self, analyzer, document):
        result = await analyzer.analyze_document(document)

        assert result.success is False
        assert result.error == INVALID_CONTENT_ERROR

    @pytest.mark.asyncio
    async def test_all_chunks_failed(self, analyzer, fake_llm, prose_9000):
        fake_llm.default = "not json at all"

        result = await analyzer.analyze_document(prose_9000, options=SPLIT_OPTIONS)

        assert result.success is False
        assert result.error.startswith(NO_VALID_RESULTS)
        assert "JSON parsing failed" in result.error
        assert result.meta.failed_chunks == 3
        assert fake_llm.synthesis_calls == []
        assert_envelope(result)

    @pytest.mark.asyncio
    async def test_partial_failure_degrades(self, analyzer, fake_llm, prose_9000):
        def respond(system, user):
            if "synthesizing" in system:
                return '{"title": "Merged"}'
            if "part 2 of 3" in user:
                return ""
            return "{'title': 'Part',}"

        fake_llm.responder = respond

        result = await analyzer.analyze_document(prose_9000, options=SPLIT_OPTIONS)

        assert result.success is True
        assert result.data == {"title": "Merged"}
        assert result.meta.failed_chunks == 1
        assert result.meta.repaired_chunks == 2

    @pytest.mark.asyncio
    async def test_transport_error_becomes_failed_chunk(self, analyzer, fake_llm, prose_9000):
        def respond(system, user):
            if "part 1 of 3" in user:
                raise ConnectionError("connection reset")
            return '{"topics": ["fox"]}'

        fake_llm.responder = respond

        result = await analyzer.analyze_document(prose_9000, options=SPLIT_OPTIONS)

        assert result.success is True
        assert result.meta.failed_chunks == 1

    @pytest.mark.asyncio
    async def test_every_chunk_transport_error(self, analyzer, fake_llm, short_text):
        fake_llm.responses = [TimeoutError("timed out")]

        result = await analyzer.analyze_document(short_text)

        assert result.success is False
        assert "timed out" in result.error

    @pytest.mark.asyncio
    async def test_invalid_options_reported_in_envelope(self, analyzer, short_text):
        result = await analyzer.analyze_document(short_text, options=AnalysisOptions(max_chunk_size=0))

        assert result.success is False
        assert result.error
        assert_envelope(result)

    @pytest.mark.asyncio
    async def test_unknown_analysis_type(self, analyzer, short_text):
        result = await analyzer.analyze_document(short_text, "sentiment")

        assert result.success is False
        assert "sentiment" in result.error

    @pytest.mark.asyncio
    async def test_mapping_document(self, analyzer, fake_llm):
        result = await analyzer.analyze_document({"text": "hello world", "fileName": "memo.doc"})

        assert result.success is True
        assert result.meta.document_name == "memo.doc"
        assert "hello world" in fake_llm.calls[0]["user_prompt"]

    @pytest.mark.asyncio
    async def test_document_is_cleaned_before_analysis(self, analyzer, fake_llm):
        await analyzer.analyze_document("head\x00er" + " " * 10 + "body")

        prompt = fake_llm.calls[0]["user_prompt"]
        assert "header\n\nbody" in prompt

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, chunking_service):
        in_flight = 0
        peak = 0

        class SlowLLM(FakeLLM):
            async def query(self, *args, **kwargs):
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                return await super().query(*args, **kwargs)

        analyzer = DocumentAnalyzer(llm=SlowLLM(), chunking_service=chunking_service, max_concurrency=2)
        result = await analyzer.analyze_document("word " * 200, options=AnalysisOptions(max_chunk_size=100, overlap_size=0))

        assert result.success is True
        assert result.meta.chunk_count == 10
        assert peak == 2


class TestConvenienceEntryPoints:

    @pytest.mark.asyncio
    async def test_extract_entities(self, analyzer, fake_llm):
        fake_llm.responses = ['{"person": ["Ada Lovelace"], "product": []}']

        result = await analyzer.extract_entities("Ada Lovelace wrote notes.", ["person", "product"])

        assert result.meta.analysis_type == AnalysisType.ENTITIES
        assert result.data == {"person": ["Ada Lovelace"], "product": []}
        assert "person, product" in fake_llm.calls[0]["system_prompt"]

    @pytest.mark.asyncio
    async def test_extract_entities_default_types(self, analyzer, fake_llm):
        await analyzer.extract_entities("Ada Lovelace wrote notes.")

        assert "person, organization, location" in fake_llm.calls[0]["system_prompt"]

    @pytest.mark.asyncio
    async def test_summarize_document(self, analyzer, fake_llm):
        fake_llm.responses = ['{"summary": "- one", "format": "bullets"}']

        result = await analyzer.summarize_document("Some text.", max_length=80, format="bullets")

        assert result.meta.analysis_type == AnalysisType.SUMMARY
        assert result.data["format"] == SummaryFormat.BULLETS.value
        assert "80 characters" in fake_llm.calls[0]["user_prompt"]

    @pytest.mark.asyncio
    async def test_caller_options_not_mutated(self, analyzer):
        options = AnalysisOptions()
        await analyzer.summarize_document("Some text.", max_length=42, options=options)

        assert options.max_length == 500

    @pytest.mark.asyncio
    async def test_extract_entities_single_type_string(self, analyzer, fake_llm):
        await analyzer.extract_entities("Ada Lovelace wrote notes.", "person")

        assert "Extract all person entities" in fake_llm.calls[0]["system_prompt"]

    @pytest.mark.asyncio
    async def test_summarize_invalid_format_returns_envelope(self, analyzer, fake_llm):
        result = await analyzer.summarize_document("Some text.", format="outline")

        assert result.success is False
        assert "outline" in result.error
        assert result.meta.analysis_type == AnalysisType.SUMMARY
        assert fake_llm.calls == []
        assert_envelope(result)

    @pytest.mark.asyncio
    async def test_quoted_word_inside_double_quoted_value(self, analyzer, fake_llm):
        fake_llm.responses = ["{'summary': \"The 'core' idea\", 'n': 1,}"]

        result = await analyzer.analyze_document("short doc")

        assert result.success is True
        assert result.data == {"summary": "The 'core' idea", "n": 1}
        assert result.meta.repaired_chunks == 1
