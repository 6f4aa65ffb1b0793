"""Tests for AI provider implementations.

Shared behaviour (_parse_result, _parse_rewrites, _call_with_retry) lives in
BaseAnalyzer and is tested once via a lightweight stub, not duplicated per
provider. Provider-specific tests cover only what differs between
implementations: the SDK client setup and _call_api.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from safepost_core.errors import AnalysisError
from safepost_core.models import ComplianceStatus, ImageInput, Severity
from safepost_core.providers.anthropic import AnthropicAnalyzer
from safepost_core.providers.base import BaseAnalyzer
from safepost_core.providers.openai import OpenAIAnalyzer

VALID_JSON = json.dumps(
    {
        "status": "NON_COMPLIANT",
        "summary": "Contains a testimonial",
        "overallVerdict": "Remove the patient quote.",
        "issues": [
            {
                "guidelineReference": "Section 133: testimonials",
                "finding": "Patient review quoted",
                "severity": "Critical",
                "recommendation": "Remove it",
            }
        ],
    }
)


class _StubAnalyzer(BaseAnalyzer):
    """Minimal concrete subclass used to test BaseAnalyzer shared methods."""

    def __init__(self, response: str = VALID_JSON):
        self.response = response
        self.calls = []

    async def _call_api(self, system_prompt, user_prompt, image, max_tokens):
        self.calls.append((system_prompt, user_prompt, image, max_tokens))
        return self.response


# ---------------------------------------------------------------------------
# Shared behaviour: tested once through the stub, not per provider
# ---------------------------------------------------------------------------


class TestBaseAnalyzerParse:
    def test_parses_valid_json(self):
        result = _StubAnalyzer()._parse_result(VALID_JSON)
        assert result.status is ComplianceStatus.NON_COMPLIANT
        assert result.issues[0].severity is Severity.CRITICAL
        assert result.overall_verdict == "Remove the patient quote."

    def test_extracts_object_from_surrounding_text(self):
        raw = f"Here is the analysis:\n```json\n{VALID_JSON}\n```\nThanks"
        assert _StubAnalyzer()._parse_result(raw).summary == "Contains a testimonial"

    def test_legacy_severity_casing_normalized(self):
        payload = json.dumps(
            {
                "status": "warning",
                "summary": "",
                "overallVerdict": "",
                "issues": [{"severity": "WARNING"}, {"severity": "critical"}, {"severity": "note"}],
            }
        )
        result = _StubAnalyzer()._parse_result(payload)
        assert result.status is ComplianceStatus.WARNING
        assert [i.severity for i in result.issues] == [Severity.WARNING, Severity.CRITICAL, Severity.INFO]

    def test_requires_review_status_maps_to_warning(self):
        payload = json.dumps({"status": "requires_review", "summary": "", "overallVerdict": "", "issues": []})
        assert _StubAnalyzer()._parse_result(payload).status is ComplianceStatus.WARNING

    def test_raises_when_no_json(self):
        with pytest.raises(AnalysisError):
            _StubAnalyzer()._parse_result("not json at all")

    def test_raises_on_invalid_json(self):
        with pytest.raises(AnalysisError):
            _StubAnalyzer()._parse_result("{status: COMPLIANT")

    def test_raises_on_missing_status(self):
        with pytest.raises(AnalysisError):
            _StubAnalyzer()._parse_result('{"summary": "x", "issues": []}')

    def test_raises_on_unknown_status(self):
        with pytest.raises(AnalysisError):
            _StubAnalyzer()._parse_result('{"status": "MAYBE", "issues": []}')

    def test_raises_when_issues_not_a_list(self):
        with pytest.raises(AnalysisError):
            _StubAnalyzer()._parse_result('{"status": "COMPLIANT", "issues": "none"}')

    def test_parses_rewrites(self):
        raw = json.dumps([{"optionTitle": "Minimal Edit", "content": "New post", "explanation": "Removed quote"}])
        rewrites = _StubAnalyzer()._parse_rewrites(raw)
        assert len(rewrites) == 1
        assert rewrites[0].option_title == "Minimal Edit"

    def test_rewrites_without_array_return_empty(self):
        assert _StubAnalyzer()._parse_rewrites("sorry") == []


class TestBaseAnalyzerAnalyze:
    @pytest.mark.asyncio
    async def test_analyze_sends_post_in_prompt(self):
        analyzer = _StubAnalyzer()
        await analyzer.analyze("Book your miracle facial today")
        system, user, image, _ = analyzer.calls[0]
        assert "Ahpra" in system
        assert "Book your miracle facial today" in user
        assert image is None

    @pytest.mark.asyncio
    async def test_analyze_passes_image_through(self):
        analyzer = _StubAnalyzer()
        image = ImageInput(base64="aGVsbG8=", mime_type="image/png")
        await analyzer.analyze("Before and after", image=image)
        assert analyzer.calls[0][2] is image

    @pytest.mark.asyncio
    async def test_not_healthcare_is_returned_unchanged(self):
        payload = json.dumps({"status": "NOT_HEALTHCARE", "summary": "Off topic", "overallVerdict": "", "issues": []})
        result = await _StubAnalyzer(payload).analyze("Selling my bike")
        assert result.status is ComplianceStatus.NOT_HEALTHCARE

    @pytest.mark.asyncio
    async def test_suggest_rewrites_includes_issues(self):
        analyzer = _StubAnalyzer(json.dumps([{"optionTitle": "Safe", "content": "c", "explanation": "e"}]))
        result = analyzer._parse_result(VALID_JSON)
        rewrites = await analyzer.suggest_rewrites("Original post", result.issues)
        assert rewrites[0].option_title == "Safe"
        assert "Patient review quoted" in analyzer.calls[0][1]
        assert analyzer.calls[0][0] is None


class TestBaseAnalyzerRetry:
    @pytest.mark.asyncio
    async def test_raises_after_max_retries(self):
        class _AlwaysFail(BaseAnalyzer):
            async def _call_api(self, system_prompt, user_prompt, image, max_tokens):
                raise RuntimeError("network error")

        # Patch the sleep so the test doesn't actually wait.
        with patch("safepost_core.providers.base.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(AnalysisError, match="Failed to analyze post"):
                await _AlwaysFail().analyze("post")

    @pytest.mark.asyncio
    async def test_retries_on_transient_failure(self):
        call_count = 0

        class _FailOnceThenSucceed(BaseAnalyzer):
            async def _call_api(self, system_prompt, user_prompt, image, max_tokens):
                nonlocal call_count
                call_count += 1
                if call_count == 1:
                    raise RuntimeError("transient")
                return VALID_JSON

        with patch("safepost_core.providers.base.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await _FailOnceThenSucceed().analyze("post")
        assert result.status is ComplianceStatus.NON_COMPLIANT
        assert call_count == 2
        sleep.assert_awaited_once_with(1)


# ---------------------------------------------------------------------------
# Provider-specific: only what differs between Anthropic and OpenAI
# ---------------------------------------------------------------------------


class TestAnthropicAnalyzer:
    def test_raises_import_error_without_sdk(self):
        with patch.dict("sys.modules", {"anthropic": None}):
            with pytest.raises(ImportError):
                AnthropicAnalyzer(api_key="key")

    def test_model_is_claude(self):
        assert "claude" in AnthropicAnalyzer.MODEL

    @pytest.mark.asyncio
    async def test_call_api_builds_image_block(self):
        from anthropic.types import TextBlock

        analyzer = AnthropicAnalyzer(api_key="key")
        response = MagicMock()
        response.content = [TextBlock(type="text", text=VALID_JSON)]
        analyzer.client = MagicMock()
        analyzer.client.messages.create = AsyncMock(return_value=response)

        text = await analyzer._call_api("sys", "user", ImageInput(base64="abc", mime_type="image/jpeg"), 100)

        assert text == VALID_JSON
        kwargs = analyzer.client.messages.create.call_args.kwargs
        assert kwargs["system"] == "sys"
        blocks = kwargs["messages"][0]["content"]
        assert blocks[1]["source"] == {"type": "base64", "media_type": "image/jpeg", "data": "abc"}


class TestOpenAIAnalyzer:
    def test_raises_import_error_without_sdk(self):
        import safepost_core.providers.openai as openai_mod

        real_openai = openai_mod._AsyncOpenAI
        openai_mod._AsyncOpenAI = None
        try:
            with pytest.raises(ImportError):
                OpenAIAnalyzer(api_key="key")
        finally:
            openai_mod._AsyncOpenAI = real_openai

    def test_model_is_gpt(self):
        assert "gpt" in OpenAIAnalyzer.MODEL

    @pytest.mark.asyncio
    async def test_call_api_builds_data_url(self):
        analyzer = OpenAIAnalyzer(api_key="key")
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = VALID_JSON
        analyzer.client = MagicMock()
        analyzer.client.chat.completions.create = AsyncMock(return_value=response)

        text = await analyzer._call_api(None, "user", ImageInput(base64="abc", mime_type="image/png"), 100)

        assert text == VALID_JSON
        messages = analyzer.client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0]["role"] == "user"
        assert messages[0]["content"][1]["image_url"]["url"] == "data:image/png;base64,abc"
