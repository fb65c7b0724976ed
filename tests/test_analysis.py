"""Tests for the AI capability wrappers and their failure contracts."""

import asyncio

import pytest

from conftest import INLINE_IMAGE, FakeGenerationClient, FakeReasoningClient, FakeVisionClient, fake_load_image
from modflow.ai import prompts
from modflow.ai.ai_clients import AIClients
from modflow.ai.analysis import IMAGE_ANALYSIS_FAILED, ModerationCapabilities
from modflow.datatypes.moderation_datatypes import (
    Decision,
    GeneratedImage,
    ModerationRecord,
    SubmissionType,
)
from modflow.exceptions import CapabilityError
from modflow.util.image_utils import ImageFetchError


class SlowReasoningClient:
    async def invoke(self, system_instruction: str, user_text: str) -> str:
        await asyncio.sleep(5)
        return "{}"


def make_capabilities(reasoning=None, vision=None, generation=None, **kwargs) -> ModerationCapabilities:
    clients = AIClients(
        reasoning=reasoning or FakeReasoningClient(),
        vision=vision or FakeVisionClient(),
        generation=generation or FakeGenerationClient(),
    )
    kwargs.setdefault("load_image", fake_load_image)
    return ModerationCapabilities(clients, **kwargs)


class TestAnalyzeText:
    @pytest.mark.asyncio
    async def test_sends_text_prompt(self, capabilities, reasoning):
        analysis = await capabilities.analyze_text("hello world")

        assert analysis.toxicity == pytest.approx(0.1)
        system, user = reasoning.calls[0]
        assert system == prompts.TEXT_ANALYSIS_SYSTEM_PROMPT
        assert user == 'Analyze this text: "hello world"'

    @pytest.mark.asyncio
    async def test_timeout_raises_capability_error(self):
        capabilities = make_capabilities(reasoning=SlowReasoningClient(), timeout=0.05)

        with pytest.raises(CapabilityError) as excinfo:
            await capabilities.analyze_text("hello")
        assert excinfo.value.capability == "text_analysis"
        assert "timed out" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self, capabilities, reasoning):
        reasoning.text_response = ConnectionError("reset by peer")

        with pytest.raises(CapabilityError, match="reset by peer"):
            await capabilities.analyze_text("hello")


class TestDescribeImage:
    @pytest.mark.asyncio
    async def test_sends_inline_image(self, capabilities, vision):
        description = await capabilities.describe_image("https://cdn.example.com/a.jpg")

        assert "golden retriever" in description
        text_part, image_part = vision.calls[0]
        assert text_part["text"] == prompts.IMAGE_ANALYSIS_PROMPT
        assert image_part["image_url"]["url"] == INLINE_IMAGE

    @pytest.mark.asyncio
    async def test_download_failure_returns_sentinel(self):
        async def failing_loader(url):
            raise ImageFetchError("404")

        capabilities = make_capabilities(load_image=failing_loader)

        assert await capabilities.describe_image("https://cdn.example.com/a.jpg") == IMAGE_ANALYSIS_FAILED

    @pytest.mark.asyncio
    async def test_blank_description_returns_sentinel(self):
        capabilities = make_capabilities(vision=FakeVisionClient("   "))
        assert await capabilities.describe_image("https://cdn.example.com/a.jpg") == IMAGE_ANALYSIS_FAILED

    @pytest.mark.asyncio
    async def test_vision_error_returns_sentinel(self):
        capabilities = make_capabilities(vision=FakeVisionClient(RuntimeError("503")))
        assert await capabilities.describe_image("https://cdn.example.com/a.jpg") == IMAGE_ANALYSIS_FAILED


class TestGenerateImage:
    @pytest.mark.asyncio
    async def test_returns_generated_image(self, capabilities, generation):
        image = await capabilities.generate_image("a calm beach")
        assert image.url == "https://images.example.com/generated.png"
        assert generation.prompts == ["a calm beach"]

    @pytest.mark.asyncio
    async def test_failure_returns_none(self):
        capabilities = make_capabilities(generation=FakeGenerationClient(RuntimeError("policy")))
        assert await capabilities.generate_image("a calm beach") is None

    @pytest.mark.asyncio
    async def test_empty_image_returns_none(self):
        capabilities = make_capabilities(generation=FakeGenerationClient(GeneratedImage()))
        assert await capabilities.generate_image("a calm beach") is None


class TestDecide:
    @pytest.mark.asyncio
    async def test_parses_verdict(self, capabilities, reasoning):
        record = ModerationRecord.create(SubmissionType.TEXT, "hello world").update(toxicity=0.1)

        result = await capabilities.decide(record)

        assert result.decision is Decision.APPROVED
        assert result.summary == "Safe content"
        assert reasoning.decision_calls[0][1] == (
            "Type: text\nText: hello world\nImage: none\nToxicity: 0.1\nNSFW Text: false"
        )

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, capabilities, reasoning):
        reasoning.decision_response = OSError("network unreachable")
        with pytest.raises(CapabilityError):
            await capabilities.decide(ModerationRecord.create(SubmissionType.TEXT, "hi"))
