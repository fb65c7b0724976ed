"""
Analysis capabilities used by the moderation pipeline.

Each capability turns one structured input into one validated output and has a
fixed failure contract:

- Text analysis: malformed responses become conservative defaults; transport
  failures and timeouts raise `CapabilityError`.
- Image analysis: never raises, returns `IMAGE_ANALYSIS_FAILED` instead.
- Image generation: never raises, returns None to signal "not replaced".
- Decision: malformed responses become FLAGGED; transport failures and
  timeouts raise `CapabilityError`.

Raw service output never leaves this module; callers only see the dataclasses
from `modflow.datatypes.moderation_datatypes`.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from modflow.ai import prompts
from modflow.ai.ai_clients import AIClients
from modflow.datatypes.moderation_datatypes import (
    DecisionResult,
    GeneratedImage,
    ModerationRecord,
    TextAnalysis,
)
from modflow.exceptions import CapabilityError
from modflow.moderation import moderation_parsing
from modflow.util import image_utils
from modflow.util.logger import get_logger

logger = get_logger("analysis")

IMAGE_ANALYSIS_FAILED = "Image analysis failed"

DEFAULT_TIMEOUT_SECONDS = 60.0

T = TypeVar("T")


class ModerationCapabilities:
    """Bundle of the AI capabilities a pipeline run may call.

    Attributes:
        clients: Shared handles to the reasoning, vision and generation services.
        timeout: Upper bound in seconds for any single capability call.
        load_image: Coroutine turning an image URL into an inline ``data:`` URL.
    """

    def __init__(
        self,
        clients: AIClients,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        load_image: Callable[[str], Awaitable[str]] = image_utils.download_image_as_data_url,
    ) -> None:
        self.clients = clients
        self.timeout = timeout
        self.load_image = load_image

    async def _call(self, capability: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise CapabilityError(capability, f"timed out after {self.timeout:.0f}s") from exc
        except CapabilityError:
            raise
        except Exception as exc:
            raise CapabilityError(capability, str(exc) or type(exc).__name__) from exc

    async def analyze_text(self, text: str) -> TextAnalysis:
        """Score `text` for toxicity and NSFW content.

        Raises:
            CapabilityError: If the reasoning service could not be reached.
        """
        raw = await self._call(
            "text_analysis",
            self.clients.reasoning.invoke(
                prompts.TEXT_ANALYSIS_SYSTEM_PROMPT,
                prompts.build_text_analysis_input(text),
            ),
        )
        analysis = moderation_parsing.parse_text_analysis(raw)
        logger.debug(
            "[TEXT ANALYSIS] toxicity=%.2f nsfw_text=%s summary=%r",
            analysis.toxicity,
            analysis.nsfw_text,
            analysis.summary,
        )
        return analysis

    async def describe_image(self, image_url: str) -> str:
        """Describe the image at `image_url` with attention to harmful content.

        Returns `IMAGE_ANALYSIS_FAILED` if the download or the vision call fails.
        """
        try:
            data_url = await self._call("image_download", self.load_image(image_url))
            description = await self._call(
                "image_analysis",
                self.clients.vision.invoke([
                    {"type": "text", "text": prompts.IMAGE_ANALYSIS_PROMPT},
                    {"type": "image_url", "image_url": {"url": data_url}},
                ]),
            )
        except CapabilityError as exc:
            logger.error("[IMAGE ANALYSIS] Failed for %s: %s", image_url[:80], exc)
            return IMAGE_ANALYSIS_FAILED

        description = description.strip()
        if not description:
            logger.warning("[IMAGE ANALYSIS] Empty description for %s", image_url[:80])
            return IMAGE_ANALYSIS_FAILED
        return description

    async def generate_image(self, prompt: str) -> GeneratedImage | None:
        """Generate a replacement image from an already sanitized prompt.

        Returns None when generation fails or yields no usable image.
        """
        try:
            image = await self._call("image_generation", self.clients.generation.invoke(prompt))
        except CapabilityError as exc:
            logger.error("[IMAGE GENERATION] Failed: %s", exc)
            return None

        if image.as_url() is None:
            logger.error("[IMAGE GENERATION] Service returned an empty image")
            return None
        return image

    async def decide(self, record: ModerationRecord) -> DecisionResult:
        """Ask the reasoning service for a verdict over all gathered findings.

        Raises:
            CapabilityError: If the reasoning service could not be reached.
        """
        raw = await self._call(
            "decision",
            self.clients.reasoning.invoke(
                prompts.DECISION_SYSTEM_PROMPT,
                prompts.build_decision_input(record),
            ),
        )
        return moderation_parsing.parse_decision(raw)
