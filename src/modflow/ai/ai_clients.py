"""OpenAI-compatible clients for the three external AI capabilities.

Each client is a thin adapter over ``AsyncOpenAI`` exposing a single
``invoke`` coroutine:

- ReasoningClient: ``invoke(system_instruction, user_text) -> str``
- VisionClient: ``invoke(parts) -> str`` where parts mix text and inline images
- GenerationClient: ``invoke(prompt) -> GeneratedImage``

The clients are created once per process by `get_ai_clients()` and shared by
every pipeline run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol

from openai import AsyncOpenAI
from openai.types.chat import ChatCompletionContentPartParam, ChatCompletionMessageParam

from modflow.configuration.ai_settings import AISettings
from modflow.configuration.app_configuration import app_config
from modflow.datatypes.moderation_datatypes import GeneratedImage
from modflow.util.logger import get_logger

logger = get_logger("ai_clients")


class ReasoningClient(Protocol):
    async def invoke(self, system_instruction: str, user_text: str) -> str: ...


class VisionClient(Protocol):
    async def invoke(self, parts: List[ChatCompletionContentPartParam]) -> str: ...


class GenerationClient(Protocol):
    async def invoke(self, prompt: str) -> GeneratedImage: ...


class OpenAIReasoningClient:
    """Chat-completions text model returning the raw assistant message."""

    def __init__(self, client: AsyncOpenAI, model_name: str, temperature: float = 0.0) -> None:
        self._client = client
        self._model_name = model_name
        self._temperature = temperature

    async def invoke(self, system_instruction: str, user_text: str) -> str:
        messages: List[ChatCompletionMessageParam] = [
            {"role": "system", "content": system_instruction},
            {"role": "user", "content": user_text},
        ]
        response = await self._client.chat.completions.create(
            model=self._model_name,
            messages=messages,
            temperature=self._temperature,
        )
        return response.choices[0].message.content or ""


class OpenAIVisionClient:
    """Chat-completions multimodal model returning a free-text description."""

    def __init__(self, client: AsyncOpenAI, model_name: str, max_tokens: int = 2048) -> None:
        self._client = client
        self._model_name = model_name
        self._max_tokens = max_tokens

    async def invoke(self, parts: List[ChatCompletionContentPartParam]) -> str:
        response = await self._client.chat.completions.create(
            model=self._model_name,
            messages=[{"role": "user", "content": parts}],
            max_tokens=self._max_tokens,
            temperature=0,
        )
        return response.choices[0].message.content or ""


class OpenAIImageGenerationClient:
    """Images API model producing one replacement image per prompt."""

    def __init__(self, client: AsyncOpenAI, model_name: str, size: str = "1024x1024") -> None:
        self._client = client
        self._model_name = model_name
        self._size = size

    async def invoke(self, prompt: str) -> GeneratedImage:
        response = await self._client.images.generate(
            model=self._model_name,
            prompt=prompt,
            size=self._size,
            n=1,
        )
        if not response.data:
            raise ValueError("image generation returned no data")

        image = response.data[0]
        if image.url:
            return GeneratedImage(url=image.url)
        if image.b64_json:
            return GeneratedImage(data_b64=image.b64_json, mime_type="image/png")
        raise ValueError("image generation returned neither a URL nor inline data")


@dataclass(slots=True)
class AIClients:
    """Handles to the configured reasoning, vision and generation clients."""

    reasoning: ReasoningClient
    vision: VisionClient
    generation: GenerationClient


def build_ai_clients(ai_settings: AISettings) -> AIClients:
    """Create the OpenAI-compatible clients described by `ai_settings`."""
    timeout = ai_settings.request_timeout_seconds
    text_client = AsyncOpenAI(
        api_key=ai_settings.api_key,
        base_url=ai_settings.base_url,
        timeout=timeout,
    )
    if ai_settings.vision_base_url == ai_settings.base_url and ai_settings.vision_api_key == ai_settings.api_key:
        vision_client = text_client
    else:
        vision_client = AsyncOpenAI(
            api_key=ai_settings.vision_api_key,
            base_url=ai_settings.vision_base_url,
            timeout=timeout,
        )

    logger.info(
        "[AI CLIENTS] Initialized reasoning=%s vision=%s generation=%s",
        ai_settings.reasoning_model,
        ai_settings.vision_model,
        ai_settings.image_model,
    )
    return AIClients(
        reasoning=OpenAIReasoningClient(text_client, ai_settings.reasoning_model, ai_settings.temperature),
        vision=OpenAIVisionClient(vision_client, ai_settings.vision_model, ai_settings.vision_max_tokens),
        generation=OpenAIImageGenerationClient(text_client, ai_settings.image_model, ai_settings.image_size),
    )


_ai_clients: AIClients | None = None


def get_ai_clients() -> AIClients:
    """Return the process-wide clients, creating them on first use."""
    global _ai_clients
    if _ai_clients is None:
        _ai_clients = build_ai_clients(app_config.ai_settings)
    return _ai_clients
