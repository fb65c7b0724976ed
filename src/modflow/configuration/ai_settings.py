import os
from typing import Any, Dict


class AISettings:
    """Helper exposing typed accessors for the external AI services.

    Three capabilities are configured here: the reasoning model used for text
    analysis and the final decision, the vision model used to describe
    images, and the image generation model. Every endpoint speaks the
    OpenAI-compatible API, so each is just a base URL, a key and a model name.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    # Reasoning model
    @property
    def api_key(self) -> str | None:
        val = self.data.get("api_key") or os.getenv("OPENAI_API_KEY")
        return str(val) if val else None

    @property
    def base_url(self) -> str | None:
        val = self.data.get("base_url")
        return str(val) if val else None

    @property
    def reasoning_model(self) -> str:
        return str(self.data.get("reasoning_model") or "gpt-4o-mini")

    @property
    def temperature(self) -> float:
        return float(self.data.get("temperature", 0.0))

    # Vision model
    @property
    def vision_api_key(self) -> str | None:
        val = self.data.get("vision_api_key") or os.getenv("GOOGLE_API_KEY")
        return str(val) if val else self.api_key

    @property
    def vision_base_url(self) -> str | None:
        val = self.data.get("vision_base_url")
        return str(val) if val else self.base_url

    @property
    def vision_model(self) -> str:
        return str(self.data.get("vision_model") or "gemini-2.0-flash")

    @property
    def vision_max_tokens(self) -> int:
        return int(self.data.get("vision_max_tokens", 2048))

    # Image generation model
    @property
    def image_model(self) -> str:
        return str(self.data.get("image_model") or "dall-e-3")

    @property
    def image_size(self) -> str:
        return str(self.data.get("image_size") or "1024x1024")

    @property
    def request_timeout_seconds(self) -> float:
        return float(self.data.get("request_timeout_seconds", 60.0))
