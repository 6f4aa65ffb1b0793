from __future__ import annotations

from typing import TYPE_CHECKING

try:
    from openai import AsyncOpenAI as _AsyncOpenAI
except ImportError:
    _AsyncOpenAI = None  # type: ignore[assignment,misc]

from safepost_core.providers.base import BaseAnalyzer

if TYPE_CHECKING:
    from safepost_core.models import ImageInput


class OpenAIAnalyzer(BaseAnalyzer):
    MODEL = "gpt-4o"
    # Low temperature keeps the JSON structure stable across runs.
    TEMPERATURE = 0.2

    def __init__(self, api_key: str):
        if _AsyncOpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. Install it with: pip install openai"
            )
        self.client = _AsyncOpenAI(api_key=api_key)

    async def _call_api(
        self,
        system_prompt: str | None,
        user_prompt: str,
        image: ImageInput | None,
        max_tokens: int,
    ) -> str:
        user_content: list[dict] = [{"type": "text", "text": user_prompt}]
        if image is not None:
            user_content.append(
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{image.mime_type};base64,{image.base64}"},
                }
            )

        messages: list[dict] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_content})

        response = await self.client.chat.completions.create(
            model=self.MODEL,
            messages=messages,
            temperature=self.TEMPERATURE,
            max_tokens=max_tokens,
        )
        return response.choices[0].message.content or ""
