from __future__ import annotations

from typing import TYPE_CHECKING

from safepost_core.providers.base import BaseAnalyzer

if TYPE_CHECKING:
    from safepost_core.models import ImageInput


class AnthropicAnalyzer(BaseAnalyzer):
    MODEL = "claude-haiku-4-5-20251001"

    def __init__(self, api_key: str):
        try:
            from anthropic import AsyncAnthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install anthropic"
            )
        self.client = AsyncAnthropic(api_key=api_key)

    async def _call_api(
        self,
        system_prompt: str | None,
        user_prompt: str,
        image: ImageInput | None,
        max_tokens: int,
    ) -> str:
        # Imported inside the method because the anthropic package is optional;
        # __init__ already validated it is installed before we reach here.
        from anthropic.types import TextBlock

        content: list[dict] = [{"type": "text", "text": user_prompt}]
        if image is not None:
            content.append(
                {
                    "type": "image",
                    "source": {"type": "base64", "media_type": image.mime_type, "data": image.base64},
                }
            )

        kwargs = {}
        if system_prompt:
            kwargs["system"] = system_prompt
        response = await self.client.messages.create(
            model=self.MODEL,
            messages=[{"role": "user", "content": content}],
            max_tokens=max_tokens,
            **kwargs,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return "".join(text_blocks).strip()
