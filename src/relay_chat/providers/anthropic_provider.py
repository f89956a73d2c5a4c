from collections.abc import AsyncIterator

import anthropic
from loguru import logger


class AnthropicProvider:
    def __init__(self, api_key: str, *, model: str, max_tokens: int, temperature: float):
        self._client = anthropic.AsyncAnthropic(api_key=api_key)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def stream_text(self, prompt: str) -> AsyncIterator[str]:
        """Stream a Messages API answer, yielding only text deltas."""
        logger.debug(f"API request: model={self._model}, max_tokens={self._max_tokens}, prompt_len={len(prompt)}")
        async with self._client.messages.stream(
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            messages=[{"role": "user", "content": prompt}],
        ) as stream:
            async for event in stream:
                if event.type == "content_block_delta" and event.delta.type == "text_delta":
                    yield event.delta.text

            response = await stream.get_final_message()

        usage = response.usage
        logger.debug(
            f"API response: stop_reason={response.stop_reason}, "
            f"input_tokens={usage.input_tokens}, output_tokens={usage.output_tokens}"
        )
