from collections.abc import AsyncIterator

import openai
from loguru import logger

# Responses API event carrying a fragment of the output text.
_TEXT_DELTA_EVENT = "response.output_text.delta"


class OpenAIProvider:
    def __init__(self, api_key: str, *, model: str, max_tokens: int, temperature: float):
        self._client = openai.AsyncOpenAI(api_key=api_key)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def stream_text(self, prompt: str) -> AsyncIterator[str]:
        """Stream a Responses API answer, yielding only output-text deltas."""
        logger.debug(f"API request: model={self._model}, max_tokens={self._max_tokens}, prompt_len={len(prompt)}")
        stream = await self._client.responses.create(
            model=self._model,
            input=prompt,
            max_output_tokens=self._max_tokens,
            temperature=self._temperature,
            stream=True,
        )

        chunks = 0
        async for event in stream:
            if event.type == _TEXT_DELTA_EVENT:
                chunks += 1
                yield event.delta

        logger.debug(f"API response: model={self._model}, text_deltas={chunks}")
