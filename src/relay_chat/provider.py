from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-sonnet-4-5-20250929",
}


@runtime_checkable
class CompletionSource(Protocol):
    def stream_text(self, prompt: str) -> AsyncIterator[str]:
        """Stream the model's answer to ``prompt`` as text deltas, in arrival order.

        Any failure, including one before the first delta, propagates to the
        consumer of the iterator.
        """
        ...


def create_provider(
    provider_name: str,
    api_key: str,
    *,
    model: str | None = None,
    max_tokens: int = 4096,
    temperature: float = 1.0,
) -> CompletionSource:
    """Factory: create a CompletionSource by name."""
    name = provider_name.strip().lower()
    if name not in DEFAULT_MODELS:
        raise ValueError(f"Unknown provider: {provider_name!r}. Supported: 'openai', 'anthropic'")
    resolved_model = model or DEFAULT_MODELS[name]
    if name == "anthropic":
        from relay_chat.providers.anthropic_provider import AnthropicProvider
        return AnthropicProvider(api_key, model=resolved_model, max_tokens=max_tokens, temperature=temperature)
    from relay_chat.providers.openai_provider import OpenAIProvider
    return OpenAIProvider(api_key, model=resolved_model, max_tokens=max_tokens, temperature=temperature)
