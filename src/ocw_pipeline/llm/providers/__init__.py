"""LLM provider implementations.

PROVIDER_REGISTRY maps provider names (used in models.yaml)
to their implementation classes. To add a new provider:

1. Create a new module in this package
2. Implement LLMProvider subclass
3. Add entry to PROVIDER_REGISTRY below and a config in llm/factory.py
"""

from ocw_pipeline.llm.providers.anthropic import AnthropicProvider
from ocw_pipeline.llm.providers.base import LLMProvider
from ocw_pipeline.llm.providers.gemini import GeminiProvider
from ocw_pipeline.llm.providers.openai_compat import OpenAICompatProvider

PROVIDER_REGISTRY: dict[str, type[LLMProvider]] = {
    "openrouter": OpenAICompatProvider,
    "anthropic": AnthropicProvider,
    "openai": OpenAICompatProvider,
    "gemini": GeminiProvider,
}

__all__ = [
    "PROVIDER_REGISTRY",
    "AnthropicProvider",
    "GeminiProvider",
    "LLMProvider",
    "OpenAICompatProvider",
]
