"""Generative-text provider access."""

from .llm_provider import LLMProvider, MockLLMProvider, OpenAIProvider, build_llm_provider

__all__ = [
    "LLMProvider",
    "MockLLMProvider",
    "OpenAIProvider",
    "build_llm_provider",
]
