"""LLM provider interface and implementations."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence

import openai
from openai import OpenAI

from ..errors import ProviderError

logger = logging.getLogger(__name__)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    model: str = "unknown"

    @abstractmethod
    def generate(
        self,
        prompt: str,
        max_tokens: int = 512,
        temperature: float = 0.3,
    ) -> str:
        """
        Complete a prompt.

        Args:
            prompt: Full prompt text
            max_tokens: Output token cap
            temperature: Sampling temperature

        Returns:
            Raw completion text

        Raises:
            ProviderError: if the provider fails or returns nothing
        """

    @abstractmethod
    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""


class OpenAIProvider(LLMProvider):
    """OpenAI implementation of LLM provider."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Model name to use
            base_url: Custom base URL (for Ollama or testing)
            timeout: Request timeout in seconds
        """
        self.client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        self.model = model
        self.total_tokens = 0
        self.api_calls = 0
        self._lock = threading.Lock()

        # Token cost estimates (per 1K tokens)
        self.cost_per_1k_tokens = {
            "gpt-4o": {"input": 0.005, "output": 0.015},
            "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
            "gpt-4.1-mini": {"input": 0.0004, "output": 0.0016},
            "gpt-3.5-turbo": {"input": 0.001, "output": 0.002},
        }

    def generate(
        self,
        prompt: str,
        max_tokens: int = 512,
        temperature: float = 0.3,
    ) -> str:
        """Complete a prompt with the chat completions API."""
        with self._lock:
            self.api_calls += 1
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.OpenAIError as e:
            raise ProviderError(f"OpenAI request failed: {e}") from e

        if response.usage:
            with self._lock:
                self.total_tokens += response.usage.total_tokens

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise ProviderError("OpenAI returned an empty completion")
        return content.strip()

    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""
        estimated_cost = 0.0
        if self.model in self.cost_per_1k_tokens:
            # Rough estimate (assuming 70% input, 30% output)
            input_tokens = int(self.total_tokens * 0.7)
            output_tokens = int(self.total_tokens * 0.3)
            rates = self.cost_per_1k_tokens[self.model]
            estimated_cost = (
                (input_tokens / 1000) * rates["input"] +
                (output_tokens / 1000) * rates["output"]
            )

        return {
            "total_tokens": self.total_tokens,
            "api_calls": self.api_calls,
            "estimated_cost": estimated_cost,
            "model": self.model,
        }


class MockLLMProvider(LLMProvider):
    """Mock LLM provider for testing."""

    model = "mock"

    def __init__(
        self,
        responses: Optional[Sequence[str]] = None,
        handler: Optional[Callable[[str], str]] = None,
        delay: float = 0.0,
    ) -> None:
        """
        Initialize mock provider.

        Args:
            responses: Canned completions returned in order; the last one repeats
            handler: Callable producing a completion from the prompt (wins over responses)
            delay: Seconds to sleep before answering
        """
        self.responses: List[str] = list(responses or [])
        self.handler = handler
        self.delay = delay
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def generate(
        self,
        prompt: str,
        max_tokens: int = 512,
        temperature: float = 0.3,
    ) -> str:
        """Mock completion."""
        with self._lock:
            self.calls.append(prompt)
            if self.handler is None:
                if not self.responses:
                    raise ProviderError("mock provider has no response")
                text = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if self.delay:
            time.sleep(self.delay)
        if self.handler is not None:
            text = self.handler(prompt)
        return text

    def get_usage_stats(self) -> Dict:
        """Get mock usage statistics."""
        return {
            "total_tokens": len(self.calls) * 100,
            "api_calls": len(self.calls),
            "estimated_cost": 0.0,
            "model": "mock",
        }


def build_llm_provider(llm_config: Dict) -> Optional[LLMProvider]:
    """Provider from an LLM config dict, or None when none is usable."""
    provider = (llm_config.get("provider") or "").lower()
    if provider == "openai":
        api_key = llm_config.get("api_key")
        if not api_key:
            logger.warning("No OpenAI API key found; provider-backed steps will use their fallbacks")
            return None
        return OpenAIProvider(
            api_key=api_key,
            model=llm_config.get("model", "gpt-4o-mini"),
            base_url=llm_config.get("base_url"),
        )
    if provider in ("", "none"):
        return None
    logger.warning("Unknown LLM provider %r; provider-backed steps will use their fallbacks", provider)
    return None
