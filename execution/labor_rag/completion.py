"""
Completion Service (NVIDIA NIM)

Short LLM calls used during ingestion (case summaries) and retrieval
(article-number extraction). Talks to NVIDIA NIM through the OpenAI-compatible
client. A call that fails on the primary model is retried once on the
fallback model before the error reaches the caller.
"""

import os
import asyncio
import logging
from typing import Optional

from openai import OpenAI

from .config import DEFAULT_LLM_MODEL, DEFAULT_LLM_FALLBACK_MODEL, NIM_BASE_URL

logger = logging.getLogger(__name__)


class CompletionService:
    """Primary/fallback chat completion over the NIM endpoint."""

    def __init__(
        self,
        model: str = DEFAULT_LLM_MODEL,
        fallback_model: Optional[str] = DEFAULT_LLM_FALLBACK_MODEL,
        api_key: Optional[str] = None,
        base_url: str = NIM_BASE_URL,
        timeout: float = 30.0,
        client=None,
    ):
        self.model = model
        self.fallback_model = fallback_model
        self._client = client or OpenAI(
            base_url=base_url,
            api_key=api_key or os.getenv("NVIDIA_API_KEY"),
            timeout=timeout,
        )

    def _complete_sync(self, model: str, prompt: str, max_tokens: int, temperature: float) -> str:
        response = self._client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        raw = response.choices[0].message.content
        return raw.strip() if raw else ""

    async def complete(self, prompt: str, max_tokens: int = 100, temperature: float = 0.1) -> str:
        """
        Run one completion, falling back to the second model on failure.

        Raises:
            Exception: the fallback model's error when both models fail
        """
        try:
            return await asyncio.to_thread(
                self._complete_sync, self.model, prompt, max_tokens, temperature
            )
        except Exception as e:
            if not self.fallback_model:
                raise
            logger.warning(f"Completion with {self.model} failed: {e}. Trying {self.fallback_model}.")

        return await asyncio.to_thread(
            self._complete_sync, self.fallback_model, prompt, max_tokens, temperature
        )


def get_completion_service(settings=None) -> CompletionService:
    """Factory: completion service configured from Settings (or the environment)."""
    if settings is None:
        return CompletionService()
    return CompletionService(
        model=settings.llm_model,
        fallback_model=settings.llm_fallback_model,
        api_key=settings.nvidia_api_key,
        base_url=settings.llm_base_url,
    )


# CLI for testing
if __name__ == "__main__":
    import sys
    from dotenv import load_dotenv

    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    prompt = " ".join(sys.argv[1:]) or "Kas yra darbo sutartis? Atsakyk vienu sakiniu."
    print(asyncio.run(get_completion_service().complete(prompt, max_tokens=200)))
