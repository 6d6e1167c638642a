"""Ollama client used to refine transcriptions with a local language model."""

import asyncio
import logging
import threading
from typing import Iterable, List, Optional

import aiohttp

from ..errors import LLMError

logger = logging.getLogger(__name__)

TRANSCRIPT_PLACEHOLDER = "{{TRANSCRIPT}}"
DICTIONARY_PLACEHOLDER = "{{DICTIONARY}}"


def build_prompt(template: str, transcript: str, dictionary_words: Iterable[str]) -> str:
    """Fill the transcript and comma-separated dictionary placeholders."""
    return (template
            .replace(TRANSCRIPT_PLACEHOLDER, transcript)
            .replace(DICTIONARY_PLACEHOLDER, ", ".join(dictionary_words)))


class OllamaRefiner:
    """Sends transcripts to an Ollama server and returns the refined text."""

    def __init__(self, url: str, model: str, prompt_template: str, timeout_seconds: float = 30.0):
        """Initialize Ollama refiner.

        Args:
            url: API base, e.g. http://localhost:11434/api
            model: Model name; an empty name makes every refine call fail
            prompt_template: Prompt with {{TRANSCRIPT}} and {{DICTIONARY}}
            timeout_seconds: Upper bound for a single request
        """
        self.url = url.rstrip('/')
        self.model = model
        self.prompt_template = prompt_template
        self.timeout_seconds = timeout_seconds

        logger.info(f"OllamaRefiner initialized with model: {model or '<none>'}")

    def _timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.timeout_seconds)

    async def _generate(self, prompt: str) -> str:
        data = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": 0.0},
        }
        try:
            async with aiohttp.ClientSession(timeout=self._timeout()) as session:
                async with session.post(f"{self.url}/generate", json=data) as response:
                    if response.status != 200:
                        raise LLMError(f"Ollama API returned error: {response.status}")
                    try:
                        result = await response.json(content_type=None)
                        return str(result["response"]).strip()
                    except (ValueError, KeyError, TypeError) as e:
                        raise LLMError(f"Failed to parse Ollama response: {e}") from e
        except aiohttp.ClientError as e:
            raise LLMError(f"Failed to connect to Ollama: {e}") from e

    async def refine(self, transcript: str, dictionary_words: Iterable[str] = ()) -> str:
        """Refine a transcript.

        Raises:
            LLMError: No model configured, connection/HTTP failure, bad
                response, or the request exceeded ``timeout_seconds``
        """
        if not self.model.strip():
            raise LLMError("No model selected")

        prompt = build_prompt(self.prompt_template, transcript, dictionary_words)
        try:
            return await asyncio.wait_for(self._generate(prompt), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise LLMError(f"Ollama request timed out after {self.timeout_seconds}s") from e

    def refine_sync(self, transcript: str, dictionary_words: Iterable[str] = ()) -> str:
        """Blocking wrapper for worker threads without a running loop."""
        return asyncio.run(self.refine(transcript, list(dictionary_words)))

    async def warmup(self) -> None:
        """Load the model server-side with a minimal request."""
        if not self.model.strip() or not self.url.strip():
            return
        await asyncio.wait_for(self._generate(" "), timeout=self.timeout_seconds)

    def warmup_in_background(self) -> threading.Thread:
        """Fire-and-forget warmup; failures are only logged."""
        def _run():
            try:
                asyncio.run(self.warmup())
            except (LLMError, asyncio.TimeoutError) as e:
                logger.warning(f"LLM warmup failed: {e}")

        thread = threading.Thread(target=_run, daemon=True)
        thread.name = "LLMWarmup"
        thread.start()
        return thread

    async def test_connection(self) -> bool:
        """Check that the server answers on ``/tags``."""
        try:
            async with aiohttp.ClientSession(timeout=self._timeout()) as session:
                async with session.get(f"{self.url}/tags") as response:
                    if response.status != 200:
                        raise LLMError(f"Server returned error: {response.status}")
                    return True
        except aiohttp.ClientError as e:
            raise LLMError(f"Connection failed: {e}") from e

    async def list_models(self) -> List[str]:
        """Names of the models installed on the server."""
        try:
            async with aiohttp.ClientSession(timeout=self._timeout()) as session:
                async with session.get(f"{self.url}/tags") as response:
                    if response.status != 200:
                        raise LLMError(f"Server returned error: {response.status}")
                    result = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise LLMError(f"Failed to fetch models: {e}") from e
        try:
            return [model["name"] for model in result.get("models", [])]
        except (AttributeError, KeyError, TypeError) as e:
            raise LLMError(f"Failed to parse response: {e}") from e


def refiner_from_settings(settings) -> Optional[OllamaRefiner]:
    """Build a refiner from ``RuntimeSettings``; None without a URL."""
    if not settings.llm_url:
        return None
    return OllamaRefiner(
        url=settings.llm_url,
        model=settings.llm_model,
        prompt_template=settings.llm_prompt,
        timeout_seconds=settings.llm_timeout_seconds,
    )
