"""LLM clients.

Two implementations share the :class:`LlmClient` interface and are chosen
once, at construction, by :func:`build_llm_client`:

* ``GeminiClient`` calls Google Gemini through ``google-genai``.
* ``FixtureClient`` answers from keyword heuristics or scripted replies,
  for offline development and tests.
"""

from __future__ import annotations

import itertools
import json
import logging
from collections.abc import Iterable
from typing import Protocol

from google import genai
from google.genai import types
from tenacity import retry, stop_after_attempt, wait_exponential

from .config import Settings
from .errors import UpstreamError
from .heuristics import mock_analysis, mock_clause_analysis
from .prompts import DOCUMENT_END, DOCUMENT_START, SELECTED_END, SELECTED_START

logger = logging.getLogger(__name__)


class LlmClient(Protocol):
    async def generate(self, prompt: str) -> str:
        """Return the model's raw text reply.

        Raises:
            UpstreamError: On network, quota or empty-response problems.
        """
        ...


class GeminiClient:
    """Google Gemini client with retry and JSON output.

    Args:
        api_key: Gemini API key.
        model: Model name.
        temperature: Sampling temperature; kept low for legal analysis.
    """

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash", temperature: float = 0.1) -> None:
        if not api_key:
            raise ValueError("GEMINI_API_KEY not found in environment")
        self.model = model
        self._client = genai.Client(api_key=api_key)
        self._config = types.GenerateContentConfig(
            temperature=temperature,
            top_k=40,
            top_p=0.95,
            max_output_tokens=8192,
            response_mime_type="application/json",
        )

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=1, max=10), reraise=True)
    async def _call_llm(self, prompt: str) -> str:
        """
        Make a call to Gemini with retry logic.

        Args:
            prompt: The full prompt

        Returns:
            The model's response text
        """
        response = await self._client.aio.models.generate_content(
            model=self.model,
            contents=[prompt],
            config=self._config,
        )
        text = response.text
        if not text:
            raise UpstreamError("Gemini returned an empty response")
        return text

    async def generate(self, prompt: str) -> str:
        try:
            return await self._call_llm(prompt)
        except UpstreamError:
            raise
        except Exception as exc:
            logger.warning("Gemini call failed after retries: %s", exc)
            raise UpstreamError(f"Gemini call failed: {exc}") from exc


def _between(text: str, start: str, end: str) -> str | None:
    begin = text.find(start)
    if begin == -1:
        return None
    begin += len(start)
    finish = text.find(end, begin)
    return text[begin:finish if finish != -1 else None].strip()


class FixtureClient:
    """Deterministic offline client.

    With ``responses`` it replays them in order, cycling when exhausted.
    Otherwise it pulls the document out of the prompt and answers with the
    keyword-driven mock analysis.
    """

    def __init__(self, responses: Iterable[str] | None = None) -> None:
        self._responses = itertools.cycle(list(responses)) if responses is not None else None
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self._responses is not None:
            return next(self._responses)

        clause = _between(prompt, SELECTED_START, SELECTED_END)
        if clause is not None:
            payload = mock_clause_analysis(clause)
        else:
            document = _between(prompt, DOCUMENT_START, DOCUMENT_END)
            payload = mock_analysis(document if document is not None else prompt)
        return json.dumps(payload)

    @property
    def calls(self) -> int:
        return len(self.prompts)


def build_llm_client(settings: Settings) -> LlmClient:
    """Pick the client once from settings."""
    if settings.use_fixture_client:
        if not settings.mock_llm:
            logger.warning("Gemini API key not provided, using the fixture client")
        return FixtureClient()
    return GeminiClient(api_key=settings.gemini_api_key or "", model=settings.gemini_model)
