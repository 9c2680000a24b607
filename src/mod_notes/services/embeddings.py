"""
Embedding Provider

OpenAI integration for generating text embeddings, with a deterministic
synthetic fallback used when no API key is configured or the API call fails.

The fallback is bit-reproducible: the same text always maps to the same
unit-length vector, so offline environments still get stable semantic
search behaviour (without any real semantics).
"""

from __future__ import annotations

import logging
import math
from typing import Any, NamedTuple

import numpy as np
import openai
from openai import AsyncOpenAI

from mod_notes.core.exceptions import InvalidInputError, ProviderFailure

logger = logging.getLogger(__name__)

EMBEDDING_DIMENSION = 1536  # text-embedding-3-small output size
DEFAULT_MODEL = "text-embedding-3-small"

# Linear congruential generator, 31-bit state
LCG_MULTIPLIER = 1103515245
LCG_INCREMENT = 12345
LCG_MASK = 0x7FFFFFFF

SOURCE_OPENAI = "openai"
SOURCE_SYNTHETIC = "synthetic"


class Embedding(NamedTuple):
    """
    Generated vector plus the path that produced it.

    Attributes:
        vector: The embedding values.
        source: ``"openai"`` or ``"synthetic"``.
        reason: Why the synthetic path was taken (None for OpenAI vectors):
            ``"unconfigured"``, ``"timeout"``, ``"provider_error"`` or
            ``"invalid_response"``.
    """

    vector: list[float]
    source: str
    reason: str | None = None


def synthetic_embedding(text: str, dimension: int = EMBEDDING_DIMENSION) -> list[float]:
    """
    Deterministic pseudo-embedding derived from the characters of ``text``.

    The seed is the sum of the code points; each component is the next LCG
    value scaled to [-1, 1]. The result is divided by its Euclidean norm.
    """
    state = sum(ord(ch) for ch in text)
    values = np.empty(dimension, dtype=np.float64)
    for i in range(dimension):
        state = (state * LCG_MULTIPLIER + LCG_INCREMENT) & LCG_MASK
        values[i] = (state / LCG_MASK - 0.5) * 2

    norm = np.linalg.norm(values)
    if norm == 0.0:
        return values.tolist()
    return (values / norm).tolist()


def validate_embedding(vector: Any, dimension: int = EMBEDDING_DIMENSION) -> bool:
    """True if ``vector`` is a sequence of ``dimension`` finite numbers."""
    if not isinstance(vector, (list, tuple)) or len(vector) != dimension:
        return False
    return all(
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        for value in vector
    )


class EmbeddingProvider:
    """
    Async embedding provider backed by OpenAI, falling back to synthetic vectors.

    Constructed once at startup and injected wherever embeddings are needed.
    An ``api_key`` that is missing or set to ``'mock'`` leaves the provider
    unconfigured: no network calls are made and every vector is synthetic.

    Usage::

        provider = EmbeddingProvider(api_key=settings.OPENAI_API_KEY)
        vector = await provider.generate_embedding("quantum computing")
        assert len(vector) == 1536
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        timeout: float = 10.0,
        dimension: int = EMBEDDING_DIMENSION,
    ) -> None:
        self._model = model
        self._dimension = dimension
        self._client: AsyncOpenAI | None = None

        if api_key and api_key.lower() != "mock":
            # No SDK retries: a failed call goes straight to the synthetic path
            self._client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    @property
    def is_configured(self) -> bool:
        """True when a real provider will be called."""
        return self._client is not None

    @property
    def dimension(self) -> int:
        return self._dimension

    async def generate_embedding(self, text: str) -> list[float]:
        """
        Generate a vector embedding for the given text.

        Raises:
            InvalidInputError: If ``text`` is empty or whitespace-only.
        """
        embedding = await self.embed(text)
        return embedding.vector

    async def embed(self, text: str) -> Embedding:
        """
        Generate an embedding and report which path produced it.

        Provider failures of any kind never escape: they are logged as an
        ``embedding.fallback`` event and answered with a synthetic vector.

        Raises:
            InvalidInputError: If ``text`` is empty or whitespace-only.
        """
        if not text or not text.strip():
            raise InvalidInputError("Text content is required for embedding generation")

        if self._client is None:
            logger.debug(
                "Embedding provider not configured, using synthetic embedding",
                extra={"event": "embedding.fallback", "reason": "unconfigured"},
            )
            return Embedding(
                synthetic_embedding(text, self._dimension), SOURCE_SYNTHETIC, "unconfigured"
            )

        try:
            vector = await self._call_provider(text)
        except ProviderFailure as e:
            logger.warning(
                "Embedding provider failed (%s), falling back to synthetic embedding",
                e,
                extra={"event": "embedding.fallback", "reason": e.reason},
            )
            return Embedding(
                synthetic_embedding(text, self._dimension), SOURCE_SYNTHETIC, e.reason
            )

        return Embedding(vector, SOURCE_OPENAI)

    async def _call_provider(self, text: str) -> list[float]:
        """
        Single OpenAI embeddings call with response shape validation.

        Raises:
            ProviderFailure: On timeout, API/transport error or malformed response.
        """
        assert self._client is not None
        # OpenAI recommends single-line input
        cleaned = text.strip().replace("\n", " ")

        try:
            response = await self._client.embeddings.create(
                input=[cleaned], model=self._model, encoding_format="float"
            )
        except openai.APITimeoutError as e:
            raise ProviderFailure(f"OpenAI request timed out: {e}", "timeout") from e
        except openai.OpenAIError as e:
            raise ProviderFailure(f"OpenAI error: {e}", "provider_error") from e

        try:
            vector = list(response.data[0].embedding)
        except (AttributeError, IndexError, TypeError) as e:
            raise ProviderFailure(
                "Invalid embedding response from OpenAI", "invalid_response"
            ) from e

        if not validate_embedding(vector, self._dimension):
            raise ProviderFailure(
                f"Invalid embedding response from OpenAI (expected {self._dimension} floats)",
                "invalid_response",
            )
        return vector

    async def close(self) -> None:
        """Release the underlying HTTP client."""
        if self._client is not None:
            await self._client.close()
