"""
Embedding Client - Text Vectorization for Semantic Profile Search

Turns profile text (index builds) and query strings (hybrid search) into
dense vectors of a fixed dimensionality.

Key Classes:
    - EmbeddingProvider: Protocol shared by all providers
    - OpenAIEmbeddings: OpenAI embeddings API (text-embedding-3-small)
    - MockEmbeddingProvider: Deterministic hash-based vectors for tests

Key Functions:
    - get_embedding_provider(): Factory driven by settings
    - cosine_similarity() / cosine_distance(): Vector comparison

Model Details:
    - Model: text-embedding-3-small
    - Dimensions: 1536 (must match the persisted vector column)

Failure Contract:
    Any upstream error, timeout or malformed response surfaces as
    ProviderError. Callers decide whether to abort (index builder) or to
    fail the request (search engine).
"""

import hashlib
import logging
import time
from typing import List, Optional, Protocol, runtime_checkable

import numpy as np
from openai import APIError, AsyncOpenAI

from folio.config import get_settings
from folio.errors import ProviderError
from folio.middleware.metrics import record_embedding_latency

logger = logging.getLogger(__name__)

EMBEDDING_MODEL = "text-embedding-3-small"
EMBEDDING_DIMENSIONS = 1536

# Model dimension mappings
MODEL_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


@runtime_checkable
class EmbeddingProvider(Protocol):
    """
    Protocol defining the embedding provider interface.

    All embedding providers must implement:
    - embed(): Single text to embedding
    - embed_batch(): Multiple texts to embeddings (same order)
    - dimensions: Embedding vector size
    """

    @property
    def dimensions(self) -> int:
        """Return the embedding vector dimensions."""
        ...

    async def embed(self, text: str) -> List[float]:
        """Embed a single text string."""
        ...

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed multiple text strings in one call."""
        ...


class OpenAIEmbeddings:
    """
    OpenAI API embeddings provider.

    Attributes:
        model: OpenAI embedding model name
        timeout: Per-request timeout in seconds

    Example:
        >>> provider = OpenAIEmbeddings(api_key="sk-...")
        >>> embedding = await provider.embed("Software engineer in Vancouver")
    """

    def __init__(
        self,
        api_key: str,
        model: str = EMBEDDING_MODEL,
        dimensions: Optional[int] = None,
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._dimensions = dimensions or MODEL_DIMENSIONS.get(model, EMBEDDING_DIMENSIONS)
        self._client: Optional[AsyncOpenAI] = None

    def _get_client(self) -> AsyncOpenAI:
        """Get or create async OpenAI client."""
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> List[float]:
        """
        Embed a single text string.

        Empty text returns a zero vector without an API call.

        Raises:
            ProviderError: If the API call fails
        """
        text = text.replace("\n", " ").strip()
        if not text:
            return [0.0] * self.dimensions

        embeddings = await self._create([text])
        return embeddings[0]

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Embed multiple texts with a single API call.

        Empty texts receive zero vectors and are not sent upstream.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors in same order as input

        Raises:
            ProviderError: If the API call fails or returns the wrong count
        """
        cleaned_texts = [t.replace("\n", " ").strip() for t in texts]

        # Track empty text indices
        non_empty_indices = [i for i, t in enumerate(cleaned_texts) if t]
        non_empty_texts = [cleaned_texts[i] for i in non_empty_indices]

        result = [[0.0] * self.dimensions for _ in texts]
        if not non_empty_texts:
            return result

        embeddings = await self._create(non_empty_texts)
        for idx, emb in zip(non_empty_indices, embeddings):
            result[idx] = emb

        return result

    async def _create(self, texts: List[str]) -> List[List[float]]:
        client = self._get_client()
        start_time = time.perf_counter()
        try:
            response = await client.embeddings.create(
                input=texts,
                model=self.model,
                dimensions=self.dimensions,
            )
        except APIError as exc:
            logger.error(f"Embedding API error ({self.model}): {exc}")
            raise ProviderError(str(exc)) from exc
        finally:
            record_embedding_latency("openai", time.perf_counter() - start_time)

        # The response data is ordered by index; sort to be safe.
        data = sorted(response.data, key=lambda d: d.index)
        if len(data) != len(texts):
            raise ProviderError(
                f"Expected {len(texts)} embeddings, provider returned {len(data)}"
            )
        return [d.embedding for d in data]


class MockEmbeddingProvider:
    """
    Mock embedding provider for testing and offline development.

    Generates deterministic embeddings based on text hash, so the same
    text always maps to the same vector.
    """

    def __init__(self, dimensions: int = EMBEDDING_DIMENSIONS) -> None:
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _text_to_embedding(self, text: str) -> List[float]:
        """Generate deterministic embedding from text hash."""
        if not text:
            return [0.0] * self._dimensions

        text_hash = hashlib.md5(text.encode()).hexdigest()

        embedding = []
        for i in range(self._dimensions):
            # Use different parts of hash for different dimensions
            idx = (i * 2) % len(text_hash)
            char_val = int(text_hash[idx:idx + 2], 16)
            # Normalize to [-1, 1]
            embedding.append((char_val / 127.5) - 1)

        return embedding

    async def embed(self, text: str) -> List[float]:
        return self._text_to_embedding(text)

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        return [self._text_to_embedding(t) for t in texts]


def get_embedding_provider(
    provider_name: Optional[str] = None,
    api_key: Optional[str] = None,
    model_name: Optional[str] = None,
) -> EmbeddingProvider:
    """
    Factory function to create embedding provider instances.

    Args:
        provider_name: "openai" or "mock" (defaults to settings)
        api_key: API key for OpenAI (defaults to settings)
        model_name: Optional model name override

    Returns:
        EmbeddingProvider instance

    Raises:
        ValueError: If provider is unknown or required args missing
    """
    settings = get_settings()
    provider_name = (provider_name or settings.embedding_provider).lower()

    if provider_name == "openai":
        api_key = api_key or settings.openai_api_key
        if not api_key:
            raise ValueError("OpenAI embeddings require api_key")
        return OpenAIEmbeddings(
            api_key=api_key,
            model=model_name or settings.embedding_model,
            dimensions=settings.embedding_dimensions,
            timeout=settings.embedding_timeout_seconds,
        )

    elif provider_name == "mock":
        return MockEmbeddingProvider(dimensions=settings.embedding_dimensions)

    else:
        raise ValueError(
            f"Unknown embedding provider: {provider_name}. "
            f"Supported: openai, mock"
        )


def cosine_similarity(vec1: List[float], vec2: List[float]) -> float:
    """
    Calculate cosine similarity between two embedding vectors.

    Formula: cos(θ) = (a · b) / (||a|| × ||b||)

    Returns:
        Similarity score from -1 (opposite) to 1 (identical).
        Returns 0.0 if either vector has zero magnitude.
    """
    a = np.asarray(vec1, dtype=float)
    b = np.asarray(vec2, dtype=float)

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))


def cosine_distance(vec1: List[float], vec2: List[float]) -> float:
    """Cosine distance with pgvector `<=>` semantics (1 - similarity)."""
    return 1.0 - cosine_similarity(vec1, vec2)
