"""
Embedding Generation
====================

Turns text into vectors for similarity search.

    "How do I reset my password?"   → [0.02, -0.15, 0.89, ...]
    "I forgot my login credentials" → [0.03, -0.14, 0.87, ...]

Similar meanings give similar vectors, so the question's vector can be
compared with stored document vectors to find relevant context.

The pipeline only depends on EmbeddingsProvider.embed_text(); the
OpenAI implementation adds an in-memory cache (keyed by an MD5 of the
text) and batch embedding for documents.
"""

import hashlib
from typing import Protocol, Sequence

from openai import APITimeoutError, AsyncOpenAI, OpenAIError

from ragent.errors import ProviderTimeoutError, TransportError
from ragent.rag.vectorstore import Document
from ragent.utils.logger import Logger

logger = Logger("Embeddings")


class EmbeddingsProvider(Protocol):
    async def embed_text(self, text: str) -> list[float]: ...


class OpenAIEmbeddings:
    """
    Generates text embeddings using OpenAI's API.

    Example:
        embeddings = OpenAIEmbeddings(api_key="sk-...", model="text-embedding-3-small")

        vector = await embeddings.embed_text("How do I use this feature?")
        documents = await embeddings.embed_documents(documents)
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "text-embedding-3-small",
        client: AsyncOpenAI | None = None
    ):
        """
        Args:
            api_key: OpenAI API key (ignored when client is given)
            model: Embedding model to use
            client: Pre-built async client
        """
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model = model

        # Key: hash of text, Value: embedding vector
        self._cache: dict[str, list[float]] = {}

        logger.info(f"Embeddings initialized with model: {model}")

    def _hash_text(self, text: str) -> str:
        return hashlib.md5(text.encode()).hexdigest()

    async def _create(self, texts: str | list[str]):
        try:
            return await self.client.embeddings.create(
                model=self.model,
                input=texts,
                encoding_format="float",
            )
        except APITimeoutError as e:
            raise ProviderTimeoutError("Embeddings request timed out", "openai") from e
        except OpenAIError as e:
            raise TransportError(f"Embeddings request failed: {e}", "openai",
                                 status_code=getattr(e, "status_code", None)) from e

    async def embed_text(self, text: str) -> list[float]:
        """
        Embed a single text.

        Raises:
            TransportError: If the API call fails
            ProviderTimeoutError: If the API call times out
        """
        cache_key = self._hash_text(text)
        if cache_key in self._cache:
            logger.debug("Embedding cache hit")
            return self._cache[cache_key]

        response = await self._create(text)
        embedding = response.data[0].embedding
        self._cache[cache_key] = embedding

        logger.debug(f"Generated embedding (dim={len(embedding)})")
        return embedding

    async def embed_texts(self, texts: Sequence[str]) -> list[list[float]]:
        """
        Embed several texts with one API call for the uncached ones.

        Returns:
            Embeddings in the same order as `texts`
        """
        if not texts:
            return []

        results: list[list[float] | None] = []
        missing: list[tuple[int, str]] = []

        for i, text in enumerate(texts):
            cached = self._cache.get(self._hash_text(text))
            results.append(cached)
            if cached is None:
                missing.append((i, text))

        if missing:
            logger.debug(f"Generating {len(missing)} embeddings (batch)")
            response = await self._create([text for _, text in missing])
            if len(response.data) != len(missing):
                logger.error(f"Embeddings response has {len(response.data)} items for {len(missing)} texts")
                raise TransportError(
                    f"Embeddings response has {len(response.data)} items, expected {len(missing)}",
                    "openai"
                )

            for (index, text), item in zip(missing, response.data):
                results[index] = item.embedding
                self._cache[self._hash_text(text)] = item.embedding

        return [r for r in results if r is not None]

    async def embed_documents(self, documents: list[Document]) -> list[Document]:
        """Fill in the embedding of every document, in place."""
        embeddings = await self.embed_texts([doc.content for doc in documents])
        for doc, embedding in zip(documents, embeddings):
            doc.embedding = embedding
        return documents

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Embedding cache cleared")

    def get_cache_size(self) -> int:
        return len(self._cache)
