"""
Tests for OpenAIEmbeddings with a mocked client
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from ragent.errors import ProviderTimeoutError, TransportError
from ragent.rag.embeddings import OpenAIEmbeddings
from ragent.rag.vectorstore import Document


def embedding_response(*vectors):
    return SimpleNamespace(data=[SimpleNamespace(embedding=list(v)) for v in vectors])


def mock_client(*responses) -> MagicMock:
    client = MagicMock()
    client.embeddings.create = AsyncMock(side_effect=list(responses))
    return client


class TestOpenAIEmbeddings:

    @pytest.mark.asyncio
    async def test_embed_text_is_cached(self):
        client = mock_client(embedding_response([0.1, 0.2]))
        embeddings = OpenAIEmbeddings(client=client, model="m")

        first = await embeddings.embed_text("hello")
        second = await embeddings.embed_text("hello")

        assert first == second == [0.1, 0.2]
        client.embeddings.create.assert_awaited_once()
        assert client.embeddings.create.await_args.kwargs["model"] == "m"
        assert embeddings.get_cache_size() == 1

    @pytest.mark.asyncio
    async def test_batch_only_sends_uncached_texts(self):
        client = mock_client(embedding_response([1.0]), embedding_response([2.0], [3.0]))
        embeddings = OpenAIEmbeddings(client=client)
        await embeddings.embed_text("b")

        result = await embeddings.embed_texts(["a", "b", "c"])

        assert result == [[2.0], [1.0], [3.0]]
        assert client.embeddings.create.await_args.kwargs["input"] == ["a", "c"]

    @pytest.mark.asyncio
    async def test_embed_documents(self):
        client = mock_client(embedding_response([1.0], [2.0]))
        documents = [Document("a"), Document("b")]

        await OpenAIEmbeddings(client=client).embed_documents(documents)

        assert [d.embedding for d in documents] == [[1.0], [2.0]]

    @pytest.mark.asyncio
    async def test_clear_cache(self):
        embeddings = OpenAIEmbeddings(client=mock_client(embedding_response([1.0])))
        await embeddings.embed_text("a")

        embeddings.clear_cache()

        assert embeddings.get_cache_size() == 0

    @pytest.mark.asyncio
    async def test_timeout(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
        client = mock_client(openai.APITimeoutError(request=request))

        with pytest.raises(ProviderTimeoutError):
            await OpenAIEmbeddings(client=client).embed_text("a")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
        client = mock_client(openai.APIConnectionError(request=request))

        with pytest.raises(TransportError):
            await OpenAIEmbeddings(client=client).embed_text("a")

    @pytest.mark.asyncio
    async def test_short_batch_response_is_rejected(self):
        client = mock_client(embedding_response([1.0]))
        embeddings = OpenAIEmbeddings(client=client)

        with pytest.raises(TransportError, match="1 items, expected 2"):
            await embeddings.embed_texts(["a", "b"])

        assert embeddings.get_cache_size() == 0
