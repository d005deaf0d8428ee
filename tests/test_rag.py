"""
Tests for the RAG pipeline
"""

import pytest

from ragent.agent import Agent
from ragent.chat.messages import Message
from ragent.events import (
    RAG_INSTRUCTIONS_CHANGED,
    RAG_INSTRUCTIONS_CHANGING,
    RAG_RESULT,
    RAG_SEARCHING,
    RAG_START,
    RAG_STOP,
    InstructionsChanged,
    VectorStoreResult,
)
from ragent.rag import DEFAULT_INSTRUCTIONS, RAG, build_context, deduplicate
from ragent.rag.vectorstore import Document, VectorStore
from tests.conftest import ScriptedProvider


class FixedEmbeddings:
    def __init__(self, vector=None):
        self.vector = vector or [1.0, 0.0]
        self.calls: list[str] = []

    async def embed_text(self, text: str) -> list[float]:
        self.calls.append(text)
        return self.vector


class FixedStore:
    def __init__(self, documents: list[Document]):
        self.documents = documents
        self.searches: list[int] = []

    def add_document(self, document: Document) -> None:
        self.documents.append(document)

    def similarity_search(self, embedding: list[float], k: int = 4) -> list[Document]:
        self.searches.append(k)
        return self.documents[:k]


def make_rag(documents: list[Document], replies: list[Message] | None = None, **kwargs) -> RAG:
    provider = ScriptedProvider(replies or [Message.assistant("answer")] * 5)
    return RAG(Agent(provider), FixedEmbeddings(), FixedStore(documents), **kwargs)


class TestContextAssembly:

    def test_deduplicate_keeps_first_occurrence(self):
        first = Document("A", metadata={"rank": 1})
        documents = [first, Document("B"), Document("A", metadata={"rank": 3})]

        unique = deduplicate(documents)

        assert [d.content for d in unique] == ["A", "B"]
        assert unique[0] is first

    def test_build_context_takes_k_documents(self):
        documents = [Document("A"), Document("B"), Document("C")]

        assert build_context(documents, 2) == "A B "

    def test_build_context_with_fewer_documents(self):
        assert build_context([Document("A")], 4) == "A "


class TestRAG:

    @pytest.mark.asyncio
    async def test_answer_uses_retrieved_context(self):
        rag = make_rag([Document("A"), Document("B"), Document("C")])

        reply = await rag.answer("What?", k=2)

        assert reply.content == "answer"
        expected = DEFAULT_INSTRUCTIONS.replace("{context}", "A B ")
        assert rag.agent.instructions == expected
        assert rag.agent.provider.system == expected
        assert rag.embeddings.calls == ["What?"]
        assert rag.vectorstore.searches == [2]

    @pytest.mark.asyncio
    async def test_duplicates_are_dropped_before_context(self):
        rag = make_rag([Document("A"), Document("A"), Document("B")],
                       instructions_template="Context: {context}")

        await rag.answer("q", k=3)

        assert rag.agent.instructions == "Context: A B "

    @pytest.mark.asyncio
    async def test_repeated_answers_replace_the_context(self):
        rag = make_rag([Document("A")], instructions_template="Context: {context}")

        await rag.answer("first", k=1)
        rag.vectorstore.documents = [Document("Z")]
        await rag.answer("second", k=1)

        assert rag.agent.instructions == "Context: Z "

    @pytest.mark.asyncio
    async def test_events_in_order(self):
        rag = make_rag([Document("A")], instructions_template="{context}")
        seen = []
        rag.observe(lambda event, payload: seen.append((event, payload)))

        await rag.answer("q", k=1)

        assert [event for event, _ in seen] == [
            RAG_START,
            RAG_SEARCHING,
            RAG_RESULT,
            RAG_INSTRUCTIONS_CHANGING,
            RAG_INSTRUCTIONS_CHANGED,
            RAG_STOP,
        ]
        result = seen[2][1]
        assert isinstance(result, VectorStoreResult)
        assert [d.content for d in result.documents] == ["A"]
        changed = seen[4][1]
        assert changed == InstructionsChanged(previous=None, current="A ")

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_abort(self):
        rag = make_rag([Document("A")])

        def broken(event, payload):
            raise RuntimeError("listener bug")

        rag.observe(broken, RAG_RESULT)

        reply = await rag.answer("q", k=1)

        assert reply.content == "answer"

    @pytest.mark.asyncio
    async def test_invalid_k(self):
        rag = make_rag([Document("A")])

        with pytest.raises(ValueError):
            await rag.answer("q", k=0)

    @pytest.mark.asyncio
    async def test_stream_answer(self):
        rag = make_rag([Document("A")], replies=[Message.assistant("streamed answer")])
        seen = []
        rag.observe(lambda event, payload: seen.append(event))

        chunks = [chunk async for chunk in rag.stream_answer("q", k=1)]

        assert chunks == ["streamed ", "answer "]
        assert seen[0] == RAG_START
        assert seen[-1] == RAG_STOP

    @pytest.mark.asyncio
    async def test_with_real_vector_store(self):
        store = VectorStore()
        store.add_documents([
            Document("about cats", embedding=[1.0, 0.0]),
            Document("about dogs", embedding=[0.0, 1.0]),
        ])
        provider = ScriptedProvider([Message.assistant("meow")])
        rag = RAG(Agent(provider), FixedEmbeddings([0.9, 0.1]), store,
                  instructions_template="{context}")

        await rag.answer("cats?", k=1)

        assert rag.agent.instructions == "about cats "
