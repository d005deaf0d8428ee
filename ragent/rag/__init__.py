"""
RAG (Retrieval Augmented Generation) System
============================================

Answers a question with retrieved documents folded into the agent's
instructions:

1. Embed the question
2. Ask the vector store for the k nearest documents
3. Drop duplicates (same content hash), keeping rank order
4. Substitute the documents into the instructions template
5. Run the agent's tool-call loop with the question as the user turn

Observable lifecycle events (see ragent.events):

    rag-start
    rag-vectorstore-searching      VectorStoreSearching(question)
    rag-vectorstore-result         VectorStoreResult(question, documents)
    rag-instructions-changing      InstructionsChanging(old)
    rag-instructions-changed       InstructionsChanged(old, new)
    rag-stop

Components:
- embeddings.py: text -> vector
- vectorstore.py: Document and the similarity-search store
"""

from collections.abc import AsyncGenerator

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
    InstructionsChanging,
    Observable,
    VectorStoreResult,
    VectorStoreSearching,
)
from ragent.rag.embeddings import EmbeddingsProvider, OpenAIEmbeddings
from ragent.rag.vectorstore import Document, VectorStore, VectorStoreProtocol
from ragent.tools import Tool, ToolRegistry
from ragent.utils.config import Config, get_config
from ragent.utils.logger import Logger

logger = Logger("RAG")

CONTEXT_PLACEHOLDER = "{context}"

DEFAULT_INSTRUCTIONS = (
    "Use the following pieces of context to answer the question of the user. "
    "If you don't know the answer, just say that you don't know, "
    "don't try to make up an answer.\n\n{context}."
)


def deduplicate(documents: list[Document]) -> list[Document]:
    """Drop documents whose content hash was already seen; order is kept."""
    seen: set[str] = set()
    unique = []
    for doc in documents:
        if doc.hash in seen:
            continue
        seen.add(doc.hash)
        unique.append(doc)
    return unique


def build_context(documents: list[Document], k: int) -> str:
    """Join the content of the first k documents, each followed by a space."""
    return "".join(f"{doc.content} " for doc in documents[:k])


class RAG(Observable):
    """
    Retrieval-augmented front end for an Agent.

    Example:
        rag = RAG(agent, OpenAIEmbeddings(api_key="sk-..."), VectorStore(path))
        rag.observe(lambda event, payload: print(event))

        reply = await rag.answer("What did we decide about the migration?", k=4)
    """

    def __init__(
        self,
        agent: Agent,
        embeddings: EmbeddingsProvider,
        vectorstore: VectorStoreProtocol,
        instructions_template: str = DEFAULT_INSTRUCTIONS
    ):
        """
        Args:
            agent: Agent whose instructions receive the context
            embeddings: Embeddings collaborator
            vectorstore: Vector-store collaborator
            instructions_template: Text with a {context} placeholder
        """
        super().__init__()
        self.agent = agent
        self.embeddings = embeddings
        self.vectorstore = vectorstore
        self.instructions_template = instructions_template

        logger.info("RAG system initialized")

    @classmethod
    def from_config(
        cls,
        config: Config | None = None,
        tools: ToolRegistry | list[Tool] | None = None
    ) -> "RAG":
        """Build the agent, embeddings and vector store from configuration."""
        config = config or get_config()
        if not config.embeddings.api_key:
            raise ValueError("OPENAI_API_KEY is required for embeddings when RAG is enabled")

        return cls(
            agent=Agent.from_config(config, tools=tools),
            embeddings=OpenAIEmbeddings(
                api_key=config.embeddings.api_key,
                model=config.embeddings.model,
            ),
            vectorstore=VectorStore(config.rag.vectorstore_directory),
        )

    async def search_documents(self, question: str, k: int) -> list[Document]:
        """
        Retrieve up to k documents relevant to the question, without duplicates.

        Returns:
            Documents in similarity-rank order, first occurrence of each hash
        """
        embedding = await self.embeddings.embed_text(question)
        documents = self.vectorstore.similarity_search(embedding, k)

        unique = deduplicate(documents)
        if len(unique) < len(documents):
            logger.debug(f"Dropped {len(documents) - len(unique)} duplicate documents")
        return unique

    def set_system_message(self, documents: list[Document], k: int) -> str:
        """
        Install the instructions built from the template and documents.

        The template is used every time, so a previous context is replaced
        rather than nested.

        Returns:
            The new instructions
        """
        context = build_context(documents, k)
        instructions = self.instructions_template.replace(CONTEXT_PLACEHOLDER, context)
        self.agent.set_instructions(instructions)
        return instructions

    async def _retrieve(self, question: Message, k: int) -> None:
        if k <= 0:
            raise ValueError(f"k must be a positive integer, got {k}")

        self.notify(RAG_START)

        self.notify(RAG_SEARCHING, VectorStoreSearching(question))
        documents = await self.search_documents(question.content, k)
        self.notify(RAG_RESULT, VectorStoreResult(question, tuple(documents)))

        previous = self.agent.instructions
        self.notify(RAG_INSTRUCTIONS_CHANGING, InstructionsChanging(previous))
        current = self.set_system_message(documents, k)
        self.notify(RAG_INSTRUCTIONS_CHANGED, InstructionsChanged(previous, current))

        logger.debug(f"Context built from {min(len(documents), k)} documents")

    async def answer(self, question: Message | str, k: int = 4) -> Message:
        """
        Answer a question with retrieved context.

        Raises:
            ValueError: If k is not positive
            MaxToolDepthExceededError: If the model keeps calling tools
            ProviderError: On transport, protocol or timeout failures
        """
        question = Message.user(question) if isinstance(question, str) else question
        await self._retrieve(question, k)

        response = await self.agent.chat(question)

        self.notify(RAG_STOP)
        return response

    async def stream_answer(
        self,
        question: Message | str,
        k: int = 4
    ) -> AsyncGenerator[str, None]:
        """Like answer(), yielding the answer text as it streams."""
        question = Message.user(question) if isinstance(question, str) else question
        await self._retrieve(question, k)

        async for chunk in self.agent.stream(question):
            yield chunk

        self.notify(RAG_STOP)


__all__ = [
    "RAG",
    "DEFAULT_INSTRUCTIONS",
    "deduplicate",
    "build_context",
    "Document",
    "VectorStore",
    "EmbeddingsProvider",
    "OpenAIEmbeddings",
]
