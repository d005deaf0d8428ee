"""
Vector Store
============

An in-process vector store with cosine similarity search and optional
persistence to disk.

How Vector Search Works:
1. Store documents with their embedding vectors
2. When searching, compute cosine similarity between the query and all
   stored vectors
3. Return the top-k most similar documents, best first

Cosine Similarity:
    cos(A, B) = (A · B) / (||A|| * ||B||)

When a storage path is given, data is kept in two files:
- documents.json: content, hash and metadata
- embeddings.npy: the embedding matrix, one row per document
"""

import hashlib
import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Protocol

import numpy as np

from ragent.utils.logger import Logger

logger = Logger("VectorStore")


def content_hash(content: str) -> str:
    return hashlib.sha256(content.encode()).hexdigest()


@dataclass
class Document:
    """
    A piece of retrievable context.

    Attributes:
        content: The text
        embedding: Its vector (filled in by an embeddings provider)
        hash: SHA-256 of the content, computed when not given
        id: Identifier in the store (defaults to the hash)
        metadata: Source information and other annotations
        score: Similarity to the query, set on search results
    """
    content: str
    embedding: list[float] = field(default_factory=list)
    hash: str = ""
    id: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    score: float | None = None

    def __post_init__(self):
        if not self.hash:
            self.hash = content_hash(self.content)
        if not self.id:
            self.id = self.hash

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "hash": self.hash,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict, embedding: list[float] | None = None) -> "Document":
        return cls(
            content=data["content"],
            embedding=embedding or [],
            hash=data.get("hash", ""),
            id=data.get("id", ""),
            metadata=data.get("metadata", {}),
        )


class VectorStoreProtocol(Protocol):
    """Contract consumed by the RAG pipeline."""

    def add_document(self, document: Document) -> None: ...

    def similarity_search(self, embedding: list[float], k: int = 4) -> list[Document]: ...


class VectorStore:
    """
    Cosine-similarity store backed by a numpy matrix.

    Example:
        store = VectorStore(Path("data/vectorstore"))
        store.add_document(Document("The API returns 500 errors", embedding=[...]))

        results = store.similarity_search(query_embedding, k=4)
    """

    def __init__(self, storage_path: Path | None = None):
        """
        Args:
            storage_path: Directory for the data files; None keeps
                everything in memory
        """
        self.storage_path = storage_path

        self._documents: list[Document] = []
        self._index_by_id: dict[str, int] = {}
        self._embeddings: np.ndarray | None = None

        if storage_path is not None:
            storage_path.mkdir(parents=True, exist_ok=True)
            self._load()

        logger.info(f"Vector store initialized with {len(self._documents)} documents")

    @property
    def documents_file(self) -> Path | None:
        return self.storage_path / "documents.json" if self.storage_path else None

    @property
    def embeddings_file(self) -> Path | None:
        return self.storage_path / "embeddings.npy" if self.storage_path else None

    def _load(self) -> None:
        if not self.documents_file.exists():
            return

        with open(self.documents_file) as f:
            docs_data = json.load(f)
        if not docs_data:
            return

        matrix = np.load(self.embeddings_file) if self.embeddings_file.exists() else None
        if matrix is None or len(matrix) != len(docs_data):
            raise ValueError(f"Vector store at {self.storage_path} is inconsistent")

        for i, doc_data in enumerate(docs_data):
            self._documents.append(Document.from_dict(doc_data, embedding=matrix[i].tolist()))
            self._index_by_id[self._documents[-1].id] = i
        self._embeddings = matrix

        logger.debug(f"Loaded {len(self._documents)} documents from disk")

    def _save(self) -> None:
        if self.storage_path is None:
            return

        with open(self.documents_file, "w") as f:
            json.dump([doc.to_dict() for doc in self._documents], f)

        if self._embeddings is not None:
            np.save(self.embeddings_file, self._embeddings)
        else:
            self.embeddings_file.unlink(missing_ok=True)

        logger.debug(f"Saved {len(self._documents)} documents to disk")

    def _insert(self, document: Document) -> None:
        if not document.embedding:
            raise ValueError(f"Document '{document.id}' has no embedding")

        embedding = np.array(document.embedding, dtype=float)
        if self._embeddings is not None and embedding.shape[0] != self._embeddings.shape[1]:
            raise ValueError(
                f"Embedding dimension {embedding.shape[0]} does not match "
                f"store dimension {self._embeddings.shape[1]}"
            )

        if document.id in self._index_by_id:
            idx = self._index_by_id[document.id]
            self._documents[idx] = document
            self._embeddings[idx] = embedding
        elif self._embeddings is None:
            self._documents.append(document)
            self._index_by_id[document.id] = 0
            self._embeddings = embedding.reshape(1, -1)
        else:
            self._documents.append(document)
            self._index_by_id[document.id] = len(self._documents) - 1
            self._embeddings = np.vstack([self._embeddings, embedding])

    def add_document(self, document: Document) -> None:
        """
        Add a document; a document with the same ID is replaced.

        Raises:
            ValueError: If the document has no embedding or the wrong dimension
        """
        self._insert(document)
        self._save()

    def add_documents(self, documents: list[Document]) -> None:
        """Add several documents, saving once at the end."""
        for doc in documents:
            self._insert(doc)
        self._save()
        logger.debug(f"Added batch of {len(documents)} documents")

    def similarity_search(self, embedding: list[float], k: int = 4) -> list[Document]:
        """
        Find the k documents most similar to the query embedding.

        Returns:
            Copies of the documents with `score` set, most similar first;
            ties keep insertion order
        """
        if self._embeddings is None or k <= 0:
            return []

        query = np.array(embedding, dtype=float)
        query_norm = np.linalg.norm(query) or 1.0
        doc_norms = np.linalg.norm(self._embeddings, axis=1)
        doc_norms = np.where(doc_norms == 0, 1, doc_norms)

        similarities = np.dot(self._embeddings, query) / (doc_norms * query_norm)

        # Stable sort on the negated scores keeps insertion order for ties
        order = np.argsort(-similarities, kind="stable")[:k]

        return [
            replace(self._documents[i], score=float(similarities[i]))
            for i in order
        ]

    def get(self, doc_id: str) -> Document | None:
        idx = self._index_by_id.get(doc_id)
        return self._documents[idx] if idx is not None else None

    def clear(self) -> None:
        self._documents.clear()
        self._index_by_id.clear()
        self._embeddings = None
        self._save()
        logger.info("Vector store cleared")

    def __len__(self) -> int:
        return len(self._documents)
