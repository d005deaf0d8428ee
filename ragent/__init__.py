"""
Ragent - Retrieval-Augmented Tool-Calling Agent
===============================================

An orchestration layer for LLM conversations: it sends turns to a model
provider, optionally augments the prompt with retrieved documents, and
runs multi-step tool calling until the model produces a final answer.

This package provides:
- Message model and a context-window-bounded chat history
- Tool registry with validated, failure-isolated invocation
- Provider adapters with a streaming tool-call state machine
- An orchestration loop bounded by a maximum tool depth
- A RAG pipeline with lifecycle notifications
"""

__version__ = "0.3.0"
