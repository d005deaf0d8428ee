"""
Chat Module
===========

Conversation state for the agent:
- messages: Message, Role, ToolCall and Usage value types
- history: ChatHistory, the context-window-bounded message buffer
- stores: persistence backends for ChatHistory
"""

from ragent.chat.messages import Message, Role, ToolCall, Usage
from ragent.chat.history import ChatHistory, trim_to_window, character_count, approx_tokens
from ragent.chat.stores import ChatStore, InMemoryChatStore, FileChatStore

__all__ = [
    "Message",
    "Role",
    "ToolCall",
    "Usage",
    "ChatHistory",
    "trim_to_window",
    "character_count",
    "approx_tokens",
    "ChatStore",
    "InMemoryChatStore",
    "FileChatStore",
]
