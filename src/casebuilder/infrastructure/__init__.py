"""
Infrastructure layer for the case builder.

Contains adapters for external concerns (remote store, session storage, assistants).
"""

from casebuilder.infrastructure.llm import AIEndpointAssistant, OllamaAssistant
from casebuilder.infrastructure.session import FilesystemSessionStore, InMemorySessionStore
from casebuilder.infrastructure.store import HttpRemoteStore, InMemoryRemoteStore

__all__ = [
    # Remote store
    "HttpRemoteStore",
    "InMemoryRemoteStore",
    # Session storage
    "InMemorySessionStore",
    "FilesystemSessionStore",
    # Assistants
    "AIEndpointAssistant",
    "OllamaAssistant",
]
