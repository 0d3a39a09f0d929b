"""
Session-scoped key/value stores.
"""

from casebuilder.infrastructure.session.filesystem import FilesystemSessionStore
from casebuilder.infrastructure.session.memory import InMemorySessionStore

__all__ = [
    "InMemorySessionStore",
    "FilesystemSessionStore",
]
