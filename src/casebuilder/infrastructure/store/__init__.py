"""
Remote store adapters.
"""

from casebuilder.infrastructure.store.http import HttpRemoteStore
from casebuilder.infrastructure.store.memory import InMemoryRemoteStore

__all__ = [
    "HttpRemoteStore",
    "InMemoryRemoteStore",
]
