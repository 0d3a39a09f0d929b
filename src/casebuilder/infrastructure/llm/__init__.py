"""
Workflow assistant adapters.
"""

from casebuilder.infrastructure.llm.endpoint import PROVIDER_PATHS, AIEndpointAssistant
from casebuilder.infrastructure.llm.ollama import OllamaAssistant, OllamaAssistantConfig

__all__ = [
    "AIEndpointAssistant",
    "OllamaAssistant",
    "OllamaAssistantConfig",
    "PROVIDER_PATHS",
]
