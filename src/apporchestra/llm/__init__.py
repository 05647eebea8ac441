"""LLM client layer for the apporchestra system."""

from .client import LLMClient

__all__ = [
    "LLMClient",
]
