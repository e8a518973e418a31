"""Completion provider adapters."""

from .provider import CompletionProvider
from .provider import OpenAICompletionProvider

__all__ = [
    "CompletionProvider",
    "OpenAICompletionProvider",
]
