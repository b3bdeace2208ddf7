"""Model adaptors for tool-loop.

This module provides ModelAdaptor implementations for the supported inference
backends: any OpenAI-compatible chat completions server, and Ollama.
"""

from tool_loop.adaptors.openai import OpenAIAdaptor

__all__ = ["OpenAIAdaptor"]

# The Ollama SDK is an optional extra
try:
    from tool_loop.adaptors.ollama import OllamaAdaptor

    __all__.append("OllamaAdaptor")
except ImportError:
    pass
