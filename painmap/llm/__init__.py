# painmap/llm/__init__.py
from .client import LLMClient, OpenAILLMClient

__all__ = ["LLMClient", "OpenAILLMClient"]
