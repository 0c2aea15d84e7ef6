# painmap/llm/client.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Iterator, List, Optional

from openai import OpenAI

from painmap.config import get_settings


class LLMClient(ABC):
    """
    Simple abstraction so we can swap providers if needed.
    """

    @abstractmethod
    def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.2,
        model: Optional[str] = None,
    ) -> str:
        """
        messages: list of {"role": "system"|"user"|"assistant", "content": "..."}
        returns: assistant content as a string
        """
        ...

    @abstractmethod
    def stream_chat(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.2,
        model: Optional[str] = None,
    ) -> Iterator[str]:
        """
        Same as chat(), but yields the reply as it is generated.
        Empty pieces are never yielded.
        """
        ...


class OpenAILLMClient(LLMClient):
    """
    OpenAI implementation using the official Python client.
    Works against any OpenAI-compatible endpoint via OPENAI_BASE_URL.
    """

    def __init__(self, model: Optional[str] = None, max_tokens: Optional[int] = None):
        settings = get_settings()
        if not settings.openai_api_key:
            raise RuntimeError(
                "OPENAI_API_KEY is not set in environment (.env)."
            )

        self.client = OpenAI(api_key=settings.openai_api_key, base_url=settings.openai_base_url)
        self.default_model = model or settings.llm_model
        self.max_tokens = max_tokens or settings.llm_max_tokens

    def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.2,
        model: Optional[str] = None,
    ) -> str:
        completion = self.client.chat.completions.create(
            model=model or self.default_model,
            messages=messages,
            temperature=temperature,
            max_tokens=self.max_tokens,
        )
        content = completion.choices[0].message.content
        return content or ""

    def stream_chat(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.2,
        model: Optional[str] = None,
    ) -> Iterator[str]:
        stream = self.client.chat.completions.create(
            model=model or self.default_model,
            messages=messages,
            temperature=temperature,
            max_tokens=self.max_tokens,
            stream=True,
        )
        for chunk in stream:
            if not chunk.choices:
                continue
            text = chunk.choices[0].delta.content
            if text:
                yield text
