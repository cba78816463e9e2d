"""Model provider interface types."""

from __future__ import annotations

from typing import AsyncIterator, Protocol, runtime_checkable

from .items import ModelRequest, ModelResponse, ModelStreamChunk


@runtime_checkable
class ModelProvider(Protocol):
    """Interface for chat-style models."""

    async def complete(self, request: ModelRequest) -> ModelResponse:
        """Return ordered content items for the request."""
        ...


@runtime_checkable
class StreamingModelProvider(ModelProvider, Protocol):
    """Provider that can also deliver its response incrementally."""

    def stream(self, request: ModelRequest) -> AsyncIterator[ModelStreamChunk]:
        """Yield ``text_delta`` chunks, then one ``completed`` chunk."""
        ...
