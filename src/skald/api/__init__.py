"""
Model API layer for Skald.

Provides the streaming client interface the engine consumes and a Gemini
REST implementation.
"""

from skald.api.base import StreamingClient
from skald.api.gemini import GeminiRestClient, build_request_body, parse_chunk
from skald.api.types import (
    Content,
    FunctionCall,
    RawPart,
    StreamChunk,
    StreamOptions,
    UsageMetadata,
    text_content,
)

__all__ = [
    "Content",
    "FunctionCall",
    "GeminiRestClient",
    "RawPart",
    "StreamChunk",
    "StreamOptions",
    "StreamingClient",
    "UsageMetadata",
    "build_request_body",
    "parse_chunk",
    "text_content",
]
