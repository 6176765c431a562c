"""LLM client infrastructure for toolplan.

Provides Azure OpenAI-compatible chat and image clients and the protocols
strategies and capabilities are written against.
"""

from toolplan.exceptions import LlmAuthError, LlmResponseError, LlmServiceError
from toolplan.llm.client import ChatClient, parse_reply
from toolplan.llm.images import ImageClient
from toolplan.llm.protocols import ChatService, ImageService, SamplingOptions

__all__ = [
    "ChatClient",
    "ImageClient",
    "ChatService",
    "ImageService",
    "SamplingOptions",
    "parse_reply",
    "LlmServiceError",
    "LlmAuthError",
    "LlmResponseError",
]
