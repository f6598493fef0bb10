"""Typed client for the OpenAI completions, chat completions and models APIs."""

from .client import AsyncOpenAIClient, OpenAIClient
from .config import Settings
from .errors import APIError, ClientClosedError, MalformedResponseError, OpenAIError
from .logging import configure_logging
from .models import (
    ChatChoice,
    ChatCompletion,
    ChatCompletionRequest,
    ChatMessage,
    Choice,
    Completion,
    CompletionRequest,
    FinishReason,
    Logprobs,
    Model,
    ModelPermission,
    ResponseMessage,
    Role,
    Usage,
)

__all__ = [
    "OpenAIClient",
    "AsyncOpenAIClient",
    "Settings",
    "configure_logging",
    "OpenAIError",
    "APIError",
    "MalformedResponseError",
    "ClientClosedError",
    "CompletionRequest",
    "ChatCompletionRequest",
    "ChatMessage",
    "ResponseMessage",
    "Role",
    "Completion",
    "ChatCompletion",
    "Choice",
    "ChatChoice",
    "FinishReason",
    "Logprobs",
    "Usage",
    "Model",
    "ModelPermission",
]
