"""Shared pytest fixtures for client tests."""

import copy
import json
from collections.abc import Callable, Iterator
from typing import Any, Final

import httpx
import pytest

from openai_kit.client import OpenAIClient
from openai_kit.config import Settings

TEST_API_KEY: Final[str] = "sk-test-key"
TEST_BASE_URL: Final[str] = "https://api.openai.com"

COMPLETION_PAYLOAD: Final[dict[str, Any]] = {
    "id": "cmpl-1",
    "object": "text_completion",
    "created": 1690000000,
    "model": "davinci",
    "choices": [{"text": " world", "index": 0, "finish_reason": "stop"}],
}

COMPLETION_WITH_LOGPROBS_PAYLOAD: Final[dict[str, Any]] = {
    "id": "cmpl-2",
    "object": "text_completion",
    "created": 1690000002,
    "model": "davinci",
    "choices": [
        {
            "text": " world.",
            "index": 0,
            "logprobs": {
                "tokens": [" world", "."],
                "token_logprobs": [-0.1, -0.5],
                "top_logprobs": [{" world": -0.1}, {".": -0.5}],
                "text_offset": [5, 11],
            },
            "finish_reason": "length",
        }
    ],
    "usage": {"prompt_tokens": 1, "completion_tokens": 2, "total_tokens": 3},
}

CHAT_COMPLETION_PAYLOAD: Final[dict[str, Any]] = {
    "id": "chatcmpl-1",
    "object": "chat.completion",
    "created": 1690000001,
    "model": "gpt-3.5-turbo",
    "choices": [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "Hi there!"},
            "finish_reason": "stop",
        }
    ],
    "usage": {"prompt_tokens": 9, "completion_tokens": 3, "total_tokens": 12},
}

MODEL_PAYLOAD: Final[dict[str, Any]] = {
    "id": "davinci",
    "object": "model",
    "created": 1649359874,
    "owned_by": "openai",
    "permission": [
        {
            "id": "modelperm-1",
            "object": "model_permission",
            "created": 1669066355,
            "allow_create_engine": False,
            "allow_sampling": True,
            "allow_logprobs": True,
            "allow_search_indices": False,
            "allow_view": True,
            "allow_fine_tuning": False,
            "organization": "*",
            "group": None,
            "is_blocking": False,
        }
    ],
    "root": "davinci",
    "parent": None,
}

Handler = Callable[[httpx.Request], httpx.Response]


def payload(document: dict[str, Any]) -> dict[str, Any]:
    """Return a private deep copy of a fixture document."""
    return copy.deepcopy(document)


def request_json(request: httpx.Request) -> Any:
    """Decode the JSON body sent with a request."""
    return json.loads(request.content)


@pytest.fixture
def settings() -> Settings:
    """Settings that never read the developer's environment or .env."""
    return Settings(api_key=TEST_API_KEY, base_url=TEST_BASE_URL, organization=None, _env_file=None)


@pytest.fixture
def seen_requests() -> list[httpx.Request]:
    """Requests received by the mock transport, in order."""
    return []


@pytest.fixture
def make_client(
    settings: Settings, seen_requests: list[httpx.Request]
) -> Iterator[Callable[[Handler], OpenAIClient]]:
    """Factory building a client whose HTTP calls go to ``handler``."""
    http_clients: list[httpx.Client] = []

    def _make(handler: Handler) -> OpenAIClient:
        def _record(request: httpx.Request) -> httpx.Response:
            seen_requests.append(request)
            return handler(request)

        http_client = httpx.Client(transport=httpx.MockTransport(_record))
        http_clients.append(http_client)
        return OpenAIClient(settings=settings, http_client=http_client)

    yield _make

    for http_client in http_clients:
        http_client.close()
