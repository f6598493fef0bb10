"""HTTP clients for the completions, chat completions and models endpoints."""

from collections.abc import Sequence
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from loguru import logger

from .config import Settings
from .errors import ClientClosedError, MalformedResponseError, OpenAIError, raise_for_response
from .logging import excerpt
from .models import (
    ChatCompletion,
    ChatCompletionRequest,
    ChatMessage,
    Completion,
    CompletionRequest,
    Model,
    ModelList,
    ResponseModel,
    Role,
)

COMPLETIONS_PATH = "/v1/completions"
CHAT_COMPLETIONS_PATH = "/v1/chat/completions"
MODELS_PATH = "/v1/models"

EntityT = TypeVar("EntityT", bound=ResponseModel)


def build_headers(api_key: str, organization: str | None = None) -> dict[str, str]:
    """Build the request headers for one call.

    Args:
        api_key: Secret key sent as a bearer token.
        organization: Optional organization id for accounts in several orgs.

    Returns:
        A fresh header mapping.
    """
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Accept": "application/json",
    }
    if organization:
        headers["OpenAI-Organization"] = organization
    return headers


def model_path(model_id: str) -> str:
    """Path of a single model resource."""
    if not model_id:
        raise ValueError("model_id must be a non-empty string")
    return f"{MODELS_PATH}/{quote(model_id, safe='')}"


def decode_response(response: httpx.Response, entity: type[EntityT]) -> EntityT:
    """Decode a fully read response into ``entity``.

    Raises:
        APIError: If the status is not 200.
        MalformedResponseError: If a 200 body is not valid JSON for ``entity``.
    """
    if response.status_code != 200:
        logger.warning(
            f"API returned {response.status_code} {response.reason_phrase}: {excerpt(response.content)}"
        )
    raise_for_response(response)

    try:
        data = response.json()
    except (ValueError, RecursionError) as e:
        logger.error(f"Invalid JSON from API: {excerpt(response.content)}")
        raise MalformedResponseError("Response body is not valid JSON") from e

    try:
        return entity.from_payload(data)
    except MalformedResponseError as e:
        logger.error(f"Malformed {entity.__name__} response: {e}")
        raise


def first_text(completion: Completion) -> str:
    """Text of the first choice of a completion."""
    if not completion.choices:
        raise MalformedResponseError(f"Completion {completion.id} has no choices")
    return completion.choices[0].text


def first_content(completion: ChatCompletion) -> str:
    """Message content of the first choice of a chat completion."""
    if not completion.choices:
        raise MalformedResponseError(f"Chat completion {completion.id} has no choices")
    return completion.choices[0].message.content


class _BaseClient:
    """State and request building shared by the sync and async clients."""

    def __init__(
        self,
        api_key: str | None,
        organization: str | None,
        settings: Settings | None,
    ) -> None:
        self.settings = settings or Settings()
        api_key = api_key or self.settings.api_key
        if not api_key:
            raise OpenAIError("No API key provided: pass api_key or set OPENAI_API_KEY")
        self.api_key = api_key
        self.organization = organization or self.settings.organization
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ClientClosedError(f"{type(self).__name__} is closed")

    def _prepare(
        self, method: str, path: str, payload: dict[str, Any] | None
    ) -> tuple[str, dict[str, str]]:
        self._check_open()
        url = self.settings.endpoint_url(path)
        # Headers are rebuilt for every call and never shared between requests.
        headers = build_headers(self.api_key, self.organization)
        if payload is not None:
            logger.debug(f"{method} {url} with body keys: {list(payload.keys())}")
            if payload.get("stream"):
                logger.warning("stream=True is sent as-is but the response is decoded as one document")
        else:
            logger.debug(f"{method} {url}")
        return url, headers

    def _completion_request(
        self, prompt: str | list[str], model: str | None, params: dict[str, Any]
    ) -> CompletionRequest:
        return CompletionRequest(
            model=model or self.settings.default_completion_model,
            prompt=prompt,
            **params,
        )

    def _chat_request(
        self, messages: str | Sequence[ChatMessage], model: str | None, params: dict[str, Any]
    ) -> ChatCompletionRequest:
        if isinstance(messages, str):
            messages = [ChatMessage(role=Role.USER, content=messages)]
        return ChatCompletionRequest(
            model=model or self.settings.default_chat_model,
            messages=list(messages),
            **params,
        )


class Models:
    """The ``/v1/models`` endpoints of a client."""

    def __init__(self, client: "OpenAIClient") -> None:
        self._client = client

    def list(self) -> list[Model]:
        """List the models available to the account."""
        return self._client._request("GET", MODELS_PATH, ModelList).data

    def retrieve(self, model_id: str) -> Model:
        """Fetch one model by id."""
        return self._client._request("GET", model_path(model_id), Model)


class OpenAIClient(_BaseClient):
    """Synchronous API client.

    Example:
        with OpenAIClient(api_key="sk-...") as client:
            text = client.complete_text("Hello", model="davinci", stop=["."])
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        organization: str | None = None,
        settings: Settings | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(api_key, organization, settings)
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(timeout=httpx.Timeout(self.settings.timeout))
        self._models: Models | None = None

    def __enter__(self) -> "OpenAIClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def models(self) -> Models:
        """Models sub-client, created on first use."""
        if self._models is None:
            self._models = Models(self)
        return self._models

    def close(self) -> None:
        """Release the HTTP client. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._owns_http:
            self._http.close()

    def _request(
        self,
        method: str,
        path: str,
        entity: type[EntityT],
        payload: dict[str, Any] | None = None,
    ) -> EntityT:
        url, headers = self._prepare(method, path, payload)
        try:
            with self._http.stream(method, url, json=payload, headers=headers) as response:
                response.read()
        except httpx.TransportError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise
        return decode_response(response, entity)

    def complete(self, request: CompletionRequest) -> Completion:
        """Create a completion."""
        return self._request("POST", COMPLETIONS_PATH, Completion, request.to_payload())

    def complete_chat(self, request: ChatCompletionRequest) -> ChatCompletion:
        """Create a chat completion."""
        return self._request("POST", CHAT_COMPLETIONS_PATH, ChatCompletion, request.to_payload())

    def list_models(self) -> list[Model]:
        return self.models.list()

    def get_model(self, model_id: str) -> Model:
        return self.models.retrieve(model_id)

    def complete_text(
        self, prompt: str | list[str], *, model: str | None = None, **params: Any
    ) -> str:
        """Complete ``prompt`` and return the first choice's text.

        Args:
            prompt: Prompt text or batch of prompts.
            model: Model id; defaults to ``settings.default_completion_model``.
            **params: Any other CompletionRequest field.
        """
        request = self._completion_request(prompt, model, params)
        return first_text(self.complete(request))

    def chat(
        self,
        messages: str | Sequence[ChatMessage],
        *,
        model: str | None = None,
        **params: Any,
    ) -> str:
        """Send a conversation and return the first choice's message content.

        A plain string is sent as a single user message.
        """
        request = self._chat_request(messages, model, params)
        return first_content(self.complete_chat(request))


class AsyncModels:
    """The ``/v1/models`` endpoints of an async client."""

    def __init__(self, client: "AsyncOpenAIClient") -> None:
        self._client = client

    async def list(self) -> list[Model]:
        response = await self._client._request("GET", MODELS_PATH, ModelList)
        return response.data

    async def retrieve(self, model_id: str) -> Model:
        return await self._client._request("GET", model_path(model_id), Model)


class AsyncOpenAIClient(_BaseClient):
    """Asynchronous API client over ``httpx.AsyncClient``."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        organization: str | None = None,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(api_key, organization, settings)
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.timeout)
        )
        self._models: AsyncModels | None = None

    async def __aenter__(self) -> "AsyncOpenAIClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    @property
    def models(self) -> AsyncModels:
        if self._models is None:
            self._models = AsyncModels(self)
        return self._models

    async def aclose(self) -> None:
        """Release the HTTP client. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._owns_http:
            await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        entity: type[EntityT],
        payload: dict[str, Any] | None = None,
    ) -> EntityT:
        url, headers = self._prepare(method, path, payload)
        try:
            async with self._http.stream(method, url, json=payload, headers=headers) as response:
                await response.aread()
        except httpx.TransportError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise
        return decode_response(response, entity)

    async def complete(self, request: CompletionRequest) -> Completion:
        return await self._request("POST", COMPLETIONS_PATH, Completion, request.to_payload())

    async def complete_chat(self, request: ChatCompletionRequest) -> ChatCompletion:
        return await self._request(
            "POST", CHAT_COMPLETIONS_PATH, ChatCompletion, request.to_payload()
        )

    async def list_models(self) -> list[Model]:
        return await self.models.list()

    async def get_model(self, model_id: str) -> Model:
        return await self.models.retrieve(model_id)

    async def complete_text(
        self, prompt: str | list[str], *, model: str | None = None, **params: Any
    ) -> str:
        request = self._completion_request(prompt, model, params)
        return first_text(await self.complete(request))

    async def chat(
        self,
        messages: str | Sequence[ChatMessage],
        *,
        model: str | None = None,
        **params: Any,
    ) -> str:
        request = self._chat_request(messages, model, params)
        return first_content(await self.complete_chat(request))
