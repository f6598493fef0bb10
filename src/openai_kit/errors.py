"""Exceptions raised by the client and decoding of remote error bodies."""

import json
from typing import Any

import httpx


class OpenAIError(Exception):
    """Base class for errors raised by this library."""


class APIError(OpenAIError):
    """Non-200 response from the API.

    The ``message``, ``type``, ``param`` and ``code`` fields come from the
    ``error`` object of the response body and are ``None`` when the body was
    not JSON or lacked them.
    """

    def __init__(
        self,
        status_code: int,
        status_message: str,
        message: Any = None,
        type: Any = None,
        param: Any = None,
        code: Any = None,
        body: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.status_message = status_message
        self.message = message
        self.type = type
        self.param = param
        self.code = code
        self.body = body or {}
        detail = message if message is not None else "no error details"
        super().__init__(f"{status_code} {status_message}: {detail}")

    @classmethod
    def from_body(cls, status_code: int, status_message: str, content: bytes) -> "APIError":
        """Build an error from a raw response body."""
        error = decode_error_body(content)
        return cls(
            status_code,
            status_message,
            message=error.get("message"),
            type=error.get("type"),
            param=error.get("param"),
            code=error.get("code"),
            body=error,
        )


class MalformedResponseError(OpenAIError, ValueError):
    """A 200 response body that cannot be decoded into the expected entity."""


class ClientClosedError(OpenAIError):
    """The client was used after it was closed."""


def decode_error_body(content: bytes) -> dict[str, Any]:
    """Extract the ``error`` object from a response body.

    Never raises: anything that is not ``{"error": {...}}`` yields ``{}``.
    """
    try:
        document = json.loads(content)
    except (ValueError, RecursionError):
        return {}
    if not isinstance(document, dict):
        return {}
    error = document.get("error")
    return error if isinstance(error, dict) else {}


def raise_for_response(response: httpx.Response) -> None:
    """Raise APIError unless the response status is 200.

    The body must already be read.
    """
    if response.status_code == 200:
        return
    raise APIError.from_body(response.status_code, response.reason_phrase, response.content)
