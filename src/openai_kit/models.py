"""Pydantic models for the completions, chat completions and models APIs."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any, Self

from pydantic import (
    BaseModel,
    BeforeValidator,
    Field,
    ValidationError,
    SerializerFunctionWrapHandler,
    field_validator,
    model_serializer,
    model_validator,
)

from .errors import MalformedResponseError


class Role(StrEnum):
    """Author of a chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    UNKNOWN = "unknown"


class FinishReason(StrEnum):
    """Why generation stopped for a choice."""

    STOP = "stop"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"
    UNKNOWN = "unknown"


def _compact(data: dict[str, Any], required: tuple[str, ...]) -> dict[str, Any]:
    """Drop optional keys whose value is falsy.

    Omission lets the remote default apply. Note this also drops explicit
    zeros such as ``max_tokens=0`` or ``temperature=0.0``.
    """
    return {k: v for k, v in data.items() if k in required or v}


# --- Request Models ---


class ChatMessage(BaseModel):
    """A message sent in a chat conversation."""

    role: Role
    content: str
    user: str | None = None

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("role")
    @classmethod
    def known_role(cls, value: Role) -> Role:
        if value is Role.UNKNOWN:
            raise ValueError("role must be one of system, user, assistant")
        return value

    def to_payload(self) -> dict[str, Any]:
        return _compact(self.model_dump(mode="json"), required=("role", "content"))


class CompletionRequest(BaseModel):
    """Request body for ``POST /v1/completions``."""

    model: str
    prompt: str | list[str] | list[int] | list[list[int]] | None = None
    suffix: str | None = None
    max_tokens: int | None = Field(default=None, ge=0)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    n: int | None = Field(default=None, ge=1, le=128)
    stream: bool | None = None
    logprobs: int | None = Field(default=None, ge=0)
    echo: bool | None = None
    stop: str | list[str] | None = None
    presence_penalty: float | None = Field(default=None, ge=-2.0, le=2.0)
    frequency_penalty: float | None = Field(default=None, ge=-2.0, le=2.0)
    # Enforced by the server: best_of > n, bias values in [-100, 100].
    best_of: int | None = None
    logit_bias: dict[int, int] | None = None
    return_prompt: bool | None = None
    user: str | None = None

    model_config = {"frozen": True, "extra": "forbid"}

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the JSON body, omitting unset and falsy fields."""
        data = self.model_dump(mode="python")
        if data["logit_bias"]:
            data["logit_bias"] = {str(k): v for k, v in data["logit_bias"].items()}
        return _compact(data, required=("model",))


class ChatCompletionRequest(BaseModel):
    """Request body for ``POST /v1/chat/completions``."""

    model: str
    messages: list[ChatMessage]
    max_tokens: int | None = Field(default=None, ge=0)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    n: int | None = Field(default=None, ge=1, le=128)
    stream: bool | None = None
    stop: str | list[str] | None = None
    presence_penalty: float | None = Field(default=None, ge=-2.0, le=2.0)
    frequency_penalty: float | None = Field(default=None, ge=-2.0, le=2.0)
    logit_bias: dict[int, int] | None = None
    user: str | None = None

    model_config = {"frozen": True, "extra": "forbid"}

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the JSON body, omitting unset and falsy fields."""
        data = self.model_dump(mode="python")
        data["messages"] = [message.to_payload() for message in self.messages]
        if data["logit_bias"]:
            data["logit_bias"] = {str(k): v for k, v in data["logit_bias"].items()}
        return _compact(data, required=("model", "messages"))


# --- Response Models ---


class ResponseModel(BaseModel):
    """Base for entities decoded from a 200 response body."""

    model_config = {"frozen": True}

    @classmethod
    def from_payload(cls, data: Any) -> Self:
        """Decode a JSON document into this entity.

        Raises:
            MalformedResponseError: If the document is not an object or a
                required field is missing or mistyped.
        """
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Expected a JSON object for {cls.__name__}, got {type(data).__name__}"
            )
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(
                f"Invalid {cls.__name__} payload: {_describe(e)}"
            ) from e


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "<root>"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def _or_unknown(enum_type: type[StrEnum]):
    def _coerce(value: Any) -> Any:
        if value is None or isinstance(value, enum_type):
            return value
        try:
            return enum_type(value)
        except ValueError:
            return enum_type.UNKNOWN

    return _coerce


# Values the server adds later decode as UNKNOWN instead of failing.
FinishReasonField = Annotated[FinishReason | None, BeforeValidator(_or_unknown(FinishReason))]
ResponseRoleField = Annotated[Role, BeforeValidator(_or_unknown(Role))]


class _Timestamped:
    @property
    def created_at(self) -> datetime:
        """The ``created`` unix timestamp as an aware UTC datetime."""
        return datetime.fromtimestamp(self.created, tz=UTC)


class Usage(ResponseModel):
    """Token accounting for one request/response pair."""

    prompt_tokens: int
    completion_tokens: int | None = None
    total_tokens: int


class Logprobs(ResponseModel):
    """Per-token log probabilities, index-aligned across all sequences."""

    tokens: list[str] = Field(default_factory=list)
    token_logprobs: list[float | None] = Field(default_factory=list)
    top_logprobs: list[dict[str, float] | None] = Field(default_factory=list)
    text_offset: list[int] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def drop_null_sequences(cls, data: Any) -> Any:
        # A null sequence counts as absent.
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @model_validator(mode="after")
    def check_aligned(self) -> Self:
        lengths = {len(getattr(self, name)) for name in self.model_fields_set}
        if len(lengths) > 1:
            raise ValueError(f"logprobs sequences differ in length: {sorted(lengths)}")
        return self

    @model_serializer(mode="wrap")
    def dump_present(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        return {k: v for k, v in data.items() if k in self.model_fields_set}


class ResponseMessage(ResponseModel):
    """A message generated by the model."""

    role: ResponseRoleField
    content: str = ""

    @field_validator("content", mode="before")
    @classmethod
    def null_content_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class Choice(ResponseModel):
    """A candidate completion."""

    text: str
    index: int
    logprobs: Logprobs | None = None
    finish_reason: FinishReasonField = None


class ChatChoice(ResponseModel):
    """A candidate chat completion."""

    index: int
    message: ResponseMessage
    finish_reason: FinishReasonField = None


class Completion(_Timestamped, ResponseModel):
    """Response from ``POST /v1/completions``."""

    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]
    usage: Usage | None = None


class ChatCompletion(_Timestamped, ResponseModel):
    """Response from ``POST /v1/chat/completions``."""

    id: str
    object: str
    created: int
    model: str
    choices: list[ChatChoice]
    usage: Usage | None = None


class ModelPermission(ResponseModel):
    """Permission record attached to a model."""

    id: str | None = None
    object: str | None = None
    created: int | None = None
    allow_create_engine: bool | None = None
    allow_sampling: bool | None = None
    allow_logprobs: bool | None = None
    allow_search_indices: bool | None = None
    allow_view: bool | None = None
    allow_fine_tuning: bool | None = None
    organization: str | None = None
    group: str | None = None
    is_blocking: bool | None = None


class Model(_Timestamped, ResponseModel):
    """A model available to the account."""

    id: str
    object: str
    created: int
    owned_by: str
    permission: list[ModelPermission] | None = None
    root: str | None = None
    parent: str | None = None


class ModelList(ResponseModel):
    """Response from ``GET /v1/models``."""

    object: str = "list"
    data: list[Model]
