from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator


class OpenAIChatMessage(BaseModel):
    content: str | None = None


class OpenAIChatChoice(BaseModel):
    message: OpenAIChatMessage | None = None
    text: str | None = None


class OpenAIChatResponse(BaseModel):
    """Envelope of `POST /v1/chat/completions`."""

    profile: Literal["openai"] = "openai"
    choices: list[OpenAIChatChoice] = Field(default_factory=list)

    def completion_text(self) -> str | None:
        if not self.choices:
            return None
        first = self.choices[0]
        if first.message is not None and first.message.content:
            return first.message.content
        return first.text or None


class OllamaGenerateResponse(BaseModel):
    """Envelope of `POST /api/generate` with `stream=false`."""

    profile: Literal["ollama"] = "ollama"
    response: str | None = None

    def completion_text(self) -> str | None:
        return self.response or None


CompletionResponse = Annotated[
    Union[OpenAIChatResponse, OllamaGenerateResponse],
    Field(discriminator="profile"),
]
COMPLETION_RESPONSE_ADAPTER: TypeAdapter[OpenAIChatResponse | OllamaGenerateResponse] = TypeAdapter(
    CompletionResponse
)


class StructuredFields(BaseModel):
    """Vacancy fields as returned by the extraction prompt."""

    position: str | None = None
    company: str | None = None
    salary: str | None = None
    location: str | None = None
    work_format: str | None = Field(default=None, alias="workFormat")
    employment: str | None = None
    contact: str | None = None
    hashtags: list[str] | None = None
    stack: list[str] | None = None
    tasks: list[str] | None = None
    summary: str | None = None

    model_config = {"populate_by_name": True}

    @field_validator(
        "position",
        "company",
        "salary",
        "location",
        "work_format",
        "employment",
        "contact",
        "summary",
        mode="after",
    )
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        if not stripped or stripped.lower() in {"null", "none", "n/a"}:
            return None
        return stripped

    @field_validator("hashtags", "stack", "tasks", mode="after")
    @classmethod
    def _strip_items(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [item.strip() for item in value if item.strip()]

    @field_validator("hashtags", mode="after")
    @classmethod
    def _prefix_hashtags(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [item if item.startswith("#") else f"#{item}" for item in value]


def parse_completion(profile: str, payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    envelope = COMPLETION_RESPONSE_ADAPTER.validate_python({**payload, "profile": profile})
    return envelope.completion_text()
