from typing import Annotated, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator

# Canonical
class Turn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Optional[str] = None  # "system" | "user" | "assistant"
    content: str = ""

    @field_validator("content", mode="before")
    @classmethod
    def _null_content(cls, v):
        # role-only and terminal deltas arrive without content (or with null)
        return "" if v is None else v


SYSTEM = "system"
USER = "user"
ASSISTANT = "assistant"


class Stop(RootModel[Annotated[Union[List[str], str], Field(union_mode="left_to_right")]]):
    """
    Stop sequence(s): serialized as a bare string or as a list of strings.
    Decoding tries the list form first, then the scalar form.
    """

    @classmethod
    def scalar(cls, value: str) -> "Stop":
        return cls(value)

    @classmethod
    def many(cls, values: List[str]) -> "Stop":
        return cls(list(values))

    @property
    def is_list(self) -> bool:
        return isinstance(self.root, list)

    @property
    def values(self) -> List[str]:
        return list(self.root) if self.is_list else [self.root]


class ChatRequest(BaseModel):
    model: str
    messages: List[Turn]
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    n: Optional[int] = None
    stream: Optional[bool] = None
    stop: Optional[Stop] = None
    max_tokens: Optional[int] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    user: Optional[str] = None

    def to_wire(self) -> bytes:
        return self.model_dump_json(exclude_none=True).encode("utf-8")


# OpenAI compat (subset)
class ApiErrorBody(BaseModel):
    message: str
    type: Optional[str] = None


class ErrorEnvelope(BaseModel):
    error: ApiErrorBody


class Choice(BaseModel):
    index: int
    message: Optional[Turn] = None
    delta: Optional[Turn] = None
    finish_reason: Optional[str] = None


class ChatResponsePartial(BaseModel):
    id: str
    object: str
    created: int
    model: Optional[str] = None
    error: Optional[ApiErrorBody] = None
    choices: List[Choice] = Field(default_factory=list)

    @property
    def fragment(self) -> Optional[str]:
        """Text carried by the first choice's delta, or None when there is none."""
        if not self.choices:
            return None
        delta = self.choices[0].delta
        if delta is None or not delta.content:
            return None
        return delta.content
