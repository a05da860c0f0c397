"""Data models for chat orchestration."""

import json
from enum import Enum
from typing import Optional, Dict, Any, Callable, Literal
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys, the format the editor client sends."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Complexity(str, Enum):
    SIMPLE = "simple"
    COMPLEX = "complex"


class TextSelection(CamelModel):
    """Text the user highlighted in the editor."""
    text: str
    start_line: int
    start_char: int
    end_line: int
    end_char: int


class ContextItem(CamelModel):
    """A repository the user attached to the chat."""
    type: Literal["github-repo"] = "github-repo"
    owner: str
    repo: str
    integration_id: str


class ValidatedRepository(CamelModel):
    id: str
    owner: str
    repo: str
    enabled: bool


class ValidatedIntegration(CamelModel):
    """An integration confirmed usable for this organization and chat."""
    id: str
    type: Literal["github"] = "github"
    enabled: bool
    display_name: str
    organization_id: str
    repositories: list[ValidatedRepository]


class RoutingDecision(CamelModel):
    """Router model's classification of a user message."""
    complexity: Complexity = Field(
        description=(
            "Whether the task is simple (greeting, quick question, single-turn) or complex "
            "(multi-step, content creation, research)"
        )
    )
    requires_tools: bool = Field(
        description=(
            "Whether the task requires using tools like editing markdown, fetching GitHub data, "
            "or using skills"
        )
    )
    reasoning: str = Field(description="Brief 1-2 sentence explanation of the routing decision")


class RoutingResult(CamelModel):
    model: str
    complexity: Complexity
    requires_tools: bool
    reasoning: str


class RepoContext(BaseModel):
    owner: str
    repo: str


class ToolSet(BaseModel):
    """Callables exposed to the model plus one capability line per tool group."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    tools: Dict[str, Callable]
    descriptions: list[str]


class MessagePart(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    text: Optional[str] = None


class ChatMessage(BaseModel):
    """A chat message as sent by the editor client."""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    role: Literal["user", "assistant", "system"]
    parts: list[MessagePart] = []
    content: Optional[str] = None

    def text(self) -> str:
        """All text parts joined, falling back to plain content."""
        texts = [p.text for p in self.parts if p.type == "text" and p.text]
        if texts:
            return "\n".join(texts)
        return self.content or ""


class ChatRequest(CamelModel):
    messages: list[ChatMessage] = Field(min_length=1)
    current_markdown: str
    selection: Optional[TextSelection] = None
    context: list[ContextItem] = []


class StreamEvent(BaseModel):
    """One NDJSON line of a chat stream."""
    type: Literal["routing", "text-delta", "markdown", "error", "finish"]
    data: Dict[str, Any] = {}

    def to_line(self) -> str:
        return json.dumps({"type": self.type, **self.data}) + "\n"
