from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class WorkerId(str, Enum):
    """Closed set of workers the project manager may delegate to."""

    DATABASE_SPECIALIST = "Database Specialist"
    BACKEND_ENGINEER = "Backend Engineer"
    FRONTEND_DEVELOPER = "Frontend Developer"


@dataclass(frozen=True)
class Message:
    """Single turn exchanged between the user, a worker, or a tool."""

    role: Role
    content: Union[str, Dict[str, Any]]
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str, **metadata: Any) -> Message:
        return cls(role=Role.ASSISTANT, content=content, metadata=dict(metadata))

    @classmethod
    def tool_call(cls, call: ToolCall, text: str = "") -> Message:
        return cls(
            role=Role.ASSISTANT,
            content={
                "tool_call": {
                    "id": call.id,
                    "name": call.name,
                    "arguments": dict(call.arguments),
                }
            },
            metadata={"text": text} if text else {},
        )

    @classmethod
    def tool_result(
        cls,
        call: ToolCall,
        output: Any = None,
        error: Optional[str] = None,
        kind: Optional[str] = None,
    ) -> Message:
        payload: Dict[str, Any] = {"id": call.id, "name": call.name, "ok": error is None}
        if error is None:
            payload["output"] = output
        else:
            payload["error"] = error
            payload["kind"] = kind
        return cls(role=Role.TOOL, content={"tool_result": payload})

    @property
    def is_tool_call(self) -> bool:
        return isinstance(self.content, dict) and "tool_call" in self.content

    @property
    def is_tool_result(self) -> bool:
        return isinstance(self.content, dict) and "tool_result" in self.content


@dataclass(frozen=True)
class ToolCall:
    """A request from the backend to run exactly one tool."""

    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BackendStep:
    """One round of the tool-calling loop as reported by the backend."""

    text: str = ""
    tool_call: Optional[ToolCall] = None


@dataclass
class WorkResult:
    """Messages produced by one `Worker.work` call, in order."""

    worker: str
    messages: List[Message]
    steps: int
    concluded: bool


class Task(BaseModel):
    """One planner-assigned unit of work."""

    model_config = ConfigDict(frozen=True)

    worker: WorkerId
    instructions: str = Field(description="Precise instructions for the worker.")

    @field_validator("instructions")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("instructions must not be blank")
        return value.strip()


class TaskPlan(BaseModel):
    """Structured output expected from the project manager."""

    tasks: List[Task] = Field(min_length=1)
