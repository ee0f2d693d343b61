from __future__ import annotations

import json
import logging
import uuid
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Type, TypeVar, Union

import pydantic
from langchain_core.exceptions import OutputParserException
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_deepseek import ChatDeepSeek
from langchain_openai import ChatOpenAI
from pydantic import BaseModel

from stackcrew.errors import BackendError, BackendUnavailable, ConfigError, StructuredOutputError
from stackcrew.schemas.messages import BackendStep, Message, Role, ToolCall
from stackcrew.utils.settings import LLMConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")
SchemaT = TypeVar("SchemaT", bound=BaseModel)


class LLMClient(ABC):
    """Interface so agents can swap between a real chat model and a scripted one."""

    @abstractmethod
    def step(
        self,
        system: str,
        messages: Sequence[Message],
        tools: Sequence[Dict[str, Any]],
        tool_choice: str = "required",
    ) -> BackendStep:
        """Run one round of a tool-calling conversation."""

    @abstractmethod
    def structured(self, system: str, prompt: str, schema: Type[SchemaT]) -> SchemaT:
        """Return a value of ``schema`` produced by the model."""


def call_with_retries(fn: Callable[[], T], max_retries: int, what: str = "backend call") -> T:
    """Run ``fn`` once plus up to ``max_retries`` retries on transient backend errors."""
    attempts = 1 + max(0, max_retries)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except BackendError as exc:
            logger.warning("%s failed (attempt %d/%d): %s", what, attempt, attempts, exc)
            last_error = exc
    raise BackendUnavailable(f"{what} failed after {attempts} attempt(s): {last_error}") from last_error


def build_chat_model(config: LLMConfig) -> BaseChatModel:
    # Retries are counted by call_with_retries, not by the provider SDK.
    if config.provider == "deepseek":
        return ChatDeepSeek(
            model=config.model,
            temperature=config.temperature,
            timeout=config.timeout,
            max_retries=0,
        )
    if config.provider == "openai":
        return ChatOpenAI(
            model=config.model,
            temperature=config.temperature,
            timeout=config.timeout,
            max_retries=0,
        )
    raise ConfigError(f"Unsupported LLM provider: {config.provider}")


def _text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
            elif isinstance(part, str):
                parts.append(part)
        return "".join(parts)
    return json.dumps(content, default=str)


def to_langchain_messages(system: str, messages: Sequence[Message]) -> List[BaseMessage]:
    converted: List[BaseMessage] = [SystemMessage(content=system)] if system else []
    for message in messages:
        if message.is_tool_call:
            call = message.content["tool_call"]
            converted.append(
                AIMessage(
                    content=message.metadata.get("text", ""),
                    tool_calls=[{"name": call["name"], "args": call["arguments"], "id": call["id"]}],
                )
            )
        elif message.is_tool_result:
            result = message.content["tool_result"]
            converted.append(
                ToolMessage(content=json.dumps(result, default=str), tool_call_id=result["id"])
            )
        elif message.role is Role.USER:
            converted.append(HumanMessage(content=_text(message.content)))
        elif message.role is Role.SYSTEM:
            converted.append(SystemMessage(content=_text(message.content)))
        else:
            converted.append(AIMessage(content=_text(message.content)))
    return converted


class ChatModelClient(LLMClient):
    """LLMClient backed by a LangChain chat model."""

    def __init__(self, model: BaseChatModel) -> None:
        self.model = model

    def step(
        self,
        system: str,
        messages: Sequence[Message],
        tools: Sequence[Dict[str, Any]],
        tool_choice: str = "required",
    ) -> BackendStep:
        model = self.model.bind_tools(list(tools), tool_choice=tool_choice) if tools else self.model
        try:
            response = model.invoke(to_langchain_messages(system, messages))
        except Exception as exc:  # provider SDKs raise their own error hierarchies
            raise BackendError(f"{type(exc).__name__}: {exc}") from exc

        text = _text(response.content)
        tool_calls = getattr(response, "tool_calls", None) or []
        if not tool_calls:
            return BackendStep(text=text)
        if len(tool_calls) > 1:
            logger.warning("Model requested %d tool calls; only the first is executed", len(tool_calls))
        first = tool_calls[0]
        return BackendStep(
            text=text,
            tool_call=ToolCall(
                id=first.get("id") or uuid.uuid4().hex,
                name=first["name"],
                arguments=dict(first.get("args") or {}),
            ),
        )

    def structured(self, system: str, prompt: str, schema: Type[SchemaT]) -> SchemaT:
        runnable = self.model.with_structured_output(schema)
        try:
            result = runnable.invoke([SystemMessage(content=system), HumanMessage(content=prompt)])
        except (pydantic.ValidationError, OutputParserException) as exc:
            raise StructuredOutputError(f"Model output does not match {schema.__name__}: {exc}") from exc
        except Exception as exc:  # provider SDKs raise their own error hierarchies
            raise BackendError(f"{type(exc).__name__}: {exc}") from exc
        return _coerce(result, schema)


def _coerce(value: Any, schema: Type[SchemaT]) -> SchemaT:
    if isinstance(value, schema):
        return value
    try:
        return schema.model_validate(value)
    except pydantic.ValidationError as exc:
        raise StructuredOutputError(f"Model output does not match {schema.__name__}: {exc}") from exc


ScriptedStep = Union[BackendStep, Exception]
ScriptedValue = Union[BaseModel, Dict[str, Any], Exception, None]


class ScriptedLLMClient(LLMClient):
    """Replays prepared backend answers; used for tests and offline runs.

    Every call is recorded in ``calls``. When the step script runs out the
    client answers with plain text, which ends a worker's loop.
    """

    def __init__(
        self,
        steps: Iterable[ScriptedStep] = (),
        structured_values: Iterable[ScriptedValue] = (),
    ) -> None:
        self._steps = deque(steps)
        self._values = deque(structured_values)
        self.calls: List[Dict[str, Any]] = []

    def step(
        self,
        system: str,
        messages: Sequence[Message],
        tools: Sequence[Dict[str, Any]],
        tool_choice: str = "required",
    ) -> BackendStep:
        self.calls.append(
            {
                "kind": "step",
                "system": system,
                "messages": tuple(messages),
                "tools": [tool["function"]["name"] for tool in tools],
                "tool_choice": tool_choice,
            }
        )
        if not self._steps:
            return BackendStep(text="Done.")
        item = self._steps.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    def structured(self, system: str, prompt: str, schema: Type[SchemaT]) -> SchemaT:
        self.calls.append({"kind": "structured", "system": system, "prompt": prompt})
        if not self._values:
            raise BackendError("No scripted structured output left")
        item: Optional[Any] = self._values.popleft()
        if isinstance(item, Exception):
            raise item
        return _coerce(item, schema)
