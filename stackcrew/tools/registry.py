from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List

from stackcrew.errors import StackCrewError, ToolConfigurationError, ValidationError
from stackcrew.schemas.messages import Message, ToolCall
from stackcrew.tools.base import Tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Tools available to one worker, keyed by unique name."""

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: Dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ToolConfigurationError(f"Duplicate tool name: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool:
        if name not in self._tools:
            raise ValidationError(
                f"Unknown tool: {name}. Available tools: {', '.join(self.names())}"
            )
        return self._tools[name]

    def names(self) -> List[str]:
        return list(self._tools)

    def specs(self) -> List[Dict[str, Any]]:
        return [tool.spec() for tool in self._tools.values()]

    def dispatch(self, call: ToolCall) -> Message:
        """Run the requested tool and wrap its outcome as a tool result message.

        Recoverable failures become a failed result the model can react to;
        anything else propagates and ends the worker's loop.
        """
        try:
            output = self.get(call.name).invoke(call.arguments)
        except StackCrewError as exc:
            if not exc.recoverable:
                raise
            logger.warning("Tool %s failed (%s): %s", call.name, exc.kind, exc)
            return Message.tool_result(call, error=str(exc), kind=exc.kind)
        return Message.tool_result(call, output=output)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
