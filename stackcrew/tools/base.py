from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Type

import pydantic
from pydantic import BaseModel, ConfigDict

from stackcrew.errors import ValidationError


class ToolParameters(BaseModel):
    """Base for tool argument schemas; unknown arguments are rejected."""

    model_config = ConfigDict(extra="forbid")


class NoParameters(ToolParameters):
    pass


class Tool(ABC):
    """Schema-validated capability a worker exposes to the model."""

    name: str
    description: str
    parameters: Type[ToolParameters] = NoParameters

    def __init__(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
        parameters: Optional[Type[ToolParameters]] = None,
    ) -> None:
        if name is not None:
            self.name = name
        if description is not None:
            self.description = description
        if parameters is not None:
            self.parameters = parameters

    @abstractmethod
    def run(self, params: Any) -> Any:
        """Execute tool logic with already validated parameters."""

    def validate(self, arguments: Optional[Dict[str, Any]]) -> ToolParameters:
        try:
            return self.parameters.model_validate(arguments or {})
        except pydantic.ValidationError as exc:
            raise ValidationError(f"Invalid arguments for tool '{self.name}': {exc}") from exc

    def invoke(self, arguments: Optional[Dict[str, Any]]) -> Any:
        params = self.validate(arguments)
        return self.run(params)

    def spec(self) -> Dict[str, Any]:
        """Function description in the format chat models accept for tool binding."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters.model_json_schema(),
            },
        }


class FunctionTool(Tool):
    """Tool backed by a plain callable, typically a bound worker method."""

    def __init__(
        self,
        name: str,
        description: str,
        func: Callable[[Any], Any],
        parameters: Type[ToolParameters] = NoParameters,
    ) -> None:
        super().__init__(name=name, description=description, parameters=parameters)
        self.func = func

    def run(self, params: Any) -> Any:
        return self.func(params)
