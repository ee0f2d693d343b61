from __future__ import annotations

from typing import List, Optional, Sequence

from stackcrew.schemas.messages import Message


class StackCrewError(Exception):
    """Root of every error raised by stackcrew.

    ``recoverable`` errors are reported back to the model as a failed tool
    result so it can adapt its next step. Everything else aborts the run.
    """

    recoverable = False

    @property
    def kind(self) -> str:
        return type(self).__name__


class ValidationError(StackCrewError):
    """Tool arguments do not satisfy the tool's parameter schema."""

    recoverable = True


class ScaffoldError(StackCrewError):
    """The code generator failed or its output named no file."""

    recoverable = True


class PreconditionError(StackCrewError):
    """A tool was invoked before the step it depends on."""

    recoverable = True


class ToolExecutionError(StackCrewError):
    """A tool's file or process I/O failed."""

    recoverable = True


class BackendError(StackCrewError):
    """Transient failure of a single backend request."""


class StructuredOutputError(StackCrewError):
    """Backend answered, but not with a value matching the requested schema."""


class BackendUnavailable(StackCrewError):
    """Backend kept failing after the retry budget was spent."""

    def __init__(self, message: str, partial_messages: Optional[Sequence[Message]] = None) -> None:
        super().__init__(message)
        self.partial_messages: List[Message] = list(partial_messages or [])


class PlanningError(StackCrewError):
    """No schema-conformant plan could be obtained."""


class UnknownWorkerError(StackCrewError):
    """A task names a worker that is not part of the crew."""


class ToolConfigurationError(StackCrewError):
    """A worker's tool set is inconsistent, e.g. two tools share a name."""


class ConfigError(StackCrewError):
    """Configuration files are missing or invalid."""
