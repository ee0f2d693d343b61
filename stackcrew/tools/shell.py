from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from stackcrew.errors import ToolExecutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    command: str
    stdout: str
    stderr: str
    returncode: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.stderr.strip()


class CommandRunner:
    """Runs shell commands inside the project workspace.

    Launch failures (missing working directory, timeouts) are retried up to
    ``retries`` times; a command that runs and exits non-zero is not retried.
    """

    def __init__(
        self,
        root: Union[str, Path] = ".",
        timeout: float = 120.0,
        retries: int = 0,
    ) -> None:
        self.root = Path(root)
        self.timeout = timeout
        self.retries = retries

    def resolve(self, path: Union[str, Path]) -> Path:
        return self.root / path

    def run(
        self,
        cmd: str,
        cwd: Optional[Union[str, Path]] = None,
        retries: Optional[int] = None,
    ) -> CommandResult:
        workdir = self.resolve(cwd) if cwd is not None else self.root
        attempts = 1 + (self.retries if retries is None else retries)
        last_error: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            logger.debug("Running %r in %s (attempt %d/%d)", cmd, workdir, attempt, attempts)
            try:
                completed = subprocess.run(
                    cmd,
                    shell=True,
                    cwd=workdir,
                    capture_output=True,
                    text=True,
                    errors="replace",
                    timeout=self.timeout,
                )
            except (OSError, ValueError, subprocess.TimeoutExpired) as exc:
                logger.warning("Command %r could not run: %s", cmd, exc)
                last_error = exc
                continue
            return CommandResult(
                command=cmd,
                stdout=completed.stdout,
                stderr=completed.stderr,
                returncode=completed.returncode,
            )
        raise ToolExecutionError(f"Command {cmd!r} could not be run: {last_error}") from last_error
