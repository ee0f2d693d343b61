from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass
from typing import Optional

from stackcrew.errors import ScaffoldError
from stackcrew.tools.shell import CommandRunner

logger = logging.getLogger(__name__)

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")
_CREATED_FILE = re.compile(r"\bcreate\s+(?P<path>[^\s(]+)")


@dataclass(frozen=True)
class ScaffoldResult:
    file_path: str
    contents: str


def parse_created_path(stdout: str) -> str:
    """Extract the generated file path from the generator's stdout.

    The generator prints a line such as ``DONE: create app/models/post.ts``;
    status words and markers like ``(File already exists)`` are ignored.
    """
    match = _CREATED_FILE.search(_ANSI_ESCAPE.sub("", stdout))
    if not match:
        raise ScaffoldError(f"Could not find a created file in generator output: {stdout.strip()!r}")
    path = match.group("path").strip()
    if path.endswith("DONE:"):
        path = path[: -len("DONE:")]
    if not path:
        raise ScaffoldError(f"Generator output names an empty path: {stdout.strip()!r}")
    return path


class Scaffolder:
    """Adapter over the external code generator (``node ace make:<resource>``)."""

    def __init__(self, runner: CommandRunner, ace_command: str = "node ace") -> None:
        self.runner = runner
        self.ace_command = ace_command

    def build_command(self, resource: str, name: str, flags: Optional[str] = None) -> str:
        cmd = f"{self.ace_command} make:{resource} {shlex.quote(name)}"
        if flags:
            cmd += " " + flags
        return cmd

    def generate(self, resource: str, name: str, flags: Optional[str] = None) -> ScaffoldResult:
        cmd = self.build_command(resource, name, flags)
        result = self.runner.run(cmd)
        if result.stderr.strip():
            raise ScaffoldError(f"Generator failed for {cmd!r}: {result.stderr.strip()}")

        file_path = parse_created_path(result.stdout)
        try:
            contents = self.runner.resolve(file_path).read_text(encoding="utf-8")
        except (OSError, ValueError) as exc:
            raise ScaffoldError(f"Generated file {file_path} could not be read: {exc}") from exc

        logger.info("Scaffolded %s %s at %s", resource, name, file_path)
        return ScaffoldResult(file_path=file_path, contents=contents)
