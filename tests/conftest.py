from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

import pytest

from stackcrew.tools.shell import CommandResult, CommandRunner

Output = Union[CommandResult, Callable[[str], CommandResult]]


class FakeRunner(CommandRunner):
    """CommandRunner that never spawns processes; answers by command prefix."""

    def __init__(self, root: Path, outputs: Optional[Dict[str, Output]] = None) -> None:
        super().__init__(root=root)
        self.outputs: Dict[str, Output] = dict(outputs or {})
        self.commands: List[Tuple[str, Optional[str]]] = []

    def run(self, cmd, cwd=None, retries=None) -> CommandResult:
        self.commands.append((cmd, None if cwd is None else str(cwd)))
        for prefix, output in self.outputs.items():
            if cmd.startswith(prefix):
                return output(cmd) if callable(output) else output
        return CommandResult(command=cmd, stdout="", stderr="")


def fake_generator(root: Path, file_path: str, contents: str) -> Callable[[str], CommandResult]:
    """Mimic `node ace make:*`: write the file, then report it on stdout."""

    def generate(cmd: str) -> CommandResult:
        target = root / file_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(contents, encoding="utf-8")
        return CommandResult(command=cmd, stdout=f"DONE:    create {file_path}\n", stderr="")

    return generate


@pytest.fixture
def fake_runner(tmp_path) -> FakeRunner:
    return FakeRunner(tmp_path)
