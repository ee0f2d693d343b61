from __future__ import annotations

from typing import Any, Dict, List

from pydantic import Field

from stackcrew.errors import ToolExecutionError
from stackcrew.tools.base import Tool, ToolParameters
from stackcrew.tools.shell import CommandRunner


class ExecuteCommandParameters(ToolParameters):
    cmd: str = Field(min_length=1)


class ReadFileParameters(ToolParameters):
    path: str = Field(min_length=1)


class WriteFileParameters(ToolParameters):
    path: str = Field(min_length=1)
    contents: str


class ExecuteCommandTool(Tool):
    name = "executeCommand"
    description = "Execute a command, e.g: node ace list:routes"
    parameters = ExecuteCommandParameters

    def __init__(self, runner: CommandRunner) -> None:
        super().__init__()
        self.runner = runner

    def run(self, params: ExecuteCommandParameters) -> Dict[str, Any]:
        result = self.runner.run(params.cmd)
        if result.stderr.strip():
            raise ToolExecutionError(
                f"Command {params.cmd!r} exited with {result.returncode}.\n"
                f"stdout:\n{result.stdout}\nstderr:\n{result.stderr}"
            )
        return {"stdout": result.stdout, "returncode": result.returncode}


class ReadFileTool(Tool):
    name = "readFile"
    description = "Read text content from a file. Make sure that you pass the correct path."
    parameters = ReadFileParameters

    def __init__(self, runner: CommandRunner) -> None:
        super().__init__()
        self.runner = runner

    def run(self, params: ReadFileParameters) -> Dict[str, Any]:
        try:
            contents = self.runner.resolve(params.path).read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ToolExecutionError(f"{params.path} is not a text file: {exc}") from exc
        except (OSError, ValueError) as exc:
            raise ToolExecutionError(f"Could not read {params.path}: {exc}") from exc
        return {"fileContents": contents}


class WriteFileTool(Tool):
    name = "writeFile"
    description = "Write text content to a file. Make sure that you pass the whole contents."
    parameters = WriteFileParameters

    def __init__(self, runner: CommandRunner) -> None:
        super().__init__()
        self.runner = runner

    def run(self, params: WriteFileParameters) -> Dict[str, Any]:
        path = self.runner.resolve(params.path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(params.contents, encoding="utf-8")
        except (OSError, ValueError) as exc:
            raise ToolExecutionError(f"Could not write {params.path}: {exc}") from exc
        return {"path": params.path, "written": len(params.contents)}


def common_tools(runner: CommandRunner) -> List[Tool]:
    return [ExecuteCommandTool(runner), WriteFileTool(runner), ReadFileTool(runner)]
