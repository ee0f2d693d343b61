from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from stackcrew.tools.scaffold import ScaffoldResult, Scaffolder
from stackcrew.tools.shell import CommandResult, CommandRunner
from stackcrew.utils.llm_clients import LLMClient


def describe(role: str, goal: str, knowledge: str) -> str:
    return f'[Role: "{role}"] [Goal: "{goal}"] [Knowledge: "{knowledge}"]'


@dataclass(frozen=True)
class Briefing:
    """Per-call view of an agent: its identity plus freshly discovered context."""

    role: str
    goal: str
    knowledge: str
    context: Tuple[str, ...] = ()

    @property
    def full_description(self) -> str:
        knowledge = "\n".join([self.knowledge, *self.context]) if self.context else self.knowledge
        return describe(self.role, self.goal, knowledge)


class Agent(ABC):
    """Base contract for every agent in the crew."""

    role: str
    goal: str
    knowledge: str = ""

    def __init__(
        self,
        llm_client: LLMClient,
        runner: Optional[CommandRunner] = None,
        scaffolder: Optional[Scaffolder] = None,
        knowledge: Optional[str] = None,
    ) -> None:
        self.llm_client = llm_client
        self.runner = runner or CommandRunner()
        self.scaffolder = scaffolder or Scaffolder(self.runner)
        if knowledge is not None:
            self.knowledge = knowledge

    @property
    def full_description(self) -> str:
        return describe(self.role, self.goal, self.knowledge)

    def execute_command(
        self,
        cmd: str,
        cwd: Optional[Union[str, Path]] = None,
        retries: Optional[int] = None,
    ) -> CommandResult:
        return self.runner.run(cmd, cwd=cwd, retries=retries)

    def scaffold(self, resource: str, name: str, flags: Optional[str] = None) -> ScaffoldResult:
        return self.scaffolder.generate(resource, name, flags)
