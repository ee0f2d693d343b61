from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import Field

from stackcrew.agents.base import Agent, Briefing
from stackcrew.errors import BackendUnavailable, ToolExecutionError
from stackcrew.memory.transcript import Transcript
from stackcrew.schemas.messages import Message, WorkerId, WorkResult
from stackcrew.tools.base import Tool, ToolParameters
from stackcrew.tools.common import common_tools
from stackcrew.tools.registry import ToolRegistry
from stackcrew.tools.scaffold import Scaffolder
from stackcrew.tools.shell import CommandRunner
from stackcrew.utils.llm_clients import LLMClient, call_with_retries

logger = logging.getLogger(__name__)


class FinishTaskParameters(ToolParameters):
    summary: str = Field(min_length=1, description="What was done, for the workers that follow.")


class FinishTaskTool(Tool):
    name = "finishTask"
    description = (
        "Call this once your instructions are fully carried out. "
        "Pass a short summary of what you did; no further tools will run."
    )
    parameters = FinishTaskParameters

    def run(self, params: FinishTaskParameters) -> Dict[str, Any]:
        return {"summary": params.summary}


class Worker(Agent):
    """Agent that carries out a task through a bounded tool-invocation loop.

    Each step the backend must request one tool (or conclude). The tool is
    run, the call and its result are recorded, and the loop continues until
    the worker calls ``finishTask``, answers with plain text, or spends
    ``max_steps`` steps. An exhausted step budget is a normal return.
    """

    worker_id: WorkerId
    context_dirs: Tuple[str, ...] = ()

    def __init__(
        self,
        llm_client: LLMClient,
        runner: Optional[CommandRunner] = None,
        scaffolder: Optional[Scaffolder] = None,
        knowledge: Optional[str] = None,
        max_steps: int = 10,
        max_retries: int = 1,
        tool_choice: str = "required",
        listing_command: str = "tree",
    ) -> None:
        super().__init__(llm_client, runner=runner, scaffolder=scaffolder, knowledge=knowledge)
        self.max_steps = max_steps
        self.max_retries = max_retries
        self.tool_choice = tool_choice
        self.listing_command = listing_command
        self.tool_registry = ToolRegistry([*common_tools(self.runner), *self.tools(), FinishTaskTool()])

    def tools(self) -> List[Tool]:
        """Worker-specific tools, merged with the common ones."""
        return []

    def assemble_context(self) -> Briefing:
        return Briefing(
            role=self.role,
            goal=self.goal,
            knowledge=self.knowledge,
            context=tuple(self._list_directory(directory) for directory in self.context_dirs),
        )

    def _list_directory(self, directory: str) -> str:
        try:
            result = self.execute_command(self.listing_command, cwd=directory)
        except ToolExecutionError as exc:
            logger.warning("[%s] could not list ./%s: %s", self.worker_id.value, directory, exc)
            listing = "(unavailable)"
        else:
            if result.ok:
                listing = result.stdout.strip() or "(empty)"
            else:
                logger.warning(
                    "[%s] listing ./%s failed: %s", self.worker_id.value, directory, result.stderr.strip()
                )
                listing = "(unavailable)"
        return (
            f"Here is a list of relevant files for the {self.worker_id.value}, "
            f'located in the ./{directory} directory: "{listing}".'
        )

    def work(self, transcript: Transcript) -> WorkResult:
        briefing = self.assemble_context()
        system = briefing.full_description
        history = transcript.all()
        tools = self.tool_registry.specs()
        produced: List[Message] = []
        name = self.worker_id.value

        for step in range(1, self.max_steps + 1):
            try:
                reply = call_with_retries(
                    lambda: self.llm_client.step(system, history + tuple(produced), tools, self.tool_choice),
                    self.max_retries,
                    what=f"[{name}] step {step}",
                )
            except BackendUnavailable as exc:
                raise BackendUnavailable(str(exc), partial_messages=produced) from exc

            call = reply.tool_call
            if call is None:
                if reply.text:
                    produced.append(Message.assistant(reply.text, worker=name))
                logger.info("[%s] step %d/%d finished with a final answer", name, step, self.max_steps)
                return WorkResult(worker=name, messages=produced, steps=step, concluded=True)

            produced.append(Message.tool_call(call, text=reply.text))
            result = self.tool_registry.dispatch(call)
            produced.append(result)
            logger.info("[%s] step %d/%d finished [%s]", name, step, self.max_steps, call.name)

            outcome = result.content["tool_result"]
            if call.name == FinishTaskTool.name and outcome["ok"]:
                produced.append(Message.assistant(outcome["output"]["summary"], worker=name))
                return WorkResult(worker=name, messages=produced, steps=step, concluded=True)

        logger.info("[%s] step budget of %d exhausted", name, self.max_steps)
        return WorkResult(worker=name, messages=produced, steps=self.max_steps, concluded=False)
