from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional

from stackcrew.agents.planner import ProjectManager
from stackcrew.agents.worker import Worker
from stackcrew.errors import BackendUnavailable, UnknownWorkerError
from stackcrew.memory.transcript import Transcript
from stackcrew.schemas.messages import Message, Task, WorkerId, WorkResult

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    DISPATCHING = "dispatching"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunResult:
    transcript: Transcript
    tasks: List[Task]
    results: List[WorkResult] = field(default_factory=list)


class Orchestrator:
    """Plans a request, then hands each task to its worker in plan order.

    All workers share one transcript. Before a worker runs, its description
    and the project manager's instructions are appended; after it returns,
    its messages are appended so later workers see them. A failure stops the
    run; whatever was appended so far stays in ``transcript``.
    """

    def __init__(self, planner: ProjectManager, workers: Mapping[WorkerId, Worker]) -> None:
        self.planner = planner
        self.workers: Dict[WorkerId, Worker] = dict(workers)
        self.state = RunState.IDLE
        self.transcript = Transcript()
        self.dispatched: List[WorkerId] = []
        self.failed_stage: Optional[str] = None

    def resolve(self, worker_id: WorkerId) -> Worker:
        try:
            return self.workers[worker_id]
        except KeyError:
            raise UnknownWorkerError(f"No worker registered for '{worker_id}'") from None

    def run(self, request: str) -> RunResult:
        self.transcript = Transcript.from_request(request)
        self.dispatched = []
        self.failed_stage = None

        self.state = RunState.PLANNING
        self.failed_stage = "planning"
        try:
            tasks = self.planner.plan(request)
            self.state = RunState.DISPATCHING
            results = [self._dispatch(index, task, len(tasks)) for index, task in enumerate(tasks, 1)]
        except Exception as exc:
            self.state = RunState.FAILED
            logger.error("Run failed during %s: %s: %s", self.failed_stage, type(exc).__name__, exc)
            raise

        self.state = RunState.DONE
        self.failed_stage = None
        return RunResult(transcript=self.transcript, tasks=tasks, results=results)

    def _dispatch(self, index: int, task: Task, total: int) -> WorkResult:
        self.failed_stage = f"task {index}/{total} ({task.worker.value})"
        worker = self.resolve(task.worker)
        name = task.worker.value
        logger.info('[%s] executing task %d/%d with instructions: "%s" ...', name, index, total, task.instructions)

        self.transcript.append(Message.assistant(worker.full_description, worker=name, kind="briefing"))
        self.transcript.append(
            Message.assistant(
                f'[Project Manager to {name}] Here are your instructions: "{task.instructions}"',
                worker=name,
                kind="instructions",
            )
        )
        self.dispatched.append(task.worker)

        try:
            result = worker.work(self.transcript)
        except BackendUnavailable as exc:
            self.transcript.extend(exc.partial_messages)
            raise

        self.transcript.extend(result.messages)
        logger.info("[%s] finished task %d/%d in %d step(s)", name, index, total, result.steps)
        return result
