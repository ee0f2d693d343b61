from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional

from stackcrew.agents.base import Agent
from stackcrew.agents.worker import Worker
from stackcrew.errors import BackendUnavailable, PlanningError, StructuredOutputError
from stackcrew.schemas.messages import Task, TaskPlan, WorkerId
from stackcrew.utils.llm_clients import LLMClient, call_with_retries

logger = logging.getLogger(__name__)


class ProjectManager(Agent):
    """Turns a free-form request into an ordered list of tasks for the workers."""

    role = "Project Manager"
    goal = """You are a project manager specialized in managing AdonisJS 6 full-stack applications.
Your role is to:
1. Coordinate work between specialized agents (DB specialist, Backend, Frontend)
2. Ensure architectural consistency
3. Maintain project timeline and dependencies

When working:
- First analyze requirements and create a plan
- Delegate specific tasks to appropriate specialists, in the order they must happen"""

    def __init__(
        self,
        llm_client: LLMClient,
        knowledge: str = "",
        workers: Iterable[WorkerId] = tuple(WorkerId),
        attempts: int = 2,
        max_retries: int = 1,
    ) -> None:
        super().__init__(llm_client, knowledge=knowledge)
        self.workers = frozenset(workers)
        self.attempts = attempts
        self.max_retries = max_retries

    @classmethod
    def for_workers(
        cls,
        workers: Mapping[WorkerId, Worker],
        llm_client: LLMClient,
        **kwargs,
    ) -> ProjectManager:
        knowledge = "".join(
            f'[{worker_id.value} Goal: "{worker.goal}"]' for worker_id, worker in workers.items()
        )
        return cls(llm_client, knowledge=knowledge, workers=workers.keys(), **kwargs)

    def plan(self, request: str) -> List[Task]:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.attempts + 1):
            try:
                plan = call_with_retries(
                    lambda: self.llm_client.structured(self.full_description, request, TaskPlan),
                    self.max_retries,
                    what="planning call",
                )
            except StructuredOutputError as exc:
                logger.warning("Plan attempt %d/%d was malformed: %s", attempt, self.attempts, exc)
                last_error = exc
                continue
            except BackendUnavailable as exc:
                raise PlanningError(f"Backend unavailable while planning: {exc}") from exc

            unknown = sorted({task.worker.value for task in plan.tasks if task.worker not in self.workers})
            if unknown:
                logger.warning("Plan attempt %d/%d names unavailable workers: %s", attempt, self.attempts, unknown)
                last_error = PlanningError(f"Plan names unavailable workers: {', '.join(unknown)}")
                continue

            logger.info("Planned %d task(s): %s", len(plan.tasks), [task.worker.value for task in plan.tasks])
            return list(plan.tasks)

        raise PlanningError(
            f"No valid plan after {self.attempts} attempt(s): {last_error}"
        ) from last_error
