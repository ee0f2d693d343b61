import pytest

from stackcrew.agents.planner import ProjectManager
from stackcrew.entrypoints.cli import build_orchestrator, build_workers
from stackcrew.errors import BackendError, BackendUnavailable, PlanningError, UnknownWorkerError
from stackcrew.schemas.messages import BackendStep, Role, ToolCall, WorkerId
from stackcrew.tools.base import FunctionTool
from stackcrew.utils.llm_clients import ScriptedLLMClient
from stackcrew.utils.settings import AppConfig
from stackcrew.workflows.orchestrator import Orchestrator, RunState

REQUEST = "add a Post resource with title and body"
PLAN = {
    "tasks": [
        {"worker": "Database Specialist", "instructions": "create Post migration and model"},
        {"worker": "Backend Engineer", "instructions": "create Post controller and routes"},
    ]
}


def finish(summary, call_id):
    return BackendStep(tool_call=ToolCall(id=call_id, name="finishTask", arguments={"summary": summary}))


def tools_of(recorded):
    return set(recorded.get("tools", []))


def test_tasks_run_in_plan_order_and_share_context(fake_runner):
    client = ScriptedLLMClient(
        steps=[
            finish("Post migration and model created", "db-1"),
            finish("PostsController and routes created", "be-1"),
        ],
        structured_values=[PLAN],
    )
    orchestrator = build_orchestrator(AppConfig(), client, runner=fake_runner)

    result = orchestrator.run(REQUEST)

    assert orchestrator.state is RunState.DONE
    assert orchestrator.dispatched == [WorkerId.DATABASE_SPECIALIST, WorkerId.BACKEND_ENGINEER]
    assert [task.worker for task in result.tasks] == orchestrator.dispatched

    contents = [m.content for m in result.transcript]
    assert contents[0] == REQUEST
    db_summary = contents.index("Post migration and model created")
    be_instructions = contents.index(
        '[Project Manager to Backend Engineer] Here are your instructions: "create Post controller and routes"'
    )
    assert db_summary < be_instructions
    assert contents[-1] == "PostsController and routes created"

    backend_call = next(c for c in client.calls if "scaffoldController" in tools_of(c))
    seen = [m.content for m in backend_call["messages"]]
    assert "Post migration and model created" in seen
    assert seen[-1].startswith("[Project Manager to Backend Engineer]")


def test_transcript_only_grows(fake_runner):
    client = ScriptedLLMClient(
        steps=[
            BackendStep(tool_call=ToolCall(id="r1", name="readFile", arguments={"path": "missing"})),
            finish("db done", "db-1"),
            finish("backend done", "be-1"),
        ],
        structured_values=[PLAN],
    )
    orchestrator = build_orchestrator(AppConfig(), client, runner=fake_runner)
    final = orchestrator.run(REQUEST).transcript.all()

    for recorded in client.calls:
        if recorded["kind"] == "step":
            seen = recorded["messages"]
            assert final[: len(seen)] == seen


def test_briefing_precedes_each_task(fake_runner):
    client = ScriptedLLMClient(steps=[finish("done", "db-1")], structured_values=[{"tasks": PLAN["tasks"][:1]}])
    orchestrator = build_orchestrator(AppConfig(), client, runner=fake_runner)
    transcript = orchestrator.run(REQUEST).transcript.all()

    briefing, instructions = transcript[1], transcript[2]
    assert briefing.role is Role.ASSISTANT
    assert briefing.content.startswith('[Role: "Database Specialist (AdonisJS v6 with Lucid)"]')
    assert briefing.metadata["kind"] == "briefing"
    assert instructions.metadata["kind"] == "instructions"


def test_backend_outage_aborts_run_and_keeps_partial_messages(fake_runner):
    client = ScriptedLLMClient(
        steps=[
            finish("db done", "db-1"),
            BackendStep(tool_call=ToolCall(id="be-1", name="readFile", arguments={"path": "missing"})),
            BackendError("down"),
            BackendError("still down"),
        ],
        structured_values=[PLAN],
    )
    orchestrator = build_orchestrator(AppConfig(), client, runner=fake_runner)

    with pytest.raises(BackendUnavailable):
        orchestrator.run(REQUEST)

    assert orchestrator.state is RunState.FAILED
    assert orchestrator.failed_stage == "task 2/2 (Backend Engineer)"
    transcript = orchestrator.transcript.all()
    assert "db done" in [m.content for m in transcript]
    assert transcript[-2].is_tool_call
    assert transcript[-1].is_tool_result


def test_planning_failure_dispatches_nothing(fake_runner):
    client = ScriptedLLMClient(structured_values=[{"tasks": []}, {"tasks": []}])
    orchestrator = build_orchestrator(AppConfig(), client, runner=fake_runner)

    with pytest.raises(PlanningError):
        orchestrator.run(REQUEST)

    assert orchestrator.state is RunState.FAILED
    assert orchestrator.failed_stage == "planning"
    assert orchestrator.dispatched == []
    assert len(orchestrator.transcript) == 1


def test_unregistered_worker_is_rejected(fake_runner):
    client = ScriptedLLMClient(steps=[finish("db done", "db-1")], structured_values=[PLAN])
    workers = build_workers(AppConfig(), client, runner=fake_runner)
    del workers[WorkerId.BACKEND_ENGINEER]
    orchestrator = Orchestrator(planner=ProjectManager(client), workers=workers)

    with pytest.raises(UnknownWorkerError):
        orchestrator.run(REQUEST)

    assert orchestrator.dispatched == [WorkerId.DATABASE_SPECIALIST]
    assert orchestrator.state is RunState.FAILED


def test_unexpected_tool_exception_fails_the_run(fake_runner):
    def explode(_):
        raise RuntimeError("disk on fire")

    client = ScriptedLLMClient(
        steps=[BackendStep(tool_call=ToolCall(id="x1", name="explode"))],
        structured_values=[{"tasks": PLAN["tasks"][:1]}],
    )
    orchestrator = build_orchestrator(AppConfig(), client, runner=fake_runner)
    orchestrator.workers[WorkerId.DATABASE_SPECIALIST].tool_registry.register(
        FunctionTool("explode", "Always fails", explode)
    )

    with pytest.raises(RuntimeError, match="disk on fire"):
        orchestrator.run(REQUEST)

    assert orchestrator.state is RunState.FAILED
    assert orchestrator.failed_stage == "task 1/1 (Database Specialist)"
    assert [m.content for m in orchestrator.transcript][0] == REQUEST
