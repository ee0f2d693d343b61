import pytest

from conftest import fake_generator
from stackcrew.agents.backend_engineer import BackendEngineer
from stackcrew.agents.database_specialist import DatabaseSpecialist
from stackcrew.agents.frontend_developer import FrontendDeveloper
from stackcrew.errors import BackendError, BackendUnavailable
from stackcrew.memory.transcript import Transcript
from stackcrew.schemas.messages import BackendStep, Role, ToolCall
from stackcrew.tools.shell import CommandResult
from stackcrew.utils.llm_clients import ScriptedLLMClient


def call(name, arguments=None, call_id=None):
    return BackendStep(tool_call=ToolCall(id=call_id or f"id-{name}", name=name, arguments=arguments or {}))


def finish(summary):
    return call("finishTask", {"summary": summary})


def results(messages):
    return [m.content["tool_result"] for m in messages if m.is_tool_result]


def test_finish_task_ends_loop(fake_runner):
    client = ScriptedLLMClient([finish("nothing to do")])
    worker = FrontendDeveloper(client, runner=fake_runner)

    result = worker.work(Transcript.from_request("make it pretty"))

    assert result.concluded is True
    assert result.steps == 1
    assert [m.role for m in result.messages] == [Role.ASSISTANT, Role.TOOL, Role.ASSISTANT]
    assert result.messages[-1].content == "nothing to do"
    assert client.calls[0]["tool_choice"] == "required"
    assert "finishTask" in client.calls[0]["tools"]


def test_plain_text_answer_is_terminal(fake_runner):
    client = ScriptedLLMClient([BackendStep(text="All good.")])
    result = FrontendDeveloper(client, runner=fake_runner).work(Transcript.from_request("hi"))
    assert result.concluded is True
    assert [m.content for m in result.messages] == ["All good."]


def test_step_budget_is_a_normal_stop(fake_runner, tmp_path):
    (tmp_path / "README.md").write_text("readme", encoding="utf-8")
    client = ScriptedLLMClient([call("readFile", {"path": "README.md"}) for _ in range(12)])
    worker = FrontendDeveloper(client, runner=fake_runner, max_steps=3)

    result = worker.work(Transcript.from_request("read it"))

    assert result.concluded is False
    assert result.steps == 3
    assert len(result.messages) == 6
    assert len(client.calls) == 3
    assert all(r["ok"] for r in results(result.messages))


def test_each_step_sees_previous_tool_results(fake_runner):
    client = ScriptedLLMClient([call("readFile", {"path": "nope.ts"}), finish("done")])
    transcript = Transcript.from_request("go")
    FrontendDeveloper(client, runner=fake_runner).work(transcript)

    first, second = client.calls
    assert first["messages"] == transcript.all()
    assert len(second["messages"]) == len(transcript) + 2
    assert second["messages"][-1].content["tool_result"]["kind"] == "ToolExecutionError"


def test_invalid_arguments_are_returned_to_the_model(fake_runner):
    client = ScriptedLLMClient([call("writeFile", {"path": "a.ts"}), finish("gave up")])
    result = FrontendDeveloper(client, runner=fake_runner).work(Transcript.from_request("go"))

    assert results(result.messages)[0]["kind"] == "ValidationError"
    assert result.concluded is True


def test_transient_backend_failure_is_retried(fake_runner):
    client = ScriptedLLMClient([BackendError("hiccup"), finish("done")])
    result = FrontendDeveloper(client, runner=fake_runner, max_retries=1).work(Transcript.from_request("go"))
    assert result.concluded is True
    assert len(client.calls) == 2


def test_exhausted_retries_surface_partial_messages(fake_runner):
    client = ScriptedLLMClient(
        [call("readFile", {"path": "x"}), BackendError("down"), BackendError("still down")]
    )
    worker = FrontendDeveloper(client, runner=fake_runner, max_retries=1)

    with pytest.raises(BackendUnavailable) as excinfo:
        worker.work(Transcript.from_request("go"))

    partial = excinfo.value.partial_messages
    assert len(partial) == 2
    assert partial[0].is_tool_call and partial[1].is_tool_result


def test_context_is_assembled_per_call_without_mutating_knowledge(fake_runner):
    fake_runner.outputs["tree"] = CommandResult(command="tree", stdout="pages\n  home.tsx", stderr="")
    client = ScriptedLLMClient([finish("one"), finish("two")])
    worker = FrontendDeveloper(client, runner=fake_runner)
    knowledge = worker.knowledge

    worker.work(Transcript.from_request("a"))
    worker.work(Transcript.from_request("b"))

    assert worker.knowledge == knowledge
    assert fake_runner.commands == [
        ("tree", "inertia"),
        ("tree", "resources"),
        ("tree", "inertia"),
        ("tree", "resources"),
    ]
    for recorded in client.calls:
        assert recorded["system"].count("located in the ./inertia directory") == 1
        assert "home.tsx" in recorded["system"]


def test_backend_engineer_scaffolds_resource_controller(fake_runner, tmp_path):
    fake_runner.outputs["node ace make:controller"] = fake_generator(
        tmp_path, "app/controllers/posts_controller.ts", "export default class PostsController {}"
    )
    client = ScriptedLLMClient(
        [call("scaffoldController", {"name": "posts", "isResource": True}), finish("controller ready")]
    )
    result = BackendEngineer(client, runner=fake_runner).work(Transcript.from_request("posts"))

    output = results(result.messages)[0]["output"]
    assert output["filePath"] == "app/controllers/posts_controller.ts"
    assert ("node ace make:controller posts --resource", None) in fake_runner.commands


def test_completing_migration_requires_scaffold_first(fake_runner, tmp_path):
    migration = "database/migrations/1700000000000_create_posts_table.ts"
    fake_runner.outputs["node ace make:migration"] = fake_generator(tmp_path, migration, "// stub")
    client = ScriptedLLMClient(
        [
            call("completeAlreadyScaffoldedMigration", {"contents": "// too early"}, "c1"),
            call("scaffoldMigration", {"migrationName": "posts", "type": "create"}, "c2"),
            call("completeAlreadyScaffoldedMigration", {"contents": "// full migration"}, "c3"),
            finish("migration written"),
        ]
    )
    result = DatabaseSpecialist(client, runner=fake_runner).work(Transcript.from_request("posts"))

    early, scaffolded, completed, _ = results(result.messages)
    assert early["kind"] == "PreconditionError"
    assert scaffolded["output"]["migrationFileContents"] == "// stub"
    assert completed["ok"] is True
    assert (tmp_path / migration).read_text(encoding="utf-8") == "// full migration"
    assert ("node ace make:migration posts --create", None) in fake_runner.commands


def test_scaffolded_migration_does_not_outlive_work_call(fake_runner, tmp_path):
    fake_runner.outputs["node ace make:migration"] = fake_generator(
        tmp_path, "database/migrations/1_posts.ts", "// stub"
    )
    client = ScriptedLLMClient(
        [
            call("scaffoldMigration", {"migrationName": "posts", "type": "create"}),
            finish("scaffolded"),
            call("completeAlreadyScaffoldedMigration", {"contents": "// late"}),
            finish("done"),
        ]
    )
    worker = DatabaseSpecialist(client, runner=fake_runner)
    worker.work(Transcript.from_request("first"))
    second = worker.work(Transcript.from_request("second"))

    assert results(second.messages)[0]["kind"] == "PreconditionError"


def test_run_migrations_failure_is_reported(fake_runner):
    fake_runner.outputs["node ace migration:run"] = CommandResult(
        command="", stdout="", stderr="SQLITE_ERROR", returncode=1
    )
    client = ScriptedLLMClient([call("runMigrations"), finish("failed")])
    result = DatabaseSpecialist(client, runner=fake_runner).work(Transcript.from_request("migrate"))

    failure = results(result.messages)[0]
    assert failure["kind"] == "ToolExecutionError"
    assert "SQLITE_ERROR" in failure["error"]


def test_failed_listing_is_marked_unavailable(fake_runner):
    fake_runner.outputs["tree"] = CommandResult(command="tree", stdout="", stderr="tree: not found", returncode=127)
    client = ScriptedLLMClient([finish("done")])
    FrontendDeveloper(client, runner=fake_runner).work(Transcript.from_request("go"))

    assert client.calls[0]["system"].count('directory: "(unavailable)"') == 2


def test_binary_file_read_does_not_end_the_loop(fake_runner, tmp_path):
    (tmp_path / "db.sqlite3").write_bytes(b"SQLite format 3\x00\xff\xfe\x80")
    client = ScriptedLLMClient([call("readFile", {"path": "db.sqlite3"}), finish("skipped the database file")])

    result = DatabaseSpecialist(client, runner=fake_runner).work(Transcript.from_request("inspect"))

    assert results(result.messages)[0]["kind"] == "ToolExecutionError"
    assert result.concluded is True
