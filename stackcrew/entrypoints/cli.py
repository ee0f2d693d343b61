from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Type

from stackcrew.agents.backend_engineer import BackendEngineer
from stackcrew.agents.database_specialist import DatabaseSpecialist
from stackcrew.agents.frontend_developer import FrontendDeveloper
from stackcrew.agents.planner import ProjectManager
from stackcrew.agents.worker import Worker
from stackcrew.errors import ConfigError, StackCrewError
from stackcrew.memory.transcript import Transcript
from stackcrew.schemas.messages import WorkerId
from stackcrew.telemetry.logging import setup_logging
from stackcrew.tools.scaffold import Scaffolder
from stackcrew.tools.shell import CommandRunner
from stackcrew.utils.credentials import export_api_keys
from stackcrew.utils.llm_clients import ChatModelClient, LLMClient, build_chat_model
from stackcrew.utils.settings import AppConfig, load_config
from stackcrew.workflows.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

WORKER_TYPES: Dict[WorkerId, Type[Worker]] = {
    WorkerId.DATABASE_SPECIALIST: DatabaseSpecialist,
    WorkerId.BACKEND_ENGINEER: BackendEngineer,
    WorkerId.FRONTEND_DEVELOPER: FrontendDeveloper,
}


def _config_key(worker_id: WorkerId) -> str:
    return worker_id.value.lower().replace(" ", "_")


def build_workers(
    config: AppConfig,
    llm_client: LLMClient,
    runner: Optional[CommandRunner] = None,
) -> Dict[WorkerId, Worker]:
    workspace = config.workspace
    runner = runner or CommandRunner(
        root=workspace.root,
        timeout=workspace.command_timeout,
        retries=workspace.command_retries,
    )
    scaffolder = Scaffolder(runner, ace_command=workspace.ace_command)

    workers: Dict[WorkerId, Worker] = {}
    for worker_id, worker_type in WORKER_TYPES.items():
        agent_config = config.agents.get(_config_key(worker_id))
        knowledge = None
        if agent_config and agent_config.knowledge_path:
            try:
                knowledge = Path(agent_config.knowledge_path).read_text(encoding="utf-8")
            except (OSError, ValueError) as exc:
                raise ConfigError(
                    f"Cannot read knowledge for {worker_id.value} from {agent_config.knowledge_path}: {exc}"
                ) from exc
        workers[worker_id] = worker_type(
            llm_client,
            runner=runner,
            scaffolder=scaffolder,
            knowledge=knowledge,
            max_steps=config.workflow.max_steps,
            max_retries=config.llm.max_retries,
            tool_choice=config.workflow.tool_choice,
            listing_command=workspace.listing_command,
        )
    return workers


def build_orchestrator(
    config: AppConfig,
    llm_client: LLMClient,
    runner: Optional[CommandRunner] = None,
) -> Orchestrator:
    workers = build_workers(config, llm_client, runner=runner)
    planner = ProjectManager.for_workers(
        workers,
        llm_client,
        attempts=config.workflow.planning_attempts,
        max_retries=config.llm.max_retries,
    )
    return Orchestrator(planner=planner, workers=workers)


def format_transcript(transcript: Transcript) -> str:
    lines: List[str] = []
    for message in transcript:
        content = message.content
        if not isinstance(content, str):
            content = json.dumps(content, indent=2, default=str)
        lines.append(f"\n[{message.role.value}]\n{content}")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run the AdonisJS multi-agent crew on a request.")
    parser.add_argument("request", nargs="?", help="What you want done. Prompted for when omitted.")
    parser.add_argument("--env", default="base", help="Config environment (base, dev, prod, ...).")
    parser.add_argument("--config-dir", default="configs", help="Directory holding the YAML configs.")
    parser.add_argument("--secrets", default="config.yml", help="File holding provider API keys.")
    parser.add_argument("--log-file", default=None, help="Also write detailed logs to this file.")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.env, config_dir=args.config_dir)
        setup_logging(config.logging.level, log_file=args.log_file)
        export_api_keys(args.secrets)
        orchestrator = build_orchestrator(config, ChatModelClient(build_chat_model(config.llm)))
    except StackCrewError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    request = args.request or input("What do you want to do? ").strip()
    if not request:
        print("Nothing to do.", file=sys.stderr)
        return 1

    try:
        orchestrator.run(request)
    except Exception as exc:
        kind = exc.kind if isinstance(exc, StackCrewError) else type(exc).__name__
        print(format_transcript(orchestrator.transcript))
        print(f"\nRun failed during {orchestrator.failed_stage} ({kind}): {exc}", file=sys.stderr)
        return 1

    print(format_transcript(orchestrator.transcript))
    return 0


if __name__ == "__main__":
    sys.exit(main())
