from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field

from stackcrew.errors import ConfigError


class LLMConfig(BaseModel):
    provider: Literal["deepseek", "openai"] = "deepseek"
    model: str = "deepseek-chat"
    temperature: float = 0.0
    timeout: Optional[float] = None
    max_retries: int = Field(default=1, ge=0)


class AgentConfig(BaseModel):
    knowledge_path: Optional[str] = None


class WorkflowConfig(BaseModel):
    max_steps: int = Field(default=10, ge=1)
    planning_attempts: int = Field(default=2, ge=1)
    tool_choice: str = "required"


class WorkspaceConfig(BaseModel):
    root: str = "."
    listing_command: str = "tree"
    ace_command: str = "node ace"
    command_timeout: float = 120.0
    command_retries: int = Field(default=0, ge=0)


class LoggingConfig(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    llm: LLMConfig = Field(default_factory=LLMConfig)
    agents: Dict[str, AgentConfig] = Field(default_factory=dict)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(env: str = "base", config_dir: Union[str, Path] = "configs") -> AppConfig:
    config_dir = Path(config_dir)
    base = _read_yaml(config_dir / "base.yaml")
    if env != "base":
        override_path = config_dir / f"{env}.yaml"
        if not override_path.exists():
            raise ConfigError(f"No configuration for environment '{env}' at {override_path}")
        base = _merge_dicts(base, _read_yaml(override_path))
    try:
        return AppConfig.model_validate(base)
    except ValueError as exc:
        raise ConfigError(f"Invalid configuration in {config_dir}: {exc}") from exc


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Malformed YAML in {path}: {exc}") from exc
    return data or {}


def _merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merged[key] = _merge_dicts(base[key], value)
        else:
            merged[key] = value
    return merged
