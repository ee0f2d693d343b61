from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from stackcrew.agents.worker import Worker
from stackcrew.errors import PreconditionError, ToolExecutionError
from stackcrew.memory.transcript import Transcript
from stackcrew.schemas.messages import WorkerId, WorkResult
from stackcrew.tools.base import FunctionTool, NoParameters, Tool, ToolParameters

logger = logging.getLogger(__name__)

KNOWLEDGE = """Example migration:
```
import { BaseSchema } from '@adonisjs/lucid/schema'

export default class extends BaseSchema {
  protected tableName = 'posts'

  async up() {
    this.schema.createTable(this.tableName, (table) => {
      table.increments('id')
      table.string('title').notNullable()
      table.text('content')
      table.integer('user_id').unsigned().references('id').inTable('users')
      table.timestamp('published_at', { useTz: true })
      table.timestamp('created_at', { useTz: true })
      table.timestamp('updated_at', { useTz: true })
    })
  }

  async down() {
    this.schema.dropTable(this.tableName)
  }
}
```

Example model:
```
import { BaseModel, column, belongsTo } from '@adonisjs/lucid/orm'
import type { BelongsTo } from '@adonisjs/lucid/types/relations'

export default class Post extends BaseModel {
  @column({ isPrimary: true })
  declare id: number

  @column()
  declare title: string

  @column.dateTime({ autoCreate: true })
  declare createdAt: DateTime

  @belongsTo(() => User)
  declare user: BelongsTo<typeof User>
}
```"""


class ScaffoldModelParameters(ToolParameters):
    modelName: str = Field(min_length=1)


class ScaffoldMigrationParameters(ToolParameters):
    migrationName: str = Field(min_length=1)
    type: Literal["create", "alter"]


class CompleteMigrationParameters(ToolParameters):
    contents: str = Field(min_length=1)


class DatabaseSpecialist(Worker):
    worker_id = WorkerId.DATABASE_SPECIALIST
    role = "Database Specialist (AdonisJS v6 with Lucid)"
    goal = """Your goal is to:
  1. Design database schemas
  2. Create migrations using the latest AdonisJS 6 syntax, and setting relationships
  3. Define Lucid models with relationships
  4. Implement database-level validations"""
    knowledge = KNOWLEDGE
    context_dirs = ("database", "app/models")

    # Path of the migration scaffolded during the current work() call.
    _scaffolded_migration_path: Optional[str] = None

    def tools(self) -> List[Tool]:
        return [
            FunctionTool(
                "scaffoldModel",
                "Scaffold a new AdonisJS v6 Lucid database model.",
                self._scaffold_model,
                ScaffoldModelParameters,
            ),
            FunctionTool(
                "scaffoldMigration",
                "Scaffold a new AdonisJS v6 Lucid database migration.\n"
                "After you scaffold a migration, make sure to complete it!",
                self._scaffold_migration,
                ScaffoldMigrationParameters,
            ),
            FunctionTool(
                "completeAlreadyScaffoldedMigration",
                "Complete a newly scaffolded migration file.\n"
                "This should only be used after a migration is scaffolded.",
                self._complete_migration,
                CompleteMigrationParameters,
            ),
            FunctionTool(
                "runMigrations",
                "Run AdonisJS V6 Lucid migrations",
                lambda _: self._ace("migration:run"),
                NoParameters,
            ),
            FunctionTool(
                "freshMigrations",
                "Drop all tables and re-run AdonisJS V6 Lucid migrations",
                lambda _: self._ace("migration:fresh"),
                NoParameters,
            ),
        ]

    def work(self, transcript: Transcript) -> WorkResult:
        self._scaffolded_migration_path = None
        return super().work(transcript)

    def _scaffold_model(self, params: ScaffoldModelParameters) -> Dict[str, Any]:
        result = self.scaffold("model", params.modelName)
        return {"filePath": result.file_path, "contents": result.contents}

    def _scaffold_migration(self, params: ScaffoldMigrationParameters) -> Dict[str, Any]:
        result = self.scaffold("migration", params.migrationName, flags="--" + params.type)
        logger.debug("Scaffolded migration path: %s", result.file_path)
        self._scaffolded_migration_path = result.file_path
        return {"filePath": result.file_path, "migrationFileContents": result.contents}

    def _complete_migration(self, params: CompleteMigrationParameters) -> Dict[str, Any]:
        if not self._scaffolded_migration_path:
            raise PreconditionError("No scaffolded migration found. Call scaffoldMigration first.")
        path = self.runner.resolve(self._scaffolded_migration_path)
        try:
            path.write_text(params.contents, encoding="utf-8")
        except (OSError, ValueError) as exc:
            raise ToolExecutionError(f"Could not write {self._scaffolded_migration_path}: {exc}") from exc
        return {"filePath": self._scaffolded_migration_path}

    def _ace(self, command: str) -> Dict[str, Any]:
        result = self.execute_command(f"{self.scaffolder.ace_command} {command}")
        if result.returncode != 0:
            raise ToolExecutionError(
                f"'{command}' exited with {result.returncode}:\n{result.stderr or result.stdout}"
            )
        return {"stdout": result.stdout, "stderr": result.stderr}
