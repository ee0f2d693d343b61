from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field

from stackcrew.agents.worker import Worker
from stackcrew.schemas.messages import WorkerId
from stackcrew.tools.base import FunctionTool, Tool, ToolParameters

KNOWLEDGE = """
Example controller:
```
// ./app/controllers/posts_controller.ts
import type { HttpContext } from '@adonisjs/core/http'
import Post from '#models/post'
import { createPostValidator } from '#validators/post'

export default class PostsController {
  async index({ inertia }: HttpContext) {
    const posts = await Post.query().orderBy('created_at', 'desc')
    return inertia.render('posts/index', { posts })
  }

  async store({ request, response }: HttpContext) {
    const payload = await request.validateUsing(createPostValidator)
    const post = await Post.create(payload)
    return response.redirect().toRoute('posts.show', { id: post.id })
  }
}
```

Example validator:
```
// ./app/validators/post.ts
import vine from '@vinejs/vine'

/**
 * Validates the post's creation action
 */
export const createPostValidator = vine.compile(
  vine.object({
    title: vine.string().trim().minLength(6),
    slug: vine.string().trim(),
    description: vine.string().trim().escape()
  })
)
```"""


class ScaffoldNamedParameters(ToolParameters):
    name: str = Field(min_length=1)


class ScaffoldResourceParameters(ScaffoldNamedParameters):
    isResource: Optional[bool] = None


class BackendEngineer(Worker):
    worker_id = WorkerId.BACKEND_ENGINEER
    role = "Backend Engineer (AdonisJS v6)"
    goal = """Your goal is to:
  1. Implement controllers and services
  2. Define and secure routes
  3. Create middleware and validators
  4. Handle business logic and data processing"""
    knowledge = KNOWLEDGE
    context_dirs = ("app",)

    def tools(self) -> List[Tool]:
        return [
            FunctionTool(
                "scaffoldController",
                "Scaffold a new controller for handling HTTP requests",
                lambda params: self._scaffold("controller", params),
                ScaffoldResourceParameters,
            ),
            FunctionTool(
                "scaffoldValidator",
                "Scaffold a new validator for validating request payloads (using VineJS)",
                lambda params: self._scaffold("validator", params),
                ScaffoldResourceParameters,
            ),
            FunctionTool(
                "scaffoldEvent",
                "Create a new AdonisJS V6 event class",
                lambda params: self._scaffold("event", params),
                ScaffoldNamedParameters,
            ),
            FunctionTool(
                "scaffoldListener",
                "Create a new AdonisJS V6 event listener class",
                lambda params: self._scaffold("listener", params),
                ScaffoldNamedParameters,
            ),
            FunctionTool(
                "scaffoldService",
                "Create a new AdonisJS V6 service class",
                lambda params: self._scaffold("service", params),
                ScaffoldNamedParameters,
            ),
        ]

    def _scaffold(self, resource: str, params: ScaffoldNamedParameters) -> Dict[str, Any]:
        flags = "--resource" if getattr(params, "isResource", False) else None
        result = self.scaffold(resource, params.name, flags=flags)
        return {"filePath": result.file_path, "contents": result.contents}
