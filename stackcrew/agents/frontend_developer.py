from __future__ import annotations

from stackcrew.agents.worker import Worker
from stackcrew.schemas.messages import WorkerId

KNOWLEDGE = """
Example page:
// ./inertia/pages/posts/index.tsx
import type { Post } from '#models/post'

export default function Posts({ posts }: { posts: Post[] }) {
  return (
    <div className="container mx-auto py-6">
      <div className="grid gap-6 md:grid-cols-2 lg:grid-cols-3">
        {posts.map((post) => (
          <Card key={post.id}>
            <CardHeader>
              <CardTitle>{post.title}</CardTitle>
            </CardHeader>
            <CardContent>
              <p className="text-muted-foreground">{post.excerpt}</p>
            </CardContent>
          </Card>
        ))}
      </div>
    </div>
  )
}"""


class FrontendDeveloper(Worker):
    """Works with the common tools only."""

    worker_id = WorkerId.FRONTEND_DEVELOPER
    role = "Frontend Developer"
    goal = """You are a frontend engineer specialized in React, InertiaJS, and ShadCN UI.
Your goal is to:
1. Create React components with TypeScript
2. Implement UI using shadcn/ui components
3. Handle frontend state and data fetching
4. Create responsive layouts with TailwindCSS"""
    knowledge = KNOWLEDGE
    context_dirs = ("inertia", "resources")
