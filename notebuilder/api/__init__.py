"""
API orchestration boundary for the note builder.

Design intent:
- Expose the builder page plus thin, typed JSON endpoints for each action.
- Keep request validation explicit and failure modes predictable.
- Orchestrate builder sessions without embedding note logic in routers.
"""
