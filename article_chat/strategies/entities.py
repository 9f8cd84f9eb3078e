"""
FIND_COMMON_ENTITIES: the most frequently mentioned entities across the
target articles, or across every article when there are no targets.
"""

from .base import ExecutionContext

ENTITY_LIMIT = 10


def find_common_entities(ctx: ExecutionContext) -> str:
    plan = ctx.plan
    ctx.check("entity aggregation")
    entities = ctx.articles.find_common_entities(plan.targets, limit=ENTITY_LIMIT, ctx=ctx.request)
    if not entities:
        return "No entities found in the selected articles."

    scope = f"{len(set(plan.targets))} selected articles" if plan.targets else "all articles"
    lines = [f"{i}. {e.entity} (mentioned {e.count} times)" for i, e in enumerate(entities, 1)]
    return f"Most commonly mentioned entities across {scope}:\n\n" + "\n".join(lines)
