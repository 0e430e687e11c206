"""Agent tools for context lookups.

These functions are designed to be exposed as tools to a transcription
agent, letting it resolve names, phonetic variants and project links
against the loaded context.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from protokoll.context.types import Entity, EntityType

if TYPE_CHECKING:
    from protokoll.core import Context


def _describe(entity: Entity) -> str:
    line = f"{entity.name} ({entity.type.value}, id={entity.id})"
    if entity.notes:
        line += f": {entity.notes}"
    return line


def get_context_tools(context: Context) -> dict[str, callable]:
    """Return a dict of tool_name -> callable for context lookups.

    These can be registered as MCP tools or called directly.
    """

    def _lookup(entity_type: EntityType, name: str) -> str:
        matches = [e for e in context.search(name) if e.type is entity_type]
        if not matches:
            phonetic = context.find_by_sounds_like(name, entity_type)
            if phonetic is not None:
                matches = [phonetic]
        if not matches:
            return f"(no {entity_type.value} matching '{name}')"
        return "\n".join(f"- {_describe(e)}" for e in matches)

    def lookup_person(name: str) -> str:
        """Look up a person by name or known mishearing."""
        return _lookup(EntityType.PERSON, name)

    def lookup_project(name: str) -> str:
        """Look up a project by name or known mishearing."""
        return _lookup(EntityType.PROJECT, name)

    def find_phonetic(variant: str) -> str:
        """Resolve a misheard word to the entity whose sounds_like lists it."""
        entity = context.find_by_sounds_like(variant)
        if entity is None:
            return f"(no entity sounds like '{variant.strip()}')"
        return _describe(entity)

    def check_ignored(term: str) -> str:
        """Report whether the user asked never to be prompted about ``term``."""
        if context.is_ignored(term):
            return f"'{term}' is ignored"
        return f"'{term}' is not ignored"

    def related_projects(project_id: str, max_distance: int = 2) -> str:
        """List projects linked to ``project_id`` (parent, child, sibling, cousin)."""
        if context.get_project(project_id) is None:
            return f"(unknown project '{project_id}')"
        projects = context.get_related_projects(project_id, max_distance)
        if not projects:
            return f"(no projects related to '{project_id}')"
        return "\n".join(f"- {_describe(p)}" for p in projects)

    return {
        "lookup_person": lookup_person,
        "lookup_project": lookup_project,
        "find_phonetic": find_phonetic,
        "check_ignored": check_ignored,
        "related_projects": related_projects,
    }
