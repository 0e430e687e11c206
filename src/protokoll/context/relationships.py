"""Relationship model over entities linked by ``redaksjon://{type}/{id}`` URIs.

Distance between two entities (lower is closer):
    0   same entity
    1   parent/child, declared on either side
    2   siblings (declared on either side) or cousins sharing a parent
    -1  unrelated
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import TypeVar

from protokoll.context.types import Entity, EntityRelationship, EntityType

URI_SCHEME = "redaksjon"

_URI_RE = re.compile(rf"^{URI_SCHEME}://[^/]+/(.+)$")

E = TypeVar("E", bound=Entity)


def entity_uri(entity_type: EntityType | str, entity_id: str) -> str:
    return f"{URI_SCHEME}://{EntityType(entity_type).value}/{entity_id}"


def id_from_uri(uri: str) -> str | None:
    """Entity id from a relationship URI, or None if the URI does not match."""
    match = _URI_RE.match(uri)
    return match.group(1) if match else None


def _relationships(entity: Entity) -> list[EntityRelationship]:
    return getattr(entity, "relationships", None) or []


def related_ids(entity: Entity, kind: str) -> list[str]:
    """Ids linked from ``entity`` by relationships of the given kind."""
    ids = []
    for rel in _relationships(entity):
        if rel.relationship != kind:
            continue
        entity_id = id_from_uri(rel.uri)
        if entity_id is not None:
            ids.append(entity_id)
    return ids


def parent_id_of(entity: Entity) -> str | None:
    for rel in _relationships(entity):
        if rel.relationship == "parent":
            return id_from_uri(rel.uri)
    return None


def is_parent(a: Entity, b: Entity) -> bool:
    """True if ``a`` is the declared parent of ``b``."""
    return parent_id_of(b) == a.id


def is_child(a: Entity, b: Entity) -> bool:
    """True if ``a`` declares ``b`` as its parent."""
    return is_parent(b, a)


def are_siblings(a: Entity, b: Entity) -> bool:
    return b.id in related_ids(a, "sibling") or a.id in related_ids(b, "sibling")


def relationship_distance(a: Entity, b: Entity) -> int:
    if a.id == b.id:
        return 0
    if is_parent(a, b) or is_child(a, b):
        return 1
    if are_siblings(a, b):
        return 2

    a_parent = parent_id_of(a)
    b_parent = parent_id_of(b)
    if a_parent and b_parent and a_parent == b_parent:
        return 2

    return -1


# ── Editing ──────────────────────────────────────────────────


def with_relationship(entity: E, uri: str, kind: str, notes: str | None = None) -> E:
    """Copy of ``entity`` linked to ``uri``; an existing link to it is replaced."""
    kept = [r for r in _relationships(entity) if r.uri != uri]
    kept.append(EntityRelationship(uri=uri, relationship=kind, notes=notes))
    return replace(entity, relationships=kept)


def without_relationship(entity: E, uri: str) -> E:
    kept = [r for r in _relationships(entity) if r.uri != uri]
    return replace(entity, relationships=kept or None)
