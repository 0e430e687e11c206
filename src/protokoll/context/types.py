"""Entity types stored in context directories.

Documents are YAML mappings whose keys follow the on-disk naming
(``createdAt``, ``firstName``, ``sounds_like``...). Keys no field models are
kept in ``Entity.extra`` so a save/load cycle never drops data. ``type`` is
never read from or written to a document: it is implied by the directory.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any, ClassVar


class EntityType(str, enum.Enum):
    PERSON = "person"
    PROJECT = "project"
    COMPANY = "company"
    TERM = "term"
    IGNORED = "ignored"

    @property
    def directory(self) -> str:
        """Storage subdirectory name for this type."""
        return TYPE_TO_DIRECTORY[self]


TYPE_TO_DIRECTORY: dict[EntityType, str] = {
    EntityType.PERSON: "people",
    EntityType.PROJECT: "projects",
    EntityType.COMPANY: "companies",
    EntityType.TERM: "terms",
    EntityType.IGNORED: "ignored",
}

DIRECTORY_TO_TYPE: dict[str, EntityType] = {d: t for t, d in TYPE_TO_DIRECTORY.items()}


@dataclass
class EntityRelationship:
    """Typed link to another entity, addressed by ``redaksjon://{type}/{id}``."""

    uri: str
    relationship: str
    notes: str | None = None
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EntityRelationship:
        return cls(
            uri=str(data.get("uri", "")),
            relationship=str(data.get("relationship", "")),
            notes=data.get("notes"),
            metadata=data.get("metadata"),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"uri": self.uri, "relationship": self.relationship}
        if self.notes is not None:
            data["notes"] = self.notes
        if self.metadata is not None:
            data["metadata"] = self.metadata
        return data


def _key(name: str) -> dict[str, str]:
    """Field metadata naming the document key when it differs from the attribute."""
    return {"key": name}


@dataclass
class Entity:
    """Fields shared by every entity kind."""

    type: ClassVar[EntityType]

    id: str
    name: str = ""
    created_at: datetime | None = field(default=None, metadata=_key("createdAt"))
    updated_at: datetime | None = field(default=None, metadata=_key("updatedAt"))
    notes: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Entity:
        """Build from a parsed document. Any ``type`` key is discarded."""
        remaining = dict(data)
        remaining.pop("type", None)
        values: dict[str, Any] = {}
        for f in fields(cls):
            if f.name == "extra":
                continue
            key = f.metadata.get("key", f.name)
            if key in remaining:
                values[f.name] = remaining.pop(key)

        values["id"] = str(values["id"])
        if not values.get("name"):
            values["name"] = values["id"]
        else:
            values["name"] = str(values["name"])

        sounds_like = values.get("sounds_like")
        if isinstance(sounds_like, str):
            values["sounds_like"] = [sounds_like]
        elif sounds_like is not None and not isinstance(sounds_like, list):
            values["sounds_like"] = None

        relationships = values.get("relationships")
        if relationships is not None:
            values["relationships"] = [
                EntityRelationship.from_dict(r) for r in relationships if isinstance(r, dict)
            ]
        return cls(**values, extra=remaining)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for persistence, omitting unset fields and ``type``."""
        data: dict[str, Any] = {}
        for f in fields(self):
            if f.name == "extra":
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name == "relationships":
                value = [r.to_dict() for r in value]
            data[f.metadata.get("key", f.name)] = value
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data


@dataclass
class Person(Entity):
    type: ClassVar[EntityType] = EntityType.PERSON

    first_name: str | None = field(default=None, metadata=_key("firstName"))
    last_name: str | None = field(default=None, metadata=_key("lastName"))
    company: str | None = None
    role: str | None = None
    sounds_like: list[str] | None = None
    context: str | None = None
    relationships: list[EntityRelationship] | None = None
    content: list[dict[str, Any]] | None = None


@dataclass
class Project(Entity):
    type: ClassVar[EntityType] = EntityType.PROJECT

    description: str | None = None
    classification: dict[str, Any] | None = None
    routing: dict[str, Any] | None = None
    sounds_like: list[str] | None = None
    relationships: list[EntityRelationship] | None = None
    content: list[dict[str, Any]] | None = None
    active: bool | None = None


@dataclass
class Company(Entity):
    type: ClassVar[EntityType] = EntityType.COMPANY

    full_name: str | None = field(default=None, metadata=_key("fullName"))
    industry: str | None = None
    sounds_like: list[str] | None = None
    relationships: list[EntityRelationship] | None = None
    content: list[dict[str, Any]] | None = None


@dataclass
class Term(Entity):
    type: ClassVar[EntityType] = EntityType.TERM

    expansion: str | None = None
    domain: str | None = None
    sounds_like: list[str] | None = None
    projects: list[str] | None = None
    description: str | None = None
    topics: list[str] | None = None
    relationships: list[EntityRelationship] | None = None
    content: list[dict[str, Any]] | None = None


@dataclass
class IgnoredTerm(Entity):
    """A phrase the user does not want to be prompted about."""

    type: ClassVar[EntityType] = EntityType.IGNORED

    reason: str | None = None
    ignored_at: str | None = field(default=None, metadata=_key("ignoredAt"))


ENTITY_CLASSES: dict[EntityType, type[Entity]] = {
    EntityType.PERSON: Person,
    EntityType.PROJECT: Project,
    EntityType.COMPANY: Company,
    EntityType.TERM: Term,
    EntityType.IGNORED: IgnoredTerm,
}


def entity_from_dict(entity_type: EntityType, data: dict[str, Any]) -> Entity:
    """Build the entity class matching ``entity_type``."""
    return ENTITY_CLASSES[entity_type].from_dict(data)


# ── Term/project associations ────────────────────────────────


def is_term_associated_with_project(term: Term, project_id: str) -> bool:
    return project_id in (term.projects or [])


def add_project_to_term(term: Term, project_id: str) -> Term:
    projects = term.projects or []
    if project_id in projects:
        return term
    return replace(term, projects=[*projects, project_id], updated_at=datetime.now())


def remove_project_from_term(term: Term, project_id: str) -> Term:
    projects = term.projects or []
    return replace(
        term,
        projects=[p for p in projects if p != project_id],
        updated_at=datetime.now(),
    )
