"""Context facade — the single entry point consumers use.

Responsibilities:
1. Discovery — find .protokoll directories from a starting point upward
2. Config — deep-merge their config.yaml documents, closest wins
3. Storage — resolve each level's entity directory and load entities
4. Queries — typed lookup, search, phonetic match, related projects
5. Writes — save to the closest context, delete from the winning file
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

from protokoll.config import (
    DEFAULT_CONFIG_DIR_NAME,
    DEFAULT_CONFIG_FILE_NAME,
    DEFAULT_MAX_LEVELS,
    Settings,
    SmartAssistanceConfig,
)
from protokoll.context.discovery import DiscoveredDir, HierarchicalResult, load_hierarchical_config
from protokoll.context.relationships import relationship_distance
from protokoll.context.storage import EntityStore
from protokoll.context.types import (
    Company,
    Entity,
    EntityType,
    IgnoredTerm,
    Person,
    Project,
    Term,
)

logger = logging.getLogger(__name__)


class NoContextError(RuntimeError):
    """Raised when a write needs a .protokoll directory and none was discovered."""


@dataclass
class ContextOptions:
    starting_dir: Path | None = None
    config_dir_name: str = DEFAULT_CONFIG_DIR_NAME
    config_file_name: str = DEFAULT_CONFIG_FILE_NAME
    max_levels: int = DEFAULT_MAX_LEVELS
    # Load entities from these directories instead of discovering them.
    context_directories: list[Path] | None = None

    @classmethod
    def from_settings(cls, settings: Settings, starting_dir: Path | None = None) -> ContextOptions:
        return cls(
            starting_dir=starting_dir,
            config_dir_name=settings.config_dir_name,
            config_file_name=settings.config_file_name,
            max_levels=settings.max_levels,
        )


def _slug(term: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", term.lower()).strip("-")


class Context:
    """Hierarchical context: merged config plus entities with override precedence."""

    def __init__(self, options: ContextOptions | None = None) -> None:
        self.options = options or ContextOptions()
        self.store = EntityStore()
        self._result = HierarchicalResult()

    @classmethod
    async def create(cls, options: ContextOptions | None = None) -> Context:
        context = cls(options)
        await context.load()
        return context

    # ── Lifecycle ─────────────────────────────────────────────

    async def load(self) -> None:
        """Re-run discovery and config merge, then reload all entities."""
        explicit = self.options.context_directories
        if explicit:
            dirs = [Path(d) for d in explicit]
            self._result = HierarchicalResult(
                config={},
                discovered_dirs=[DiscoveredDir(path=d, level=i) for i, d in enumerate(dirs)],
                context_dirs=dirs,
            )
        else:
            self._result = await load_hierarchical_config(
                self.options.config_dir_name,
                self.options.config_file_name,
                starting_dir=self.options.starting_dir,
                max_levels=self.options.max_levels,
            )
        await self.reload()
        logger.info(
            "Loaded context: %d directories, %d entity stores",
            len(self._result.discovered_dirs),
            len(self._result.context_dirs),
        )

    async def reload(self) -> None:
        """Reload entities from the last known storage directories only."""
        self.store.clear()
        await self.store.load(self._result.context_dirs)

    # ── Discovery info ───────────────────────────────────────

    @property
    def discovered_dirs(self) -> list[DiscoveredDir]:
        return self._result.discovered_dirs

    @property
    def config(self) -> dict[str, Any]:
        return self._result.config

    @property
    def context_dirs(self) -> list[Path]:
        return self._result.context_dirs

    @property
    def smart_assistance(self) -> SmartAssistanceConfig:
        return SmartAssistanceConfig.from_config(self._result.config)

    def has_context(self) -> bool:
        return len(self._result.discovered_dirs) > 0

    # ── Entity access ────────────────────────────────────────

    def get(self, entity_type: EntityType, entity_id: str) -> Entity | None:
        return self.store.get(entity_type, entity_id)

    def get_all(self, entity_type: EntityType) -> list[Entity]:
        return self.store.get_all(entity_type)

    def get_person(self, entity_id: str) -> Person | None:
        return cast("Person | None", self.store.get(EntityType.PERSON, entity_id))

    def get_project(self, entity_id: str) -> Project | None:
        return cast("Project | None", self.store.get(EntityType.PROJECT, entity_id))

    def get_company(self, entity_id: str) -> Company | None:
        return cast("Company | None", self.store.get(EntityType.COMPANY, entity_id))

    def get_term(self, entity_id: str) -> Term | None:
        return cast("Term | None", self.store.get(EntityType.TERM, entity_id))

    def get_ignored(self, entity_id: str) -> IgnoredTerm | None:
        return cast("IgnoredTerm | None", self.store.get(EntityType.IGNORED, entity_id))

    def get_all_people(self) -> list[Person]:
        return cast("list[Person]", self.store.get_all(EntityType.PERSON))

    def get_all_projects(self) -> list[Project]:
        return cast("list[Project]", self.store.get_all(EntityType.PROJECT))

    def get_all_companies(self) -> list[Company]:
        return cast("list[Company]", self.store.get_all(EntityType.COMPANY))

    def get_all_terms(self) -> list[Term]:
        return cast("list[Term]", self.store.get_all(EntityType.TERM))

    def get_all_ignored(self) -> list[IgnoredTerm]:
        return cast("list[IgnoredTerm]", self.store.get_all(EntityType.IGNORED))

    def is_ignored(self, term: str) -> bool:
        """Match an ignored entity by slugified id or case-insensitive name."""
        slug = _slug(term)
        lowered = term.lower()
        return any(
            ignored.id == slug or ignored.name.lower() == lowered
            for ignored in self.get_all_ignored()
        )

    # ── Search ───────────────────────────────────────────────

    def search(self, query: str) -> list[Entity]:
        return self.store.search(query)

    def find_by_sounds_like(
        self, phonetic: str, entity_type: EntityType | None = None
    ) -> Entity | None:
        return self.store.find_by_sounds_like(phonetic, entity_type)

    def search_with_context(self, query: str, context_project_id: str | None = None) -> list[Entity]:
        """Search, ranking entities related to ``context_project_id`` first."""
        results = self.store.search(query)
        if not context_project_id:
            return results
        context_project = self.get_project(context_project_id)
        if context_project is None:
            return results

        def score(entity: Entity) -> int:
            if isinstance(entity, Project):
                distance = relationship_distance(context_project, entity)
                if distance >= 0:
                    return (3 - distance) * 50
            elif isinstance(entity, Term) and context_project_id in (entity.projects or []):
                return 100
            return 0

        return sorted(results, key=score, reverse=True)

    def get_related_projects(self, project_id: str, max_distance: int = 2) -> list[Project]:
        """Other projects within ``max_distance``, closest first."""
        project = self.get_project(project_id)
        if project is None:
            return []

        related: list[tuple[int, Project]] = []
        for other in self.get_all_projects():
            if other.id == project_id:
                continue
            distance = relationship_distance(project, other)
            if 0 <= distance <= max_distance:
                related.append((distance, other))

        related.sort(key=lambda pair: pair[0])
        return [p for _, p in related]

    # ── Modification ─────────────────────────────────────────

    def _closest_dir(self) -> DiscoveredDir | None:
        dirs = sorted(self._result.discovered_dirs, key=lambda d: d.level)
        return dirs[0] if dirs else None

    async def save_entity(self, entity: Entity) -> Path:
        """Save into the closest discovered .protokoll directory."""
        closest = self._closest_dir()
        if closest is None:
            raise NoContextError(
                f"No {self.options.config_dir_name} directory found; create one to save entities."
            )
        return await self.store.save(entity, closest.path)

    def get_entity_file_path(self, entity: Entity) -> Path | None:
        return self.store.get_entity_file_path(entity.type, entity.id, self._result.context_dirs)

    async def delete_entity(self, entity: Entity) -> bool:
        """Delete the file that currently defines ``entity``. False if none."""
        path = self.get_entity_file_path(entity)
        if path is None:
            return False

        owners = [d for d in self._result.context_dirs if path.is_relative_to(d)]
        if not owners:
            logger.warning("Entity file %s is outside every context directory", path)
            return False
        owner = max(owners, key=lambda d: len(d.parts))
        return await self.store.delete(entity.type, entity.id, owner)
