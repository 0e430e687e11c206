"""Entity storage: YAML documents under typed subdirectories.

Directories passed to ``load`` are ordered furthest-first; a record from a
later (closer) directory replaces one with the same id from an earlier one.
Files are the source of truth; the in-memory collections are rebuilt on
every load and updated incrementally on save/delete.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator, Sequence
from pathlib import Path

import yaml

from protokoll.context.types import Entity, EntityType, entity_from_dict

logger = logging.getLogger(__name__)

ENTITY_EXTENSIONS = (".yaml", ".yml")
CONTEXT_SUBDIR = "context"


class EntityStore:
    """In-memory, id-keyed entity collections backed by context directories."""

    def __init__(self) -> None:
        self._entities: dict[EntityType, dict[str, Entity]] = {t: {} for t in EntityType}

    # ── Loading ───────────────────────────────────────────────

    async def load(self, context_dirs: Sequence[Path]) -> None:
        """Load every context directory in order; later directories override."""
        for context_dir in context_dirs:
            context_dir = Path(context_dir)
            batches = await asyncio.gather(
                *(asyncio.to_thread(self._read_type_dir, context_dir, t) for t in EntityType)
            )
            for entity_type, batch in zip(EntityType, batches):
                collection = self._entities[entity_type]
                for entity in batch:
                    collection[entity.id] = entity

    def _read_type_dir(self, context_dir: Path, entity_type: EntityType) -> list[Entity]:
        type_dir = context_dir / entity_type.directory
        try:
            files = sorted(
                p for p in type_dir.iterdir() if p.suffix in ENTITY_EXTENSIONS and p.is_file()
            )
        except OSError:
            return []

        entities = []
        for path in files:
            entity = self._parse_entity_file(path, entity_type)
            if entity is not None:
                entities.append(entity)
        return entities

    def _parse_entity_file(self, path: Path, entity_type: EntityType) -> Entity | None:
        """Parse one entity document, or None if it is unusable."""
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            logger.warning("Skipping unreadable entity file %s: %s", path, e)
            return None

        if not isinstance(data, dict) or data.get("id") in (None, ""):
            logger.debug("Skipping %s: no id", path)
            return None

        try:
            return entity_from_dict(entity_type, data)
        except (TypeError, ValueError) as e:
            logger.warning("Skipping malformed entity file %s: %s", path, e)
            return None

    # ── Writes ────────────────────────────────────────────────

    def _entity_path(self, entity: Entity, target_dir: Path) -> Path:
        return target_dir / CONTEXT_SUBDIR / entity.type.directory / f"{entity.id}.yaml"

    def _write(self, entity: Entity, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        content = yaml.safe_dump(
            entity.to_dict(), sort_keys=False, allow_unicode=True, width=1_000_000
        )
        path.write_text(content, encoding="utf-8")

    async def save(self, entity: Entity, target_dir: Path) -> Path:
        """Write ``entity`` to ``<target_dir>/context/<type dir>/<id>.yaml``."""
        path = self._entity_path(entity, Path(target_dir))
        await asyncio.to_thread(self._write, entity, path)
        self._entities[entity.type][entity.id] = entity
        logger.info("Saved %s %s to %s", entity.type.value, entity.id, path)
        return path

    def _candidate_paths(self, base_dir: Path, entity_type: EntityType, entity_id: str) -> list[Path]:
        """Current then legacy locations of one entity under a directory."""
        return [
            prefix / entity_type.directory / f"{entity_id}{ext}"
            for prefix in (base_dir, base_dir / CONTEXT_SUBDIR)
            for ext in ENTITY_EXTENSIONS
        ]

    def _unlink_first(self, paths: list[Path]) -> Path | None:
        for path in paths:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            return path
        return None

    async def delete(self, entity_type: EntityType, entity_id: str, target_dir: Path) -> bool:
        """Remove the entity file under ``target_dir``. False if none existed."""
        paths = self._candidate_paths(Path(target_dir), entity_type, entity_id)
        removed = await asyncio.to_thread(self._unlink_first, paths)
        if removed is None:
            return False
        self._entities[entity_type].pop(entity_id, None)
        logger.info("Deleted %s %s (%s)", entity_type.value, entity_id, removed)
        return True

    # ── Lookup ────────────────────────────────────────────────

    def get(self, entity_type: EntityType, entity_id: str) -> Entity | None:
        return self._entities[entity_type].get(entity_id)

    def get_all(self, entity_type: EntityType) -> list[Entity]:
        """All entities of one type, ordered by id."""
        collection = self._entities[entity_type]
        return [collection[k] for k in sorted(collection)]

    def _iter_all(self) -> Iterator[Entity]:
        """Every entity: types in declaration order, then ids ascending."""
        for entity_type in EntityType:
            yield from self.get_all(entity_type)

    def search(self, query: str) -> list[Entity]:
        """Case-insensitive substring match on entity names."""
        q = query.lower()
        return [e for e in self._iter_all() if q in e.name.lower()]

    def find_by_sounds_like(
        self, phonetic: str, entity_type: EntityType | None = None
    ) -> Entity | None:
        """First entity listing ``phonetic`` among its sounds_like variants.

        With ``entity_type`` only that collection is scanned.
        """
        normalized = phonetic.strip().lower()
        entities = self._iter_all() if entity_type is None else self.get_all(entity_type)
        for entity in entities:
            variants = getattr(entity, "sounds_like", None)
            if not isinstance(variants, list):
                continue
            if any(str(v).lower() == normalized for v in variants):
                return entity
        return None

    def get_entity_file_path(
        self, entity_type: EntityType, entity_id: str, context_dirs: Sequence[Path]
    ) -> Path | None:
        """Path of the file that currently wins for this id, searching closest-first."""
        for context_dir in reversed(context_dirs):
            for path in self._candidate_paths(Path(context_dir), entity_type, entity_id):
                if path.is_file():
                    return path
        return None

    def clear(self) -> None:
        for collection in self._entities.values():
            collection.clear()
