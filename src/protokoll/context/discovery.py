"""Hierarchical context discovery.

Walks up from a starting directory collecting every ancestor that holds a
marker directory (``.protokoll``). Configuration documents found in those
markers are deep-merged with the closest one winning, and each level's
entity-storage directory is resolved.

    /home/user/projects/work/projectA/    <- cwd, level 0, highest precedence
        .protokoll/config.yaml
    /home/user/projects/work/             <- level 2
        .protokoll/config.yaml
    /home/user/                           <- level 4, user defaults
        .protokoll/config.yaml
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from protokoll.config import DEFAULT_MAX_LEVELS, merge_configs, read_config_document

logger = logging.getLogger(__name__)

CONTEXT_DIR_NAME = "context"
CONTEXT_DIRECTORY_KEY = "contextDirectory"


@dataclass(frozen=True)
class DiscoveredDir:
    path: Path
    level: int  # 0 = starting directory, higher = further up


@dataclass
class HierarchicalResult:
    config: dict[str, Any] = field(default_factory=dict)
    discovered_dirs: list[DiscoveredDir] = field(default_factory=list)
    context_dirs: list[Path] = field(default_factory=list)  # furthest-first


def _walk_up(config_dir_name: str, starting_dir: Path, max_levels: int) -> list[DiscoveredDir]:
    discovered: list[DiscoveredDir] = []
    visited: set[Path] = set()
    current = starting_dir.resolve()
    level = 0

    while level < max_levels:
        if current in visited:
            break
        visited.add(current)

        marker = current / config_dir_name
        if marker.is_dir():
            discovered.append(DiscoveredDir(path=marker, level=level))

        parent = current.parent
        if parent == current:
            break
        current = parent
        level += 1

    return discovered


async def discover_config_directories(
    config_dir_name: str,
    starting_dir: Path | str | None = None,
    max_levels: int = DEFAULT_MAX_LEVELS,
) -> list[DiscoveredDir]:
    """Find marker directories from ``starting_dir`` upward, closest first.

    An empty list means no context is available; it is not an error.
    """
    start = Path(starting_dir) if starting_dir is not None else Path.cwd()
    discovered = await asyncio.to_thread(_walk_up, config_dir_name, start, max_levels)
    logger.debug("Discovered %d %s directories from %s", len(discovered), config_dir_name, start)
    return discovered


def _existing_dir(path: Path) -> Path | None:
    return path if path.is_dir() else None


def _resolve_context_directory(marker_dir: Path, config: dict[str, Any] | None) -> Path | None:
    repo_root = marker_dir.parent

    explicit = config.get(CONTEXT_DIRECTORY_KEY) if config else None
    if isinstance(explicit, str):
        explicit_path = Path(explicit).expanduser()
        if not explicit_path.is_absolute():
            explicit_path = (repo_root / explicit_path).resolve()
        if _existing_dir(explicit_path):
            return explicit_path
        logger.debug("%s %s does not exist, using defaults", CONTEXT_DIRECTORY_KEY, explicit_path)

    return _existing_dir(repo_root / CONTEXT_DIR_NAME) or _existing_dir(
        marker_dir / CONTEXT_DIR_NAME
    )


async def resolve_context_directory(
    marker_dir: Path, config: dict[str, Any] | None
) -> Path | None:
    """Entity-storage directory for one marker directory.

    Priority:
    1. ``contextDirectory`` from that level's config (relative to the repo root)
    2. ``<repo root>/context`` next to the marker directory
    3. ``<marker>/context`` (legacy layout)
    """
    return await asyncio.to_thread(_resolve_context_directory, marker_dir, config)


async def load_hierarchical_config(
    config_dir_name: str,
    config_file_name: str,
    starting_dir: Path | str | None = None,
    max_levels: int = DEFAULT_MAX_LEVELS,
) -> HierarchicalResult:
    """Discover, merge config furthest-first and resolve entity-storage dirs."""
    discovered = await discover_config_directories(config_dir_name, starting_dir, max_levels)
    if not discovered:
        return HierarchicalResult()

    documents: list[dict[str, Any]] = []
    context_dirs: list[Path] = []

    for d in sorted(discovered, key=lambda d: d.level, reverse=True):
        doc = await asyncio.to_thread(read_config_document, d.path / config_file_name)
        if doc is not None:
            documents.append(doc)

        context_dir = await resolve_context_directory(d.path, doc)
        if context_dir is not None:
            context_dirs.append(context_dir)
        else:
            logger.debug("No entity storage for %s", d.path)

    return HierarchicalResult(
        config=merge_configs(documents),
        discovered_dirs=discovered,
        context_dirs=context_dirs,
    )
