"""Entry point: python -m protokoll [status|search <query>|list <type>]

- No args / "status": Show discovered directories and entity counts
- "search <query>":   Search entity names across all types
- "list <type>":      List entities of one type (person, project, ...)
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

from protokoll.config import load_settings
from protokoll.context.types import EntityType
from protokoll.core import Context, ContextOptions


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_context() -> Context:
    settings = load_settings()
    _setup_logging(settings.log_level)
    options = ContextOptions.from_settings(settings, starting_dir=Path.cwd())
    return asyncio.run(Context.create(options))


def _print_status(context: Context) -> None:
    if not context.has_context():
        print("No context found.")
        return
    print("Discovered directories:")
    for d in context.discovered_dirs:
        print(f"  [{d.level}] {d.path}")
    print("Entity storage (lowest precedence first):")
    for d in context.context_dirs:
        print(f"  {d}")
    for entity_type in EntityType:
        print(f"  {entity_type.directory}: {len(context.get_all(entity_type))}")


def _print_entities(entities) -> None:
    for e in entities:
        print(f"- {e.name} ({e.type.value}, id={e.id})")


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "status"

    if cmd == "status":
        _print_status(_load_context())
    elif cmd == "search" and len(sys.argv) > 2:
        _print_entities(_load_context().search(" ".join(sys.argv[2:])))
    elif cmd == "list" and len(sys.argv) > 2 and sys.argv[2] in {t.value for t in EntityType}:
        _print_entities(_load_context().get_all(EntityType(sys.argv[2])))
    else:
        print("Usage: python -m protokoll [status|search <query>|list <type>]")
        print("  status          — Discovered context directories and entity counts")
        print("  search <query>  — Search entity names")
        print("  list <type>     — " + ", ".join(t.value for t in EntityType))
        sys.exit(1)


if __name__ == "__main__":
    main()
