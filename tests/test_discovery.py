"""Tests for directory discovery and entity-storage resolution."""

from __future__ import annotations

import pytest
from pathlib import Path

from protokoll.context.discovery import (
    discover_config_directories,
    load_hierarchical_config,
    resolve_context_directory,
)


def _nested_chain(root: Path, depth: int) -> list[Path]:
    """root/l0/l1/... each with a .protokoll marker; returns dirs outermost first."""
    dirs = []
    current = root
    for i in range(depth):
        current = current / f"l{i}"
        (current / ".protokoll").mkdir(parents=True)
        dirs.append(current)
    return dirs


class TestDiscover:
    @pytest.mark.asyncio
    async def test_nested_chain(self, tmp_path: Path):
        dirs = _nested_chain(tmp_path, 3)
        found = await discover_config_directories(".protokoll", dirs[-1])

        assert [d.level for d in found] == [0, 1, 2]
        assert [d.path for d in found] == [
            (d / ".protokoll").resolve() for d in reversed(dirs)
        ]

    @pytest.mark.asyncio
    async def test_starting_below_markers(self, tmp_path: Path):
        dirs = _nested_chain(tmp_path, 2)
        start = dirs[-1] / "sub" / "deeper"
        start.mkdir(parents=True)

        found = await discover_config_directories(".protokoll", start)
        assert len(found) == 2
        assert [d.level for d in found] == [2, 3]
        assert found[0].path == (dirs[-1] / ".protokoll").resolve()

    @pytest.mark.asyncio
    async def test_none_found(self, tmp_path: Path):
        assert await discover_config_directories(".nothing-here", tmp_path) == []

    @pytest.mark.asyncio
    async def test_marker_must_be_directory(self, tmp_path: Path):
        (tmp_path / ".protokoll").write_text("not a dir")
        assert await discover_config_directories(".protokoll", tmp_path) == []

    @pytest.mark.asyncio
    async def test_max_levels(self, tmp_path: Path):
        dirs = _nested_chain(tmp_path, 4)
        found = await discover_config_directories(".protokoll", dirs[-1], max_levels=2)
        assert [d.level for d in found] == [0, 1]

    @pytest.mark.asyncio
    async def test_zero_levels(self, tmp_path: Path):
        (tmp_path / ".protokoll").mkdir()
        assert await discover_config_directories(".protokoll", tmp_path, max_levels=0) == []

    @pytest.mark.asyncio
    async def test_symlinked_start_is_canonical(self, tmp_path: Path):
        real = tmp_path / "real"
        (real / ".protokoll").mkdir(parents=True)
        link = tmp_path / "link"
        link.symlink_to(real, target_is_directory=True)

        found = await discover_config_directories(".protokoll", link)
        assert found[0].path == (real / ".protokoll").resolve()

    @pytest.mark.asyncio
    async def test_defaults_to_cwd(self, tmp_path: Path, monkeypatch):
        (tmp_path / ".protokoll").mkdir()
        monkeypatch.chdir(tmp_path)
        found = await discover_config_directories(".protokoll")
        assert found[0].level == 0


class TestResolveContextDirectory:
    @pytest.mark.asyncio
    async def test_explicit_relative(self, tmp_path: Path):
        marker = tmp_path / ".protokoll"
        marker.mkdir()
        (tmp_path / "my-context").mkdir()
        (tmp_path / "context").mkdir()

        resolved = await resolve_context_directory(marker, {"contextDirectory": "./my-context"})
        assert resolved == (tmp_path / "my-context").resolve()

    @pytest.mark.asyncio
    async def test_explicit_absolute(self, tmp_path: Path):
        marker = tmp_path / "repo" / ".protokoll"
        marker.mkdir(parents=True)
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()

        resolved = await resolve_context_directory(marker, {"contextDirectory": str(elsewhere)})
        assert resolved == elsewhere

    @pytest.mark.asyncio
    async def test_explicit_missing_falls_back(self, tmp_path: Path):
        marker = tmp_path / ".protokoll"
        marker.mkdir()
        (tmp_path / "context").mkdir()

        resolved = await resolve_context_directory(marker, {"contextDirectory": "./missing"})
        assert resolved == tmp_path / "context"

    @pytest.mark.asyncio
    async def test_root_context_preferred_over_legacy(self, tmp_path: Path):
        marker = tmp_path / ".protokoll"
        (marker / "context").mkdir(parents=True)
        (tmp_path / "context").mkdir()

        assert await resolve_context_directory(marker, None) == tmp_path / "context"

    @pytest.mark.asyncio
    async def test_legacy_fallback(self, tmp_path: Path):
        marker = tmp_path / ".protokoll"
        (marker / "context").mkdir(parents=True)

        assert await resolve_context_directory(marker, {}) == marker / "context"

    @pytest.mark.asyncio
    async def test_nothing(self, tmp_path: Path):
        marker = tmp_path / ".protokoll"
        marker.mkdir()
        assert await resolve_context_directory(marker, None) is None


class TestLoadHierarchicalConfig:
    @pytest.mark.asyncio
    async def test_empty(self, tmp_path: Path):
        result = await load_hierarchical_config(".protokoll", "config.yaml", tmp_path)
        assert result.config == {}
        assert result.discovered_dirs == []
        assert result.context_dirs == []

    @pytest.mark.asyncio
    async def test_merge_and_storage_order(self, tmp_path: Path):
        outer, inner = _nested_chain(tmp_path, 2)
        (outer / ".protokoll" / "config.yaml").write_text(
            "model: outer\nsmartAssistance:\n  enabled: true\n  timeout: 1000\ntags: [a, b]\n"
        )
        (inner / ".protokoll" / "config.yaml").write_text(
            "model: inner\nsmartAssistance:\n  enabled: false\ntags: [c]\n"
        )
        (outer / "context").mkdir()
        (inner / ".protokoll" / "context").mkdir()

        result = await load_hierarchical_config(".protokoll", "config.yaml", inner)

        assert result.config == {
            "model": "inner",
            "smartAssistance": {"enabled": False, "timeout": 1000},
            "tags": ["c"],
        }
        assert result.context_dirs == [
            (outer / "context").resolve(),
            (inner / ".protokoll" / "context").resolve(),
        ]
        assert [d.level for d in result.discovered_dirs] == [0, 1]

    @pytest.mark.asyncio
    async def test_corrupt_config_contributes_nothing(self, tmp_path: Path):
        outer, inner = _nested_chain(tmp_path, 2)
        (outer / ".protokoll" / "config.yaml").write_text("model: outer\n")
        (inner / ".protokoll" / "config.yaml").write_text("model: [broken\n")

        result = await load_hierarchical_config(".protokoll", "config.yaml", inner)
        assert result.config == {"model": "outer"}
        assert len(result.discovered_dirs) == 2

    @pytest.mark.asyncio
    async def test_undecodable_config_contributes_nothing(self, tmp_path: Path):
        outer, inner = _nested_chain(tmp_path, 2)
        (outer / ".protokoll" / "config.yaml").write_text("model: outer\n")
        (inner / ".protokoll" / "config.yaml").write_bytes(b"x: \xff\n")

        result = await load_hierarchical_config(".protokoll", "config.yaml", inner)
        assert result.config == {"model": "outer"}
        assert len(result.discovered_dirs) == 2

    @pytest.mark.asyncio
    async def test_explicit_path_is_per_level(self, tmp_path: Path):
        outer, inner = _nested_chain(tmp_path, 2)
        (outer / "shared").mkdir()
        (outer / ".protokoll" / "config.yaml").write_text("contextDirectory: shared\n")
        (inner / "context").mkdir()

        result = await load_hierarchical_config(".protokoll", "config.yaml", inner)
        assert result.context_dirs == [
            (outer / "shared").resolve(),
            (inner / "context").resolve(),
        ]
