"""Configuration: process settings (env + protokoll.toml) and context config merge."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR_NAME = ".protokoll"
DEFAULT_CONFIG_FILE_NAME = "config.yaml"
DEFAULT_MAX_LEVELS = 10

_SETTINGS_FILENAME = "protokoll.toml"


@dataclass
class Settings:
    """Process-level settings for locating context."""

    config_dir_name: str = DEFAULT_CONFIG_DIR_NAME
    config_file_name: str = DEFAULT_CONFIG_FILE_NAME
    max_levels: int = DEFAULT_MAX_LEVELS
    log_level: str = "INFO"


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from environment variables and optional protokoll.toml.

    Priority: environment variables > protokoll.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        for candidate in [
            Path.cwd() / _SETTINGS_FILENAME,
            Path.home() / ".config" / "protokoll" / _SETTINGS_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    context_data = file_data.get("context", {})

    return Settings(
        config_dir_name=os.getenv(
            "PROTOKOLL_CONFIG_DIR", context_data.get("config_dir_name", DEFAULT_CONFIG_DIR_NAME)
        ),
        config_file_name=os.getenv(
            "PROTOKOLL_CONFIG_FILE", context_data.get("config_file_name", DEFAULT_CONFIG_FILE_NAME)
        ),
        max_levels=int(
            os.getenv("PROTOKOLL_MAX_LEVELS", context_data.get("max_levels", DEFAULT_MAX_LEVELS))
        ),
        log_level=os.getenv("PROTOKOLL_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )


# ── Context configuration documents ──────────────────────────


def read_config_document(path: Path) -> dict[str, Any] | None:
    """Parse one YAML config document. Missing or malformed files yield None."""
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.debug("Cannot read config %s: %s", path, e)
        return None
    except UnicodeDecodeError as e:
        logger.warning("Ignoring undecodable config %s: %s", path, e)
        return None

    try:
        parsed = yaml.safe_load(content)
    except yaml.YAMLError as e:
        logger.warning("Ignoring malformed config %s: %s", path, e)
        return None

    if not isinstance(parsed, dict):
        return None
    return parsed


def deep_merge(target: Any, source: Any) -> Any:
    """Merge ``source`` over ``target``; source wins, lists replace wholesale."""
    if source is None:
        return target
    if target is None:
        return source
    if isinstance(source, list):
        return list(source)
    if not isinstance(source, dict) or not isinstance(target, dict):
        return source

    result = dict(target)
    for key, source_val in source.items():
        target_val = result.get(key)
        if isinstance(target_val, dict) and isinstance(source_val, dict):
            result[key] = deep_merge(target_val, source_val)
        else:
            result[key] = source_val
    return result


def merge_configs(documents: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Fold documents given furthest-first; the last one has highest precedence."""
    merged: dict[str, Any] = {}
    for doc in documents:
        merged = deep_merge(merged, doc)
    return merged


# ── Smart assistance ─────────────────────────────────────────

ASSIST_TIMEOUT_MS = 30000


@dataclass
class SmartAssistanceConfig:
    """LLM-assisted metadata generation settings (``smartAssistance`` block)."""

    enabled: bool = True
    phonetic_model: str = "gpt-5-nano"
    analysis_model: str = "gpt-5-mini"

    # Projects
    sounds_like_on_add: bool = True
    trigger_phrases_on_add: bool = True
    prompt_for_source: bool = True

    # Terms
    terms_enabled: bool = True
    term_sounds_like_on_add: bool = True
    term_description_on_add: bool = True
    term_topics_on_add: bool = True
    term_project_suggestions: bool = True

    timeout: int = ASSIST_TIMEOUT_MS  # milliseconds

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> SmartAssistanceConfig:
        """Materialize from a merged config tree, filling every absent key."""
        data = config.get("smartAssistance")
        if not isinstance(data, dict):
            data = {}
        defaults = cls()

        def pick(key: str, default: Any) -> Any:
            value = data.get(key)
            return default if value is None else value

        timeout = pick("timeout", defaults.timeout)
        try:
            timeout = int(timeout)
        except (TypeError, ValueError):
            logger.warning("Invalid smartAssistance.timeout %r, using default", timeout)
            timeout = defaults.timeout

        return cls(
            enabled=pick("enabled", defaults.enabled),
            phonetic_model=pick("phoneticModel", defaults.phonetic_model),
            analysis_model=pick("analysisModel", defaults.analysis_model),
            sounds_like_on_add=pick("soundsLikeOnAdd", defaults.sounds_like_on_add),
            trigger_phrases_on_add=pick("triggerPhrasesOnAdd", defaults.trigger_phrases_on_add),
            prompt_for_source=pick("promptForSource", defaults.prompt_for_source),
            terms_enabled=pick("termsEnabled", defaults.terms_enabled),
            term_sounds_like_on_add=pick("termSoundsLikeOnAdd", defaults.term_sounds_like_on_add),
            term_description_on_add=pick(
                "termDescriptionOnAdd", defaults.term_description_on_add
            ),
            term_topics_on_add=pick("termTopicsOnAdd", defaults.term_topics_on_add),
            term_project_suggestions=pick(
                "termProjectSuggestions", defaults.term_project_suggestions
            ),
            timeout=timeout,
        )
