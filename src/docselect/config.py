"""Configuration management for docselect."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from docselect.exceptions import ConfigError
from docselect.selection.models import (
    DEFAULT_MAX_DOCUMENTS,
    DEFAULT_MAX_TOKENS,
    SelectionOptions,
)
from docselect.selection.scoring import ScoringConfig

DOCSELECT_DIR = ".docselect"
CONFIG_FILE = "config.json"
DEFAULT_CONTEXT_DIR = ".ai-project/context"


class SelectionConfig(BaseModel):
    """Default budgets and preferences applied to every selection."""

    max_tokens: int = DEFAULT_MAX_TOKENS
    max_documents: int = DEFAULT_MAX_DOCUMENTS
    category_preferences: dict[str, float] = Field(default_factory=dict)

    def to_options(self, **overrides: Any) -> SelectionOptions:
        """Build SelectionOptions from these defaults; ``None`` overrides are ignored."""
        data = {
            "max_tokens": self.max_tokens,
            "max_documents": self.max_documents,
            "category_preferences": dict(self.category_preferences),
        }
        for key, value in overrides.items():
            if value is None:
                continue
            if key == "category_preferences":
                data[key] = {**data[key], **value}
            else:
                data[key] = value
        return SelectionOptions(**data)


class LoaderConfig(BaseModel):
    """Where and how context documents are read from disk."""

    context_dir: str = DEFAULT_CONTEXT_DIR
    include_patterns: list[str] = Field(default_factory=lambda: ["*.md", "*.json"])
    exclude_patterns: list[str] = Field(
        default_factory=lambda: [".*", "*.tmp", "*.bak", "*~"]
    )
    max_file_size_kb: int = 500


class ValidationConfig(BaseModel):
    """Length checks applied to formatted context."""

    provider: str = "google"
    max_length: int | None = None  # overrides the provider limit when set


class ProjectConfig(BaseModel):
    """Full project configuration."""

    name: str = ""
    description: str = ""
    root_path: str = "."
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    loader: LoaderConfig = Field(default_factory=LoaderConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)

    def context_path(self, root: Path) -> Path:
        return root / self.loader.context_dir


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from `start` looking for a .docselect directory."""
    current = (start or Path.cwd()).resolve()
    while current != current.parent:
        if (current / DOCSELECT_DIR).is_dir():
            return current
        current = current.parent
    if (current / DOCSELECT_DIR).is_dir():
        return current
    return None


def get_docselect_dir(root: Path) -> Path:
    """Get the .docselect directory for a project root."""
    return root / DOCSELECT_DIR


def load_config(root: Path) -> ProjectConfig:
    """Load configuration from .docselect/config.json."""
    config_path = get_docselect_dir(root) / CONFIG_FILE
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
            return ProjectConfig(**data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigError(f"Invalid config file {config_path}: {e}") from e
    return ProjectConfig(name=root.name, root_path=str(root))


def save_config(root: Path, config: ProjectConfig) -> None:
    """Save configuration to .docselect/config.json."""
    ds_dir = get_docselect_dir(root)
    ds_dir.mkdir(parents=True, exist_ok=True)
    config_path = ds_dir / CONFIG_FILE
    config_path.write_text(json.dumps(config.model_dump(), indent=2))


def set_config_value(config: ProjectConfig, key: str, value: Any) -> ProjectConfig:
    """Set a nested config value using dot notation (e.g., 'selection.max_tokens')."""
    parts = key.split(".")
    data = config.model_dump()
    target = data
    for part in parts[:-1]:
        if part not in target or not isinstance(target[part], dict):
            raise KeyError(f"Invalid config key: {key}")
        target = target[part]
    # Category preferences are an open mapping; any category name is a valid key
    if parts[-1] not in target and parts[:-1] != ["selection", "category_preferences"]:
        raise KeyError(f"Invalid config key: {key}")
    target[parts[-1]] = value
    try:
        return ProjectConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid value for {key}: {value!r}") from e
