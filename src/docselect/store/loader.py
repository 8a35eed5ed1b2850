"""Load context documents from a project's context directory.

Two on-disk formats are understood:

- Markdown (``*.md``) with optional front matter::

      ---
      id: auth-design
      title: Authentication design
      category: architecture
      tags: auth, login, oauth
      url: https://example.com/wiki/auth
      ---
      Body text...

- JSON (``*.json``), either ``{"metadata": {...}, "content": "..."}`` or a
  flat document object. Files that are not valid JSON are read as plain text.

Missing metadata is filled explicitly: ``id`` and ``title`` default to the
file stem, ``category`` to ``"other"``, ``tags`` to an empty list and
``last_modified`` to the file's modification time.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from docselect.config import LoaderConfig
from docselect.exceptions import DocumentLoadError
from docselect.selection.models import ContextDocument, ProjectInfo

logger = logging.getLogger("docselect.loader")

_FRONT_MATTER_RE = re.compile(r"^---\r?\n(.*?)\r?\n---\r?\n?(.*)$", re.DOTALL)

# Front matter keys copied onto the document as-is
_META_KEYS = {"id", "title", "category", "tags", "url", "lastModified", "last_modified"}


def parse_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Split a markdown document into (metadata, body).

    Only flat ``key: value`` lines are understood; ``tags`` is split on commas
    and may be wrapped in brackets.
    """
    match = _FRONT_MATTER_RE.match(text)
    if not match:
        return {}, text

    metadata: dict[str, Any] = {}
    for line in match.group(1).splitlines():
        key, sep, value = line.partition(":")
        key = key.strip()
        if not sep or not key:
            continue
        value = value.strip()
        if key == "tags":
            value = value.strip("[]")
            metadata[key] = [t.strip().strip("'\"") for t in value.split(",") if t.strip()]
        else:
            metadata[key] = value.strip("'\"")

    return metadata, match.group(2)


class DocumentLoader:
    """Reads context documents from a directory.

    Individual unreadable or invalid files are logged and skipped; only a
    context path that exists but is not a directory raises.

    Usage:
        loader = DocumentLoader(root / ".ai-project" / "context")
        documents = loader.load()
    """

    def __init__(self, context_dir: str | Path, config: LoaderConfig | None = None) -> None:
        self.context_dir = Path(context_dir)
        self.config = config or LoaderConfig()
        self.skipped: list[str] = []

    def collect_files(self) -> list[Path]:
        """List candidate files, sorted by name."""
        if not self.context_dir.exists():
            return []
        if not self.context_dir.is_dir():
            raise DocumentLoadError(str(self.context_dir), "not a directory")

        files = []
        for path in sorted(self.context_dir.iterdir()):
            if not path.is_file():
                continue
            if not any(fnmatch.fnmatch(path.name, p) for p in self.config.include_patterns):
                continue
            if any(fnmatch.fnmatch(path.name, p) for p in self.config.exclude_patterns):
                continue
            files.append(path)
        return files

    def load(self) -> list[ContextDocument]:
        """Load every readable document in the context directory."""
        self.skipped = []
        documents: list[ContextDocument] = []

        for path in self.collect_files():
            doc = self.load_file(path)
            if doc is None:
                self.skipped.append(path.name)
            else:
                documents.append(doc)

        logger.debug(
            f"Loaded {len(documents)} documents from {self.context_dir} "
            f"({len(self.skipped)} skipped)"
        )
        return documents

    def load_file(self, path: Path) -> ContextDocument | None:
        """Load a single document, or None if it cannot be read."""
        try:
            stat = path.stat()
            if stat.st_size > self.config.max_file_size_kb * 1024:
                logger.warning(
                    f"Skipping {path.name}: larger than {self.config.max_file_size_kb} KB"
                )
                return None
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read context document {path.name}: {e}")
            return None

        if path.suffix == ".json":
            metadata, content = self._parse_json(text, path.name)
        else:
            metadata, content = parse_front_matter(text)

        data = {k: v for k, v in metadata.items() if k in _META_KEYS and v not in (None, "")}
        data.setdefault("id", path.stem)
        data.setdefault("title", path.stem)
        if "lastModified" not in data and "last_modified" not in data:
            data["last_modified"] = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)

        try:
            return ContextDocument(**data, content=content, filename=path.name)
        except ValidationError as e:
            logger.warning(f"Invalid metadata in {path.name}: {e.error_count()} errors")
            return None

    @staticmethod
    def _parse_json(text: str, name: str) -> tuple[dict[str, Any], str]:
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            logger.debug(f"{name} is not valid JSON, reading as plain text")
            return {}, text

        if not isinstance(parsed, dict):
            return {}, text

        if "metadata" in parsed:
            metadata = parsed.get("metadata") or {}
            if not isinstance(metadata, dict):
                metadata = {}
            return metadata, str(parsed.get("content") or "")

        return parsed, str(parsed.get("content") or "")


def load_project_info(root: Path, default_name: str = "", description: str = "") -> ProjectInfo:
    """Read the project name and description for the rendered context header.

    Prefers ``.ai-project/config.json`` and falls back to the given defaults.
    """
    name = default_name or root.name
    config_path = root / ".ai-project" / "config.json"
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                name = data.get("name") or name
                description = data.get("description") or description
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load project info: {e}")
    return ProjectInfo(name=name, description=description)
