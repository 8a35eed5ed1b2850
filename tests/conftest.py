"""Shared test fixtures for docselect."""

from __future__ import annotations

import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from docselect.selection.models import ContextDocument

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """A fixed reference time so recency scores are reproducible."""
    return NOW


@pytest.fixture
def make_doc():
    """Factory for context documents with sensible defaults."""

    def _make(
        doc_id: str,
        content: str = "Some project notes.",
        *,
        title: str = "",
        tags: list[str] | None = None,
        category: str = "other",
        age_days: float = 0.0,
        url: str | None = None,
    ) -> ContextDocument:
        return ContextDocument(
            id=doc_id,
            title=title or doc_id,
            content=content,
            tags=tags or [],
            category=category,
            last_modified=NOW - timedelta(days=age_days),
            url=url,
        )

    return _make


@pytest.fixture
def sample_documents(make_doc) -> list[ContextDocument]:
    """A small, realistic pool of project documents."""
    return [
        make_doc(
            "auth-design",
            "The login flow uses OAuth with refresh tokens. "
            "See LoginForm.tsx for the client side and session handling.",
            title="Authentication design",
            tags=["auth", "login", "oauth"],
            category="architecture",
            age_days=2,
        ),
        make_doc(
            "api-spec",
            "REST endpoints for projects and tasks. Every request carries a bearer token.",
            title="API specification",
            tags=["api", "rest"],
            category="api",
            age_days=10,
        ),
        make_doc(
            "requirements",
            "Users must be able to create projects, invite members and track progress.",
            title="Product requirements",
            tags=["requirements", "mvp"],
            category="requirements",
            age_days=30,
        ),
        make_doc(
            "style-guide",
            "Use the shared theme tokens for colors. Components follow the design system.",
            title="Style guide",
            tags=["design", "css"],
            category="design",
            age_days=60,
        ),
        make_doc(
            "research-notes",
            "Competitor analysis of project dashboards. " * 40,
            title="Research notes",
            tags=["research"],
            category="research",
            age_days=1,
        ),
    ]


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create a temporary project with a populated context directory."""
    context_dir = tmp_path / ".ai-project" / "context"
    context_dir.mkdir(parents=True)

    (tmp_path / ".ai-project" / "config.json").write_text(
        json.dumps({"name": "Dashboard", "description": "Project management dashboard"})
    )

    (context_dir / "auth-design.md").write_text('''---
id: auth-design
title: Authentication design
category: architecture
tags: auth, login, oauth
url: https://wiki.example.com/auth
---
The login flow uses OAuth with refresh tokens.
LoginForm.tsx renders the form and posts credentials to /api/session.
''')

    (context_dir / "api-spec.json").write_text(json.dumps({
        "metadata": {
            "id": "api-spec",
            "title": "API specification",
            "category": "api",
            "tags": ["api", "rest"],
        },
        "content": "REST endpoints for projects and tasks. Requests carry a bearer token.",
    }))

    (context_dir / "requirements.md").write_text(
        "Users must be able to create projects and track progress.\n"
    )

    (context_dir / "broken.json").write_text("{not valid json")

    (context_dir / "notes.txt").write_text("Not a context document")

    # Age the requirements file so recency differs between documents
    old = (NOW - timedelta(days=90)).timestamp()
    os.utime(context_dir / "requirements.md", (old, old))

    return tmp_path
