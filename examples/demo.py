#!/usr/bin/env python3
"""Demo: Using docselect as a Python library.

This shows how to select prompt context programmatically, not just as a CLI tool.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

from docselect.selection import ContextDocument, ContextSelector, SelectionOptions
from docselect.store import DocumentLoader, load_project_info
from docselect.validation import validate_and_truncate_context


def main():
    now = datetime.now(timezone.utc)

    # 1. Load documents from a project, or fall back to a few in-memory ones
    project_root = Path(".")
    documents = DocumentLoader(project_root / ".ai-project" / "context").load()
    if not documents:
        documents = [
            ContextDocument(
                id="auth-design",
                title="Authentication design",
                content="The login flow uses OAuth. LoginForm.tsx posts to /api/session.",
                tags=["auth", "login"],
                category="architecture",
                last_modified=now - timedelta(days=2),
            ),
            ContextDocument(
                id="requirements",
                title="Product requirements",
                content="Users create projects, invite members and track progress.",
                tags=["mvp"],
                category="requirements",
                last_modified=now - timedelta(days=20),
            ),
            ContextDocument(
                id="research",
                title="Competitor research",
                content="Dashboards compared. " * 500,
                category="research",
                last_modified=now,
            ),
        ]
    print(f"Loaded {len(documents)} candidate documents")

    # 2. Select context for the current task
    selector = ContextSelector()
    options = SelectionOptions(
        work_context="fix the login redirect",
        current_file="src/components/LoginForm.tsx",
        max_tokens=1000,
        max_documents=3,
        category_preferences={"architecture": 1.5},
        now=now,
    )
    result = selector.select(documents, options)

    print(f"\n--- Selection ({result.status.value}) ---")
    for doc in result.selected_documents:
        b = doc.score_breakdown
        print(
            f"  {doc.id}: score={doc.relevance_score:.3f} "
            f"(keywords={b.keyword_overlap:.2f}, file={b.file_bonus:.2f}, "
            f"recency={b.recency:.3f}, weight={b.category_weight:.1f})"
        )
    print(f"  Tokens: {result.total_tokens} / {result.token_budget}")

    # 3. Render and check against provider limits
    context = result.render(load_project_info(project_root))
    check = validate_and_truncate_context(context, provider="google")
    print(f"\n--- Rendered context ({check.original_length} chars, valid={check.is_valid}) ---")
    print(context)


if __name__ == "__main__":
    main()
