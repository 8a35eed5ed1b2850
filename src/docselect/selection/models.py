"""Data models for budgeted context selection."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_MAX_TOKENS = 8000
DEFAULT_MAX_DOCUMENTS = 5
DEFAULT_CATEGORY = "other"

BLOCK_SEPARATOR = "\n\n---\n\n"


class SelectionStatus(str, Enum):
    """Why a selection ended up the way it did."""

    NO_DOCUMENTS = "no_documents"  # Nothing to choose from
    COMPLETE = "complete"  # Every valid candidate fit
    BUDGET_LIMITED = "budget_limited"  # At least one candidate was left out


class ScoreBreakdown(BaseModel):
    """Per-signal components of a relevance score."""

    model_config = ConfigDict(populate_by_name=True)

    keyword_overlap: float = Field(default=0.0, alias="keywordOverlap")
    file_bonus: float = Field(default=0.0, alias="fileBonus")
    recency: float = 0.0
    category_weight: float = Field(default=1.0, alias="categoryWeight")

    @property
    def base(self) -> float:
        return self.keyword_overlap + self.file_bonus + self.recency


class ContextDocument(BaseModel):
    """A titled, tagged, categorized text unit eligible for prompt injection.

    ``id`` and ``content`` are optional at the model level so that a partially
    filled record can still be represented; the selector skips such records
    instead of failing the whole batch (see ``is_well_formed``).
    """

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str | None = None
    title: str = ""
    content: str | None = None
    tags: list[str] = Field(default_factory=list)
    category: str = DEFAULT_CATEGORY
    last_modified: datetime | None = Field(default=None, alias="lastModified")
    url: str | None = None
    filename: str | None = None
    # Output-only: populated by the selector, ignored on input
    relevance_score: float | None = Field(default=None, alias="relevanceScore")
    score_breakdown: ScoreBreakdown | None = Field(default=None, alias="scoreBreakdown")

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        elif not isinstance(value, (list, tuple, set, frozenset)):
            raise ValueError("tags must be a string or a list of strings")
        seen: list[str] = []
        for tag in value:
            tag = str(tag).strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value):
        if value is None or not str(value).strip():
            return DEFAULT_CATEGORY
        return str(value).strip()

    @field_validator("last_modified")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _default_title(self) -> ContextDocument:
        if not self.title and self.id:
            self.title = self.id
        return self

    @property
    def is_well_formed(self) -> bool:
        """True if the document carries the fields selection depends on."""
        return bool(self.id) and self.content is not None

    def render(self) -> str:
        """Render this document as a prompt block."""
        lines = [
            f"## {self.title} ({self.category})",
            f"**Tags:** {', '.join(self.tags)}",
        ]
        if self.url:
            lines.append(f"**Source:** {self.url}")
        lines.append("")
        lines.append(self.content or "")
        return "\n".join(lines)


class SelectionOptions(BaseModel):
    """Request contract for a selection run."""

    model_config = ConfigDict(populate_by_name=True)

    current_file: str | None = Field(default=None, alias="currentFile")
    work_context: str | None = Field(default=None, alias="workContext")
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, alias="maxTokens")
    max_documents: int = Field(default=DEFAULT_MAX_DOCUMENTS, alias="maxDocuments")
    category_preferences: dict[str, float] = Field(
        default_factory=dict, alias="categoryPreferences"
    )
    now: datetime | None = None  # Reference time for recency; clock if unset

    @field_validator("max_tokens", "max_documents", mode="before")
    @classmethod
    def _fill_budget(cls, value, info):
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("max_tokens", "max_documents")
    @classmethod
    def _clamp_budget(cls, value: int) -> int:
        # A negative budget means "select nothing"
        return max(0, value)

    @field_validator("category_preferences", mode="before")
    @classmethod
    def _fill_preferences(cls, value):
        return {} if value is None else value

    @field_validator("category_preferences")
    @classmethod
    def _drop_invalid_weights(cls, value: dict[str, float]) -> dict[str, float]:
        return {k: w for k, w in value.items() if math.isfinite(w) and w > 0}

    @field_validator("now")
    @classmethod
    def _now_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def category_weight(self, category: str) -> float:
        return self.category_preferences.get(category, 1.0)


class ProjectInfo(BaseModel):
    """Optional project header for rendered context."""

    name: str
    description: str = ""


class SelectionResult(BaseModel):
    """The outcome of a selection run, ready for formatting."""

    model_config = ConfigDict(populate_by_name=True)

    selected_documents: list[ContextDocument] = Field(
        default_factory=list, alias="selectedDocuments"
    )
    total_documents: int = Field(default=0, alias="totalDocuments")
    # Malformed candidates excluded before scoring
    skipped_documents: int = Field(default=0, alias="skippedDocuments")
    total_tokens: int = Field(default=0, alias="totalTokens")
    token_budget: int = Field(default=DEFAULT_MAX_TOKENS, alias="tokenBudget")
    document_budget: int = Field(default=DEFAULT_MAX_DOCUMENTS, alias="documentBudget")
    budget_used_pct: float = Field(default=0.0, alias="budgetUsedPct")
    status: SelectionStatus = SelectionStatus.COMPLETE
    message: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.selected_documents

    @property
    def document_ids(self) -> list[str]:
        return [doc.id for doc in self.selected_documents]

    def render(self, project: ProjectInfo | None = None) -> str:
        """Render the selected documents as prompt text.

        Blocks are emitted in selection order and joined by a horizontal rule.
        Returns an empty string when nothing was selected.
        """
        if not self.selected_documents:
            return ""

        blocks = [doc.render() for doc in self.selected_documents]
        body = BLOCK_SEPARATOR.join(blocks)

        if project is None:
            return body

        header = [f"# Project: {project.name}"]
        if project.description:
            header.append(project.description)
        return "\n".join(header) + "\n\n" + body

    def summary(self) -> str:
        """Human-readable summary of the selection."""
        lines = [
            f"Context selection: {self.status.value}",
            f"Tokens: {self.total_tokens:,} / {self.token_budget:,} ({self.budget_used_pct:.0f}%)",
            f"Documents: {len(self.selected_documents)} selected "
            f"(limit {self.document_budget}), {self.total_documents} candidates",
        ]
        if self.skipped_documents:
            lines.append(f"Skipped: {self.skipped_documents} malformed")
        if self.message:
            lines.append(self.message)

        if self.selected_documents:
            lines.append("")
            lines.append("Selected documents:")
        for doc in self.selected_documents:
            score = doc.relevance_score or 0.0
            lines.append(
                f"  > {doc.title} ({doc.category}) [{doc.id}] "
                f"score={score:.3f}"
            )

        return "\n".join(lines)


class TokenEstimator:
    """Estimate token counts for prompt text."""

    # Rough heuristic: 1 token ≈ 4 characters
    CHARS_PER_TOKEN = 4

    @classmethod
    def estimate(cls, text: str) -> int:
        """Estimate token count for a string (0 for empty text)."""
        return math.ceil(len(text) / cls.CHARS_PER_TOKEN)
