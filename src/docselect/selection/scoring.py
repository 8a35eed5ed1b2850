"""Relevance scoring for context documents.

Formulation:
  For a document d and selection options o:

    score(d, o) = max(0, w(d) * (overlap(d, o) + affinity(d, o) + recency(d)))

  where:
    w(d)          = category preference weight (1.0 when unset)
    overlap(d, o) = |K ∩ T(d)| / |K|, K = keywords of the work context,
                    T(d) = tokens of the tags and of the leading content window
    affinity(d,o) = fixed bonus when the current file (or its basename)
                    appears in the content or matches a tag
    recency(d)    = r_max * 0.5 ** (age_days / half_life_days)

  overlap lies in [0, 1] and recency in [0, r_max], so with neither a work
  context nor a current file the ranking reduces to w(d) * recency(d).
"""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field

from docselect.selection.models import ContextDocument, ScoreBreakdown, SelectionOptions

_WORD_RE = re.compile(r"[a-z0-9]+")
_PATH_SEP_RE = re.compile(r"[\\/]")

# Domain expansions: a keyword on the left pulls in the related terms
_SEMANTIC_MAP: dict[str, list[str]] = {
    "auth": ["authentication", "login", "user", "permission", "security"],
    "payment": ["billing", "stripe", "checkout", "transaction", "invoice"],
    "user": ["profile", "account", "settings", "preferences", "data"],
    "api": ["endpoint", "request", "response", "rest", "graphql"],
    "ui": ["component", "interface", "design", "layout", "style"],
    "database": ["model", "schema", "query", "data", "storage"],
    "test": ["testing", "spec", "unit", "integration", "e2e"],
}


class ScoringConfig(BaseModel):
    """Tunable constants of the relevance model."""

    file_bonus: float = Field(default=0.3, ge=0.0)
    recency_max: float = Field(default=0.2, ge=0.0)
    recency_half_life_days: float = Field(default=7.0, gt=0.0)
    content_scan_chars: int = Field(default=500, ge=0)
    min_keyword_length: int = Field(default=3, ge=1)
    semantic_expansion: bool = False


def tokenize(text: str, min_length: int = 1) -> list[str]:
    """Lowercase ``text`` and split it on anything that is not a letter or digit."""
    return [t for t in _WORD_RE.findall(text.lower()) if len(t) >= min_length]


def extract_keywords(
    work_context: str | None,
    min_length: int = 3,
    semantic_expansion: bool = False,
) -> set[str]:
    """Extract the keyword set of a free-text work description."""
    if not work_context:
        return set()

    keywords = set(tokenize(work_context, min_length))

    if semantic_expansion:
        lowered = work_context.lower()
        for key, related in _SEMANTIC_MAP.items():
            if key in lowered:
                keywords.update(related)

    return keywords


def file_candidates(current_file: str | None) -> set[str]:
    """The lowercase strings that identify ``current_file`` in a document."""
    if not current_file or not current_file.strip():
        return set()
    path = current_file.strip().lower()
    basename = _PATH_SEP_RE.split(path)[-1]
    return {s for s in (path, basename) if s}


class RelevanceScorer:
    """Computes the rank key of a document for a given selection context.

    The scorer holds only immutable configuration and is safe to share
    between concurrent selection runs.

    Usage:
        scorer = RelevanceScorer()
        value = scorer.score(document, options, now)
    """

    def __init__(self, config: ScoringConfig | None = None) -> None:
        self.config = config or ScoringConfig()

    def keywords(self, options: SelectionOptions) -> set[str]:
        return extract_keywords(
            options.work_context,
            min_length=self.config.min_keyword_length,
            semantic_expansion=self.config.semantic_expansion,
        )

    def score(
        self,
        document: ContextDocument,
        options: SelectionOptions,
        now: datetime,
    ) -> float:
        return self.combine(self.breakdown(document, options, now))

    @staticmethod
    def combine(breakdown: ScoreBreakdown) -> float:
        return max(0.0, breakdown.category_weight * breakdown.base)

    def breakdown(
        self,
        document: ContextDocument,
        options: SelectionOptions,
        now: datetime,
        keywords: set[str] | None = None,
    ) -> ScoreBreakdown:
        """Compute each scoring signal for ``document``.

        ``keywords`` may be passed in when scoring many documents against the
        same options, to avoid re-tokenizing the work context every time.
        """
        if keywords is None:
            keywords = self.keywords(options)

        return ScoreBreakdown(
            keyword_overlap=self._keyword_overlap(document, keywords),
            file_bonus=self._file_affinity(document, options.current_file),
            recency=self._recency(document, now),
            category_weight=options.category_weight(document.category),
        )

    # -------------------------------------------------------------------
    # Signals
    # -------------------------------------------------------------------

    def _keyword_overlap(self, document: ContextDocument, keywords: set[str]) -> float:
        if not keywords:
            return 0.0

        terms: set[str] = set()
        for tag in document.tags:
            terms.add(tag.lower())
            terms.update(tokenize(tag))
        window = (document.content or "")[: self.config.content_scan_chars]
        terms.update(tokenize(window))

        return len(keywords & terms) / len(keywords)

    def _file_affinity(self, document: ContextDocument, current_file: str | None) -> float:
        candidates = file_candidates(current_file)
        if not candidates:
            return 0.0

        tags = {tag.lower() for tag in document.tags}
        if candidates & tags:
            return self.config.file_bonus

        content = (document.content or "").lower()
        if any(c in content for c in candidates):
            return self.config.file_bonus

        return 0.0

    def _recency(self, document: ContextDocument, now: datetime) -> float:
        if document.last_modified is None:
            return 0.0

        age_days = (now - document.last_modified).total_seconds() / 86400
        # Timestamps in the future count as brand new
        age_days = max(0.0, age_days)
        return self.config.recency_max * 0.5 ** (age_days / self.config.recency_half_life_days)
