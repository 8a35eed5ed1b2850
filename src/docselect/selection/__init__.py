"""Budgeted context selection.

Chooses which project documents to inject into a generative-AI prompt:
documents are scored for relevance to the current work and packed greedily
into a token and document-count budget.

Usage:
    from docselect.selection import ContextSelector, SelectionOptions

    selector = ContextSelector()
    result = selector.select(documents, SelectionOptions(work_context="login flow"))
    print(result.render())
"""

from docselect.selection.engine import ContextSelector, select_context
from docselect.selection.models import (
    ContextDocument,
    ProjectInfo,
    ScoreBreakdown,
    SelectionOptions,
    SelectionResult,
    SelectionStatus,
    TokenEstimator,
)
from docselect.selection.scoring import RelevanceScorer, ScoringConfig

__all__ = [
    "ContextSelector",
    "select_context",
    "ContextDocument",
    "ProjectInfo",
    "ScoreBreakdown",
    "SelectionOptions",
    "SelectionResult",
    "SelectionStatus",
    "TokenEstimator",
    "RelevanceScorer",
    "ScoringConfig",
]
