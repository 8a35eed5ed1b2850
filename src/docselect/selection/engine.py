"""Budgeted context selection.

Formulation:
  Given candidate documents V, options o with token budget B and document
  budget N, and a token cost c(v):

  Select an ordered X ⊆ V subject to:
    1. Budget:  Σ c(v) ≤ B  for v ∈ X
    2. Count:   |X| ≤ N

Algorithm:
  1. Drop malformed candidates (no id or no content), counting them
  2. Score every remaining candidate (see scoring.py)
  3. Rank by score desc, then last_modified desc, then id asc. This is a
     total order, so the output is deterministic for identical input
  4. First-fit scan: include v iff |X| < N and c(v) fits the remaining
     budget; otherwise skip v and keep scanning, so that a later, smaller
     document can use the space a larger one could not

  Greedy first-fit is not knapsack-optimal; it is O(n log n) and predictable.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from docselect.selection.models import (
    ContextDocument,
    ScoreBreakdown,
    SelectionOptions,
    SelectionResult,
    SelectionStatus,
    TokenEstimator,
)
from docselect.selection.scoring import RelevanceScorer, ScoringConfig

logger = logging.getLogger("docselect.engine")

NO_DOCUMENTS_MESSAGE = "No context documents found"


@dataclass
class _Candidate:
    document: ContextDocument
    breakdown: ScoreBreakdown
    score: float
    cost: int

    @property
    def sort_key(self) -> tuple[float, float, str]:
        modified = self.document.last_modified
        # Missing timestamps rank as the oldest
        ts = modified.timestamp() if modified is not None else float("-inf")
        return (-self.score, -ts, self.document.id)


class ContextSelector:
    """Selects the most relevant context documents that fit a budget.

    A selector holds only configuration. Construct one per process (or per
    request) and pass it to whatever needs it; ``select`` has no side effects
    besides logging and never mutates its inputs.

    Usage:
        selector = ContextSelector()
        result = selector.select(documents, SelectionOptions(work_context="auth flow"))
        prompt_context = result.render()
    """

    def __init__(
        self,
        scoring: ScoringConfig | None = None,
        token_counter: Callable[[str], int] | None = None,
    ) -> None:
        self.scorer = RelevanceScorer(scoring)
        # One counter for both packing and accounting
        self.token_counter = token_counter or TokenEstimator.estimate

    # -------------------------------------------------------------------
    # Main entry point
    # -------------------------------------------------------------------

    def select(
        self,
        documents: Iterable[ContextDocument | Mapping[str, Any]],
        options: SelectionOptions | Mapping[str, Any] | None = None,
    ) -> SelectionResult:
        """Select and order documents for prompt injection.

        Recency is measured against ``options.now``. When it is unset the
        clock is read once per call, so repeated calls can score differently;
        pass ``now`` for reproducible output.

        Args:
            documents: Candidate documents, as models or raw mappings.
            options: Selection options; defaults apply when omitted.

        Returns:
            A SelectionResult whose documents are copies of the inputs
            annotated with their relevance score and score breakdown.
        """
        if options is None:
            options = SelectionOptions()
        elif not isinstance(options, SelectionOptions):
            options = SelectionOptions.model_validate(options)

        now = options.now or datetime.now(timezone.utc)
        documents = list(documents)

        valid, skipped = self._validate(documents)

        if not valid:
            message = NO_DOCUMENTS_MESSAGE
            if skipped:
                message = f"No valid context documents found ({skipped} skipped)"
            return SelectionResult(
                total_documents=len(documents),
                skipped_documents=skipped,
                token_budget=options.max_tokens,
                document_budget=options.max_documents,
                status=SelectionStatus.NO_DOCUMENTS,
                message=message,
            )

        ranked = self._rank(valid, options, now)
        selected = self._budget_select(ranked, options.max_tokens, options.max_documents)

        total_tokens = sum(c.cost for c in selected)
        items = [
            c.document.model_copy(
                update={"relevance_score": c.score, "score_breakdown": c.breakdown}
            )
            for c in selected
        ]

        if len(selected) < len(ranked):
            status = SelectionStatus.BUDGET_LIMITED
            message = (
                f"Selected {len(selected)} of {len(ranked)} documents "
                f"within budget ({total_tokens}/{options.max_tokens} tokens)"
            )
        else:
            status = SelectionStatus.COMPLETE
            message = f"Selected all {len(selected)} documents"

        logger.debug(
            f"Selection: {len(selected)}/{len(ranked)} documents, "
            f"{total_tokens}/{options.max_tokens} tokens, {skipped} skipped"
        )
        if items:
            logger.info(f"Context documents used: {[d.id for d in items]}")

        return SelectionResult(
            selected_documents=items,
            total_documents=len(documents),
            skipped_documents=skipped,
            total_tokens=total_tokens,
            token_budget=options.max_tokens,
            document_budget=options.max_documents,
            budget_used_pct=round(total_tokens / max(options.max_tokens, 1) * 100, 1),
            status=status,
            message=message,
        )

    pack = select

    # -------------------------------------------------------------------
    # Phase 1: Validation
    # -------------------------------------------------------------------

    def _validate(
        self, documents: list[ContextDocument | Mapping[str, Any]]
    ) -> tuple[list[ContextDocument], int]:
        """Split candidates into well-formed documents and a skipped count."""
        valid: list[ContextDocument] = []
        skipped = 0

        for i, raw in enumerate(documents):
            if isinstance(raw, ContextDocument):
                doc = raw
            elif isinstance(raw, Mapping):
                try:
                    doc = ContextDocument.model_validate(raw)
                except ValidationError as e:
                    logger.warning(
                        f"Skipping candidate #{i}: invalid document ({e.error_count()} errors)"
                    )
                    skipped += 1
                    continue
            else:
                logger.warning(f"Skipping candidate #{i}: unsupported type {type(raw).__name__}")
                skipped += 1
                continue

            if not doc.is_well_formed:
                logger.warning(f"Skipping candidate #{i} ({doc.id!r}): missing id or content")
                skipped += 1
                continue

            valid.append(doc)

        return valid, skipped

    # -------------------------------------------------------------------
    # Phase 2-3: Scoring and ranking
    # -------------------------------------------------------------------

    def _rank(
        self,
        documents: list[ContextDocument],
        options: SelectionOptions,
        now: datetime,
    ) -> list[_Candidate]:
        keywords = self.scorer.keywords(options)

        candidates = []
        for doc in documents:
            breakdown = self.scorer.breakdown(doc, options, now, keywords=keywords)
            candidates.append(
                _Candidate(
                    document=doc,
                    breakdown=breakdown,
                    score=self.scorer.combine(breakdown),
                    cost=self.token_counter(doc.content),
                )
            )

        candidates.sort(key=lambda c: c.sort_key)
        return candidates

    # -------------------------------------------------------------------
    # Phase 4: Budgeted first-fit selection
    # -------------------------------------------------------------------

    @staticmethod
    def _budget_select(
        ranked: list[_Candidate], max_tokens: int, max_documents: int
    ) -> list[_Candidate]:
        """Skip-and-continue first-fit over the ranked candidates."""
        # cheapest[i] = smallest cost among ranked[i:], for the early exit
        cheapest = [0] * len(ranked)
        running = float("inf")
        for i in range(len(ranked) - 1, -1, -1):
            running = min(running, ranked[i].cost)
            cheapest[i] = running

        selected: list[_Candidate] = []
        remaining = max_tokens

        for i, cand in enumerate(ranked):
            if len(selected) >= max_documents:
                break
            if cheapest[i] > remaining:
                break
            if cand.cost > remaining:
                continue

            selected.append(cand)
            remaining -= cand.cost

        return selected


def select_context(
    documents: Iterable[ContextDocument | Mapping[str, Any]],
    options: SelectionOptions | Mapping[str, Any] | None = None,
) -> SelectionResult:
    """Run a one-off selection with the default scoring configuration."""
    return ContextSelector().select(documents, options)
