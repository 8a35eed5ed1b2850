"""Tests for budgeted context selection."""

from __future__ import annotations

import logging

import pytest

from docselect.selection.engine import ContextSelector, select_context
from docselect.selection.models import (
    ContextDocument,
    SelectionOptions,
    SelectionResult,
    SelectionStatus,
    TokenEstimator,
)
from docselect.selection.scoring import ScoringConfig


@pytest.fixture
def selector() -> ContextSelector:
    return ContextSelector()


def _ids(result: SelectionResult) -> list[str]:
    return [d.id for d in result.selected_documents]


def _tokens(n: int) -> str:
    """Content whose token estimate is exactly ``n``."""
    return "x" * (n * TokenEstimator.CHARS_PER_TOKEN)


class TestBudgets:
    def test_respects_document_budget(self, selector, sample_documents, now):
        opts = SelectionOptions(max_documents=2, now=now)
        result = selector.select(sample_documents, opts)
        assert len(result.selected_documents) == 2
        assert result.status == SelectionStatus.BUDGET_LIMITED

    def test_respects_token_budget(self, selector, sample_documents, now):
        opts = SelectionOptions(max_tokens=60, max_documents=10, now=now)
        result = selector.select(sample_documents, opts)
        used = sum(TokenEstimator.estimate(d.content) for d in result.selected_documents)
        assert used <= 60
        assert result.total_tokens == used

    @pytest.mark.parametrize("max_tokens,max_documents", [(0, 5), (8000, 0), (0, 0)])
    def test_zero_budget_selects_nothing(self, selector, sample_documents, now, max_tokens, max_documents):
        opts = SelectionOptions(max_tokens=max_tokens, max_documents=max_documents, now=now)
        result = selector.select(sample_documents, opts)
        assert result.selected_documents == []
        assert result.status == SelectionStatus.BUDGET_LIMITED
        assert result.total_documents == len(sample_documents)

    def test_negative_budget_treated_as_zero(self, selector, sample_documents, now):
        result = selector.select(sample_documents, {"maxDocuments": -3, "now": now})
        assert result.selected_documents == []
        assert result.document_budget == 0

    def test_everything_fits(self, selector, sample_documents, now):
        opts = SelectionOptions(max_tokens=100_000, max_documents=10, now=now)
        result = selector.select(sample_documents, opts)
        assert len(result.selected_documents) == len(sample_documents)
        assert result.status == SelectionStatus.COMPLETE

    def test_zero_token_documents_fit_exhausted_budget(self, selector, make_doc, now):
        docs = [make_doc("big", _tokens(10)), make_doc("empty", "")]
        opts = SelectionOptions(max_tokens=10, now=now)
        assert sorted(_ids(selector.select(docs, opts))) == ["big", "empty"]

    def test_budget_accounting(self, selector, make_doc, now):
        docs = [make_doc("a", _tokens(300)), make_doc("b", _tokens(200))]
        result = selector.select(docs, SelectionOptions(max_tokens=1000, now=now))
        assert result.total_tokens == 500
        assert result.token_budget == 1000
        assert result.budget_used_pct == 50.0


class TestSkipAndContinue:
    def test_oversized_document_skipped_scan_continues(self, selector, make_doc, now):
        # Same age, so score = category weight * max recency (0.2)
        docs = [
            make_doc("A", _tokens(2000), category="a"),
            make_doc("B", _tokens(1500), category="b"),
            make_doc("C", _tokens(6000), category="c"),
        ]
        opts = SelectionOptions(
            max_tokens=5000,
            max_documents=2,
            category_preferences={"a": 4.5, "b": 3.5, "c": 4.75},
            now=now,
        )
        result = selector.select(docs, opts)

        assert _ids(result) == ["A", "B"]
        assert result.total_tokens == 3500
        scores = [d.relevance_score for d in result.selected_documents]
        assert scores == pytest.approx([0.9, 0.7])

    def test_smaller_later_document_fills_gap(self, selector, make_doc, now):
        docs = [
            make_doc("first", _tokens(600), age_days=0),
            make_doc("too-big", _tokens(500), age_days=1),
            make_doc("small", _tokens(300), age_days=2),
        ]
        opts = SelectionOptions(max_tokens=1000, max_documents=5, now=now)
        assert _ids(selector.select(docs, opts)) == ["first", "small"]


class TestOrdering:
    def test_descending_score(self, selector, sample_documents, now):
        opts = SelectionOptions(work_context="login oauth", max_tokens=100_000, now=now)
        result = selector.select(sample_documents, opts)
        scores = [d.relevance_score for d in result.selected_documents]
        assert scores == sorted(scores, reverse=True)
        assert result.selected_documents[0].id == "auth-design"

    def test_tie_broken_by_recency_then_id(self, selector, make_doc, now):
        # No timestamps: all scores are zero, so ties fall through to the id
        docs = [
            ContextDocument(id="c", content="x"),
            ContextDocument(id="a", content="x"),
            ContextDocument(id="b", content="x"),
        ]
        opts = SelectionOptions(now=now)
        assert _ids(selector.select(docs, opts)) == ["a", "b", "c"]

    def test_missing_timestamp_ranks_after_dated_tie(self, selector, now):
        undated = ContextDocument(id="a", content="x")
        dated = ContextDocument(id="b", content="x", last_modified=now.replace(year=1900))
        # Both score (effectively) zero; the dated one is more recent than "never"
        result = selector.select([undated, dated], SelectionOptions(now=now))
        assert _ids(result) == ["b", "a"]

    def test_fallback_ranks_by_recency(self, selector, make_doc, now):
        older = make_doc("older", "same content", age_days=10)
        newer = make_doc("newer", "same content", age_days=1)
        result = selector.select([older, newer], SelectionOptions(now=now))
        assert _ids(result) == ["newer", "older"]
        assert result.selected_documents[0].relevance_score > result.selected_documents[1].relevance_score

    def test_input_order_irrelevant(self, selector, sample_documents, now):
        opts = SelectionOptions(work_context="project tasks", max_documents=3, now=now)
        forward = selector.select(sample_documents, opts)
        backward = selector.select(list(reversed(sample_documents)), opts)
        assert _ids(forward) == _ids(backward)


class TestDeterminism:
    def test_identical_inputs_identical_output(self, selector, sample_documents, now):
        opts = SelectionOptions(
            work_context="login api tokens",
            current_file="LoginForm.tsx",
            max_tokens=200,
            max_documents=3,
            category_preferences={"api": 1.5},
            now=now,
        )
        first = selector.select(sample_documents, opts)
        second = selector.select(sample_documents, opts)
        assert first.model_dump_json() == second.model_dump_json()


class TestCategoryPreferences:
    @pytest.mark.parametrize("category", ["architecture", "api", "requirements", "design", "research"])
    def test_boost_never_lowers_rank(self, selector, sample_documents, now, category):
        def position(weight: float) -> int:
            opts = SelectionOptions(
                work_context="project login",
                max_tokens=100_000,
                max_documents=10,
                category_preferences={category: weight},
                now=now,
            )
            result = selector.select(sample_documents, opts)
            return next(i for i, d in enumerate(result.selected_documents) if d.category == category)

        positions = [position(w) for w in (0.5, 1.0, 2.0, 10.0)]
        assert positions == sorted(positions, reverse=True)

    def test_weight_recorded_in_breakdown(self, selector, make_doc, now):
        docs = [make_doc("a", category="api")]
        opts = SelectionOptions(category_preferences={"api": 2.5}, now=now)
        result = selector.select(docs, opts)
        assert result.selected_documents[0].score_breakdown.category_weight == 2.5


class TestEmptyAndMalformed:
    def test_empty_input(self, selector):
        result = selector.select([], SelectionOptions())
        assert result.selected_documents == []
        assert result.total_documents == 0
        assert result.status == SelectionStatus.NO_DOCUMENTS
        assert result.message == "No context documents found"

    def test_empty_differs_from_exhausted(self, selector, sample_documents, now):
        exhausted = selector.select(sample_documents, SelectionOptions(max_tokens=0, now=now))
        empty = selector.select([], SelectionOptions(max_tokens=0, now=now))
        assert exhausted.status != empty.status

    def test_malformed_documents_skipped(self, selector, make_doc, now, caplog):
        docs = [
            make_doc("good", "content"),
            ContextDocument(id="no-content"),
            ContextDocument(content="no id"),
            {"id": "raw", "content": "raw mapping", "tags": ["x"]},
            {"id": "bad-date", "content": "x", "lastModified": "not a date"},
            {"id": "bad-tags", "content": "x", "tags": 5},
            "not a document",
        ]
        with caplog.at_level(logging.WARNING, logger="docselect.engine"):
            result = selector.select(docs, SelectionOptions(now=now))

        assert sorted(_ids(result)) == ["good", "raw"]
        assert result.total_documents == 7
        assert result.skipped_documents == 5
        assert "missing id or content" in caplog.text

    def test_all_malformed(self, selector):
        result = selector.select([{"title": "orphan"}], SelectionOptions())
        assert result.status == SelectionStatus.NO_DOCUMENTS
        assert result.skipped_documents == 1
        assert "1 skipped" in result.message


class TestPurity:
    def test_inputs_not_mutated(self, selector, sample_documents, now):
        before = [d.model_dump() for d in sample_documents]
        result = selector.select(sample_documents, SelectionOptions(work_context="login", now=now))
        assert [d.model_dump() for d in sample_documents] == before
        assert all(d.relevance_score is None for d in sample_documents)
        assert all(d.relevance_score is not None for d in result.selected_documents)

    def test_selection_is_subset_of_input(self, selector, sample_documents, now):
        result = selector.select(sample_documents, SelectionOptions(max_documents=10, now=now))
        input_ids = {d.id for d in sample_documents}
        assert set(_ids(result)) <= input_ids
        assert len(set(_ids(result))) == len(result.selected_documents)

    def test_incoming_relevance_score_ignored(self, selector, make_doc, now):
        stale = make_doc("stale", age_days=100).model_copy(update={"relevance_score": 99.0})
        fresh = make_doc("fresh", age_days=0)
        result = selector.select([stale, fresh], SelectionOptions(now=now))
        assert _ids(result) == ["fresh", "stale"]
        assert result.selected_documents[1].relevance_score < 1.0


class TestConfiguration:
    def test_custom_token_counter_used_for_packing(self, make_doc, now):
        def words(text: str) -> int:
            return len(text.split())

        selector = ContextSelector(token_counter=words)
        docs = [make_doc("a", "one two three", age_days=0), make_doc("b", "four five", age_days=1)]
        result = selector.select(docs, SelectionOptions(max_tokens=4, now=now))
        assert _ids(result) == ["a"]
        assert result.total_tokens == 3

    def test_scoring_config_applied(self, make_doc, now):
        selector = ContextSelector(ScoringConfig(semantic_expansion=True))
        docs = [make_doc("a", "The login screen", age_days=30), make_doc("b", "Unrelated", age_days=30)]
        result = selector.select(docs, SelectionOptions(work_context="auth", now=now))
        assert _ids(result)[0] == "a"

    def test_pack_alias(self, selector, sample_documents, now):
        opts = SelectionOptions(now=now)
        assert _ids(selector.pack(sample_documents, opts)) == _ids(selector.select(sample_documents, opts))

    def test_select_context_helper(self, sample_documents, now):
        result = select_context(sample_documents, {"maxDocuments": 1, "now": now})
        assert len(result.selected_documents) == 1

    def test_default_options(self, selector, sample_documents):
        result = selector.select(sample_documents)
        assert result.token_budget == 8000
        assert result.document_budget == 5
