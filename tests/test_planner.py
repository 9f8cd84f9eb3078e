"""
Tests for the query planner and request contexts.
"""

import threading
import time
from unittest.mock import Mock

import pytest

from article_chat.context import RequestContext, run_with_deadline
from article_chat.errors import EmbeddingError, PlanningError, RequestCancelledError
from article_chat.llm.base import GenerationResponse
from article_chat.models import Intent
from article_chat.query.planner import QueryPlanner


def llm_returning(text):
    llm = Mock()
    llm.generate_content.return_value = GenerationResponse(text=text)
    return llm


class TestCreatePlan:
    """Test plan creation."""

    def test_plan_from_stub_provider(self, stub_llm, article_service):
        """Test an end-to-end plan with the rule-based provider."""
        planner = QueryPlanner(stub_llm, article_service)

        plan = planner.create_plan("Summarize https://example.com/ai-chips")

        assert plan.intent is Intent.SUMMARIZE
        assert plan.targets == ("https://example.com/ai-chips",)
        assert plan.question == "Summarize https://example.com/ai-chips"

    def test_context_articles_appear_in_prompt(self, article_service):
        """Test retrieved articles are offered to the model."""
        llm = llm_returning('{"intent": "FIND_BY_TOPIC", "parameters": ["cloud"]}')
        planner = QueryPlanner(llm, article_service, context_k=2)

        planner.create_plan("Anything about cloud outages?")

        prompt = llm.generate_content.call_args.args[0]
        assert "https://example.com/cloud-outage" in prompt
        assert prompt.endswith("USER QUERY: Anything about cloud outages?")

    def test_search_failure_falls_back_to_all_articles(self, article_store):
        """Test planning continues over the whole corpus when search fails."""
        service = Mock()
        service.search_similar_articles.side_effect = EmbeddingError("ollama down")
        service.get_all_articles.return_value = article_store.find_all()
        llm = llm_returning('{"intent": "FIND_COMMON_ENTITIES"}')

        plan = QueryPlanner(llm, service).create_plan("Common entities?")

        assert plan.intent is Intent.FIND_COMMON_ENTITIES
        prompt = llm.generate_content.call_args.args[0]
        assert "https://example.com/climate-report" in prompt

    def test_unknown_intent_is_returned(self, article_service):
        """Test an unrecognized intent is not a planning error."""
        planner = QueryPlanner(llm_returning('{"intent": "WEATHER"}'), article_service)

        assert planner.create_plan("Will it rain?").intent is Intent.UNKNOWN


class TestPlanningFailures:
    """Test each planner stage reports its failure."""

    def test_context_stage(self):
        """Test failure to load any context articles."""
        service = Mock()
        service.search_similar_articles.side_effect = RuntimeError("no index")
        service.get_all_articles.side_effect = RuntimeError("database locked")

        with pytest.raises(PlanningError) as exc_info:
            QueryPlanner(llm_returning("{}"), service).create_plan("Question")

        assert exc_info.value.stage == "context"

    def test_prompt_stage(self, article_service):
        """Test an empty query cannot be rendered."""
        with pytest.raises(PlanningError) as exc_info:
            QueryPlanner(llm_returning("{}"), article_service).create_plan("   ")

        assert exc_info.value.stage == "prompt"

    def test_generation_stage(self, article_service):
        """Test provider failures."""
        llm = Mock()
        llm.generate_content.side_effect = TimeoutError("model timed out")

        with pytest.raises(PlanningError) as exc_info:
            QueryPlanner(llm, article_service).create_plan("Question")

        assert exc_info.value.stage == "generation"
        assert "model timed out" in str(exc_info.value)

    @pytest.mark.parametrize("text", ["I think SUMMARIZE", '{"targets": []}', ""])
    def test_parse_stage(self, article_service, text):
        """Test malformed planner output is never coerced into a plan."""
        with pytest.raises(PlanningError) as exc_info:
            QueryPlanner(llm_returning(text), article_service).create_plan("Question")

        assert exc_info.value.stage == "parse"

    def test_cancelled_request(self, article_service):
        """Test a cancelled request stops before the model call."""
        llm = llm_returning('{"intent": "SUMMARIZE"}')
        ctx = RequestContext()
        ctx.cancel()

        with pytest.raises(RequestCancelledError):
            QueryPlanner(llm, article_service).create_plan("Question", ctx)

        llm.generate_content.assert_not_called()

    def test_deadline_abandons_slow_generation(self, slow_llm, article_service):
        """Test a model call still running at the deadline does not hold up the request."""
        ctx = RequestContext(timeout=0.3)
        start = time.monotonic()

        with pytest.raises(RequestCancelledError, match="deadline exceeded during planner generation"):
            QueryPlanner(slow_llm, article_service).create_plan("Summarize https://example.com/ai-chips", ctx)

        assert time.monotonic() - start < 1.0
        assert ctx.cancelled

    def test_remaining_time_passed_to_provider(self, stub_llm, article_service):
        """Test the provider is told how much of the request is left."""
        llm = Mock(wraps=stub_llm)

        QueryPlanner(llm, article_service).create_plan("Summarize https://example.com/ai-chips", RequestContext(timeout=30))

        timeout = llm.generate_content.call_args.kwargs["timeout"]
        assert 0 < timeout <= 30


class TestRequestContext:
    """Test cancellation tokens."""

    def test_unbounded_context(self):
        """Test a context without deadline never expires."""
        ctx = RequestContext()

        assert ctx.remaining() is None
        ctx.check("anything")

    def test_expired_deadline(self):
        """Test a zero timeout is immediately expired."""
        ctx = RequestContext(timeout=0)

        assert ctx.expired
        with pytest.raises(RequestCancelledError, match="deadline exceeded before fetch"):
            ctx.check("fetch")

    def test_cancel(self):
        """Test explicit cancellation."""
        ctx = RequestContext(timeout=60)
        ctx.cancel()

        assert ctx.cancelled
        with pytest.raises(RequestCancelledError, match="cancelled"):
            ctx.check()

    def test_run_returns_result(self):
        """Test a call finishing in time returns its value and sees the remaining time."""
        ctx = RequestContext(timeout=30)

        assert ctx.run(lambda remaining: remaining, "lookup") <= 30

    def test_run_propagates_errors(self):
        """Test exceptions raised by the call reach the caller unchanged."""
        def failing(remaining):
            raise ValueError("bad input")

        with pytest.raises(ValueError, match="bad input"):
            RequestContext(timeout=30).run(failing, "lookup")

    def test_run_stops_on_cancel_from_another_thread(self):
        """Test cancelling mid-call releases the waiting caller."""
        ctx = RequestContext()
        released = threading.Event()
        threading.Timer(0.1, ctx.cancel).start()

        try:
            with pytest.raises(RequestCancelledError, match="cancelled during generation"):
                ctx.run(lambda remaining: released.wait(5), "generation")
        finally:
            released.set()

    def test_run_without_context(self):
        """Test calls run inline with no time limit when there is no context."""
        assert run_with_deadline(None, lambda remaining: remaining, "lookup") is None
