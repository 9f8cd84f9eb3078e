"""
Tests for the response cache and its fingerprints.
"""

import threading

import pytest

from article_chat.models import Intent, Plan
from article_chat.query.cache import ResponseCache


class TestPlanFingerprint:
    """Test plan fingerprints."""

    def test_fingerprint_is_deterministic(self):
        """Test equal plans share a fingerprint."""
        plan = Plan(Intent.SUMMARIZE, targets=["https://a.com/1"])

        assert ResponseCache.key(plan) == ResponseCache.key(Plan(Intent.SUMMARIZE, targets=["https://a.com/1"]))
        assert len(ResponseCache.key(plan)) == 64

    def test_target_order_is_ignored(self):
        """Test targets in any order produce the same fingerprint."""
        first = Plan(Intent.COMPARE_TONE, targets=["https://a.com/1", "https://b.com/2"])
        second = Plan(Intent.COMPARE_TONE, targets=["https://b.com/2", "https://a.com/1"])

        assert ResponseCache.key(first) == ResponseCache.key(second)

    def test_question_text_is_ignored(self):
        """Test differently worded questions with the same plan collide."""
        first = Plan(Intent.SUMMARIZE, targets=["https://a.com/1"], question="Summarize it")
        second = Plan(Intent.SUMMARIZE, targets=["https://a.com/1"], question="TL;DR please")

        assert ResponseCache.key(first) == ResponseCache.key(second)

    def test_intent_targets_and_parameters_matter(self):
        """Test any other difference changes the fingerprint."""
        base = Plan(Intent.FIND_BY_TOPIC, parameters=["ai"])

        assert ResponseCache.key(base) != ResponseCache.key(Plan(Intent.COMPARE_ALL_SENTIMENT, parameters=["ai"]))
        assert ResponseCache.key(base) != ResponseCache.key(Plan(Intent.FIND_BY_TOPIC, parameters=["climate"]))

    def test_different_target_sets_differ(self):
        """Test plans differing only in their target sets get different fingerprints."""
        first = Plan(Intent.COMPARE_TONE, targets=["https://a.com/1", "https://b.com/2"], parameters=["ai"])
        second = Plan(Intent.COMPARE_TONE, targets=["https://a.com/1", "https://c.com/3"], parameters=["ai"])
        fewer = Plan(Intent.COMPARE_TONE, targets=["https://a.com/1"], parameters=["ai"])
        untargeted = Plan(Intent.COMPARE_TONE, parameters=["ai"])

        keys = {ResponseCache.key(plan) for plan in (first, second, fewer, untargeted)}
        assert len(keys) == 4

    def test_query_fingerprint_normalizes_whitespace_and_case(self):
        """Test query fingerprints ignore spacing and case."""
        assert ResponseCache.key_for_query("Summarize  THIS") == ResponseCache.key_for_query(" summarize this ")
        assert ResponseCache.key_for_query("summarize this") != ResponseCache.key(Plan(Intent.SUMMARIZE))


class TestResponseCache:
    """Test cache storage and statistics."""

    def test_get_miss_then_hit(self):
        """Test lookups report whether the key was present."""
        cache = ResponseCache()

        assert cache.get("abc123") == (None, False)
        cache.set("abc123", "answer")
        assert cache.get("abc123") == ("answer", True)

    def test_empty_string_is_a_valid_value(self):
        """Test a cached empty answer is still a hit."""
        cache = ResponseCache()
        cache.set("00ff", "")

        assert cache.get("00ff") == ("", True)

    def test_set_overwrites(self):
        """Test setting an existing key replaces its value."""
        cache = ResponseCache()
        cache.set("00ff", "first")
        cache.set("00ff", "second")

        assert cache.get("00ff") == ("second", True)
        assert len(cache) == 1

    def test_stats_and_clear(self):
        """Test hit and miss accounting."""
        cache = ResponseCache(shards=4)
        cache.set("aa", "x")
        cache.get("aa")
        cache.get("bb")

        stats = cache.get_stats()
        assert (stats.hits, stats.misses, stats.total_requests, stats.cache_size) == (1, 1, 2, 1)

        cache.clear()
        assert len(cache) == 0
        assert cache.get_stats().total_requests == 0

    def test_invalid_shard_count(self):
        """Test at least one shard is required."""
        with pytest.raises(ValueError):
            ResponseCache(shards=0)

    def test_concurrent_writers(self):
        """Test many threads writing distinct keys lose nothing."""
        cache = ResponseCache()
        plans = [Plan(Intent.FIND_BY_TOPIC, parameters=[f"topic-{i}"]) for i in range(200)]

        def writer(chunk):
            for plan in chunk:
                cache.set(ResponseCache.key(plan), plan.parameters[0])

        threads = [threading.Thread(target=writer, args=(plans[i::4],)) for i in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(cache) == 200
        assert cache.get(ResponseCache.key(plans[42])) == ("topic-42", True)
