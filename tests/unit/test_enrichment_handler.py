import threading
import time

import pytest
from unittest.mock import Mock
from bizsift.cache.lookup_cache import LookupCache, make_key
from bizsift.core.exceptions import SearchAPIError
from bizsift.core.models import LookupResult, ScoredCandidate
from bizsift.enrichment.handler import EnrichmentHandler, clamp_confidence


class TestEnrichmentHandler:
    """Test suite for single-business website lookups."""

    @pytest.fixture
    def client(self):
        return Mock()

    @pytest.fixture
    def cache(self):
        return LookupCache()

    @pytest.fixture
    def handler(self, client, cache):
        return EnrichmentHandler(client=client, cache=cache)

    def test_high_confidence_on_first_query_stops_search(self, handler, client, make_page):
        """Test high confidence on first query stops search."""
        client.fetch.return_value = make_page(
            "https://www.tripadvisor.com/Restaurant-Java_House",
            "https://www.javahouseafrica.com",
        )

        result = handler.lookup("Java House", "Nairobi")

        assert result == LookupResult(url="https://www.javahouseafrica.com", confidence=40)
        client.fetch.assert_called_once_with('"Java House" Nairobi site:.ke')

    def test_later_query_can_improve_the_best(self, handler, client, make_page):
        """Test later query can improve the best."""
        client.fetch.side_effect = [
            make_page("https://nairobicafes.co.ke/page"),   # 20
            make_page("https://javahouse.co.ke"),           # 60
        ]

        result = handler.lookup("Java House", "Nairobi")

        assert result.url == "https://javahouse.co.ke"
        assert result.confidence == 60
        assert client.fetch.call_count == 2

    def test_ties_keep_the_earlier_candidate(self, handler, client, make_page):
        """Test ties keep the earlier candidate."""
        client.fetch.side_effect = [
            make_page("https://javahouse.info"),
            make_page("https://javahouse.biz"),
            make_page("https://javahouse.shop"),
        ]

        result = handler.lookup("Java House", "Nairobi")

        assert result == LookupResult(url="https://javahouse.info", confidence=30)
        assert client.fetch.call_count == 3

    def test_only_directory_sites_means_not_found(self, handler, client, make_page):
        """Test only directory sites means not found."""
        client.fetch.return_value = make_page(
            "https://www.facebook.com/javahouse",
            "https://www.yelp.com/biz/java-house",
            "https://jiji.co.ke/javahouse",
        )

        result = handler.lookup("Java House", "Nairobi")

        assert result == LookupResult(url=None, confidence=0)
        assert result.error is None
        assert client.fetch.call_count == 3

    def test_zero_score_candidates_are_not_accepted(self, handler, client, make_page):
        """Test zero score candidates are not accepted."""
        client.fetch.return_value = make_page("https://unrelated.io/about")

        result = handler.lookup("Java House", "Nairobi")

        assert result.url is None
        assert result.confidence == 0

    def test_failed_query_moves_on_to_next(self, handler, client, make_page):
        """Test failed query moves on to next."""
        client.fetch.side_effect = [
            SearchAPIError("timed out"),
            make_page("https://javahouse.co.ke"),
        ]

        result = handler.lookup("Java House", "Nairobi")

        assert result.url == "https://javahouse.co.ke"
        assert result.error is None
        assert client.fetch.call_count == 2

    def test_all_queries_failing_reports_error_and_skips_cache(self, handler, client, cache):
        """Test all queries failing reports error and skips cache."""
        client.fetch.side_effect = SearchAPIError("network down")

        result = handler.lookup("Java House", "Nairobi")

        assert result.url is None
        assert result.confidence == 0
        assert "All 3 search queries failed" in result.error
        assert make_key("Java House", "Nairobi") not in cache

        handler.lookup("Java House", "Nairobi")
        assert client.fetch.call_count == 6

    def test_lookups_leave_no_key_locks_behind(self, handler, client, cache, make_page):
        """Test that neither cached nor failed lookups keep a key lock."""
        client.fetch.side_effect = SearchAPIError("network down")
        for i in range(50):
            handler.lookup(f"Business {i}", "Nairobi")

        client.fetch.side_effect = None
        client.fetch.return_value = make_page("https://javahouse.co.ke")
        handler.lookup("Java House", "Nairobi")

        assert cache._key_locks == {}
        assert len(cache) == 1

    def test_second_lookup_is_served_from_cache(self, handler, client, make_page):
        """Test second lookup is served from cache."""
        client.fetch.return_value = make_page("https://javahouse.co.ke")

        first = handler.lookup("Java House", "Nairobi")
        second = handler.lookup("java house", " NAIROBI ")

        assert first == second
        assert client.fetch.call_count == 1

    def test_not_found_results_are_cached(self, handler, client, make_page):
        """Test not found results are cached."""
        client.fetch.return_value = make_page("https://facebook.com/javahouse")

        handler.lookup("Java House", "Nairobi")
        handler.lookup("Java House", "Nairobi")

        assert client.fetch.call_count == 3

    def test_cache_hit_makes_no_network_call(self, client, cache):
        """Test cache hit makes no network call."""
        cache.set(make_key("Java House", "Nairobi"), LookupResult(url="https://cached.co.ke", confidence=55))
        handler = EnrichmentHandler(client=client, cache=cache)

        assert handler.lookup("Java House", "Nairobi").url == "https://cached.co.ke"
        client.fetch.assert_not_called()

    def test_concurrent_lookups_for_same_key_share_one_search(self, handler, client, make_page):
        """Test concurrent lookups for same key share one search."""
        def slow_fetch(query):
            time.sleep(0.05)
            return make_page("https://javahouse.co.ke")

        client.fetch.side_effect = slow_fetch
        results = []

        threads = [
            threading.Thread(target=lambda: results.append(handler.lookup("Java House", "Nairobi")))
            for _ in range(3)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert client.fetch.call_count == 1
        assert len(set(results)) == 1

    def test_unexpected_errors_propagate(self, handler, client):
        """Test unexpected errors propagate."""
        client.fetch.side_effect = RuntimeError("bug")

        with pytest.raises(RuntimeError):
            handler.lookup("Java House", "Nairobi")

    def test_custom_thresholds(self, client, cache, make_page):
        """Test custom thresholds."""
        handler = EnrichmentHandler(client=client, cache=cache, high_confidence=70, country_site=".ug")
        client.fetch.return_value = make_page("https://javahouse.co.ke")

        result = handler.lookup("Java House", "Kampala")

        assert result.confidence == 60
        assert client.fetch.call_count == 3
        assert client.fetch.call_args_list[0].args[0] == '"Java House" Kampala site:.ug'

    def test_score_candidates_sorted_and_filtered(self, handler, make_page):
        """Test score candidates sorted and filtered."""
        html = make_page(
            "https://javahouse.info",
            "https://facebook.com/javahouse",
            "https://javahouse.co.ke",
        )

        assert handler.score_candidates(html, "Java House") == [
            ScoredCandidate(url="https://javahouse.co.ke", score=60),
            ScoredCandidate(url="https://javahouse.info", score=30),
        ]


def test_clamp_confidence():
    """Test clamp confidence."""
    assert clamp_confidence(-20) == 0
    assert clamp_confidence(60) == 60
    assert clamp_confidence(150) == 100
