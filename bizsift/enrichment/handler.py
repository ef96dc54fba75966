"""
Website lookup for a single business: search, extract, score, cache.
"""

import logging
from typing import List, Optional

from bizsift.cache.lookup_cache import LookupCache, make_key
from bizsift.core.exceptions import SearchAPIError
from bizsift.core.models import LookupResult, ScoredCandidate
from bizsift.scoring.url_scorer import URLScorer
from bizsift.search.client import DuckDuckGoHTMLClient, build_queries, DEFAULT_COUNTRY_SITE
from bizsift.search.extractor import extract_urls


logger = logging.getLogger(__name__)

REJECT_THRESHOLD = -50
HIGH_CONFIDENCE_SCORE = 40


def clamp_confidence(score: int) -> int:
    return min(100, max(0, score))


class EnrichmentHandler:
    """
    Find the most likely official website for a business.

    Runs progressively looser search queries, scores every extracted
    candidate and keeps the best one. Results are cached per business
    and location; concurrent lookups for the same key wait for the first
    one instead of repeating its network work.
    """

    def __init__(self,
                 client: DuckDuckGoHTMLClient,
                 cache: LookupCache,
                 scorer: Optional[URLScorer] = None,
                 country_site: str = DEFAULT_COUNTRY_SITE,
                 reject_threshold: int = REJECT_THRESHOLD,
                 high_confidence: int = HIGH_CONFIDENCE_SCORE):
        """
        Initialize the handler.

        Args:
            client: Search client used to fetch result pages
            cache: Shared lookup cache
            scorer: URL scorer, default heuristic tables if None
            country_site: Local country domain for the first query
            reject_threshold: Candidates scoring at or below this are dropped
            high_confidence: Best score that stops further queries
        """
        self.client = client
        self.cache = cache
        self.scorer = scorer or URLScorer()
        self.country_site = country_site
        self.reject_threshold = reject_threshold
        self.high_confidence = high_confidence

    def lookup(self, business_name: str, location: str,
               business_type: Optional[str] = None) -> LookupResult:
        """
        Look up the website of ``business_name`` in ``location``.

        Args:
            business_name: Name of the business
            location: Locality or region of the business
            business_type: Category of the business (informational only)

        Returns:
            LookupResult; ``error`` is set when every query failed
        """
        key = make_key(business_name, location)

        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f"[Cache Hit] {business_name} -> {cached.url or 'Not Found'} "
                        f"(confidence: {cached.confidence})")
            return cached

        with self.cache.key_lock(key):
            # Another thread may have finished the same lookup while we waited
            cached = self.cache.get(key)
            if cached is not None:
                logger.info(f"[Cache Hit] {business_name} -> {cached.url or 'Not Found'} "
                            f"(confidence: {cached.confidence})")
                return cached

            result = self._search(business_name, location)
            if result.error is None:
                self.cache.set(key, result)
            return result

    def _search(self, business_name: str, location: str) -> LookupResult:
        queries = build_queries(business_name, location, self.country_site)
        best: Optional[ScoredCandidate] = None
        failures = 0

        for query in queries:
            logger.info(f"[Searching] {query}")
            try:
                html = self.client.fetch(query)
            except SearchAPIError as e:
                logger.warning(f"[Query Error] {query}: {e}")
                failures += 1
                continue

            candidates = self.score_candidates(html, business_name)
            best_score = best.score if best else 0
            if candidates and candidates[0].score > best_score:
                best = candidates[0]

            if best and best.score >= self.high_confidence:
                logger.info(f"[High Confidence] Found {best.url} with score {best.score}, "
                            f"stopping search")
                break

        if failures == len(queries):
            logger.error(f"[Error] Failed to search for {business_name}: all queries failed")
            return LookupResult(error=f"All {failures} search queries failed")

        url = best.url if best else None
        confidence = clamp_confidence(best.score) if best else 0
        logger.info(f"[Result] {business_name} -> {url or 'Not Found'} (confidence: {confidence})")
        return LookupResult(url=url, confidence=confidence)

    def score_candidates(self, html: str, business_name: str) -> List[ScoredCandidate]:
        """Extract and score the candidates on one results page, best first."""
        candidates = []
        for url in extract_urls(html):
            score = self.scorer.score(url, business_name)
            if score > self.reject_threshold:
                logger.debug(f"[Candidate] {url} (score: {score})")
                candidates.append(ScoredCandidate(url=url, score=score))

        candidates.sort(key=lambda candidate: candidate.score, reverse=True)
        return candidates
