"""
DuckDuckGo HTML search client used to find candidate business websites.
"""

import logging
import time
from typing import Dict, List, Optional

import requests
from fake_useragent import UserAgent

from bizsift.core.exceptions import SearchAPIError, RateLimitError
from bizsift.search.rate_limiter import RateLimiter


DEFAULT_SEARCH_URL = "https://html.duckduckgo.com/html/"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_COUNTRY_SITE = ".ke"

# Review and social sites excluded from the second query
EXCLUDED_SITES = ("facebook.com", "yelp.com", "tripadvisor.com")

# Markers of the bot-challenge page served instead of results
CHALLENGE_MARKERS = (
    "anomaly-modal__title",
    "duckduckgo.com/anomaly.js",
    "bots use duckduckgo too",
)


def is_challenge_page(html: str) -> bool:
    lowered = (html or "").lower()
    return any(marker in lowered for marker in CHALLENGE_MARKERS)


def build_queries(business_name: str, location: str,
                  country_site: str = DEFAULT_COUNTRY_SITE) -> List[str]:
    """
    Build the search queries for a business, most specific first.

    Args:
        business_name: Name of the business
        location: Locality or region to search in
        country_site: Local country domain for the first query

    Returns:
        Three queries: country-restricted exact name, exact name without
        social/review sites, and an unrestricted "official website" query
    """
    exclusions = " ".join(f"-site:{site}" for site in EXCLUDED_SITES)
    return [
        f'"{business_name}" {location} site:{country_site}',
        f'"{business_name}" {location} {exclusions}',
        f'{business_name} official website {location}',
    ]


class DuckDuckGoHTMLClient:
    """
    Client for DuckDuckGo's keyless HTML results page.

    Provides rate-limited, time-bounded page fetches with optional retry
    on rate limiting and server errors.
    """

    def __init__(self,
                 base_url: str = DEFAULT_SEARCH_URL,
                 timeout: float = 15.0,
                 rate_limit: float = 2.0,
                 max_retries: int = 0,
                 user_agent: Optional[str] = None,
                 rate_limiter: Optional[RateLimiter] = None):
        """
        Initialize the search client.

        Args:
            base_url: HTML search endpoint
            timeout: Per-request timeout in seconds
            rate_limit: Maximum requests per second (shared across threads)
            max_retries: Extra attempts after a 429 or 5xx response
            user_agent: Fixed User-Agent; a random browser agent is used if None
            rate_limiter: Shared limiter, created from ``rate_limit`` if None

        Raises:
            ValueError: If timeout is not positive
        """
        if timeout <= 0:
            raise ValueError("Search timeout must be positive")

        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self.base_delay = 1
        self.max_delay = 30
        self.user_agent = user_agent
        self.rate_limiter = rate_limiter or RateLimiter(rate_limit)
        self._user_agents: Optional[UserAgent] = None
        self.logger = logging.getLogger(__name__)

    @property
    def rate_limit(self) -> float:
        return self.rate_limiter.rate_limit

    def _headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.user_agent or self._random_user_agent(),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
        }

    def _random_user_agent(self) -> str:
        try:
            if self._user_agents is None:
                self._user_agents = UserAgent()
            return self._user_agents.random or DEFAULT_USER_AGENT
        except Exception as e:
            self.logger.debug(f"Falling back to default user agent: {e}")
            return DEFAULT_USER_AGENT

    def fetch(self, query: str) -> str:
        """
        Fetch the HTML results page for ``query``.

        Args:
            query: Search query

        Returns:
            Raw HTML of the results page

        Raises:
            SearchAPIError: For network errors, timeouts or bad responses
            RateLimitError: When the search engine rate limits us
        """
        params = {"q": query}

        try:
            response = self._make_request_with_retry(params)
        except requests.RequestException as e:
            raise SearchAPIError(f"Network error during search: {e}")

        if response.status_code == 429:
            raise RateLimitError("Rate limit exceeded. Please wait before retrying.")

        if response.status_code != 200:
            raise SearchAPIError(
                f"Search request failed with status {response.status_code}"
            )

        if is_challenge_page(response.text):
            raise RateLimitError("Search engine served a bot challenge instead of results")

        return response.text

    def _make_request_with_retry(self, params: Dict[str, str]) -> requests.Response:
        """
        Make the search request, backing off on 429 and 5xx responses.

        Args:
            params: Query parameters

        Returns:
            The last response received
        """
        attempt = 0

        while True:
            self.rate_limiter.wait_if_needed()
            response = requests.get(
                self.base_url,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )

            retryable = response.status_code == 429 or response.status_code >= 500
            if not retryable or attempt >= self.max_retries:
                return response

            delay = min(self.base_delay * (2 ** attempt), self.max_delay)
            self.logger.warning(
                f"Search returned {response.status_code}. Retrying in {delay}s..."
            )
            time.sleep(delay)
            attempt += 1
