"""
Heuristic scoring of candidate URLs for a business's official website.

Directory, social and review sites are rejected outright; everything else
accumulates additive bonuses for local-market and name-match signals. The
signal tables are plain data so they can be tuned per market from
configuration.
"""

import re
from typing import Dict, List, Optional, Sequence, Any


REJECT_SCORE = -100

# Search engines, social networks, review aggregators, classifieds and
# business directories (global and Kenyan)
DEFAULT_DENYLIST = [
    'duckduckgo.com', 'google.com', 'bing.com',
    'facebook.com', 'instagram.com', 'twitter.com', '//x.com', 'www.x.com',
    'linkedin.com', 'yelp.com', 'tripadvisor.com', 'yellowpages',
    'jumia', 'jiji', 'businesslist.co.ke', 'kenyaplex.com', 'hotfrog.co.ke',
    'cylex.co.ke', 'kenyanlist.com', 'locanto.co.ke', 'pigiame.co.ke',
    'olx.co.ke',
]

DEFAULT_COUNTRY_MARKERS = ['.ke', '.co.ke']
DEFAULT_BUSINESS_TLDS = ['com', 'org', 'net', 'co.ke', 'ke']
DEFAULT_BUILDER_PLATFORMS = ['wordpress', 'wix', 'squarespace', 'blogspot', 'weebly']

DEFAULT_WEIGHTS = {
    'country_marker': 20,
    'name_match': 30,
    'business_tld': 10,
    'site_builder': -5,
}

_NON_ALNUM = re.compile(r'[^a-z0-9]')


def normalize_business_name(name: str) -> str:
    """Lower-case ``name`` and strip everything outside ``[a-z0-9]``."""
    return _NON_ALNUM.sub('', (name or '').lower())


class URLScorer:
    """
    Score how likely a URL is to be a business's own website.

    Scores are unbounded integers; callers clamp them into a confidence.
    """

    def __init__(self,
                 denylist: Optional[Sequence[str]] = None,
                 country_markers: Optional[Sequence[str]] = None,
                 business_tlds: Optional[Sequence[str]] = None,
                 builder_platforms: Optional[Sequence[str]] = None,
                 weights: Optional[Dict[str, int]] = None):
        """
        Initialize the URL scorer.

        Args:
            denylist: Domain substrings that hard-reject a URL
            country_markers: Domain fragments signalling the local market
            business_tlds: Top-level domains that earn the TLD bonus
            builder_platforms: Free site-builder names penalised as subdomains
            weights: Overrides for the per-signal bonuses
        """
        self.denylist = self._clean(denylist if denylist is not None else DEFAULT_DENYLIST)
        self.country_markers = self._clean(
            country_markers if country_markers is not None else DEFAULT_COUNTRY_MARKERS)
        self.business_tlds = self._clean(
            business_tlds if business_tlds is not None else DEFAULT_BUSINESS_TLDS)
        self.builder_platforms = self._clean(
            builder_platforms if builder_platforms is not None else DEFAULT_BUILDER_PLATFORMS)
        self.weights = dict(DEFAULT_WEIGHTS)
        if weights:
            self.weights.update({key: int(value) for key, value in weights.items()})

        self._tld_regex = self._compile_suffix(self.business_tlds)
        self._builder_regex = (
            re.compile(r'\.(' + '|'.join(re.escape(p) for p in self.builder_platforms) + r')\.')
            if self.builder_platforms else None
        )

    @classmethod
    def from_config(cls, scoring_config: Dict[str, Any]) -> 'URLScorer':
        """Build a scorer from the ``scoring`` configuration section."""
        return cls(
            denylist=scoring_config.get('denylist'),
            country_markers=scoring_config.get('country_markers'),
            business_tlds=scoring_config.get('business_tlds'),
            builder_platforms=scoring_config.get('builder_platforms'),
            weights=scoring_config.get('weights'),
        )

    @staticmethod
    def _clean(values: Sequence[str]) -> List[str]:
        return [value.lower().strip() for value in values if value and value.strip()]

    @staticmethod
    def _compile_suffix(tlds: Sequence[str]):
        if not tlds:
            return None
        alternatives = '|'.join(re.escape(tld.lstrip('.')) for tld in tlds)
        return re.compile(r'\.(' + alternatives + r')$')

    def is_denylisted(self, url: str) -> bool:
        url_lower = (url or '').lower()
        return any(entry in url_lower for entry in self.denylist)

    def score(self, url: str, business_name: str) -> int:
        """
        Score ``url`` as the official website of ``business_name``.

        Args:
            url: Candidate URL
            business_name: Name of the business being enriched

        Returns:
            -100 for denylisted URLs, otherwise the sum of matched bonuses
        """
        return sum(self.explain(url, business_name).values())

    def explain(self, url: str, business_name: str) -> Dict[str, int]:
        """Get the per-signal contributions for ``url`` (for debugging)."""
        url_lower = (url or '').lower()
        if self.is_denylisted(url_lower):
            return {'denylisted': REJECT_SCORE}

        breakdown = {}
        normalized = normalize_business_name(business_name)

        if any(marker in url_lower for marker in self.country_markers):
            breakdown['country_marker'] = self.weights['country_marker']

        if normalized and normalized in url_lower:
            breakdown['name_match'] = self.weights['name_match']

        if self._tld_regex and self._tld_regex.search(url_lower):
            breakdown['business_tld'] = self.weights['business_tld']

        if self._builder_regex and self._builder_regex.search(url_lower):
            breakdown['site_builder'] = self.weights['site_builder']

        return breakdown


_default_scorer = URLScorer()


def score_url(url: str, business_name: str) -> int:
    """Score ``url`` with the default heuristic tables."""
    return _default_scorer.score(url, business_name)
