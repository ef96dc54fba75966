"""
Candidate URL extraction from DuckDuckGo HTML result pages.
"""

import logging
import re
from typing import Iterator, Optional
from urllib.parse import urlparse, parse_qs, unquote

from bs4 import BeautifulSoup


logger = logging.getLogger(__name__)

# Result markup drifts, so several selectors are tried
RESULT_SELECTORS = ('.result__a', '.result__url', '.links_main a')

REDIRECT_PARAM = 'uddg'
REDIRECT_BASE = 'https://duckduckgo.com'

_REDIRECT_REGEX = re.compile(REDIRECT_PARAM + r'=([^&]+)')


def decode_redirect(href: str) -> Optional[str]:
    """
    Resolve a DuckDuckGo redirect-wrapper link to its destination.

    Links without a ``uddg`` parameter are returned unchanged.

    Args:
        href: Raw ``href`` attribute from the results page

    Returns:
        Destination URL, or None if the wrapper cannot be decoded
    """
    if REDIRECT_PARAM + '=' not in href:
        return href

    try:
        absolute = href
        if href.startswith('//'):
            absolute = 'https:' + href
        elif href.startswith('/'):
            absolute = REDIRECT_BASE + href
        values = parse_qs(urlparse(absolute).query, strict_parsing=True).get(REDIRECT_PARAM)
        if values and values[0]:
            return values[0]
    except ValueError as e:
        logger.debug(f"Malformed redirect link {href!r}: {e}")

    match = _REDIRECT_REGEX.search(href)
    if match:
        return unquote(match.group(1))
    return None


def _normalize(href: str) -> Optional[str]:
    candidate = decode_redirect(href.strip())
    if not candidate:
        return None

    if not candidate.startswith('http') and not candidate.startswith('/'):
        candidate = 'https://' + candidate

    # Site-relative link with no resolvable host
    if candidate.startswith('/'):
        return None

    return candidate


def extract_urls(html: str) -> Iterator[str]:
    """
    Yield candidate URLs from a search results page.

    Each call parses ``html`` afresh; nothing is retained between calls.

    Args:
        html: Raw HTML of the results page

    Yields:
        Absolute candidate URLs in page order
    """
    if not html:
        return

    soup = BeautifulSoup(html, 'html.parser')

    # A grouped selector matches each element once, in document order
    for element in soup.select(', '.join(RESULT_SELECTORS)):
        href = element.get('href')
        if not href:
            continue

        candidate = _normalize(href)
        if candidate:
            yield candidate
