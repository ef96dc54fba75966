"""
Custom exceptions for the Local Business Website Enrichment tool.
"""


class BizSiftError(Exception):
    """Base exception for all website enrichment errors."""
    pass


class ConfigurationError(BizSiftError):
    """Raised when there's an error in configuration loading or validation."""
    pass


class InputError(BizSiftError):
    """Raised when business records cannot be read from an input file."""
    pass


class SearchAPIError(BizSiftError):
    """Raised when a search engine request fails or returns an unusable page."""
    pass


class RateLimitError(SearchAPIError):
    """Raised when the search engine rate limits us."""
    pass


class EnrichmentError(BizSiftError):
    """Raised when a whole website lookup fails for a business."""
    pass
