"""Input/output package for business records."""

from .reader import BusinessReader
from .writer import EnrichedWriter

__all__ = ['BusinessReader', 'EnrichedWriter']
