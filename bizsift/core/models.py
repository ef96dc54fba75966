"""Data models for the Local Business Website Enrichment tool."""

from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any


NOT_AVAILABLE = "N/A"
DEFAULT_LOCATION = "Kenya"
LOW_CONFIDENCE_THRESHOLD = 30


class EnrichmentStatus(str, Enum):
    """Outcome of enriching a single business."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    PENDING = "pending"
    ERROR = "error"


def _text(value: Any) -> str:
    """Coerce a raw field to a string, mapping blanks to the N/A sentinel."""
    if value is None:
        return NOT_AVAILABLE
    text = str(value).strip()
    if not text or text.lower() in ('nan', 'none', 'null'):
        return NOT_AVAILABLE
    return text


def _number(value: Any) -> Optional[float]:
    """Coerce a raw field to a float, mapping blanks and sentinels to None."""
    if value is None or value == NOT_AVAILABLE:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # NaN never equals itself
    if number != number:
        return None
    return number


@dataclass
class Business:
    """Represents a business record supplied by the discovery search."""
    name: str
    business_type: str = NOT_AVAILABLE
    locality: str = NOT_AVAILABLE
    region: str = NOT_AVAILABLE
    website: str = NOT_AVAILABLE
    contact: str = NOT_AVAILABLE
    maps_url: str = NOT_AVAILABLE
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    rating: Optional[float] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Business':
        """Create Business from an upstream record.

        Accepts the field names used by the discovery collaborator
        (``type``, ``county``, ``google_maps_url``) as well as the
        names used here.

        Args:
            record: Dictionary representing one business

        Returns:
            Business instance
        """
        def pick(*keys):
            for key in keys:
                if key in record and _text(record[key]) != NOT_AVAILABLE:
                    return record[key]
            return None

        return cls(
            name=_text(pick('name', 'Name', 'company_name', 'business_name')),
            business_type=_text(pick('business_type', 'type', 'Type', 'category')),
            locality=_text(pick('locality', 'Locality', 'city')),
            region=_text(pick('region', 'county', 'County', 'state')),
            website=_text(pick('website', 'Website')),
            contact=_text(pick('contact', 'Contact', 'phone')),
            maps_url=_text(pick('maps_url', 'google_maps_url', 'GoogleMapsUrl')),
            latitude=_number(pick('latitude', 'Latitude', 'lat')),
            longitude=_number(pick('longitude', 'Longitude', 'lng', 'lon')),
            rating=_number(pick('rating', 'Rating')),
        )

    @property
    def has_website(self) -> bool:
        """Whether the record already carries a real website."""
        website = (self.website or '').strip()
        return bool(website) and website != NOT_AVAILABLE

    def best_location(self, default: str = DEFAULT_LOCATION) -> str:
        """Locality, falling back to region, falling back to ``default``."""
        for value in (self.locality, self.region):
            if value and value != NOT_AVAILABLE:
                return value
        return default

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EnrichedBusiness:
    """A business plus the outcome of its website enrichment."""
    business: Business
    website_status: EnrichmentStatus = EnrichmentStatus.PENDING
    website_url: Optional[str] = None
    website_confidence: Optional[int] = None
    enriched_at: Optional[datetime] = None
    error_message: Optional[str] = None

    def __post_init__(self):
        """Validate confidence score."""
        self.website_status = EnrichmentStatus(self.website_status)
        if self.website_confidence is not None and not (0 <= self.website_confidence <= 100):
            raise ValueError("Confidence score must be between 0 and 100")

    @property
    def name(self) -> str:
        return self.business.name

    def needs_retry(self, threshold: int = LOW_CONFIDENCE_THRESHOLD) -> bool:
        """Whether a retry run should pick this business up again."""
        if self.website_status in (EnrichmentStatus.ERROR, EnrichmentStatus.NOT_FOUND):
            return True
        if self.website_status == EnrichmentStatus.FOUND:
            return (self.website_confidence or 0) < threshold
        return False

    def to_record(self) -> Dict[str, Any]:
        """Flatten into the upstream record shape plus enrichment fields."""
        record = self.business.to_record()
        record.update({
            'website_url': self.website_url,
            'website_status': self.website_status.value,
            'website_confidence': self.website_confidence,
            'enriched_at': self.enriched_at.isoformat() if self.enriched_at else None,
            'error_message': self.error_message,
        })
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'EnrichedBusiness':
        """Rebuild an enriched business from a previously written record."""
        status = _text(record.get('website_status'))
        confidence = _number(record.get('website_confidence'))
        enriched_at = _text(record.get('enriched_at'))
        url = _text(record.get('website_url'))
        error = _text(record.get('error_message'))
        return cls(
            business=Business.from_record(record),
            website_status=EnrichmentStatus(status) if status != NOT_AVAILABLE else EnrichmentStatus.PENDING,
            website_url=url if url != NOT_AVAILABLE else None,
            website_confidence=int(confidence) if confidence is not None else None,
            enriched_at=datetime.fromisoformat(enriched_at) if enriched_at != NOT_AVAILABLE else None,
            error_message=error if error != NOT_AVAILABLE else None,
        )


@dataclass(frozen=True)
class ScoredCandidate:
    """A candidate URL with its heuristic score (may be negative)."""
    url: str
    score: int


@dataclass(frozen=True)
class LookupResult:
    """Result of looking up one business's website.

    ``error`` is set when the lookup could not reach the search engine at
    all; ``url`` is then always None.
    """
    url: Optional[str] = None
    confidence: int = 0
    error: Optional[str] = None

    def __post_init__(self):
        if not (0 <= self.confidence <= 100):
            raise ValueError("Confidence score must be between 0 and 100")

    @property
    def found(self) -> bool:
        return self.url is not None and self.error is None


@dataclass(frozen=True)
class EnrichmentProgress:
    """Snapshot of a running enrichment."""
    total: int
    completed: int = 0
    found: int = 0
    not_found: int = 0
    errors: int = 0
    current_business: Optional[str] = None

    def __post_init__(self):
        """Validate progress counters."""
        if self.completed != self.found + self.not_found + self.errors:
            raise ValueError("Completed count must equal found + not_found + errors")
        if self.completed > self.total:
            raise ValueError("Completed businesses cannot exceed total businesses")

    @property
    def remaining(self) -> int:
        return self.total - self.completed
