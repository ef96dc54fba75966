"""
Client for a running enrichment service (``bizsift serve``).
"""

import logging
from typing import Optional

import requests

from bizsift.core.exceptions import EnrichmentError
from bizsift.core.models import LookupResult


logger = logging.getLogger(__name__)

DEFAULT_SERVICE_URL = "http://localhost:3001"


class RemoteEnrichmentClient:
    """
    Look up websites through the enrichment HTTP endpoint.

    Offers the same ``lookup`` interface as EnrichmentHandler so either
    can drive a BatchEnricher.
    """

    def __init__(self, base_url: str = DEFAULT_SERVICE_URL, timeout: float = 60.0):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/api/enrich"

    def lookup(self, business_name: str, location: str,
               business_type: Optional[str] = None) -> LookupResult:
        """
        Ask the service for the website of ``business_name``.

        Raises:
            EnrichmentError: If the service is unreachable or reports a failure
        """
        payload = {'company_name': business_name, 'location': location}
        if business_type:
            payload['company_type'] = business_type

        try:
            response = requests.post(self.endpoint, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise EnrichmentError(f"Enrichment service unreachable: {e}")

        try:
            data = response.json()
        except ValueError as e:
            raise EnrichmentError(f"Invalid JSON response: {e}")

        if response.status_code != 200:
            message = data.get('error') if isinstance(data, dict) else None
            raise EnrichmentError(
                f"Enrichment failed with status {response.status_code}: {message or 'unknown error'}"
            )

        return LookupResult(
            url=data.get('websiteUrl') or None,
            confidence=int(data.get('confidence') or 0),
        )
