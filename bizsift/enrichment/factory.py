"""Wiring of enrichment components from configuration."""

from typing import Optional

from bizsift.cache.lookup_cache import LookupCache
from bizsift.core.config import Config
from bizsift.enrichment.handler import EnrichmentHandler
from bizsift.enrichment.orchestrator import BatchEnricher
from bizsift.enrichment.remote import RemoteEnrichmentClient
from bizsift.scoring.url_scorer import URLScorer
from bizsift.search.client import DuckDuckGoHTMLClient


def build_handler(config: Config, cache: Optional[LookupCache] = None) -> EnrichmentHandler:
    """Create an in-process lookup handler with its own (or the given) cache."""
    search = config.search_config
    scoring = config.scoring_config

    client = DuckDuckGoHTMLClient(
        base_url=search.get('base_url', 'https://html.duckduckgo.com/html/'),
        timeout=float(search.get('timeout', 15)),
        rate_limit=float(search.get('rate_limit', 2.0)),
        max_retries=int(search.get('max_retries', 0)),
        user_agent=search.get('user_agent'),
    )
    if cache is None:
        cache = LookupCache(ttl_seconds=float(config.get('cache.ttl_seconds', 3600)))

    return EnrichmentHandler(
        client=client,
        cache=cache,
        scorer=URLScorer.from_config(scoring),
        country_site=search.get('country_site', '.ke'),
        reject_threshold=int(scoring.get('reject_threshold', -50)),
        high_confidence=int(scoring.get('high_confidence', 40)),
    )


def build_enricher(config: Config, service_url: Optional[str] = None) -> BatchEnricher:
    """
    Create a batch enricher.

    Lookups go through the enrichment service at ``service_url`` when
    given, otherwise they run in-process.
    """
    enrichment = config.enrichment_config

    if service_url:
        lookup_service = RemoteEnrichmentClient(
            base_url=service_url,
            timeout=float(config.get('search.timeout', 15)) * 4,
        )
    else:
        lookup_service = build_handler(config)

    return BatchEnricher(
        lookup_service,
        batch_size=int(enrichment.get('batch_size', 3)),
        inter_batch_delay=float(enrichment.get('inter_batch_delay', 1.0)),
        default_location=enrichment.get('default_location', 'Kenya'),
    )
