"""
Batch website enrichment with live progress reporting.

Businesses are processed in small batches. Lookups inside a batch run
concurrently and the whole batch is joined before the next one starts;
a fixed delay between batches keeps the outbound request rate polite.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Iterable

from bizsift.core.models import (
    Business,
    EnrichedBusiness,
    EnrichmentProgress,
    EnrichmentStatus,
    LookupResult,
    DEFAULT_LOCATION,
    LOW_CONFIDENCE_THRESHOLD,
    NOT_AVAILABLE,
)


logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 3
DEFAULT_INTER_BATCH_DELAY = 1.0

ProgressCallback = Callable[[EnrichmentProgress], None]


class ProgressTracker:
    """
    Lock-guarded enrichment counters.

    Every recorded outcome produces a new snapshot, which is handed to the
    callback while the lock is held so snapshots arrive in count order.
    """

    def __init__(self, total: int, callback: Optional[ProgressCallback] = None):
        self._lock = threading.Lock()
        self._callback = callback
        self._snapshot = EnrichmentProgress(total=total)

    @property
    def snapshot(self) -> EnrichmentProgress:
        with self._lock:
            return self._snapshot

    def record(self, enriched: EnrichedBusiness) -> EnrichmentProgress:
        """Count one finished business and emit the new snapshot."""
        status = enriched.website_status
        with self._lock:
            current = self._snapshot
            self._snapshot = EnrichmentProgress(
                total=current.total,
                completed=current.completed + 1,
                found=current.found + (status == EnrichmentStatus.FOUND),
                not_found=current.not_found + (status == EnrichmentStatus.NOT_FOUND),
                errors=current.errors + (status == EnrichmentStatus.ERROR),
                current_business=enriched.name,
            )
            if self._callback is not None:
                self._callback(self._snapshot)
            return self._snapshot


class BatchEnricher:
    """
    Enrich businesses with their official websites.

    ``lookup_service`` is anything with a ``lookup(name, location,
    business_type)`` method returning a LookupResult: an in-process
    EnrichmentHandler or a RemoteEnrichmentClient.
    """

    def __init__(self,
                 lookup_service,
                 batch_size: int = DEFAULT_BATCH_SIZE,
                 inter_batch_delay: float = DEFAULT_INTER_BATCH_DELAY,
                 default_location: str = DEFAULT_LOCATION,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the enricher.

        Args:
            lookup_service: Service resolving one business to a LookupResult
            batch_size: Businesses looked up concurrently per batch
            inter_batch_delay: Seconds to wait between batches
            default_location: Location used when a business has none
            sleep: Sleep function (injectable for tests)

        Raises:
            ValueError: If batch_size is not positive or the delay is negative
        """
        if batch_size <= 0:
            raise ValueError("Batch size must be positive")
        if inter_batch_delay < 0:
            raise ValueError("Inter-batch delay cannot be negative")

        self.lookup_service = lookup_service
        self.batch_size = batch_size
        self.inter_batch_delay = inter_batch_delay
        self.default_location = default_location
        self._sleep = sleep

    def enrich(self,
               businesses: Iterable[Business],
               on_progress: Optional[ProgressCallback] = None,
               inter_batch_delay: Optional[float] = None,
               cancel_event: Optional[threading.Event] = None) -> List[EnrichedBusiness]:
        """
        Enrich every business, one batch at a time.

        Args:
            businesses: Businesses to enrich
            on_progress: Called with a snapshot after each business finishes
            inter_batch_delay: Overrides the configured delay (seconds)
            cancel_event: When set, no further batch is started

        Returns:
            One EnrichedBusiness per input, in input order. Businesses whose
            batch never started because of cancellation stay ``pending``.
        """
        businesses = list(businesses)
        delay = self.inter_batch_delay if inter_batch_delay is None else inter_batch_delay
        results = [EnrichedBusiness(business=business) for business in businesses]
        tracker = ProgressTracker(len(businesses), on_progress)

        starts = range(0, len(businesses), self.batch_size)
        logger.info(f"Enriching {len(businesses)} businesses in {len(starts)} batch(es)")

        with ThreadPoolExecutor(max_workers=self.batch_size) as pool:
            for batch_number, start in enumerate(starts, 1):
                if cancel_event is not None and cancel_event.is_set():
                    logger.warning(f"Enrichment cancelled before batch {batch_number}; "
                                   f"{tracker.snapshot.remaining} business(es) left pending")
                    break

                indices = range(start, min(start + self.batch_size, len(businesses)))
                futures = [
                    (index, pool.submit(self._enrich_one, businesses[index], tracker))
                    for index in indices
                ]
                # Join the whole batch before moving on
                for index, future in futures:
                    results[index] = future.result()

                logger.debug(f"Batch {batch_number}/{len(starts)} done: {tracker.snapshot}")

                if batch_number < len(starts) and delay > 0:
                    self._sleep(delay)

        final = tracker.snapshot
        logger.info(f"Enrichment finished: {final.found} found, {final.not_found} not found, "
                    f"{final.errors} error(s) out of {final.total}")
        return results

    def retry_failed(self,
                     enriched: Sequence[EnrichedBusiness],
                     on_progress: Optional[ProgressCallback] = None,
                     threshold: int = LOW_CONFIDENCE_THRESHOLD,
                     inter_batch_delay: Optional[float] = None,
                     cancel_event: Optional[threading.Event] = None) -> List[EnrichedBusiness]:
        """
        Re-run enrichment for errors, misses and low-confidence finds.

        Args:
            enriched: Output of a previous run
            on_progress: Progress callback for the retry run
            threshold: Found results below this confidence are retried

        Returns:
            ``enriched`` with retried businesses replaced in place
        """
        merged = list(enriched)
        indices = [index for index, item in enumerate(merged) if item.needs_retry(threshold)]
        if not indices:
            logger.info("No businesses need a retry")
            return merged

        logger.info(f"Retrying {len(indices)} business(es)")
        retried = self.enrich(
            [merged[index].business for index in indices],
            on_progress=on_progress,
            inter_batch_delay=inter_batch_delay,
            cancel_event=cancel_event,
        )
        for index, item in zip(indices, retried):
            if item.website_status != EnrichmentStatus.PENDING:
                merged[index] = item
        return merged

    def _enrich_one(self, business: Business, tracker: ProgressTracker) -> EnrichedBusiness:
        if business.has_website:
            enriched = EnrichedBusiness(
                business=business,
                website_status=EnrichmentStatus.FOUND,
                website_url=business.website.strip(),
                website_confidence=100,
                enriched_at=datetime.now(),
            )
        else:
            enriched = self._lookup(business)

        tracker.record(enriched)
        return enriched

    def _lookup(self, business: Business) -> EnrichedBusiness:
        location = business.best_location(self.default_location)
        business_type = business.business_type if business.business_type != NOT_AVAILABLE else None

        try:
            result: LookupResult = self.lookup_service.lookup(business.name, location, business_type)
        except Exception as e:
            logger.error(f"Error enriching {business.name}: {e}")
            return EnrichedBusiness(
                business=business,
                website_status=EnrichmentStatus.ERROR,
                enriched_at=datetime.now(),
                error_message=str(e),
            )

        if result.error:
            status = EnrichmentStatus.ERROR
        elif result.found:
            status = EnrichmentStatus.FOUND
        else:
            status = EnrichmentStatus.NOT_FOUND

        return EnrichedBusiness(
            business=business,
            website_status=status,
            website_url=result.url,
            website_confidence=result.confidence,
            enriched_at=datetime.now(),
            error_message=result.error,
        )
