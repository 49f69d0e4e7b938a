"""
Catalog Curation Pipeline

Turns raw marketplace listings into catalog rows:

  1. Keyword pre-filter (cheap, drops obvious non-wine listings)
  2. Language-model classification + attribute extraction
  3. Normalization into WineRecord
  4. Insert into the catalog store

Vector ingestion of the stored rows is a separate, resumable step
(see ingestion.py).
"""

from typing import Callable, Iterable, Optional, Protocol
import logging
import time

from .catalog_filter import should_exclude
from .classifier import classify_item
from .models import CatalogItem, ClassificationResult, CurationStats, WineRecord
from .transformers import to_wine_record

logger = logging.getLogger(__name__)

Classifier = Callable[[str, str], ClassificationResult]


class RowSink(Protocol):
    def insert(self, record: WineRecord) -> int:
        ...


def curate_items(
    items: Iterable[CatalogItem],
    store: RowSink,
    classify: Optional[Classifier] = None,
) -> CurationStats:
    """
    Filter, classify, normalize and store each listing.

    Classification failures never stop the run; they are counted under
    their diagnostic code in ``stats.rejection_reasons``.

    Returns:
        CurationStats with per-outcome counters.
    """
    classify = classify or classify_item
    stats = CurationStats()
    job_start = time.time()

    for item in items:
        stats.fetched += 1
        short_name = item.name[:50]

        if should_exclude(item.name):
            logger.info("  [excluded] %s... (keyword)", short_name)
            stats.filtered_out += 1
            continue

        logger.info("  [classifying] %s...", short_name)
        result = classify(item.name, item.caption)

        if not result.is_wine:
            logger.info("  [excluded] %s... (%s)", short_name, result.alcohol_type)
            stats.record_rejection(result.alcohol_type)
            continue

        record = to_wine_record(item, result)
        if record is None:
            stats.record_rejection(result.alcohol_type)
            continue

        wine_id = store.insert(record)
        stats.accepted += 1
        logger.info("  [accepted] %s... (id=%d, %s)", short_name, wine_id, record.type.value)

    logger.info(
        "✓ Curation finished in %.2fs: fetched=%d, filtered=%d, rejected=%d, accepted=%d",
        time.time() - job_start,
        stats.fetched,
        stats.filtered_out,
        stats.rejected,
        stats.accepted,
    )
    if stats.rejection_reasons:
        logger.info("Rejection reasons: %s", stats.rejection_reasons)

    return stats
