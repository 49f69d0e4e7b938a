"""
Resumable Vector Ingestion

Embeds catalog rows and upserts them into the vector index one page at a
time. Each call to ``ingest_page`` is a pure step

    (cursor) -> (rows processed, next cursor | None)

over an id-ordered snapshot of the catalog store. Nothing is persisted
here: the caller keeps the returned cursor (CLI output, a scheduler, a
durable counter) and passes it back to continue after a restart or a
time limit.

A page is written to the index in a single upsert at the very end. If
embedding or the upsert fails, ``IngestionError`` is raised and no
successor cursor is produced, so retrying re-processes the same page.
Upserts are keyed by row id, which makes that retry safe.
"""

from typing import Callable, List, Optional, Protocol
import logging
import time

from .embeddings import embed_texts_with_retry as embed_texts
from .errors import IngestionError
from .models import EmbeddingVector, IngestionCursor, IngestionResult, WineRecord
from .vector_index import VectorIndex

logger = logging.getLogger(__name__)

Embedder = Callable[[List[str]], List[List[float]]]


class RowSource(Protocol):
    def all_rows(self) -> List[WineRecord]:
        ...


def build_embedding_text(record: WineRecord) -> str:
    """Name, description and flavor joined with spaces; missing parts are empty."""
    return f"{record.name or ''} {record.description or ''} {record.flavor_profile or ''}"


def ingest_page(
    store: RowSource,
    index: VectorIndex,
    cursor: IngestionCursor,
    embedder: Optional[Embedder] = None,
) -> IngestionResult:
    """
    Embed and upsert rows [cursor.offset, cursor.offset + cursor.page_size).

    Args:
        store: Catalog store (only ``all_rows`` is used)
        index: Vector index receiving the page in one upsert call
        cursor: Slice to process
        embedder: texts -> vectors (default: OpenAI embeddings with retry)

    Returns:
        IngestionResult with the successor cursor, or next_cursor=None when
        the catalog is exhausted.

    Raises:
        IngestionError: If embedding or the upsert fails. The cursor is
            attached to the error and should be retried as-is.
    """
    embed = embedder or embed_texts

    rows = store.all_rows()
    total = len(rows)
    page = rows[cursor.offset : cursor.offset + cursor.page_size]

    if not page:
        logger.info(
            "No rows at offset %d (total=%d); ingestion complete",
            cursor.offset,
            total,
        )
        return IngestionResult(processed=0, total=total, next_cursor=None)

    logger.info(
        "Processing rows [%d:%d] of %d",
        cursor.offset,
        cursor.offset + len(page),
        total,
    )

    try:
        start_time = time.time()
        texts = [build_embedding_text(row) for row in page]
        values = embed(texts)
        if len(values) != len(page):
            raise ValueError(
                f"Embedder returned {len(values)} vectors for {len(page)} rows"
            )

        vectors = [
            EmbeddingVector.from_record(row, vector)
            for row, vector in zip(page, values)
        ]
        index.upsert(vectors)
    except Exception as e:
        logger.exception(
            "Failed to ingest rows at offset %d (page_size=%d)",
            cursor.offset,
            cursor.page_size,
        )
        raise IngestionError(
            f"Ingestion failed at offset {cursor.offset}: {e}", cursor=cursor
        ) from e

    logger.info(
        "✓ Upserted %d vectors (%.2fs)", len(vectors), time.time() - start_time
    )

    next_offset = cursor.offset + cursor.page_size
    next_cursor = (
        IngestionCursor(offset=next_offset, page_size=cursor.page_size)
        if next_offset < total
        else None
    )
    return IngestionResult(processed=len(page), total=total, next_cursor=next_cursor)


def ingest_all(
    store: RowSource,
    index: VectorIndex,
    cursor: IngestionCursor,
    embedder: Optional[Embedder] = None,
    max_pages: Optional[int] = None,
) -> IngestionResult:
    """
    Run ``ingest_page`` until the catalog is exhausted or ``max_pages`` pages
    have been processed.

    Returns an aggregate IngestionResult: ``processed`` sums all pages and
    ``next_cursor`` is where a follow-up run should resume (None if done).
    """
    processed = 0
    pages = 0
    result = IngestionResult(processed=0, total=0, next_cursor=cursor)

    while result.next_cursor is not None:
        if max_pages is not None and pages >= max_pages:
            logger.info(
                "Reached max_pages=%d; resume from offset %d",
                max_pages,
                result.next_cursor.offset,
            )
            break

        result = ingest_page(store, index, result.next_cursor, embedder=embedder)
        processed += result.processed
        pages += 1

    return IngestionResult(
        processed=processed,
        total=result.total,
        next_cursor=result.next_cursor,
    )
