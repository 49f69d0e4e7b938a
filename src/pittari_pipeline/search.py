"""Semantic wine search: query text -> ranked catalog rows."""

from typing import Callable, Iterable, List, Optional, Protocol
import logging

from .embeddings import embed_texts
from .models import WineRecord
from .vector_index import VectorIndex

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 3


class RowLookup(Protocol):
    def get_many(self, ids: Iterable[int]) -> List[WineRecord]:
        ...


def _unique_ids(raw_ids: Iterable[str]) -> List[int]:
    """Integer ids in first-seen order; duplicates and non-integer ids dropped."""
    seen = set()
    ids: List[int] = []
    for raw in raw_ids:
        try:
            wine_id = int(raw)
        except (TypeError, ValueError):
            logger.debug("Ignoring non-integer index id %r", raw)
            continue
        if wine_id in seen:
            continue
        seen.add(wine_id)
        ids.append(wine_id)
    return ids


def search_wines(
    query: str,
    store: RowLookup,
    index: VectorIndex,
    limit: int = DEFAULT_LIMIT,
    embedder: Optional[Callable[[List[str]], List[List[float]]]] = None,
) -> List[WineRecord]:
    """
    Return up to ``limit`` catalog rows, best match first.

    Index hits are de-duplicated by id keeping the best-ranked occurrence,
    looked up in the store in one call, and re-ordered to the index's rank.
    Ids the store no longer has are stale index entries and are dropped.

    Raises:
        ValueError: If the query is blank.
    """
    if not query or not query.strip():
        raise ValueError("query is required")

    embed = embedder or embed_texts
    query_vector = embed([query])[0]

    matches = index.query(query_vector, top_k=limit)
    wine_ids = _unique_ids(match.id for match in matches)
    if not wine_ids:
        logger.info("No index matches for query %r", query[:80])
        return []

    by_id = {wine.id: wine for wine in store.get_many(wine_ids)}

    ordered = [by_id[wine_id] for wine_id in wine_ids if wine_id in by_id]
    stale = len(wine_ids) - len(ordered)
    if stale:
        logger.debug("Dropped %d stale index ids for query %r", stale, query[:80])

    return ordered
