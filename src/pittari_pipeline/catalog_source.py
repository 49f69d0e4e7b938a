"""Rakuten Ichiba catalog source.

Pages through the item search API for the wine genre, one page per
RATE_LIMIT_SECONDS to stay under the API's throttling limit.
"""

from typing import Callable, Iterator, Optional
import logging
import time

import httpx

from . import config
from .errors import ConfigurationError
from .models import CatalogItem

logger = logging.getLogger(__name__)

RAKUTEN_SEARCH_URL = "https://app.rakuten.co.jp/services/api/IchibaItem/Search/20170706"
RATE_LIMIT_SECONDS = 1.0
DEFAULT_KEYWORD = "ワイン"
DEFAULT_SORT = "-reviewAverage"


def fetch_catalog_items(
    pages: int = 1,
    hits: int = 30,
    keyword: str = DEFAULT_KEYWORD,
    genre_id: Optional[str] = None,
    app_id: Optional[str] = None,
    client: Optional[httpx.Client] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[CatalogItem]:
    """
    Yield catalog items page by page, best-reviewed first.

    An HTTP error status or an empty page ends the fetch. A transport or
    decoding error on one page is logged and the next page is tried.

    Raises:
        ConfigurationError: If no Rakuten application id is configured.
    """
    app_id = app_id or config.RAKUTEN_APP_ID
    if not app_id:
        raise ConfigurationError("RAKUTEN_APP_ID is not set")

    return _iter_pages(
        app_id=app_id,
        pages=pages,
        hits=hits,
        keyword=keyword,
        genre_id=genre_id or config.RAKUTEN_GENRE_ID,
        client=client,
        sleep=sleep,
    )


def _iter_pages(
    app_id: str,
    pages: int,
    hits: int,
    keyword: str,
    genre_id: str,
    client: Optional[httpx.Client],
    sleep: Callable[[float], None],
) -> Iterator[CatalogItem]:
    owns_client = client is None
    http = client or httpx.Client(timeout=30.0)

    try:
        for page in range(1, pages + 1):
            params = {
                "applicationId": app_id,
                "genreId": genre_id,
                "keyword": keyword,
                "hits": str(hits),
                "page": str(page),
                "sort": DEFAULT_SORT,
            }
            logger.info("Fetching catalog page %d/%d", page, pages)

            try:
                response = http.get(RAKUTEN_SEARCH_URL, params=params)
                if response.is_error:
                    logger.error(
                        "Page %d: HTTP %d %s",
                        page,
                        response.status_code,
                        response.text[:200],
                    )
                    break
                data = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.error("Page %d fetch failed: %s", page, e)
            else:
                items = data.get("Items") or []
                if not items:
                    logger.info("Page %d: no results", page)
                    break

                logger.info("Page %d: %d items", page, len(items))
                for entry in items:
                    yield CatalogItem.from_rakuten(entry.get("Item") or entry)

            if page < pages:
                sleep(RATE_LIMIT_SECONDS)
    finally:
        if owns_client:
            http.close()
