"""Pipeline CLI Entry Point

Command-line interface for the wine catalog pipeline:

  curate     fetch (or load) marketplace listings, classify, store wines
  index      embed stored wines into the vector index, one page at a time
  recommend  run a recommendation against the index and print the result

Usage:
    python src/run_pipeline.py curate --input data/rakuten_dump.json
    python src/run_pipeline.py curate --pages 3 --hits 30
    python src/run_pipeline.py index --offset 0 --page-size 20 --max-pages 5
    python src/run_pipeline.py recommend --type Red --occasion dinner
"""

import argparse
import json
import logging
import time
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from pittari_pipeline import config  # noqa: E402
from pittari_pipeline.catalog_source import fetch_catalog_items  # noqa: E402
from pittari_pipeline.catalog_store import CatalogStore  # noqa: E402
from pittari_pipeline.ingestion import ingest_all  # noqa: E402
from pittari_pipeline.loaders import load_catalog_items  # noqa: E402
from pittari_pipeline.models import (  # noqa: E402
    IngestionCursor,
    RecommendationRequest,
    WineType,
)
from pittari_pipeline.pipeline import curate_items  # noqa: E402
from pittari_pipeline.recommend import recommend  # noqa: E402
from pittari_pipeline.vector_index import QdrantVectorIndex  # noqa: E402


def configure_logging(log_dir: Path = Path("logs")) -> None:
    """Configure logging with both console and file output.

    Sets up:
      - Root logger at DEBUG level
      - Console handler at INFO level for user-facing messages
      - File handler at DEBUG level for detailed troubleshooting
      - Reduced verbosity for httpx, openai and qdrant_client loggers
    """
    log_dir.mkdir(exist_ok=True)
    log_file = log_dir / "pipeline.log"

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    for noisy in ("httpx", "openai", "qdrant_client"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    # Clear existing handlers to avoid duplicates if run multiple times
    logger.handlers.clear()
    logger.addHandler(console_handler)
    logger.addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pittari wine catalog pipeline")
    parser.add_argument(
        "--db",
        type=Path,
        default=Path(config.CATALOG_DB_PATH),
        help="SQLite catalog file.",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=Path("logs"),
        help="Directory for pipeline.log.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    curate = sub.add_parser("curate", help="Classify listings and store wines")
    curate.add_argument("--input", type=Path, default=None,
                        help="JSON dump of listings; fetches live when omitted.")
    curate.add_argument("--pages", type=int, default=1,
                        help="Number of catalog pages to fetch (live mode).")
    curate.add_argument("--hits", type=int, default=30,
                        help="Items per catalog page (live mode).")

    index = sub.add_parser("index", help="Embed stored wines into the vector index")
    index.add_argument("--offset", type=int, default=0,
                       help="Row offset to resume from.")
    index.add_argument("--page-size", type=int, default=20,
                       help="Rows per embedding/upsert page (default: 20)")
    index.add_argument("--max-pages", type=int, default=None,
                       help="Stop after this many pages and print the resume offset.")

    rec = sub.add_parser("recommend", help="Recommend wines for a request")
    rec.add_argument("--type", choices=[t.value for t in WineType], default=None)
    rec.add_argument("--occasion", default=None)
    rec.add_argument("--flavor", default=None)
    rec.add_argument("--prompt", default=None)
    rec.add_argument("--limit", type=int, default=3)

    return parser


def run_curate(args, store: CatalogStore) -> int:
    logger = logging.getLogger(__name__)
    if args.input is not None:
        logger.info("Loading listings from %s", args.input)
        items = load_catalog_items(args.input)
    else:
        logger.info("Fetching %d page(s) x %d listings", args.pages, args.hits)
        items = fetch_catalog_items(pages=args.pages, hits=args.hits)

    stats = curate_items(items, store)
    logger.info(
        "Stored %d wines (%d listings, %d filtered, %d rejected)",
        stats.accepted,
        stats.fetched,
        stats.filtered_out,
        stats.rejected,
    )
    return 0


def run_index(args, store: CatalogStore) -> int:
    logger = logging.getLogger(__name__)
    index = QdrantVectorIndex()
    index.ensure_collection(
        config.FAKE_EMBEDDING_DIM if config.USE_FAKE_EMBEDDINGS else config.QDRANT_VECTOR_SIZE
    )

    cursor = IngestionCursor(offset=args.offset, page_size=args.page_size)
    result = ingest_all(store, index, cursor, max_pages=args.max_pages)

    if result.complete:
        logger.info("Indexed %d rows; catalog fully ingested (%d rows)",
                    result.processed, result.total)
    else:
        logger.info("Indexed %d rows; resume with --offset %d",
                    result.processed, result.next_cursor.offset)
    return 0


def run_recommend(args, store: CatalogStore) -> int:
    request = RecommendationRequest(
        type_preference=WineType(args.type) if args.type else None,
        occasion=args.occasion,
        flavor_trend=args.flavor,
        user_prompt=args.prompt,
    )
    response = recommend(request, store, QdrantVectorIndex(), limit=args.limit)
    print(json.dumps(response.model_dump(mode="json"), ensure_ascii=False, indent=2))
    return 0


COMMANDS = {
    "curate": run_curate,
    "index": run_index,
    "recommend": run_recommend,
}


def main(argv=None) -> int:
    """
    CLI entrypoint. Returns a Unix-style exit code (0 on success,
    non-zero on failure).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_dir)
    logger = logging.getLogger(__name__)
    logger.info("=== Starting %s ===", args.command)

    try:
        start_time = time.time()
        store = CatalogStore(args.db)
        store.init()
        exit_code = COMMANDS[args.command](args, store)
        logger.info("%s completed in %.2fs", args.command, time.time() - start_time)
    except Exception as e:
        logger.exception(f"{args.command} failed with an unhandled exception: {e}")
        return 1

    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
