"""SQLite-backed catalog of curated wines."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List

import logging

from . import config
from .models import WineRecord

logger = logging.getLogger(__name__)

COLUMNS = (
    "name",
    "type",
    "region",
    "flavor_profile",
    "price_range",
    "country",
    "description",
    "image_url",
    "affiliate_url",
)


class CatalogStore:
    """Keyed row store for WineRecords.

    Ids are assigned by SQLite on insert and are stable afterwards; the
    vector index uses them as point ids.
    """

    def __init__(self, path: str | Path = config.CATALOG_DB_PATH) -> None:
        self.path = Path(path)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def init(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS wines (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    type TEXT NOT NULL,
                    region TEXT NOT NULL,
                    flavor_profile TEXT NOT NULL,
                    price_range TEXT NOT NULL,
                    country TEXT NOT NULL,
                    description TEXT NOT NULL,
                    image_url TEXT NOT NULL,
                    affiliate_url TEXT NOT NULL
                );
                """
            )
            conn.commit()

    @staticmethod
    def _values(record: WineRecord) -> tuple:
        data = record.model_dump(mode="json")
        return tuple(data[column] for column in COLUMNS)

    @staticmethod
    def _to_record(row: sqlite3.Row) -> WineRecord:
        return WineRecord(**dict(row))

    def insert(self, record: WineRecord) -> int:
        """Insert a new row and return its assigned id."""
        placeholders = ", ".join("?" for _ in COLUMNS)
        with self._connect() as conn:
            cur = conn.execute(
                f"INSERT INTO wines ({', '.join(COLUMNS)}) VALUES ({placeholders})",
                self._values(record),
            )
            conn.commit()
            return int(cur.lastrowid)

    def upsert(self, record: WineRecord) -> int:
        """Insert or overwrite the row with ``record.id``."""
        if record.id is None:
            return self.insert(record)
        columns = ("id",) + COLUMNS
        placeholders = ", ".join("?" for _ in columns)
        with self._connect() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO wines ({', '.join(columns)}) VALUES ({placeholders})",
                (record.id,) + self._values(record),
            )
            conn.commit()
        return record.id

    def all_rows(self) -> List[WineRecord]:
        """Every row, ordered by id."""
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM wines ORDER BY id").fetchall()
        return [self._to_record(row) for row in rows]

    def get_many(self, ids: Iterable[int]) -> List[WineRecord]:
        """Rows for the given ids. No ordering guarantee; missing ids are skipped."""
        ids = list(ids)
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM wines WHERE id IN ({placeholders})", ids
            ).fetchall()
        return [self._to_record(row) for row in rows]

    def count(self) -> int:
        with self._connect() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM wines").fetchone()[0])
