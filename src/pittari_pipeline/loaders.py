"""Catalog Dump Loader

Loads previously saved marketplace listings from JSON files, so the
curation step can be re-run without calling the catalog API again.
"""

import json
from pathlib import Path
from typing import List, Dict, Any

from .models import CatalogItem


def load_catalog_items(path: str | Path) -> List[CatalogItem]:
    """Load catalog items from a JSON file.

    Supports:
      - A list of items: [{"itemName": ...}, ...]
      - The Rakuten search envelope: {"Items": [{"Item": {...}}, ...]}
      - Either of the above with items already wrapped as {"Item": {...}}

    Raises:
        FileNotFoundError: If file does not exist
        json.JSONDecodeError: If file is not valid JSON
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    entries: List[Dict[str, Any]]
    if isinstance(data, list):
        entries = data
    else:
        entries = data.get("Items") or data.get("items") or []

    return [CatalogItem.from_rakuten(entry.get("Item") or entry) for entry in entries]
