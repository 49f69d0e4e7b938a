"""Runtime Configuration

Environment-driven settings shared by the ingestion pipeline and the
serving helpers. Values are read once at import time; tests override them
with ``monkeypatch.setattr(config, "NAME", value)``.

Environment variables:
  OPENAI_API_KEY: API key for the embedding model
  EMBEDDING_MODEL: OpenAI embedding model (default: text-embedding-3-small)
  USE_FAKE_EMBEDDINGS: Set to '1' to use deterministic fake vectors
  CLASSIFIER_API_KEY / CLASSIFIER_BASE_URL / CLASSIFIER_MODEL:
      OpenAI-compatible endpoint used for wine classification
  COMMENTARY_API_KEY / COMMENTARY_BASE_URL / COMMENTARY_MODEL:
      OpenAI-compatible endpoint used for sommelier commentary
  RAKUTEN_APP_ID: Rakuten Ichiba application id for catalog fetches
  CATALOG_DB_PATH: SQLite file holding the wine catalog
  QDRANT_URL / QDRANT_API_KEY / QDRANT_COLLECTION_NAME: vector index
"""

import os

# --- Embeddings ---

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
MAX_EMBEDDING_CHARS = int(os.getenv("MAX_EMBEDDING_CHARS", "8000"))
USE_FAKE_EMBEDDINGS = os.getenv("USE_FAKE_EMBEDDINGS", "0") == "1"
FAKE_EMBEDDING_DIM = int(os.getenv("FAKE_EMBEDDING_DIM", "8"))

# --- Language models ---

CLASSIFIER_API_KEY = os.getenv("CLASSIFIER_API_KEY")
CLASSIFIER_BASE_URL = os.getenv("CLASSIFIER_BASE_URL")
CLASSIFIER_MODEL = os.getenv(
    "CLASSIFIER_MODEL", "@cf/meta/llama-3.3-70b-instruct-fp8-fast"
)

COMMENTARY_API_KEY = os.getenv("COMMENTARY_API_KEY") or OPENAI_API_KEY
COMMENTARY_BASE_URL = os.getenv("COMMENTARY_BASE_URL")
COMMENTARY_MODEL = os.getenv("COMMENTARY_MODEL", "gpt-4o-mini")

# --- Catalog source / store ---

RAKUTEN_APP_ID = os.getenv("RAKUTEN_APP_ID")
RAKUTEN_GENRE_ID = os.getenv("RAKUTEN_GENRE_ID", "510915")  # wine genre
CATALOG_DB_PATH = os.getenv("CATALOG_DB_PATH", "app_storage/wines.sqlite3")

# --- Vector index ---

QDRANT_URL = os.getenv("QDRANT_URL", "http://localhost:6333")
QDRANT_API_KEY = os.getenv("QDRANT_API_KEY")
QDRANT_COLLECTION_NAME = os.getenv("QDRANT_COLLECTION_NAME", "wines")

# Must match the embedding model above
QDRANT_VECTOR_SIZE = int(os.getenv("QDRANT_VECTOR_SIZE", "1536"))  # text-embedding-3-small
QDRANT_DISTANCE = "Cosine"
