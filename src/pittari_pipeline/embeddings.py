"""Embeddings Generation Module

Generates vector embeddings for catalog rows and search queries using
OpenAI's embedding API. Handles text truncation, batching, rate limiting
and dimension validation.

Key features:
  - Text truncation to fit embedding model context window
  - Batch processing for API efficiency
  - Exponential backoff retry logic for rate limiting
  - Deterministic fake embeddings for local runs without API calls

Configuration comes from pittari_pipeline.config (OPENAI_API_KEY,
EMBEDDING_MODEL, MAX_EMBEDDING_CHARS, USE_FAKE_EMBEDDINGS).
"""

from typing import List, Optional
import hashlib
import time
import logging

import openai
from openai import OpenAI

from . import config

logger = logging.getLogger(__name__)

client: Optional[OpenAI] = None


def get_client() -> OpenAI:
    """Module-level OpenAI client, created on first use."""
    global client
    if client is None:
        client = OpenAI(api_key=config.OPENAI_API_KEY)
    return client


def _truncate_for_embedding(text: str, max_chars: Optional[int] = None) -> str:
    """
    Truncate text to fit the embedding model's context window.

    If the cut lands mid-word, backtrack to the last space as long as that
    space is in the last 20% of the kept text. Catalog text is mostly
    Japanese, which has no spaces, so the hard cut is the common case.
    """
    if not text:
        return ""

    max_chars = max_chars or config.MAX_EMBEDDING_CHARS
    if len(text) <= max_chars:
        return text

    original_len = len(text)
    truncated = text[:max_chars]

    last_space = truncated.rfind(" ")
    if last_space > int(max_chars * 0.8):
        truncated = truncated[:last_space]

    logger.info(
        "Truncated text for embedding: %d -> %d chars",
        original_len,
        len(truncated),
    )
    return truncated


def _fake_vector(text: str, dim: int) -> List[float]:
    """Deterministic pseudo-embedding derived from a hash of the text."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [(digest[i % len(digest)] / 255.0) - 0.5 for i in range(dim)]


def embed_texts(
    texts: List[str],
    model: Optional[str] = None,
    batch_size: int = 50,
    max_chars: Optional[int] = None,
) -> List[List[float]]:
    """
    Generate one embedding per input text, in input order.

    Args:
        texts: Strings to embed
        model: OpenAI embedding model (default: config.EMBEDDING_MODEL)
        batch_size: Number of texts per API call
        max_chars: Character limit per text (default: config.MAX_EMBEDDING_CHARS)

    Returns:
        List of embedding vectors (each a list of floats)

    Raises:
        ValueError: If the API returns a wrong count or inconsistent dimensions
        openai.OpenAIError: On API errors
    """
    if not texts:
        logger.debug("embed_texts called with empty list; returning []")
        return []

    if config.USE_FAKE_EMBEDDINGS:
        logger.warning(
            "USE_FAKE_EMBEDDINGS=1 set; returning hash-derived vectors instead of "
            "calling OpenAI."
        )
        return [_fake_vector(t, config.FAKE_EMBEDDING_DIM) for t in texts]

    model = model or config.EMBEDDING_MODEL
    processed_texts = [_truncate_for_embedding(t, max_chars) for t in texts]
    vectors: List[List[float]] = []

    try:
        api = get_client()
        for start in range(0, len(processed_texts), batch_size):
            batch = processed_texts[start : start + batch_size]

            logger.debug(
                "Calling OpenAI embeddings API: model=%s, batch=[%d:%d]",
                model, start, start + len(batch),
            )

            response = api.embeddings.create(model=model, input=batch)
            vectors.extend(list(item.embedding) for item in response.data)

        if len(vectors) != len(texts):
            raise ValueError(
                f"Expected {len(texts)} embeddings, got {len(vectors)}"
            )

        expected_dim = len(vectors[0])
        for idx, vec in enumerate(vectors):
            if len(vec) != expected_dim:
                raise ValueError(
                    f"Inconsistent embedding dimension at index {idx}: "
                    f"expected {expected_dim}, got {len(vec)}"
                )

        logger.info(
            "Generated %d embeddings (dim=%d)", len(vectors), expected_dim
        )
        return vectors

    except Exception:
        logger.exception("Failed to generate embeddings for %d texts", len(texts))
        raise


def embed_texts_with_retry(
    texts: List[str],
    model: Optional[str] = None,
    batch_size: int = 50,
    max_chars: Optional[int] = None,
    max_retries: int = 5,
    sleep=time.sleep,
) -> List[List[float]]:
    """
    Wraps embed_texts to handle rate limiting with retries.
    Retries up to `max_retries` times with exponential backoff.
    """
    retries = 0
    while True:
        try:
            return embed_texts(texts, model=model, batch_size=batch_size, max_chars=max_chars)
        except openai.RateLimitError as e:
            retries += 1
            # Quota exhaustion will not clear by waiting
            if getattr(e, "code", None) == "insufficient_quota" or "insufficient_quota" in str(e):
                logger.error("Insufficient quota; cannot retry. Error: %s", e)
                raise

            if retries > max_retries:
                logger.error("Max retries exceeded (%d). Last error: %s", max_retries, e)
                raise

            wait_time = 2 ** retries
            logger.warning(
                "Rate limit error from OpenAI (attempt %d/%d). "
                "Sleeping for %d seconds before retry. Error: %s",
                retries,
                max_retries,
                wait_time,
                e,
            )
            sleep(wait_time)
