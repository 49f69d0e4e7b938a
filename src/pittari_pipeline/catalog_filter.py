"""Keyword pre-filter run before the wine classifier.

Marketplace searches for "wine" return beer, sake, glassware, gift sets and
cellar accessories alongside actual bottles. Listings whose name contains
one of these terms are dropped without spending a model call. Anything the
pattern misses is still caught by the classifier, so the term list stays
conservative: a term belongs here only if no single-bottle wine listing
would plausibly contain it.
"""

import logging
import re

logger = logging.getLogger(__name__)

# Terms as they appear in Japanese marketplace listings
JAPANESE_EXCLUDE_TERMS = [
    "ビール", "日本酒", "ウィスキー", "ウイスキー", "リキュール",
    "グラス", "セット", "おつまみ", "空き瓶", "空瓶", "コルク抜き", "保存容器",
    "ワインラック", "ワインクーラー", "ボトルホルダー", "デキャンタ", "ワイン栓",
    "ストッパー", "ワインセラー", "ソムリエナイフ", "本まとめ", "ケース買い",
    "オープナー", "しゃもじ",
]

# English terms are word-bounded so e.g. "Sunset" or "Glassy" survive
ENGLISH_EXCLUDE_TERMS = [
    "beer", "sake", "whisky", "whiskey", "liqueur", "wine glass(?:es)?",
    "gift set", "case of", "mixed case", "corkscrew", "opener",
    "decanter", "stopper", "wine rack", "wine cellar", "wine cooler",
    "bottle holder", "empty bottle",
]

EXCLUDE_KEYWORDS_RE = re.compile(
    "|".join(JAPANESE_EXCLUDE_TERMS)
    + "|"
    + "|".join(rf"\b{term}\b" for term in ENGLISH_EXCLUDE_TERMS),
    re.IGNORECASE,
)


def should_exclude(name: str) -> bool:
    """True if the listing name matches an exclusion term."""
    if not name:
        return False
    match = EXCLUDE_KEYWORDS_RE.search(name)
    if match:
        logger.debug("Excluding %r (matched %r)", name[:50], match.group(0))
        return True
    return False
