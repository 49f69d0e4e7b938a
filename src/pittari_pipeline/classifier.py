"""Wine Classification Module

Asks a language model whether a marketplace listing is a single bottle of
wine and, if so, to extract its type, region, flavor profile and country.

``classify_item`` is total: it always returns a ClassificationResult and
never raises. Every failure maps to ``is_wine=False`` with a diagnostic
``alcohol_type`` code:

  unknown         classifier credentials are not configured
  api_error       HTTP/network error, or a reply with no choices
  empty_response  empty reply, or the literal text "null"/"undefined"
  parse_error     the reply could not be recovered into fields
  exception       any other unexpected failure

The call goes through the OpenAI SDK, so any OpenAI-compatible
chat-completions endpoint works (set CLASSIFIER_BASE_URL).
"""

import json
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

import openai
from openai import OpenAI

from . import config
from .json_recovery import recover_structured_output
from .models import (
    ClassificationResult,
    DEFAULT_COUNTRY,
    DEFAULT_FLAVOR_PROFILE,
    DEFAULT_REGION,
    DEFAULT_WINE_TYPE,
    WineType,
)

logger = logging.getLogger(__name__)

MAX_CAPTION_CHARS = 300
EMPTY_REPLIES = {"", "null", "undefined"}

# Lookup keys are lower-cased before matching
TYPE_NORMALIZATION: Dict[str, WineType] = {
    "red": WineType.RED,
    "white": WineType.WHITE,
    "rose": WineType.ROSE,
    "rosé": WineType.ROSE,
    "sparkling": WineType.SPARKLING,
    "dessert": WineType.DESSERT,
    "赤": WineType.RED,
    "白": WineType.WHITE,
    "ロゼ": WineType.ROSE,
    "スパークリング": WineType.SPARKLING,
    "デザート": WineType.DESSERT,
    "赤ワイン": WineType.RED,
    "白ワイン": WineType.WHITE,
    "ロゼワイン": WineType.ROSE,
    "スパークリングワイン": WineType.SPARKLING,
    "デザートワイン": WineType.DESSERT,
}

CLASSIFICATION_PROMPT = """Analyze the product listing below and decide strictly whether it is a single bottle of wine sold as a beverage.

Decision rules:
- ACCEPT: red, white, rose, sparkling or dessert wine sold as a single bottle.
- REJECT: beer, whisky and other spirits, sake, liqueur, wine glasses, gift sets and multi-bottle packs, accessories and goods, snacks, empty bottles.

Reply with a single JSON object only. Do NOT wrap the reply in a Markdown code block (```) and do not add any text before or after it.

Product name: {name}
Description: {caption}

Return exactly this JSON shape:
{{
  "is_wine": true or false,
  "alcohol_type": "what the product is (e.g. red wine, white wine, sparkling, beer, sake)",
  "type": "Red|White|Rose|Sparkling|Dessert (required when is_wine is true)",
  "region": "specific region (e.g. Bordeaux, Chianti, California)",
  "flavor_profile": "taste characteristics (e.g. full-bodied, dry, crisp)",
  "country": "country name (e.g. France, Italy, Japan)"
}}"""


@lru_cache(maxsize=4)
def _build_client(api_key: str, base_url: Optional[str]) -> OpenAI:
    return OpenAI(api_key=api_key, base_url=base_url)


def get_client() -> Optional[OpenAI]:
    """Classifier client, or None when no API key is configured."""
    if not config.CLASSIFIER_API_KEY:
        return None
    return _build_client(config.CLASSIFIER_API_KEY, config.CLASSIFIER_BASE_URL)


def build_classification_prompt(name: str, caption: str) -> str:
    return CLASSIFICATION_PROMPT.format(
        name=name,
        caption=(caption or "")[:MAX_CAPTION_CHARS],
    )


def normalize_wine_type(raw: Any) -> WineType:
    """Map an English or Japanese type token to a WineType.

    Unrecognized tokens fall back to Red.
    """
    token = str(raw).strip().lower() if raw is not None else ""
    wine_type = TYPE_NORMALIZATION.get(token)
    if wine_type is None:
        logger.debug("Unrecognized wine type %r; defaulting to %s", raw, DEFAULT_WINE_TYPE.value)
        return DEFAULT_WINE_TYPE
    return wine_type


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _response_text(response: Any) -> Optional[str]:
    """Reply text from a chat completion, or None when there are no choices."""
    choices = getattr(response, "choices", None)
    if not choices:
        return None
    content = choices[0].message.content
    if content is None:
        return ""
    if not isinstance(content, str):
        return json.dumps(content, ensure_ascii=False)
    return content


def build_result(fields: Dict[str, Any]) -> ClassificationResult:
    """Turn recovered reply fields into a ClassificationResult."""
    is_wine = fields.get("is_wine") is True
    alcohol_type = _clean(fields.get("alcohol_type")) or "unknown"

    if not is_wine:
        return ClassificationResult.rejected(alcohol_type)

    return ClassificationResult(
        is_wine=True,
        alcohol_type=alcohol_type,
        type=normalize_wine_type(fields.get("type")),
        region=_clean(fields.get("region")) or DEFAULT_REGION,
        flavor_profile=_clean(fields.get("flavor_profile")) or DEFAULT_FLAVOR_PROFILE,
        country=_clean(fields.get("country")) or DEFAULT_COUNTRY,
    )


def classify_item(
    name: str,
    caption: str,
    client: Optional[OpenAI] = None,
    model: Optional[str] = None,
) -> ClassificationResult:
    """Classify one listing. Never raises; see module docstring for codes."""
    if client is None:
        client = get_client()
    if client is None:
        logger.warning("CLASSIFIER_API_KEY is not set; treating %r as not wine", name[:50])
        return ClassificationResult.rejected("unknown")

    try:
        response = client.chat.completions.create(
            model=model or config.CLASSIFIER_MODEL,
            messages=[{"role": "user", "content": build_classification_prompt(name, caption)}],
            temperature=0,
        )
    except openai.APIError as e:
        logger.error("Classifier API error for %r: %s", name[:50], e)
        return ClassificationResult.rejected("api_error")
    except Exception:
        logger.warning("Classifier call failed for %r", name[:50], exc_info=True)
        return ClassificationResult.rejected("exception")

    try:
        text = _response_text(response)
        if text is None:
            logger.error("Classifier reply for %r had no choices", name[:50])
            return ClassificationResult.rejected("api_error")

        if text.strip().lower() in EMPTY_REPLIES:
            logger.warning("Classifier reply for %r was empty", name[:50])
            return ClassificationResult.rejected("empty_response")

        outcome = recover_structured_output(text)
        if outcome.failed:
            logger.warning("Could not parse classifier reply for %r", name[:50])
            return ClassificationResult.rejected("parse_error")

        return build_result(outcome.fields)
    except Exception:
        logger.warning("Unexpected failure classifying %r", name[:50], exc_info=True)
        return ClassificationResult.rejected("exception")
