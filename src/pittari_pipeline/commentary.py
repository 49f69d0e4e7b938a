"""Sommelier Commentary

Generates the short explanation shown next to the recommended wines.
The user always gets some commentary: model overloads are retried with
exponential backoff, and every other failure degrades to a pre-written
sentence instead of an error.
"""

from functools import lru_cache
from typing import Any, Callable, Optional, Sequence
import logging
import time

from openai import OpenAI

from . import config
from .models import RecommendationRequest, WineRecord

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BACKOFF_BASE_SECONDS = 1.0

OVERLOAD_STATUS_CODES = {503, 529}
OVERLOAD_MARKERS = ("503", "overloaded", "unavailable")

# User-facing copy for the Japanese storefront
SOMMELIER_ABSENT = "申し訳ありません。現在ソムリエが不在です。"
DEFAULT_COMMENTARY = "あなたにぴったりの一本を選び抜きました。素敵なひとときをお楽しみください。"
FALLBACK_COMMENTARY = "選りすぐりのワインをご提案します。どれもあなたにぴったりの味わいです。"

COMMENTARY_PROMPT = """You are a first-class sommelier. Based on the customer's wishes, explain why the selected wines were recommended, elegantly but warmly, in Japanese.

Customer's wishes:
- Preferred type: {type_preference}
- Occasion: {occasion}
- Taste tendency: {flavor_trend}
- Free text: {user_prompt}

Selected wines:
{wine_lines}

Constraints:
- About 250 Japanese characters, written to build anticipation.
- Mention the service name "ぴったりわいん" and stress that this is the "ぴったり" choice for the customer.
- Balance friendliness with a sense of luxury."""


@lru_cache(maxsize=4)
def _build_client(api_key: str, base_url: Optional[str]) -> OpenAI:
    return OpenAI(api_key=api_key, base_url=base_url)


def get_client() -> Optional[OpenAI]:
    if not config.COMMENTARY_API_KEY:
        return None
    return _build_client(config.COMMENTARY_API_KEY, config.COMMENTARY_BASE_URL)


def build_commentary_prompt(
    request: RecommendationRequest,
    wines: Sequence[WineRecord],
) -> str:
    wine_lines = "\n".join(
        f"- {wine.name} ({wine.region}): {wine.description}" for wine in wines
    )
    type_preference = request.type_preference.value if request.type_preference else None
    return COMMENTARY_PROMPT.format(
        type_preference=type_preference or "no preference",
        occasion=request.occasion or "everyday enjoyment",
        flavor_trend=request.flavor_trend or "balanced",
        user_prompt=request.user_prompt or "none",
        wine_lines=wine_lines,
    )


def is_overloaded(error: BaseException) -> bool:
    """True for errors that signal a temporarily overloaded model."""
    if getattr(error, "status_code", None) in OVERLOAD_STATUS_CODES:
        return True
    message = str(error).lower()
    return any(marker in message for marker in OVERLOAD_MARKERS)


def _reply_text(response: Any) -> str:
    choices = getattr(response, "choices", None)
    if not choices:
        return ""
    return (choices[0].message.content or "").strip()


def generate_commentary(
    request: RecommendationRequest,
    wines: Sequence[WineRecord],
    client: Optional[OpenAI] = None,
    model: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """
    Return commentary for the matched wines. Never raises, never empty.

    Overload errors are retried up to MAX_ATTEMPTS total attempts, waiting
    BACKOFF_BASE_SECONDS * 2**attempt between them (1s, then 2s). Any other
    error, or an overload on the last attempt, returns FALLBACK_COMMENTARY.
    """
    if client is None:
        client = get_client()
    if client is None:
        logger.warning("COMMENTARY_API_KEY is not set; returning placeholder commentary")
        return SOMMELIER_ABSENT

    prompt = build_commentary_prompt(request, wines)

    for attempt in range(MAX_ATTEMPTS):
        try:
            response = client.chat.completions.create(
                model=model or config.COMMENTARY_MODEL,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.8,
                top_p=0.9,
            )
            return _reply_text(response) or DEFAULT_COMMENTARY
        except Exception as e:
            is_last_attempt = attempt == MAX_ATTEMPTS - 1
            if is_overloaded(e) and not is_last_attempt:
                wait_time = BACKOFF_BASE_SECONDS * (2 ** attempt)
                logger.warning(
                    "Commentary model overloaded, retrying in %.1fs (attempt %d/%d)",
                    wait_time,
                    attempt + 1,
                    MAX_ATTEMPTS,
                )
                sleep(wait_time)
                continue

            logger.error("Commentary generation failed: %s", e, exc_info=True)
            return FALLBACK_COMMENTARY

    return FALLBACK_COMMENTARY
