"""Extract wine type / flavor hints from a customer's free-text request."""

from typing import Dict, Optional
import logging

from openai import OpenAI

from . import commentary, config
from .classifier import TYPE_NORMALIZATION
from .json_recovery import recover_structured_output

logger = logging.getLogger(__name__)

INTENT_FIELDS = ("type", "flavor")

INTENT_PROMPT = """Analyze the customer's request and extract the wine type and taste preferences.
Reply with a single JSON object only, no Markdown code block:
{{"type": "Red, White, Rose, Sparkling or undefined", "flavor": "flavor keywords (dry, sweet, heavy, light, ...)"}}

Request: "{prompt}"
"""


def parse_search_intent(
    prompt: str,
    client: Optional[OpenAI] = None,
    model: Optional[str] = None,
) -> Dict[str, str]:
    """
    Return ``{"type": ..., "flavor": ...}`` with whichever keys could be
    extracted. ``type`` is a canonical WineType value and is omitted unless
    the model named a recognizable type. Any failure yields ``{}``.
    """
    if not prompt or not prompt.strip():
        return {}

    if client is None:
        client = commentary.get_client()
    if client is None:
        return {}

    try:
        response = client.chat.completions.create(
            model=model or config.COMMENTARY_MODEL,
            messages=[{"role": "user", "content": INTENT_PROMPT.format(prompt=prompt)}],
            temperature=0,
        )
        text = response.choices[0].message.content or ""
    except Exception:
        logger.warning("Search intent extraction failed", exc_info=True)
        return {}

    fields = recover_structured_output(text, fields=INTENT_FIELDS).fields
    intent: Dict[str, str] = {}

    wine_type = TYPE_NORMALIZATION.get(str(fields.get("type") or "").strip().lower())
    if wine_type is not None:
        intent["type"] = wine_type.value

    flavor = str(fields.get("flavor") or "").strip()
    if flavor and flavor.lower() != "undefined":
        intent["flavor"] = flavor

    return intent
