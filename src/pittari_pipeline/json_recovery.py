"""Structured Output Recovery

Turns a language model's raw reply into a best-effort field mapping.
Models are told to answer with a bare JSON object, but replies still come
back wrapped in prose, with unquoted keys, single quotes, trailing commas
or as plain ``key: value`` lines. Recovery tries progressively more
permissive strategies and stops at the first one that yields a mapping:

  1. direct        - first balanced {...} span, parsed as JSON
  2. sanitized     - same span after quote/key/comma normalization
  3. line_fallback - ``key: value`` / ``key = value`` lines for known fields

The known fields default to the classifier schema; callers with a different
reply shape pass their own field names.

Every strategy is a pure ``str -> dict | None`` function so each can be
tested on its own. ``recover_structured_output`` never raises.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache, partial
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

KNOWN_FIELDS = ("is_wine", "alcohol_type", "type", "region", "flavor_profile", "country")

SMART_DOUBLE_QUOTES = re.compile(r"[“”]")
SMART_SINGLE_QUOTES = re.compile(r"[‘’]")
BARE_KEY = re.compile(r"(^|[,{\n\r\t\s])([a-zA-Z_][a-zA-Z0-9_]*)\s*:")
TRAILING_COMMA = re.compile(r",\s*([}\]])")
SINGLE_QUOTED = re.compile(r"'([^'\\]*(?:\\.[^'\\]*)*)'")


Strategy = Callable[[str], Optional[Dict[str, Any]]]


@dataclass
class ParseOutcome:
    """Result of running the recovery strategies over one reply.

    ``strategy`` names the stage that succeeded, or is None when every
    stage failed. A failed outcome is different from a reply that parsed
    fine and said the product is not a wine.
    """
    fields: Dict[str, Any] = field(default_factory=dict)
    strategy: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.strategy is None


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` span in ``text``, or None.

    Braces inside double-quoted strings (including escaped quotes) do not
    count toward nesting. Anything after the closing brace is ignored.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape = False

    for i in range(start, len(text)):
        char = text[i]

        if in_string:
            if escape:
                escape = False
            elif char == "\\":
                escape = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    return None


def _json_candidate(text: str) -> str:
    return extract_json_object(text) or text.strip()


def _loads_mapping(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(candidate)
    except (json.JSONDecodeError, TypeError):
        return None
    return parsed if isinstance(parsed, dict) else None


def sanitize_json_string(text: str) -> str:
    """Best-effort rewrite of JSON-ish model output into strict JSON."""
    output = text.strip()

    output = SMART_DOUBLE_QUOTES.sub('"', output)
    output = SMART_SINGLE_QUOTES.sub("'", output)

    # {is_wine: true} -> {"is_wine": true}
    output = BARE_KEY.sub(r'\1"\2":', output)

    # {"a": 1,} -> {"a": 1}
    output = TRAILING_COMMA.sub(r"\1", output)

    # {'type': 'Red'} -> {"type": "Red"}
    if "'" in output:
        output = SINGLE_QUOTED.sub(r'"\1"', output)

    return output


def parse_direct(text: str) -> Optional[Dict[str, Any]]:
    return _loads_mapping(_json_candidate(text))


def parse_sanitized(text: str) -> Optional[Dict[str, Any]]:
    return _loads_mapping(sanitize_json_string(_json_candidate(text)))


def _strip_quotes(value: str) -> str:
    for quote in ('"', "'"):
        if len(value) > 2 and value.startswith(quote) and value.endswith(quote):
            return value[1:-1]
    return value


@lru_cache(maxsize=8)
def _key_value_pattern(fields: Tuple[str, ...]) -> "re.Pattern[str]":
    return re.compile(
        r"^(" + "|".join(re.escape(name) for name in fields) + r")\s*[:=]\s*(.+)$",
        re.IGNORECASE,
    )


def parse_key_value_lines(
    text: str,
    fields: Sequence[str] = KNOWN_FIELDS,
) -> Optional[Dict[str, Any]]:
    """Recover ``fields`` from ``key: value`` or ``key = value`` lines.

    Only ``true`` (any case) counts as a true ``is_wine``.
    """
    pattern = _key_value_pattern(tuple(fields))
    result: Dict[str, Any] = {}

    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        match = pattern.match(line)
        if not match:
            continue

        key = match.group(1).lower()
        value = _strip_quotes(match.group(2).strip())

        if key == "is_wine":
            result[key] = value.lower() == "true"
        else:
            result[key] = value

    return result or None


def strategies_for(fields: Sequence[str] = KNOWN_FIELDS) -> List[Tuple[str, Strategy]]:
    return [
        ("direct", parse_direct),
        ("sanitized", parse_sanitized),
        ("line_fallback", partial(parse_key_value_lines, fields=tuple(fields))),
    ]


def recover_structured_output(
    text: Optional[str],
    fields: Sequence[str] = KNOWN_FIELDS,
) -> ParseOutcome:
    """Run each strategy in order and return the first successful mapping.

    ``fields`` only limits the line fallback; the JSON stages return every
    key the reply contains.
    """
    if not text or not text.strip():
        return ParseOutcome()

    for name, strategy in strategies_for(fields):
        try:
            recovered = strategy(text)
        except Exception:
            logger.debug("Recovery strategy %s raised", name, exc_info=True)
            continue
        if recovered is not None:
            logger.debug("Recovered %d fields via %s", len(recovered), name)
            return ParseOutcome(fields=recovered, strategy=name)

    logger.debug("All recovery strategies failed for reply: %r", text[:200])
    return ParseOutcome()
