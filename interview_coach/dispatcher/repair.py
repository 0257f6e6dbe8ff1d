"""
Response Repair

Models are prompted to return a JSON object but often wrap it in markdown
fences, stop mid-value when they hit the token limit, or forget closing
braces. repair_json() recovers the most complete syntactically valid
object it can, without knowing anything about the expected schema.

parse_model_json() is the full pipeline used by callers:
1. Strict parse
2. Parse the bracket-balanced repair
3. Truncate the repair at its last '}' and parse
4. Give up with ResponseParseError
"""

import json
import logging
import re
from typing import Any

from interview_coach.dispatcher.errors import ResponseParseError

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```[\w+-]*")

_CLOSERS = {"{": "}", "[": "]"}


def strip_code_fences(text: str) -> str:
    """Remove ```lang and ``` markers, keeping the fenced content."""
    return _FENCE.sub("", text).strip()


def repair_json(text: str) -> str:
    """
    Repair model output into well-formed JSON text.

    Single pass over the characters after the first '{', tracking string
    state (with escapes) and a stack of expected closers. Literal newlines
    inside strings are escaped. Scanning stops once the top-level object
    closes. At end of input an object key cut off before its value is
    dropped, an open string is terminated, a trailing comma dropped, and
    every open structure closed in LIFO order.

    Args:
        text: Raw model output.

    Returns:
        Repaired JSON text, or the trimmed input when it has no '{'.
    """
    cleaned = strip_code_fences(text)
    start = cleaned.find("{")
    if start == -1:
        return cleaned

    out: list[str] = []
    stack: list[str] = []
    in_string = False
    escaped = False
    # Where the current (or just closed) object key starts in out
    string_start = 0
    string_is_key = False
    dangling_key: int | None = None
    last_token = ""

    for ch in cleaned[start:]:
        if in_string:
            if escaped:
                escaped = False
                out.append(ch)
            elif ch == "\\":
                escaped = True
                out.append(ch)
            elif ch == '"':
                in_string = False
                out.append(ch)
                last_token = ch
                dangling_key = string_start if string_is_key else None
            elif ch == "\n":
                out.append("\\n")
            elif ch == "\r":
                out.append("\\r")
            else:
                out.append(ch)
            continue

        if not ch.isspace():
            dangling_key = None
        if ch == '"':
            in_string = True
            string_start = len(out)
            string_is_key = bool(stack) and stack[-1] == "}" and last_token in ("{", ",")
        out.append(ch)
        if not ch.isspace():
            last_token = ch
        if ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in ("}", "]"):
            if stack and stack[-1] == ch:
                stack.pop()
            if not stack:
                break

    if in_string and string_is_key:
        # Key cut off mid-name: drop it
        del out[string_start:]
    elif in_string:
        if escaped:
            # A dangling backslash would escape the closing quote
            out.pop()
        out.append('"')
    elif dangling_key is not None:
        # Complete key with no colon: drop it
        del out[dangling_key:]

    repaired = "".join(out).rstrip()
    if repaired.endswith(","):
        repaired = repaired[:-1].rstrip()
    if repaired.endswith(":"):
        repaired += " null"

    return repaired + "".join(reversed(stack))


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def parse_model_json(text: str | None) -> dict[str, Any]:
    """
    Parse model output into a JSON object, repairing it if needed.

    Args:
        text: Raw model output.

    Returns:
        The parsed object.

    Raises:
        ResponseParseError: If no strategy yields a JSON object.
    """
    if not text or not text.strip():
        raise ResponseParseError("Model returned an empty response")

    parsed = _loads_object(text)
    if parsed is not None:
        return parsed

    repaired = repair_json(text)
    parsed = _loads_object(repaired)
    if parsed is not None:
        logger.debug("Parsed model output after bracket repair")
        return parsed

    end = repaired.rfind("}")
    if end != -1:
        parsed = _loads_object(repaired[: end + 1])
        if parsed is not None:
            logger.debug("Parsed model output after truncating to last brace")
            return parsed

    preview = text.strip()[:200]
    logger.warning(f"Unable to parse model output as JSON: {preview!r}")
    raise ResponseParseError(f"Model output is not valid JSON: {preview}")
