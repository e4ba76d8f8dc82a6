# inquizzes/repair.py
"""
Recover a JSON array of question objects from free-text LLM output.

Models wrap their JSON in markdown fences, surround it with prose, leave
trailing commas, or get cut off mid-object when they hit the token limit.
`repair_json_array` normalizes all of that into text that `json.loads` can
usually read; `parse_question_array` runs the parse and reports the outcome
as a value instead of raising.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

CODE_FENCE_RE = re.compile(r"```[\w-]*\s*")
EMBEDDED_ARRAY_RE = re.compile(r"\[\s*\{[\s\S]*\}\s*\]")
TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")
WHITESPACE_RE = re.compile(r"\s+")
QUOTED_ELLIPSIS_RE = re.compile(r'"\s*\.\.\.')
ELLIPSIS_RE = re.compile(r"\.\.\.")


class ScanState(Enum):
    NORMAL = "normal"
    IN_STRING = "in_string"
    ESCAPED = "escaped"


def last_closed_object_end(text: str) -> int:
    """
    Index of the `}` closing the last complete top-level object, or -1.

    Braces only count outside string literals; a backslash inside a string
    escapes exactly one following character.
    """
    state = ScanState.NORMAL
    depth = 0
    last_end = -1
    for i, ch in enumerate(text):
        if state is ScanState.ESCAPED:
            state = ScanState.IN_STRING
        elif state is ScanState.IN_STRING:
            if ch == "\\":
                state = ScanState.ESCAPED
            elif ch == '"':
                state = ScanState.NORMAL
        elif ch == '"':
            state = ScanState.IN_STRING
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                last_end = i
    return last_end


def _is_json(text: str) -> bool:
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


def repair_json_array(raw: str) -> str:
    """Best-effort rewrite of `raw` into JSON array text. Does not validate content."""
    text = (raw or "").strip()
    text = CODE_FENCE_RE.sub("", text).strip()

    m = EMBEDDED_ARRAY_RE.search(text)
    if m:
        text = m.group(0)

    text = TRAILING_COMMA_RE.sub(r"\1", text)
    text = WHITESPACE_RE.sub(" ", text).strip()

    # ellipsis rewriting is lossy; skip it when the text already parses
    if _is_json(text):
        return text

    text = QUOTED_ELLIPSIS_RE.sub('"', text)
    text = ELLIPSIS_RE.sub('"', text)

    if not text.endswith("]"):
        end = last_closed_object_end(text)
        if end > -1:
            text = text[: end + 1] + "]"
        else:
            text += "]"
    return text


@dataclass
class ParseResult:
    items: List[Any] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_question_array(raw: str) -> ParseResult:
    """Repair and parse a model reply. Failures come back as `ParseResult.error`."""
    repaired = repair_json_array(raw)
    try:
        parsed = json.loads(repaired)
    except ValueError as e:
        logger.debug("Repaired reply still not JSON: %s", repaired[:200])
        return ParseResult(error=f"invalid JSON after repair: {e}")

    if isinstance(parsed, dict) and isinstance(parsed.get("questions"), list):
        parsed = parsed["questions"]
    if not isinstance(parsed, list):
        return ParseResult(error=f"expected a JSON array, got {type(parsed).__name__}")
    return ParseResult(items=parsed)
