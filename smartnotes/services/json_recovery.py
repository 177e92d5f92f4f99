"""
Recover JSON payloads from free-text model completions.

Models wrap their answer in markdown fences or chatty prose, and long answers
get cut off at the provider's token limit. sanitize() isolates the payload,
repair() closes whatever a truncation left open, and parse_or_repair() chains
the two with a single repair attempt.
"""
from __future__ import annotations

import json
import re
from typing import Any, List

import structlog

from smartnotes.services.errors import JsonRepairFailure

logger = structlog.get_logger(__name__)

FENCED_JSON_RE = re.compile(r"```json\s*([\s\S]*?)\s*```")
FENCED_ANY_RE = re.compile(r"```\s*([\s\S]*?)\s*```")
CONVERSATIONAL_PREFIX_RE = re.compile(
    r"^(Here is the JSON:|Here's the JSON:|JSON response:|Result:|Output:)\s*",
    re.IGNORECASE,
)
TRAILING_COMMA_RE = re.compile(r",\s*$")

CLOSERS = {"{": "}", "[": "]"}


def sanitize(raw_text: str) -> str:
    """Strip fences and wrapper prose from a completion, leaving the JSON candidate."""
    cleaned = (raw_text or "").strip()

    match = FENCED_JSON_RE.search(cleaned) or FENCED_ANY_RE.search(cleaned)
    if match:
        return match.group(1).strip()

    first_brace = cleaned.find("{")
    first_bracket = cleaned.find("[")
    if first_brace != -1 and (first_bracket == -1 or first_brace < first_bracket):
        start, end = first_brace, cleaned.rfind("}")
    elif first_bracket != -1:
        start, end = first_bracket, cleaned.rfind("]")
    else:
        start = end = -1

    if start != -1:
        if end > start:
            return cleaned[start:end + 1].strip()
        # Opened but never closed: a truncated payload, hand it to repair()
        return cleaned[start:].strip()

    cleaned = CONVERSATIONAL_PREFIX_RE.sub("", cleaned)
    return cleaned.strip()


def _count_unescaped_quotes(text: str) -> int:
    count = 0
    escaped = False
    for ch in text:
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            count += 1
    return count


def _open_containers(text: str) -> List[str]:
    """Closers still owed after scanning text, outermost first."""
    stack: List[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in CLOSERS:
            stack.append(CLOSERS[ch])
        elif ch in ("}", "]"):
            # unmatched closers are ignored
            if stack and stack[-1] == ch:
                stack.pop()
    return stack


def repair(candidate: str) -> str:
    """Best-effort close of a JSON string truncated mid-value or mid-container.

    Appends a quote when one is left open, then closes every open object and
    array innermost first, dropping a trailing comma before each closer. This
    does not fix truncation inside a key or corruption in the middle of the
    text.
    """
    repaired = (candidate or "").strip()

    # A cut right after an escape would swallow the closing quote
    trailing_backslashes = len(repaired) - len(repaired.rstrip("\\"))
    if trailing_backslashes % 2:
        repaired = repaired[:-1]

    if _count_unescaped_quotes(repaired) % 2:
        repaired += '"'

    stack = _open_containers(repaired)
    while stack:
        closer = stack.pop()
        repaired = TRAILING_COMMA_RE.sub("", repaired)
        repaired += closer

    if not repaired:
        return "{}"
    return repaired


def parse_or_repair(candidate: str) -> Any:
    """json.loads the candidate, retrying once on its repaired form."""
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as first_error:
        logger.warning("json_parse_failed", error=str(first_error), length=len(candidate))
        repaired = repair(candidate)
        try:
            return json.loads(repaired)
        except json.JSONDecodeError as repair_error:
            logger.error("json_repair_failed", error=str(repair_error), length=len(candidate))
            raise JsonRepairFailure(
                f"Unparseable JSON after repair: {repair_error}", candidate=candidate
            ) from first_error


def recover_json(raw_text: str) -> Any:
    """sanitize() then parse_or_repair(); raises JsonRepairFailure."""
    return parse_or_repair(sanitize(raw_text))
