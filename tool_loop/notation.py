"""Tool-call notation in model text.

Models that don't return native tool calls are asked to wrap each call in
``<tool_call>...</tool_call>``. Some ignore that and print a bare
``{"id": ..., "name": ..., "arguments": {...}}`` object instead; that raw
form is recovered as a fallback when no wrapped call parses.

Tool output goes back to the model as a ``<tool_result>`` envelope in a
user message.
"""

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Iterator, Literal, Optional

from tool_loop.execution import ToolCall

logger = logging.getLogger(__name__)

TOOL_CALL_OPEN = "<tool_call>"
TOOL_CALL_CLOSE = "</tool_call>"

_WRAPPED_RE = re.compile(r"<tool_call>(.*?)</tool_call>", re.DOTALL)
_RAW_CALL_PREFIX_RE = re.compile(
    r'\{\s*"id"\s*:\s*"[^"]+"\s*,\s*"name"\s*:\s*"[^"]+"\s*,\s*"arguments"\s*:\s*\{'
)
# One level of nested braces only. Deeper argument objects don't match.
_RAW_OBJECT_RE = re.compile(r"\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}")


@dataclass(frozen=True)
class CallSpan:
    """A candidate tool call located in model text."""

    kind: Literal["wrapped", "raw"]
    start: int
    end: int
    payload: Optional[dict]  # None when the span held no parseable object


def detect_tool_call(text: Any) -> bool:
    """Cheap check for tool-call notation. Never raises."""
    if not isinstance(text, str) or not text:
        return False
    if _WRAPPED_RE.search(text):
        return True
    return _RAW_CALL_PREFIX_RE.search(text) is not None


def extract_tool_calls(text: Any) -> list[ToolCall]:
    """Extract tool calls, wrapped ones first, raw objects only if none parse.

    Malformed candidates are logged and skipped so one bad call doesn't
    hide its siblings. Calls come back in the order they appear in ``text``.
    """
    if not isinstance(text, str) or not text:
        return []

    logger.debug(f"Extracting tool calls from {len(text)} chars: {text[:300]!r}")

    calls: list[ToolCall] = []
    taken: set[str] = set()

    for span in _wrapped_spans(text):
        call = _wrapped_call(span.payload, len(calls), taken)
        if call is None:
            logger.warning(
                f"Dropping malformed tool call at offset {span.start}: "
                f"{text[span.start:span.end][:200]!r}"
            )
            continue
        taken.add(call.id)
        calls.append(call)

    if not calls:
        for span in _raw_spans(text):
            payload = span.payload
            call_id = payload["id"]
            if call_id in taken:
                call_id = synthesize_call_id(len(calls), taken)
            taken.add(call_id)
            calls.append(
                ToolCall(id=call_id, name=payload["name"], arguments=payload["arguments"])
            )

    logger.debug(f"Extracted {len(calls)} tool call(s): {[c.name for c in calls]}")
    return calls


def strip_tool_calls(text: Any) -> str:
    """Remove tool-call notation from text meant for display.

    Removal repeats until nothing matches, since cutting a span can join the
    text around it into a new one; that keeps the result idempotent.
    """
    if not isinstance(text, str):
        return ""

    cleaned = text
    while True:
        reduced = _remove_call_spans(cleaned)
        if reduced == cleaned:
            break
        cleaned = reduced
    return cleaned.strip()


def render_tool_result(tool_name: str, result: str, is_error: bool) -> str:
    """Wrap tool output in a <tool_result> envelope for the model."""
    error_attr = ' error="true"' if is_error else ""
    return f'<tool_result name="{tool_name}"{error_attr}>\n{result}\n</tool_result>'


def has_tool_result(text: Any) -> bool:
    if not isinstance(text, str):
        return False
    return "<tool_result" in text and "</tool_result>" in text


def decode_arguments(arguments: Any) -> Optional[dict]:
    """Return tool arguments as a dict, decoding a JSON string if needed.

    Returns None when the arguments are not an object.
    """
    if isinstance(arguments, dict):
        return arguments
    if isinstance(arguments, str):
        decoded = _parse_object(arguments)
        if decoded is not None:
            return decoded
    return None


def synthesize_call_id(index: int, taken: set[str]) -> str:
    """Build an id for a call the model didn't name, unique within ``taken``."""
    stamp = int(time.time() * 1000)
    candidate = f"call_{stamp}_{index}"
    while candidate in taken:
        index += 1
        candidate = f"call_{stamp}_{index}"
    return candidate


def _wrapped_spans(text: str) -> Iterator[CallSpan]:
    for match in _WRAPPED_RE.finditer(text):
        blob = _first_object(match.group(1))
        payload = _parse_object(blob) if blob is not None else None
        yield CallSpan(kind="wrapped", start=match.start(), end=match.end(), payload=payload)


def _raw_spans(text: str) -> Iterator[CallSpan]:
    """Yield raw objects that carry a complete id/name/arguments tool call."""
    for match in _RAW_OBJECT_RE.finditer(text):
        payload = _parse_object(match.group(0))
        if _is_raw_call(payload):
            yield CallSpan(kind="raw", start=match.start(), end=match.end(), payload=payload)


def _wrapped_call(payload: Optional[dict], index: int, taken: set[str]) -> Optional[ToolCall]:
    if payload is None:
        return None
    name = payload.get("name")
    arguments = decode_arguments(payload.get("arguments"))
    if not isinstance(name, str) or not name or arguments is None:
        return None

    call_id = payload.get("id")
    if isinstance(call_id, (int, float)) and not isinstance(call_id, bool):
        call_id = str(call_id)
    if not isinstance(call_id, str) or not call_id or call_id in taken:
        call_id = synthesize_call_id(index, taken)
    return ToolCall(id=call_id, name=name, arguments=arguments)


def _is_raw_call(payload: Optional[dict]) -> bool:
    if payload is None:
        return False
    call_id = payload.get("id")
    name = payload.get("name")
    return (
        isinstance(call_id, str)
        and bool(call_id)
        and isinstance(name, str)
        and bool(name)
        and isinstance(payload.get("arguments"), dict)
    )


def _remove_call_spans(text: str) -> str:
    text = _WRAPPED_RE.sub("", text)
    pieces = []
    cursor = 0
    for span in _raw_spans(text):
        pieces.append(text[cursor:span.start])
        cursor = span.end
    pieces.append(text[cursor:])
    return "".join(pieces)


def _parse_object(blob: str) -> Optional[dict]:
    try:
        parsed = json.loads(blob)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _first_object(text: str) -> Optional[str]:
    """Return the first balanced {...} in text; braces inside strings don't count."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
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
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None
