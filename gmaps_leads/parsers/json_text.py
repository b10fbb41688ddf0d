"""
JSON-in-text Extraction

The model answers in free text that is expected to *contain* a JSON array,
sometimes wrapped in prose or markdown fences. These helpers locate the
first balanced, syntactically valid array and decode it.
"""

import json
from typing import Any, Callable, Iterator, List, Optional, Tuple

from ..exceptions import MalformedResponseError


def _match_brackets(text: str, start: int) -> Tuple[List[Tuple[int, int]], Optional[int]]:
    """Match square brackets from text[start] onward in a single pass.

    Brackets inside JSON string literals are ignored.

    Returns:
        (pairs, end): the (open, close) index pairs closed during the scan,
        ordered by opening position, and the index of the ']' matching
        text[start], or None when the text ends first.
    """
    stack: List[int] = []
    pairs: List[Tuple[int, int]] = []
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == '[':
            stack.append(i)
        elif char == ']' and stack:
            pairs.append((stack.pop(), i))
            if not stack:
                pairs.sort()
                return pairs, i

    pairs.sort()
    return pairs, None


def iter_json_arrays(text: str) -> Iterator[List]:
    """Yield every top-level JSON array found in text, in order of appearance.

    When an outer span is not valid JSON (or never closes), the balanced
    arrays nested inside it are tried instead. Each character is scanned once.
    """
    if not text:
        return

    start = text.find('[')
    while start != -1:
        pairs, end = _match_brackets(text, start)
        resume = start
        for opened, closed in pairs:
            if opened < resume:
                continue
            try:
                value = json.loads(text[opened:closed + 1])
            except json.JSONDecodeError:
                continue
            if isinstance(value, list):
                yield value
                resume = closed + 1
        if end is None:
            return
        start = text.find('[', end + 1)


def extract_first_json_array(
    text: str,
    accept: Optional[Callable[[List], bool]] = None,
) -> Optional[List]:
    """
    Extract the first syntactically valid JSON array from free text.

    Args:
        text: Raw model output
        accept: Optional predicate; arrays it rejects are skipped

    Returns:
        The decoded list, or None when no (acceptable) array is present
    """
    for value in iter_json_arrays(text):
        if accept is None or accept(value):
            return value
    return None


def is_object_array(value: List) -> bool:
    """True for [] or a list containing at least one JSON object."""
    return not value or any(isinstance(item, dict) for item in value)


def is_string_array(value: List) -> bool:
    """True for [] or a list containing at least one string."""
    return not value or any(isinstance(item, str) for item in value)


def parse_array_payload(payload: Any, accept: Optional[Callable[[List], bool]] = None) -> List:
    """
    Turn a decoded HTTP response body into a list.

    Accepts a bare JSON list, a {"text": "..."} envelope holding model output,
    or a raw string.

    Raises:
        MalformedResponseError: If no acceptable array can be found
    """
    if isinstance(payload, list):
        if accept is None or accept(payload):
            return payload
        raise MalformedResponseError("Response array has an unexpected item type")

    if isinstance(payload, dict):
        payload = payload.get("text")

    if isinstance(payload, str):
        found = extract_first_json_array(payload, accept)
        if found is not None:
            return found
        preview = payload[:80].replace("\n", " ")
        raise MalformedResponseError(f"No JSON array found in response text: {preview!r}")

    raise MalformedResponseError(f"Unexpected response payload type: {type(payload).__name__}")
