# examprep/services/json_payload.py
import json
import re
from typing import Any

_FENCE_OPEN = re.compile(r"^\s*```[a-zA-Z]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```\s*$")


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json (or bare ```) fence and a trailing ``` fence."""
    text = _FENCE_OPEN.sub("", text)
    text = _FENCE_CLOSE.sub("", text)
    return text.strip()


def loads_fenced(text: str) -> Any:
    """json.loads after stripping markdown fences. Raises ValueError."""
    return json.loads(strip_code_fences(text))


def loads_fenced_object(text: str) -> Any:
    """Like loads_fenced, falling back to the outermost ``{...}`` in the text."""
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except ValueError:
        pass
    first = cleaned.find("{")
    last = cleaned.rfind("}")
    if first != -1 and last > first:
        return json.loads(cleaned[first : last + 1])
    raise ValueError("no JSON object found in model output")
