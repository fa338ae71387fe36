from __future__ import annotations

import json
import re
from typing import Any

from .errors import ResponseParseError

JSON_FENCE_PATTERN = re.compile(r"```json\n?([\s\S]*?)\n?```")
PLAIN_FENCE_PATTERN = re.compile(r"```\n?([\s\S]*?)\n?```")


def extract_json_text(text: str) -> str:
    for pattern in (JSON_FENCE_PATTERN, PLAIN_FENCE_PATTERN):
        match = pattern.search(text)
        if match and match.group(1):
            return match.group(1).strip()
    return text.strip()


def extract_json(text: str) -> Any:
    candidate = extract_json_text(text)
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as error:
        raise ResponseParseError(f"Model response is not valid JSON: {error}", raw_text=text) from error


def is_no_recipe(payload: Any) -> bool:
    return isinstance(payload, dict) and bool(payload.get("error"))
