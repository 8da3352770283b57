"""
JSON extraction from LLM output.

Models often wrap JSON in markdown fences or surround it with prose. These
helpers peel that off before handing the text to json.loads.
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


class JSONExtractionError(ValueError):
    pass


def strip_code_fences(raw_content: str) -> str:
    content = raw_content.strip()
    match = _FENCE_RE.search(content)
    if match:
        return match.group(1).strip()
    if content.startswith("```"):
        # Unterminated fence: drop the opening line only
        return content.split("\n", 1)[1] if "\n" in content else ""
    return content


def clean_json_string(content: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", content.strip())


def _outermost(content: str, opener: str, closer: str) -> str:
    start = content.find(opener)
    end = content.rfind(closer)
    if start == -1 or end <= start:
        return ""
    return content[start:end + 1]


def parse_json_robustly(raw_content: str) -> Any:
    """
    Parse the first JSON document found in raw model output.

    Tries, in order: fenced/cleaned text, the outermost {...} span and the
    outermost [...] span.
    """
    try:
        return json.loads(clean_json_string(strip_code_fences(raw_content)))
    except json.JSONDecodeError as first_error:
        for opener, closer in (("{", "}"), ("[", "]")):
            candidate = _outermost(raw_content, opener, closer)
            if not candidate:
                continue
            try:
                return json.loads(clean_json_string(candidate))
            except json.JSONDecodeError:
                continue

        logger.error(f"Failed to parse JSON: {first_error}\nRaw: {raw_content[:500]}")
        raise JSONExtractionError(f"Failed to parse JSON: {first_error}") from first_error
