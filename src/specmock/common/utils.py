"""
specmock Common Utilities

Small string, sequence and mapping helpers shared by the schema builder,
the replacer chain and the loaders.
"""

import json
import random
import re
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence


_FIRST_CAP = re.compile(r'(.)([A-Z][a-z]+)')
_ALL_CAP = re.compile(r'([a-z0-9])([A-Z])')
_NON_ALNUM = re.compile(r'[^a-z0-9]+')

REGEX_SPECIAL_CHARS = ('\\', '.', '*', '^', '$', '+', '?', '(', '[', '{', '|')


def safe_json_parse(json_string: Any, default: Any = None) -> Any:
    """
    Safely parse JSON string with error handling.

    Args:
        json_string: JSON string or bytes to parse
        default: Default value to return if parsing fails

    Returns:
        Parsed JSON object, or default if parsing fails

    Example:
        body = safe_json_parse(await request.body(), default={})
    """
    if not json_string:
        return default

    try:
        return json.loads(json_string)
    except (json.JSONDecodeError, TypeError, ValueError):
        return default


def to_snake_case(value: str) -> str:
    """
    Convert a field name to snake_case.

    ``userName``, ``user-name`` and ``User Name`` all become ``user_name``.
    Names starting with a digit get an ``n_`` prefix so they stay usable
    as context keys.

    Args:
        value: Name to convert

    Returns:
        snake_cased name
    """
    snake = _FIRST_CAP.sub(r'\1_\2', value)
    snake = _ALL_CAP.sub(r'\1_\2', snake)
    snake = _NON_ALNUM.sub('_', snake.lower()).strip('_')
    if snake and snake[0].isdigit():
        snake = 'n_' + snake
    return snake


def maybe_regex_pattern(value: str) -> bool:
    """Check whether a context key looks like a regular expression."""
    return any(char in value for char in REGEX_SPECIAL_CHARS)


def compile_key_pattern(key: str) -> Optional[re.Pattern]:
    """
    Compile a context key into an anchored regular expression.

    A lone ``*`` inside the key is treated as a glob wildcard.

    Returns:
        Compiled pattern, or None if the key is not a valid expression
    """
    pattern = key
    if '*' in pattern and '.*' not in pattern:
        pattern = pattern.replace('*', '.*')
    try:
        return re.compile(f'^{pattern}$')
    except re.error:
        return None


def max_repetition(values: Sequence[str]) -> int:
    """
    Highest number of times any value repeats in a sequence.

    The first occurrence does not count, so ``['a', 'b', 'a']`` gives 1
    and a sequence without duplicates gives 0.
    """
    if len(values) < 2:
        return 0
    return max(Counter(values).values()) - 1


def append_first_non_empty(values: List[str], *candidates: Optional[str]) -> List[str]:
    """Return a copy of ``values`` extended with the first truthy candidate."""
    for candidate in candidates:
        if candidate:
            return [*values, candidate]
    return list(values)


def get_by_dotted_path(data: Dict[str, Any], path: str) -> Any:
    """
    Get a nested value by a dotted path like ``person.name.first``.

    Returns:
        The value, or None if any part of the path is missing
    """
    current: Any = data
    for part in path.split('.'):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def set_by_dotted_path(data: Dict[str, Any], path: str, value: Any) -> None:
    """Set a nested value by a dotted path, creating intermediate dicts."""
    parts = path.split('.')
    current = data
    for part in parts[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    current[parts[-1]] = value


def random_choice(values: Sequence[Any]) -> Any:
    """Random element of a sequence, or None when it is empty."""
    if not values:
        return None
    return random.choice(list(values))


def deduplicate(values: Sequence[str]) -> List[str]:
    """Remove duplicates keeping the first occurrence order."""
    return list(dict.fromkeys(values))
