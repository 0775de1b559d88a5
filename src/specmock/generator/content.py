"""
specmock content generation

Walks a normalized schema and asks the value replacer for every leaf.
Schemas are finite after building, so the walk needs no recursion guard.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

from ..replacer import NULL_VALUE, ReplaceState, is_correctly_replaced_type
from ..schema import TYPE_ARRAY, TYPE_OBJECT, TYPE_STRING, Schema


logger = logging.getLogger("specmock.generator")

PLACEHOLDER_RE = re.compile(r'\{[^{}]+\}')

JSON_CONTENT_TYPE = 'application/json'

ValueReplacerFunc = Callable[[Optional[Schema], ReplaceState], Any]


def extract_placeholders(value: str) -> List[str]:
    """``{name}`` placeholders of a string, braces included, in order."""
    return PLACEHOLDER_RE.findall(value)


def _is_null(value: Any) -> bool:
    return isinstance(value, str) and value == NULL_VALUE


def generate_content_from_schema(
    schema: Optional[Schema],
    replacer: Optional[ValueReplacerFunc],
    state: Optional[ReplaceState] = None,
) -> Any:
    """
    Generate a JSON compatible value for a schema.

    Named values are first offered to the replacer as a whole, so a context
    can provide a complete object in one go. Objects and arrays are
    otherwise generated member by member.

    Args:
        schema: Normalized schema
        replacer: Value replacer, ``(schema, state) -> value or None``
        state: Position of the value, defaults to the payload root

    Returns:
        Generated value, None to omit it
    """
    if schema is None:
        return None

    state = state or ReplaceState()
    if not state.is_match_schema_read_write_to_state(schema):
        return None

    typ = schema.type or TYPE_STRING

    if replacer is not None and state.name_path:
        value = replacer(schema, state)
        if _is_null(value):
            return None
        if value is not None and is_correctly_replaced_type(value, typ):
            return value

    if typ == TYPE_OBJECT:
        obj = _generate_object(schema, replacer, state)
        if obj is None:
            nested = bool(state.name_path)
            if nested and (schema.nullable or state.is_content_write_only):
                return None
            return {}
        return obj

    if typ == TYPE_ARRAY:
        arr = _generate_array(schema, replacer, state)
        if arr is None:
            return None if schema.nullable else []
        return arr

    if replacer is None:
        return None

    value = replacer(schema, state)
    return None if _is_null(value) else value


def _generate_object(schema: Schema, replacer, state: ReplaceState) -> Optional[dict]:
    result = {}
    for name, prop in schema.properties.items():
        value = generate_content_from_schema(prop, replacer, state.with_name(name))
        if value is None:
            continue

        result[name] = value
        if schema.max_properties and len(result) >= schema.max_properties:
            break

    return result or None


def _generate_array(schema: Schema, replacer, state: ReplaceState) -> Optional[list]:
    if schema.items is None:
        return None

    take = schema.min_items or 1
    if schema.max_items is not None:
        take = min(take, schema.max_items)

    result = []
    for index in range(take):
        item = generate_content_from_schema(schema.items, replacer, state.with_element_index(index))
        if item is not None:
            result.append(item)

    return result or None


def _resolve_placeholders(value: Any, replacer: ValueReplacerFunc, state: ReplaceState) -> Any:
    if isinstance(value, dict):
        return {key: _resolve_placeholders(item, replacer, state) for key, item in value.items()}
    if isinstance(value, list):
        return [_resolve_placeholders(item, replacer, state) for item in value]
    if not isinstance(value, str):
        return value

    replacements = {}
    for placeholder in extract_placeholders(value):
        name = placeholder[1:-1]
        resolved = replacer(None, state.with_name(name))
        if resolved is not None and not _is_null(resolved):
            replacements[placeholder] = resolved

    if not replacements:
        return value

    # A lone placeholder keeps the type of its replacement.
    if len(replacements) == 1 and value in replacements:
        return replacements[value]

    for placeholder, resolved in replacements.items():
        value = value.replace(placeholder, str(resolved))
    return value


def generate_content_from_json(data: Any, replacer: Optional[ValueReplacerFunc]) -> Any:
    """Replace ``{name}`` placeholders in string values of a JSON document."""
    if replacer is None:
        return data
    return _resolve_placeholders(data, replacer, ReplaceState())


def generate_content_from_file_properties(
    file_path: Union[str, Path],
    content_type: str,
    replacer: Optional[ValueReplacerFunc],
) -> Optional[bytes]:
    """
    Content of a fixed response file.

    JSON files get their ``{name}`` placeholders replaced through the
    replacer, other files are served as they are.

    Args:
        file_path: Path of the fixed file
        content_type: Content type derived from the file extension
        replacer: Value replacer with the service contexts

    Returns:
        File content, None when the file cannot be read or parsed
    """
    if not file_path:
        logger.warning("File path is empty")
        return None

    try:
        payload = Path(file_path).read_bytes()
    except OSError as e:
        logger.error(f"Error reading file {file_path}: {e}")
        return None

    if content_type != JSON_CONTENT_TYPE:
        return payload

    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(f"Error parsing JSON file {file_path}: {e}")
        return None

    generated = generate_content_from_json(data, replacer)
    return json.dumps(generated).encode('utf-8')
