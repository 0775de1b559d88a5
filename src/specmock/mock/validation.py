"""
specmock request and response validation

Checks payloads against the operation schemas with a draft 7 validator.
Validators return an error message, or None when the payload is valid.
"""

import json
import logging
from typing import Any, Mapping, Optional, Sequence
from urllib.parse import parse_qs

from jsonschema import Draft7Validator

from ..openapi import Operation, Parameter
from ..schema import TYPE_ARRAY, TYPE_BOOLEAN, TYPE_INTEGER, TYPE_NUMBER, Schema


logger = logging.getLogger("specmock.mock")

FORM_CONTENT_TYPE = 'application/x-www-form-urlencoded'


def is_json_content_type(content_type: str) -> bool:
    media = (content_type or '').split(';')[0].strip().lower()
    return media == 'application/json' or media.endswith('+json')


def _coerce(schema: Optional[Schema], value: str) -> Any:
    """Convert a query, header or form string to the schema type when possible."""
    if schema is None:
        return value
    try:
        if schema.type == TYPE_INTEGER:
            return int(value)
        if schema.type == TYPE_NUMBER:
            return float(value)
    except ValueError:
        return value
    if schema.type == TYPE_BOOLEAN and value.lower() in ('true', 'false'):
        return value.lower() == 'true'
    return value


def _first_error(schema: Schema, value: Any, for_response: bool = False) -> Optional[str]:
    validator = Draft7Validator(schema.to_json_schema(for_response=for_response))
    errors = sorted(validator.iter_errors(value), key=lambda e: list(e.absolute_path))
    if not errors:
        return None

    error = errors[0]
    location = '.'.join(str(p) for p in error.absolute_path)
    return f"{location}: {error.message}" if location else error.message


def _validate_parameters(
    params: Sequence[Parameter],
    location: str,
    values: Mapping[str, Sequence[str]],
) -> Optional[str]:
    for param in params:
        if param is None or param.in_ != location:
            continue

        name = param.name.lower() if location == 'header' else param.name
        raw = values.get(name) or values.get(f"{name}[]")
        if not raw:
            if param.required:
                return f"{location} parameter '{param.name}' is required"
            continue

        if param.schema is None:
            continue

        if param.schema.type == TYPE_ARRAY:
            item_schema = param.schema.items
            value: Any = [_coerce(item_schema, item) for item in raw]
        else:
            value = _coerce(param.schema, raw[0])

        error = _first_error(param.schema, value)
        if error:
            return f"{location} parameter '{param.name}': {error}"
    return None


def _decode_body(body: bytes, content_type: str, schema: Schema) -> Any:
    """Payload as Python data, raises ValueError when it cannot be decoded."""
    text = body.decode('utf-8')
    if is_json_content_type(content_type):
        return json.loads(text)

    if content_type.startswith(FORM_CONTENT_TYPE):
        result = {}
        for key, values in parse_qs(text, keep_blank_values=True).items():
            prop = schema.properties.get(key)
            result[key] = _coerce(prop, values[0])
        return result

    return None


def validate_request(
    operation: Operation,
    body: bytes,
    content_type: str,
    query: Mapping[str, Sequence[str]],
    headers: Mapping[str, str],
) -> Optional[str]:
    """
    Validate an incoming request against its operation.

    Args:
        operation: Operation serving the request
        body: Raw request body
        content_type: Request content type header
        query: Query parameters, each with all its values
        headers: Request headers

    Returns:
        Error message, or None when the request is valid
    """
    params = operation.get_parameters()

    error = _validate_parameters(params, 'query', query)
    if error:
        return error

    header_values = {k.lower(): [v] for k, v in headers.items()}
    error = _validate_parameters(params, 'header', header_values)
    if error:
        return error

    schema, _ = operation.get_request_body()
    if schema is None or not body:
        return None

    try:
        payload = _decode_body(body, content_type or '', schema)
    except (UnicodeDecodeError, ValueError) as e:
        return f"Invalid request body: {e}"

    if payload is None:
        logger.debug(f"Skipping body validation for content type {content_type}")
        return None

    error = _first_error(schema, payload)
    if error:
        return f"Invalid request body: {error}"
    return None


def validate_response(operation: Operation, content: Optional[bytes], content_type: str) -> Optional[str]:
    """Validate generated JSON response content against the response schema."""
    response = operation.get_response()
    if response.content is None or not content or not is_json_content_type(content_type):
        return None

    try:
        payload = json.loads(content.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as e:
        return f"Invalid response body: {e}"

    error = _first_error(response.content, payload, for_response=True)
    if error:
        return f"Invalid response body: {error}"
    return None
