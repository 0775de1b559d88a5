"""
specmock request and response generation

Generated requests back the admin preview and the ``generate`` CLI command.
Generated responses are what the mock routes serve.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..errors import ContentEncodeError
from ..openapi import Operation
from ..replacer import ReplaceState
from ..schema import Schema
from .content import (
    JSON_CONTENT_TYPE,
    ValueReplacerFunc,
    extract_placeholders,
    generate_content_from_file_properties,
    generate_content_from_schema,
)
from .encode import create_curl_body, encode_content
from .params import (
    generate_query,
    generate_request_headers,
    generate_response_headers,
    generate_url_from_schema_parameters,
)


logger = logging.getLogger("specmock.generator")


def _decode_body(content: Optional[bytes]) -> Any:
    if not content:
        return None
    text = content.decode('utf-8', 'replace')
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


@dataclass
class GeneratedRequest:
    """Example request for an operation."""

    method: str
    path: str
    headers: Dict[str, Any] = field(default_factory=dict)
    query: str = ''
    body: str = ''
    content_type: str = ''
    content_schema: Optional[Schema] = None
    curl: str = ''

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with camelCase keys, omitting empty values."""
        result: Dict[str, Any] = {
            'method': self.method,
            'path': self.path,
        }
        if self.headers:
            result['headers'] = self.headers
        if self.query:
            result['query'] = self.query
        if self.body:
            result['body'] = self.body
        if self.content_type:
            result['contentType'] = self.content_type
        if self.content_schema is not None:
            result['contentSchema'] = self.content_schema.to_dict()
        if self.curl:
            result['examples'] = {'curl': self.curl}
        return result


@dataclass
class GeneratedResponse:
    """Response produced for an operation or a fixed file."""

    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    content: Optional[bytes] = None
    content_type: str = JSON_CONTENT_TYPE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, decoding JSON content."""
        return {
            'statusCode': self.status_code,
            'headers': self.headers,
            'content': _decode_body(self.content),
            'contentType': self.content_type,
        }


def generate_request(
    operation: Operation,
    replacer: ValueReplacerFunc,
    resource: Optional[str] = None,
    path_prefix: str = '',
) -> GeneratedRequest:
    """
    Generate an example request for an operation.

    Args:
        operation: Operation to generate for
        replacer: Value replacer with the service contexts
        resource: Resource path with placeholders, defaults to the operation's
        path_prefix: Prepended to the generated path, e.g. ``/petstore``

    Returns:
        GeneratedRequest
    """
    params = operation.get_parameters()
    body_schema, content_type = operation.get_request_body()

    state = ReplaceState().with_content_type(content_type).with_write_only()
    content = generate_content_from_schema(body_schema, replacer, state)

    body = b''
    curl = ''
    try:
        body = encode_content(content, content_type) or b''
        curl = create_curl_body(content, content_type)
    except ContentEncodeError as e:
        logger.error(f"Error encoding request for {operation.method} {operation.resource}: {e}")

    path = generate_url_from_schema_parameters(resource or operation.resource, replacer, params)

    return GeneratedRequest(
        method=operation.method,
        path=path_prefix + path,
        headers=generate_request_headers(params, replacer),
        query=generate_query(replacer, params),
        body=body.decode('utf-8', 'replace'),
        content_type=content_type,
        content_schema=body_schema,
        curl=curl,
    )


def generate_response(operation: Operation, replacer: ValueReplacerFunc) -> GeneratedResponse:
    """
    Generate the response an operation serves.

    The content type falls back to JSON when the response declares none.
    """
    response = operation.get_response()
    content_type = response.content_type or JSON_CONTENT_TYPE

    headers = generate_response_headers(response.headers, replacer)
    headers['content-type'] = content_type

    state = ReplaceState().with_content_type(content_type).with_read_only()
    content = generate_content_from_schema(response.content, replacer, state)

    try:
        encoded = encode_content(content, content_type)
    except ContentEncodeError as e:
        logger.error(f"Error encoding response for {operation.method} {operation.resource}: {e}")
        encoded = str(e).encode('utf-8')

    return GeneratedResponse(
        status_code=response.status_code,
        headers=headers,
        content=encoded,
        content_type=content_type,
    )


def generate_request_from_fixed_resource(
    path: str,
    method: str,
    content_type: str,
    replacer: Optional[ValueReplacerFunc],
) -> GeneratedRequest:
    """Example request for a fixed file route, path placeholders filled."""
    if replacer is not None:
        for placeholder in extract_placeholders(path):
            state = ReplaceState().with_name(placeholder[1:-1]).with_path_param()
            value = replacer(None, state)
            if value is not None and str(value) != '':
                path = path.replace(placeholder, str(value))

    return GeneratedRequest(method=method.upper(), path=path, content_type=content_type)


def generate_response_from_fixed_resource(
    file_path: str,
    content_type: str,
    replacer: Optional[ValueReplacerFunc],
) -> GeneratedResponse:
    """Response of a fixed file route, always 200."""
    return GeneratedResponse(
        status_code=200,
        headers={'content-type': content_type},
        content=generate_content_from_file_properties(file_path, content_type, replacer),
        content_type=content_type,
    )
