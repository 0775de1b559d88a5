"""
specmock Generator Module

Schema driven content generation for requests and responses.
"""

from .content import (
    extract_placeholders,
    generate_content_from_file_properties,
    generate_content_from_json,
    generate_content_from_schema,
)
from .encode import create_curl_body, encode_content
from .params import (
    generate_query,
    generate_request_headers,
    generate_response_headers,
    generate_url_from_schema_parameters,
)
from .operations import (
    GeneratedRequest,
    GeneratedResponse,
    generate_request,
    generate_request_from_fixed_resource,
    generate_response,
    generate_response_from_fixed_resource,
)

__all__ = [
    # Content
    'extract_placeholders',
    'generate_content_from_file_properties',
    'generate_content_from_json',
    'generate_content_from_schema',

    # Encoding
    'create_curl_body',
    'encode_content',

    # Parameters
    'generate_query',
    'generate_request_headers',
    'generate_response_headers',
    'generate_url_from_schema_parameters',

    # Operations
    'GeneratedRequest',
    'GeneratedResponse',
    'generate_request',
    'generate_request_from_fixed_resource',
    'generate_response',
    'generate_response_from_fixed_resource',
]
