"""
specmock content encoding

Turns generated values into response bytes and cURL body snippets.
"""

import json
import xml.etree.ElementTree as ET
from typing import Any, Optional
from urllib.parse import quote_plus

import yaml

from ..errors import ContentEncodeError


FORM_CONTENT_TYPES = ('application/x-www-form-urlencoded', 'multipart/form-data', 'multipart/formdata')
XML_CONTENT_TYPES = ('application/xml', 'text/xml')
YAML_CONTENT_TYPES = ('application/x-yaml', 'application/yaml', 'text/yaml')


def _media_type(content_type: str) -> str:
    return content_type.split(';', 1)[0].strip().lower()


def _to_xml(parent: ET.Element, value: Any) -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            _to_xml(ET.SubElement(parent, str(key)), item)
    elif isinstance(value, list):
        for item in value:
            _to_xml(ET.SubElement(parent, 'item'), item)
    elif isinstance(value, bool):
        parent.text = 'true' if value else 'false'
    elif value is not None:
        parent.text = str(value)


def encode_content(content: Any, content_type: str) -> Optional[bytes]:
    """
    Encode generated content.

    Forms are encoded as JSON so they stay readable when inspected, an
    empty form gives empty bytes.

    Args:
        content: Generated value
        content_type: Target content type, empty means JSON

    Returns:
        Encoded bytes, None for no content

    Raises:
        ContentEncodeError: If the value cannot be encoded for the type
    """
    if content is None:
        return None

    media_type = _media_type(content_type)

    if media_type in ('', 'application/json') or media_type.endswith('+json'):
        return json.dumps(content).encode('utf-8')

    if media_type in FORM_CONTENT_TYPES:
        encoded = json.dumps(content)
        return b'' if encoded == '{}' else encoded.encode('utf-8')

    if media_type in XML_CONTENT_TYPES:
        root = ET.Element('root')
        _to_xml(root, content)
        return ET.tostring(root, encoding='utf-8')

    if media_type in YAML_CONTENT_TYPES:
        return yaml.safe_dump(content, indent=2, sort_keys=False).encode('utf-8')

    if isinstance(content, bytes):
        return content
    if isinstance(content, str):
        return content.encode('utf-8')
    if isinstance(content, (int, float, bool)):
        return json.dumps(content).encode('utf-8')

    raise ContentEncodeError(
        f"Cannot encode {type(content).__name__} with content type {content_type}"
    )


def create_curl_body(content: Any, content_type: str) -> str:
    """
    Body arguments of a cURL command for generated request content.

    Example:
        create_curl_body({'name': 'Jane'}, 'application/json')
        # "--data-raw '{\"name\": \"Jane\"}'"

    Raises:
        ContentEncodeError: If a form body is not a mapping
    """
    if content is None:
        return ''

    media_type = _media_type(content_type)

    if media_type == 'application/x-www-form-urlencoded':
        if not isinstance(content, dict):
            raise ContentEncodeError("Form url encoded body must be an object")
        return ' \\\n'.join(
            f"--data-urlencode '{quote_plus(str(key))}={quote_plus(str(content[key]))}'"
            for key in sorted(content)
        )

    if media_type == 'multipart/form-data':
        if not isinstance(content, dict):
            raise ContentEncodeError("Multipart form body must be an object")
        return ' \\\n'.join(
            f"--form '{quote_plus(str(key))}=\"{quote_plus(str(content[key]))}\"'"
            for key in sorted(content)
        )

    if media_type in ('', 'application/json') or media_type.endswith('+json'):
        return f"--data-raw '{json.dumps(content)}'"

    encoded = encode_content(content, content_type)
    return f"--data-raw '{encoded.decode('utf-8', 'replace') if encoded else ''}'"
