"""
specmock document loading

Reads YAML/JSON documents and hands them to the configured provider.
"""

import datetime
import logging
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from ..errors import DocumentLoadError
from .base import Document
from .native import PROVIDER_NATIVE, NativeDocument
from .pydantic_provider import PROVIDER_PYDANTIC, PydanticDocument


logger = logging.getLogger("specmock.openapi")

PROVIDERS = {
    PROVIDER_NATIVE: NativeDocument,
    PROVIDER_PYDANTIC: PydanticDocument,
}


def _normalize(node: Any) -> Any:
    """String keys and ISO dates, so the tree is plain JSON data."""
    if isinstance(node, dict):
        return {str(k): _normalize(v) for k, v in node.items()}
    if isinstance(node, list):
        return [_normalize(v) for v in node]
    if isinstance(node, (datetime.date, datetime.datetime)):
        return node.isoformat()
    return node


def parse_document_content(content: Union[bytes, str]) -> Dict[str, Any]:
    """
    Parse YAML or JSON document content.

    Raises:
        DocumentLoadError: If the content is not a YAML/JSON mapping
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise DocumentLoadError(f"Failed to parse document: {e}") from e

    if not isinstance(data, dict):
        raise DocumentLoadError("Document must be a mapping")
    if 'swagger' not in data and 'openapi' not in data:
        raise DocumentLoadError("Document has neither 'swagger' nor 'openapi' version")
    return _normalize(data)


def new_document(data: Dict[str, Any], provider: str = PROVIDER_NATIVE) -> Document:
    """
    Create a document with the given provider.

    Args:
        data: Parsed document
        provider: ``native`` or ``pydantic``

    Raises:
        DocumentLoadError: If the provider is unknown or rejects the document
    """
    document_cls = PROVIDERS.get(provider)
    if document_cls is None:
        raise DocumentLoadError(f"Unknown document provider: {provider}")
    return document_cls(data)


def new_document_from_content(content: Union[bytes, str], provider: str = PROVIDER_NATIVE) -> Document:
    return new_document(parse_document_content(content), provider)


def new_document_from_file(path: Union[str, Path], provider: str = PROVIDER_NATIVE) -> Document:
    """
    Load a document from a file.

    Example:
        document = new_document_from_file('services/openapi/petstore/index.yml')

    Raises:
        DocumentLoadError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        content = path.read_bytes()
    except OSError as e:
        raise DocumentLoadError(f"Failed to read {path}: {e}") from e

    document = new_document_from_content(content, provider)
    logger.debug(f"Loaded {document.get_version()} document {path} with {provider} provider")
    return document
