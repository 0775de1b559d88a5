"""
specmock service files

Maps files under the services directory to the service, method and
resource they serve.

Layout:
    services/openapi/petstore.yml           -> service petstore, all operations
    services/openapi/shop/v1/spec.yml       -> service shop, prefix /shop/v1
    services/petstore/pets.json             -> GET /petstore/pets.json
    services/petstore/post/pets.json        -> POST /petstore/pets.json
    services/petstore/pets/index.json       -> GET /petstore/pets
    services/root/get/health.json           -> GET /health.json
"""

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..config import Paths
from ..openapi import PROVIDER_NATIVE, Document, new_document_from_file
from ..openapi.base import HTTP_METHODS


OPENAPI_EXTENSIONS = ('.yml', '.yaml', '.json')

_EXTRA_CONTENT_TYPES = {
    '.json': 'application/json',
    '.yml': 'application/x-yaml',
    '.yaml': 'application/x-yaml',
    '.xml': 'application/xml',
    '.txt': 'text/plain',
    '.html': 'text/html',
}


def content_type_from_extension(extension: str) -> str:
    """Content type of a file extension, ``application/octet-stream`` when unknown."""
    extension = extension.lower()
    if extension in _EXTRA_CONTENT_TYPES:
        return _EXTRA_CONTENT_TYPES[extension]
    guessed, _ = mimetypes.guess_type(f"file{extension}")
    return guessed or 'application/octet-stream'


def is_http_verb(value: str) -> bool:
    return value.lower() in HTTP_METHODS


@dataclass
class FileProperties:
    """
    What a service file serves.

    Attributes:
        service_name: Owning service
        is_openapi: File is an API document, not a fixed response
        method: HTTP method of a fixed response
        prefix: URL prefix of the service routes
        resource: Resource path of a fixed response
        file_path: Absolute file path
        file_name: File name with extension
        extension: Lower-cased extension
        content_type: Content type of a fixed response
        spec: Parsed document of an API file
    """

    service_name: str
    file_path: Path
    file_name: str
    extension: str
    is_openapi: bool = False
    method: str = 'GET'
    prefix: str = ''
    resource: str = '/'
    content_type: str = ''
    spec: Optional[Document] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'service': self.service_name,
            'is_openapi': self.is_openapi,
            'method': self.method,
            'prefix': self.prefix,
            'resource': self.resource,
            'file': self.file_name,
            'content_type': self.content_type,
        }


def _openapi_properties(file_path: Path, parts: List[str], provider: str) -> FileProperties:
    if len(parts) == 1:
        service_name = file_path.stem
        prefix = f"/{service_name}"
    else:
        service_name = parts[0]
        prefix = '/' + '/'.join(parts[:-1])

    return FileProperties(
        service_name=service_name,
        file_path=file_path,
        file_name=file_path.name,
        extension=file_path.suffix.lower(),
        is_openapi=True,
        method='',
        prefix=prefix,
        resource='',
        spec=new_document_from_file(file_path, provider),
    )


def _fixed_properties(file_path: Path, parts: List[str], paths: Paths) -> FileProperties:
    method = 'GET'

    if len(parts) == 1 or parts[0] == paths.services_fixed_root:
        service_name = paths.services_fixed_root
        rest = parts[1:] if len(parts) > 1 else parts
        prefix = ''
    else:
        service_name = parts[0]
        rest = parts[1:]
        prefix = f"/{service_name}"

    if len(rest) > 1 and is_http_verb(rest[0]):
        method = rest[0].upper()
        rest = rest[1:]

    if file_path.name.startswith('index.'):
        rest = rest[:-1]

    return FileProperties(
        service_name=service_name,
        file_path=file_path,
        file_name=file_path.name,
        extension=file_path.suffix.lower(),
        method=method,
        prefix=prefix,
        resource='/' + '/'.join(rest),
        content_type=content_type_from_extension(file_path.suffix),
    )


def get_properties_from_file_path(
    file_path: Union[str, Path],
    paths: Paths,
    provider: str = PROVIDER_NATIVE,
) -> FileProperties:
    """
    Properties of a file under the services directory.

    Args:
        file_path: File to inspect
        paths: Filesystem layout
        provider: Document provider for API files

    Returns:
        FileProperties, with ``spec`` loaded for API files

    Raises:
        ValueError: If the file is outside the services directory
        DocumentLoadError: If an API file cannot be parsed
    """
    file_path = Path(file_path)

    try:
        parts = list(file_path.relative_to(paths.services_openapi).parts)
    except ValueError:
        parts = []
    if parts:
        return _openapi_properties(file_path, parts, provider)

    parts = list(file_path.relative_to(paths.services).parts)
    return _fixed_properties(file_path, parts, paths)
