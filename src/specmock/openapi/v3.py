"""
specmock OpenAPI 3 operation

OpenAPI 3 walking shared by providers. A provider supplies how to read a
key from one of its nodes and how to follow a reference; the walk itself
(parameter merging, media types, responses, security) is the same.
"""

from abc import abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional

from .base import Operation, RawParameter, RawResponse, SecurityComponent


def plain(value: Any) -> Any:
    """Enum members to their values, everything else unchanged."""
    if isinstance(value, Enum):
        return value.value
    return value


class V3Operation(Operation):
    """Operation of an OpenAPI 3.x document."""

    def __init__(
        self,
        resource: str,
        method: str,
        path_item: Any,
        operation: Any,
        security: Optional[Dict[str, SecurityComponent]] = None,
        document_security: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(resource, method, security)
        self.path_item = path_item
        self.operation = operation
        self.document_security = document_security

    @abstractmethod
    def _get(self, node: Any, key: str) -> Any:
        """Value of an OpenAPI key of a node, None when absent."""

    @abstractmethod
    def _deref(self, node: Any) -> Any:
        """Node with references followed."""

    def id(self) -> str:
        return self._get(self.operation, 'operationId') or ''

    def _raw_parameters(self) -> List[RawParameter]:
        merged: Dict[tuple, RawParameter] = {}
        declared = [
            *(self._get(self.path_item, 'parameters') or []),
            *(self._get(self.operation, 'parameters') or []),
        ]
        for item in declared:
            param = self._deref(item)
            if param is None:
                continue

            location = str(plain(self._get(param, 'in')) or 'query')
            schema = self._get(param, 'schema')
            if schema is None:
                for media in (self._get(param, 'content') or {}).values():
                    schema = self._get(media, 'schema')
                    break

            raw = RawParameter(
                name=self._get(param, 'name') or '',
                in_=location,
                required=bool(self._get(param, 'required')) or location == 'path',
                schema=schema,
                example=self._get(param, 'example'),
            )
            merged[(raw.name, raw.in_)] = raw
        return list(merged.values())

    def _raw_request_body(self) -> Dict[str, Any]:
        body = self._deref(self._get(self.operation, 'requestBody'))
        if body is None:
            return {}
        return {
            str(content_type): self._get(media, 'schema')
            for content_type, media in (self._get(body, 'content') or {}).items()
        }

    def _raw_responses(self) -> Dict[str, RawResponse]:
        responses = {}
        for code, item in (self._get(self.operation, 'responses') or {}).items():
            response = self._deref(item)
            if response is None:
                continue

            headers = {}
            for name, header_item in (self._get(response, 'headers') or {}).items():
                header = self._deref(header_item)
                if header is None:
                    continue
                headers[str(name)] = RawParameter(
                    name=str(name),
                    in_='header',
                    required=bool(self._get(header, 'required')),
                    schema=self._get(header, 'schema'),
                    example=self._get(header, 'example'),
                )

            content = {
                str(content_type): self._get(media, 'schema')
                for content_type, media in (self._get(response, 'content') or {}).items()
            }
            responses[str(code)] = RawResponse(headers=headers, content=content)
        return responses

    def _security_requirements(self) -> Optional[List[Dict[str, Any]]]:
        security = self._get(self.operation, 'security')
        if security is not None:
            return security
        return self.document_security
