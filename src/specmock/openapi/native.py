"""
specmock native provider

Reads Swagger 2.0 and OpenAPI 3.x documents straight from the parsed
YAML/JSON dictionaries and resolves local ``$ref`` JSON pointers itself.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..config import ParseConfig
from ..schema import Schema, SchemaBuilder
from . import swagger2
from .base import (
    HTTP_METHODS,
    Document,
    Operation,
    OperationDescription,
    RawParameter,
    RawResponse,
    SecurityComponent,
)
from .v3 import V3Operation


logger = logging.getLogger("specmock.openapi")

PROVIDER_NATIVE = 'native'


def _unescape(part: str) -> str:
    return part.replace('~1', '/').replace('~0', '~')


class NativeSchemaBuilder(SchemaBuilder):
    """Schema builder over plain dictionaries."""

    def __init__(self, document: 'NativeDocument', parse_config: Optional[ParseConfig] = None):
        super().__init__(parse_config)
        self.document = document

    def deref(self, node: Any) -> Tuple[Any, str]:
        if isinstance(node, Schema):
            return node, ''

        first_ref = ''
        seen = set()
        while isinstance(node, dict) and isinstance(node.get('$ref'), str):
            ref = node['$ref']
            if not first_ref:
                first_ref = ref
            if ref in seen:
                return None, first_ref
            seen.add(ref)
            node = self.document.resolve_ref(ref)
        return node, first_ref

    def fields(self, node: Any) -> Dict[str, Any]:
        if isinstance(node, dict):
            return node
        return {}


class NativeV3Operation(V3Operation):
    """OpenAPI 3.x operation over dictionaries."""

    def __init__(self, document: 'NativeDocument', *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.document = document

    def _get(self, node: Any, key: str) -> Any:
        if isinstance(node, dict):
            return node.get(key)
        return None

    def _deref(self, node: Any) -> Any:
        return self.document.deref(node)

    def _schema_builder(self, parse_config: ParseConfig) -> SchemaBuilder:
        return NativeSchemaBuilder(self.document, parse_config)


class NativeV2Operation(Operation):
    """Swagger 2.0 operation over dictionaries."""

    def __init__(
        self,
        document: 'NativeDocument',
        resource: str,
        method: str,
        path_item: Dict[str, Any],
        operation: Dict[str, Any],
        security: Optional[Dict[str, SecurityComponent]] = None,
    ):
        super().__init__(resource, method, security)
        self.document = document
        self.path_item = path_item
        self.operation = operation

    def id(self) -> str:
        return self.operation.get('operationId') or ''

    def _schema_builder(self, parse_config: ParseConfig) -> SchemaBuilder:
        return NativeSchemaBuilder(self.document, parse_config)

    def _all_parameters(self) -> List[Dict[str, Any]]:
        resolve = self.document.deref
        path_params = [resolve(p) for p in self.path_item.get('parameters') or []]
        op_params = [resolve(p) for p in self.operation.get('parameters') or []]
        return swagger2.merge_parameters(
            [p for p in path_params if isinstance(p, dict)],
            [p for p in op_params if isinstance(p, dict)],
        )

    def _raw_parameters(self) -> List[RawParameter]:
        regular, _, _ = swagger2.split_parameters(self._all_parameters())
        return [
            RawParameter(
                name=param.get('name', ''),
                in_=param.get('in', 'query'),
                required=bool(param.get('required', param.get('in') == 'path')),
                schema=swagger2.parameter_schema(param),
                example=param.get('x-example'),
            )
            for param in regular
        ]

    def _raw_request_body(self) -> Dict[str, Any]:
        _, body, form = swagger2.split_parameters(self._all_parameters())
        data = self.document.data
        if body is not None:
            return {
                content_type: body.get('schema') or {}
                for content_type in swagger2.consumes(data, self.operation)
            }
        if form:
            schema = swagger2.form_schema(form)
            return {
                content_type: schema
                for content_type in swagger2.form_content_types(data, self.operation)
            }
        return {}

    def _raw_responses(self) -> Dict[str, RawResponse]:
        data = self.document.data
        responses = {}
        for code, item in (self.operation.get('responses') or {}).items():
            response = self.document.deref(item)
            if not isinstance(response, dict):
                continue

            headers = {
                str(name): RawParameter(
                    name=str(name),
                    in_='header',
                    schema=swagger2.parameter_schema(header),
                    example=header.get('x-example'),
                )
                for name, header in (response.get('headers') or {}).items()
                if isinstance(header, dict)
            }

            content = {}
            if response.get('schema') is not None:
                content = {
                    content_type: response['schema']
                    for content_type in swagger2.produces(data, self.operation)
                }
            responses[str(code)] = RawResponse(headers=headers, content=content)
        return responses

    def _security_requirements(self) -> Optional[List[Dict[str, Any]]]:
        if 'security' in self.operation:
            return self.operation['security']
        return self.document.data.get('security')


class NativeDocument(Document):
    """
    Document backed by the parsed dictionary.

    Example:
        document = NativeDocument(yaml.safe_load(spec_text))
        operation = document.find_operation(
            OperationDescription(service='petstore', resource='/pets/{id}', method='GET')
        )
        response = operation.get_response()
    """

    def __init__(self, data: Dict[str, Any]):
        self.data = data
        self.is_v2 = 'swagger' in data
        self._refs: Dict[str, Any] = {}

    def provider(self) -> str:
        return PROVIDER_NATIVE

    def get_version(self) -> str:
        return str(self.data.get('swagger') or self.data.get('openapi') or '')

    def resolve_ref(self, ref: str) -> Any:
        """
        Resolve a local JSON pointer like ``#/components/schemas/Pet``.

        Returns:
            Target node, or None for external or broken references
        """
        if ref in self._refs:
            return self._refs[ref]

        if not ref.startswith('#/'):
            logger.warning(f"External reference not supported: {ref}")
            self._refs[ref] = None
            return None

        target: Any = self.data
        for part in ref[2:].split('/'):
            part = _unescape(part)
            if isinstance(target, dict) and part in target:
                target = target[part]
            elif isinstance(target, list) and part.isdigit() and int(part) < len(target):
                target = target[int(part)]
            else:
                logger.warning(f"Unresolved reference: {ref}")
                target = None
                break

        self._refs[ref] = target
        return target

    def deref(self, node: Any) -> Any:
        """Follow references of a non-schema node (parameter, response, header)."""
        seen = set()
        while isinstance(node, dict) and isinstance(node.get('$ref'), str):
            ref = node['$ref']
            if ref in seen:
                return None
            seen.add(ref)
            node = self.resolve_ref(ref)
        return node

    def get_resources(self) -> Dict[str, List[str]]:
        resources = {}
        for path, path_item in (self.data.get('paths') or {}).items():
            if not isinstance(path_item, dict):
                continue
            resources[str(path)] = [
                method.upper() for method in path_item
                if method in HTTP_METHODS and isinstance(path_item[method], dict)
            ]
        return resources

    def get_security(self) -> Dict[str, SecurityComponent]:
        if self.is_v2:
            schemes = {}
            for name, definition in (self.data.get('securityDefinitions') or {}).items():
                converted = swagger2.convert_security_definition(definition or {})
                if converted is not None:
                    schemes[name] = converted
        else:
            schemes = ((self.data.get('components') or {}).get('securitySchemes')) or {}

        result = {}
        for name, scheme in schemes.items():
            scheme = self.deref(scheme)
            if not isinstance(scheme, dict):
                continue
            result[name] = SecurityComponent(
                type=scheme.get('type', ''),
                scheme=scheme.get('scheme', ''),
                in_=scheme.get('in', ''),
                name=scheme.get('name', ''),
            )
        return result

    def find_operation(self, description: OperationDescription) -> Optional[Operation]:
        path_item = (self.data.get('paths') or {}).get(description.resource)
        if not isinstance(path_item, dict):
            return None

        method = description.method.lower()
        operation = path_item.get(method)
        if not isinstance(operation, dict):
            return None

        if self.is_v2:
            return NativeV2Operation(
                self, description.resource, method, path_item, operation, self.get_security()
            )
        return NativeV3Operation(
            self,
            description.resource,
            method,
            path_item,
            operation,
            security=self.get_security(),
            document_security=self.data.get('security'),
        )
