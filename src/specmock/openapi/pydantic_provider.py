"""
specmock pydantic provider

Validates documents into ``openapi_pydantic`` models. OpenAPI 3.0 and 3.1
use their own model sets; Swagger 2.0 documents are upgraded to 3.0 first.

Model fields are read by their OpenAPI name (the pydantic alias), so
``in``, ``schema``, ``not`` and ``format`` work the same as on the native
dictionaries.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from openapi_pydantic import OpenAPI as OpenAPI_31
from openapi_pydantic.v3.v3_0 import OpenAPI as OpenAPI_30
from pydantic import BaseModel, ValidationError

from ..config import ParseConfig
from ..errors import DocumentLoadError
from ..schema import Schema, SchemaBuilder
from .base import (
    HTTP_METHODS,
    Document,
    Operation,
    OperationDescription,
    SecurityComponent,
)
from .swagger2 import convert_v2_to_v3
from .v3 import V3Operation, plain


logger = logging.getLogger("specmock.openapi")

PROVIDER_PYDANTIC = 'pydantic'


_FIELD_MAPS: Dict[type, Dict[str, str]] = {}


def _field_map(model: BaseModel) -> Dict[str, str]:
    """OpenAPI key -> attribute name for a model class."""
    cls = type(model)
    mapping = _FIELD_MAPS.get(cls)
    if mapping is None:
        mapping = {info.alias or name: name for name, info in cls.model_fields.items()}
        _FIELD_MAPS[cls] = mapping
    return mapping


def get_field(node: Any, key: str) -> Any:
    """Read an OpenAPI key from a model or a plain dict."""
    if isinstance(node, dict):
        return node.get(key)
    if isinstance(node, BaseModel):
        name = _field_map(node).get(key)
        if name is not None:
            return getattr(node, name, None)
        extra = node.model_extra or {}
        return extra.get(key)
    return None


def get_ref(node: Any) -> str:
    """Reference string of a Reference model (or a 3.1 Schema with ``$ref``)."""
    if isinstance(node, BaseModel):
        ref = get_field(node, '$ref')
        if isinstance(ref, str):
            return ref
    elif isinstance(node, dict) and isinstance(node.get('$ref'), str):
        return node['$ref']
    return ''


def _to_plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_to_plain(v) for v in value]
    return value


def _stringify_keys(node: Any) -> Any:
    """YAML turns ``200:`` into an int key, pydantic wants strings."""
    if isinstance(node, dict):
        return {str(k): _stringify_keys(v) for k, v in node.items()}
    if isinstance(node, list):
        return [_stringify_keys(v) for v in node]
    return node


class PydanticSchemaBuilder(SchemaBuilder):
    """Schema builder over ``openapi_pydantic`` schema models."""

    def __init__(self, document: 'PydanticDocument', parse_config: Optional[ParseConfig] = None):
        super().__init__(parse_config)
        self.document = document

    def deref(self, node: Any) -> Tuple[Any, str]:
        if isinstance(node, Schema):
            return node, ''

        first_ref = ''
        seen = set()
        ref = get_ref(node)
        while ref:
            if not first_ref:
                first_ref = ref
            if ref in seen:
                return None, first_ref
            seen.add(ref)
            node = self.document.resolve_ref(ref)
            ref = get_ref(node)
        return node, first_ref

    def fields(self, node: Any) -> Dict[str, Any]:
        if isinstance(node, dict):
            return node
        if not isinstance(node, BaseModel):
            return {}

        result = {}
        for key, name in _field_map(node).items():
            value = getattr(node, name, None)
            if value is None or key == '$ref':
                continue
            if key in ('type', 'format'):
                value = _to_plain(value)
            result[key] = value

        additional = result.get('additionalProperties')
        if isinstance(additional, BaseModel) and not get_ref(additional) and not additional.model_fields_set:
            result['additionalProperties'] = True

        if 'example' not in result and result.get('examples'):
            examples = result['examples']
            if isinstance(examples, list) and examples:
                result['example'] = examples[0]
        return result


class PydanticOperation(V3Operation):
    """OpenAPI 3.x operation over ``openapi_pydantic`` models."""

    def __init__(self, document: 'PydanticDocument', *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.document = document

    def _get(self, node: Any, key: str) -> Any:
        return get_field(node, key)

    def _deref(self, node: Any) -> Any:
        return self.document.deref(node)

    def _schema_builder(self, parse_config: ParseConfig) -> SchemaBuilder:
        return PydanticSchemaBuilder(self.document, parse_config)


class PydanticDocument(Document):
    """
    Document validated into ``openapi_pydantic`` models.

    Example:
        document = PydanticDocument(yaml.safe_load(spec_text))
        resources = document.get_resources()

    Raises:
        DocumentLoadError: If the document does not validate
    """

    def __init__(self, data: Dict[str, Any]):
        self.original_version = str(data.get('swagger') or data.get('openapi') or '')
        if 'swagger' in data:
            data = convert_v2_to_v3(data)

        data = _stringify_keys(data)
        version = str(data.get('openapi', ''))
        model_cls = OpenAPI_30 if version.startswith('3.0') else OpenAPI_31

        try:
            self.model = model_cls.model_validate(data)
        except ValidationError as e:
            raise DocumentLoadError(f"Invalid OpenAPI document: {e.error_count()} validation errors: {e}") from e

        logger.debug(f"Validated OpenAPI {version} document with {model_cls.__module__}")
        self._refs: Dict[str, Any] = {}

    def provider(self) -> str:
        return PROVIDER_PYDANTIC

    def get_version(self) -> str:
        return self.original_version

    def resolve_ref(self, ref: str) -> Any:
        """
        Walk a local JSON pointer through the model tree.

        Returns:
            Target model, or None for external or broken references
        """
        if ref in self._refs:
            return self._refs[ref]

        if not ref.startswith('#/'):
            logger.warning(f"External reference not supported: {ref}")
            self._refs[ref] = None
            return None

        target: Any = self.model
        for part in ref[2:].split('/'):
            part = part.replace('~1', '/').replace('~0', '~')
            if isinstance(target, list) and part.isdigit() and int(part) < len(target):
                target = target[int(part)]
            else:
                target = get_field(target, part)
            if target is None:
                logger.warning(f"Unresolved reference: {ref}")
                break

        self._refs[ref] = target
        return target

    def deref(self, node: Any) -> Any:
        """Follow references of a non-schema node (parameter, response, header)."""
        seen = set()
        ref = get_ref(node)
        while ref:
            if ref in seen:
                return None
            seen.add(ref)
            node = self.resolve_ref(ref)
            ref = get_ref(node)
        return node

    def _paths(self) -> Dict[str, Any]:
        return self.model.paths or {}

    def get_resources(self) -> Dict[str, List[str]]:
        resources = {}
        for path, path_item in self._paths().items():
            resources[path] = [
                method.upper() for method in HTTP_METHODS
                if get_field(path_item, method) is not None
            ]
        return resources

    def get_security(self) -> Dict[str, SecurityComponent]:
        components = self.model.components
        schemes = get_field(components, 'securitySchemes') or {}

        result = {}
        for name, item in schemes.items():
            scheme = self.deref(item)
            if scheme is None:
                continue
            result[name] = SecurityComponent(
                type=str(plain(get_field(scheme, 'type')) or ''),
                scheme=str(get_field(scheme, 'scheme') or ''),
                in_=str(plain(get_field(scheme, 'in')) or ''),
                name=str(get_field(scheme, 'name') or ''),
            )
        return result

    def find_operation(self, description: OperationDescription) -> Optional[Operation]:
        path_item = self._paths().get(description.resource)
        if path_item is None:
            return None

        method = description.method.lower()
        operation = get_field(path_item, method)
        if operation is None:
            return None

        return PydanticOperation(
            self,
            description.resource,
            method,
            path_item,
            operation,
            security=self.get_security(),
            document_security=self.model.security,
        )
