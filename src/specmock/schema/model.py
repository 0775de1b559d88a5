"""
specmock Schema Model

Provider independent schema value object produced by the schema builder
and consumed by the content generator and the replacers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


TYPE_OBJECT = 'object'
TYPE_ARRAY = 'array'
TYPE_STRING = 'string'
TYPE_INTEGER = 'integer'
TYPE_NUMBER = 'number'
TYPE_BOOLEAN = 'boolean'

OPENAPI_TYPES = (TYPE_OBJECT, TYPE_ARRAY, TYPE_STRING, TYPE_INTEGER, TYPE_NUMBER, TYPE_BOOLEAN)

_TYPE_TYPOS = {
    'int': TYPE_INTEGER,
    'float': TYPE_NUMBER,
    'bool': TYPE_BOOLEAN,
}


def fix_schema_type_typos(typ: Optional[str]) -> Optional[str]:
    """Map common mistakes like ``int`` or ``bool`` to OpenAPI type names."""
    if not typ:
        return typ
    return _TYPE_TYPOS.get(typ, typ)


def get_openapi_type_from_value(value: Any) -> str:
    """
    OpenAPI type of a Python value.

    ``bool`` is checked before ``int`` since it is a subclass of it.

    Returns:
        Type name, or empty string for None and unknown values
    """
    if isinstance(value, bool):
        return TYPE_BOOLEAN
    if isinstance(value, int):
        return TYPE_INTEGER
    if isinstance(value, float):
        return TYPE_NUMBER
    if isinstance(value, str):
        return TYPE_STRING
    if isinstance(value, (list, tuple)):
        return TYPE_ARRAY
    if isinstance(value, dict):
        return TYPE_OBJECT
    return ''


@dataclass
class Schema:
    """
    Normalized schema node.

    ``type`` is always one of the OpenAPI primitive names after building.
    Instances are treated as immutable once built and are shared between
    requests through the operation cache.
    """

    type: str = TYPE_OBJECT
    items: Optional['Schema'] = None
    properties: Dict[str, Optional['Schema']] = field(default_factory=dict)
    required: List[str] = field(default_factory=list)

    minimum: Optional[float] = None
    maximum: Optional[float] = None
    exclusive_minimum: Optional[float] = None
    exclusive_maximum: Optional[float] = None
    multiple_of: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: str = ''
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    min_properties: Optional[int] = None
    max_properties: Optional[int] = None

    enum: List[Any] = field(default_factory=list)
    default: Any = None
    example: Any = None
    format: str = ''
    description: str = ''

    nullable: bool = False
    read_only: bool = False
    write_only: bool = False
    deprecated: bool = False

    not_: Optional['Schema'] = None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to an OpenAPI style dictionary.

        Empty values are omitted. Properties cut by the recursion guard are
        left out as well, so the result is always a finite JSON document.

        Returns:
            Dictionary with camelCase OpenAPI keys
        """
        result: Dict[str, Any] = {'type': self.type}

        if self.items is not None:
            result['items'] = self.items.to_dict()
        properties = {
            name: prop.to_dict()
            for name, prop in self.properties.items()
            if prop is not None
        }
        if properties:
            result['properties'] = properties
        if self.required:
            result['required'] = list(self.required)

        scalars = (
            ('minimum', self.minimum),
            ('maximum', self.maximum),
            ('exclusiveMinimum', self.exclusive_minimum),
            ('exclusiveMaximum', self.exclusive_maximum),
            ('multipleOf', self.multiple_of),
            ('minLength', self.min_length),
            ('maxLength', self.max_length),
            ('minItems', self.min_items),
            ('maxItems', self.max_items),
            ('minProperties', self.min_properties),
            ('maxProperties', self.max_properties),
            ('default', self.default),
            ('example', self.example),
        )
        for key, value in scalars:
            if value is not None:
                result[key] = value

        for key, value in (
            ('pattern', self.pattern),
            ('format', self.format),
            ('description', self.description),
        ):
            if value:
                result[key] = value

        if self.enum:
            result['enum'] = list(self.enum)
        if self.nullable:
            result['nullable'] = True
        if self.read_only:
            result['readOnly'] = True
        if self.write_only:
            result['writeOnly'] = True
        if self.deprecated:
            result['deprecated'] = True
        if self.not_ is not None:
            result['not'] = self.not_.to_dict()

        return result

    def to_json_schema(self, for_response: bool = False) -> Dict[str, Any]:
        """
        Convert to a JSON Schema usable by a draft 7 validator.

        ``nullable`` becomes a ``null`` type alternative and the OpenAPI only
        keywords are dropped. Required properties that never appear in the
        payload (readOnly in requests, writeOnly in responses) are relaxed.
        """
        result = self.to_dict()
        return _openapi_to_json_schema(result, 'writeOnly' if for_response else 'readOnly')


def _openapi_to_json_schema(node: Dict[str, Any], hidden: str = 'readOnly') -> Dict[str, Any]:
    node = dict(node)
    nullable = node.pop('nullable', False)
    for key in ('readOnly', 'writeOnly', 'deprecated', 'example'):
        node.pop(key, None)

    if 'required' in node:
        skipped = {
            name for name, prop in node.get('properties', {}).items()
            if prop.get(hidden)
        }
        declared = node.get('properties')
        node['required'] = [
            name for name in node['required']
            if name not in skipped and (not declared or name in declared)
        ]
        if not node['required']:
            node.pop('required')

    if nullable:
        node['type'] = [node['type'], 'null']
    if 'items' in node:
        node['items'] = _openapi_to_json_schema(node['items'], hidden)
    if 'properties' in node:
        node['properties'] = {
            name: _openapi_to_json_schema(prop, hidden)
            for name, prop in node['properties'].items()
        }
    if 'not' in node:
        node.pop('not')
    return node
