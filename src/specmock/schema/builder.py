"""
specmock Schema Builder

Turns provider specific schema nodes into normalized ``Schema`` objects.

The merge and recursion rules live here once; document providers subclass
``SchemaBuilder`` and only teach it how to follow a ``$ref`` and how to read
the fields of one of their nodes. Both providers therefore produce exactly
the same ``Schema`` for the same document.

Recursion is bounded by two paths threaded through the walk:
- ``ref_path``: references visited on the way to the node. When any of them
  repeats more than ``max_recursion_levels`` times the subtree is cut.
- ``name_path``: property names from the root. Deeper than ``max_levels``
  (when set) the subtree is cut.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from ..common import append_first_non_empty, deduplicate, max_repetition
from ..config import ParseConfig
from .model import (
    Schema,
    TYPE_ARRAY,
    TYPE_OBJECT,
    TYPE_STRING,
    fix_schema_type_typos,
    get_openapi_type_from_value,
)


ADDITIONAL_PROPERTIES_PREFIX = 'extra-'
ADDITIONAL_PROPERTIES_COUNT = 3

# Keys copied from allOf branches when the merged schema does not set them.
_MERGEABLE_SCALARS = (
    'format', 'enum', 'pattern', 'minimum', 'maximum', 'exclusiveMinimum',
    'exclusiveMaximum', 'multipleOf', 'minLength', 'maxLength', 'minItems',
    'maxItems', 'minProperties', 'maxProperties', 'default', 'example',
    'nullable', 'readOnly', 'writeOnly', 'deprecated', 'description',
    'additionalProperties',
)


class SchemaBuilder(ABC):
    """
    Base class for provider schema builders.

    Subclasses implement:
        deref(node): follow ``$ref`` chains, returning ``(resolved, ref)``
            where ``ref`` is the first reference string met (or ``''``).
        fields(node): OpenAPI keyed dict of a resolved node. Child schemas
            (``items``, ``properties`` values, ``allOf`` entries, ``not``,
            schema valued ``additionalProperties``) are left as raw
            provider nodes.

    Example:
        builder = NativeSchemaBuilder(document, ParseConfig(max_levels=5))
        schema = builder.build(raw_node)
    """

    def __init__(self, parse_config: Optional[ParseConfig] = None):
        self.parse_config = parse_config or ParseConfig()

    @abstractmethod
    def deref(self, node: Any) -> Tuple[Any, str]:
        """Resolve references of a raw node."""

    @abstractmethod
    def fields(self, node: Any) -> Dict[str, Any]:
        """Read the fields of a resolved node."""

    def build(
        self,
        node: Any,
        ref_path: Optional[List[str]] = None,
        name_path: Optional[List[str]] = None,
    ) -> Optional[Schema]:
        """
        Normalize a raw schema node.

        Args:
            node: Provider schema node, possibly a reference
            ref_path: References visited on the way to this node
            name_path: Property names from the root to this node

        Returns:
            Normalized Schema, or None when the node is missing or was cut
            by one of the recursion limits
        """
        if node is None:
            return None
        if isinstance(node, Schema):
            return node

        ref_path = list(ref_path or [])
        name_path = list(name_path or [])
        config = self.parse_config

        if config.max_levels > 0 and len(name_path) > config.max_levels:
            return None

        if max_repetition(ref_path) > config.max_recursion_levels:
            return None

        resolved, _ = self.deref(node)
        if resolved is None:
            return None

        merged, merged_ref = self.merge_sub_schemas(self.fields(resolved))
        typ = fix_schema_type_typos(merged.get('type')) or TYPE_OBJECT

        items = None
        raw_items = merged.get('items')
        if raw_items is not None:
            _, items_ref = self.deref(raw_items)
            if not (config.max_recursion_levels == 0 and items_ref and items_ref in ref_path):
                items = self.build(
                    raw_items,
                    append_first_non_empty(ref_path, items_ref, merged_ref),
                    name_path,
                )
        elif typ == TYPE_ARRAY:
            items = Schema(type=TYPE_STRING)

        required = list(merged.get('required') or [])
        properties: Dict[str, Optional[Schema]] = {}
        for prop_name, raw_prop in (merged.get('properties') or {}).items():
            if config.only_required and prop_name not in required:
                continue
            _, prop_ref = self.deref(raw_prop)
            properties[prop_name] = self.build(
                raw_prop,
                append_first_non_empty(ref_path, prop_ref, merged_ref),
                [*name_path, prop_name],
            )

        additional = self._additional_properties(merged.get('additionalProperties'))
        if additional is not None:
            count = merged.get('minProperties') or ADDITIONAL_PROPERTIES_COUNT
            for i in range(int(count)):
                prop_name = f"{ADDITIONAL_PROPERTIES_PREFIX}{i + 1}"
                prop_schema = self.build(
                    additional,
                    [*ref_path, 'additionalProperties'],
                    [*name_path, prop_name],
                )
                if prop_schema is not None:
                    properties[prop_name] = prop_schema

        not_schema = None
        if merged.get('not') is not None:
            not_schema = self.build(merged['not'], ref_path, name_path)
            if not_schema is not None:
                not_schema.type = TYPE_OBJECT

        return Schema(
            type=typ,
            items=items,
            properties=properties,
            required=required,
            minimum=merged.get('minimum'),
            maximum=merged.get('maximum'),
            exclusive_minimum=merged.get('exclusiveMinimum'),
            exclusive_maximum=merged.get('exclusiveMaximum'),
            multiple_of=merged.get('multipleOf'),
            min_length=merged.get('minLength'),
            max_length=merged.get('maxLength'),
            pattern=merged.get('pattern') or '',
            min_items=merged.get('minItems'),
            max_items=merged.get('maxItems'),
            min_properties=merged.get('minProperties'),
            max_properties=merged.get('maxProperties'),
            enum=list(merged.get('enum') or []),
            default=merged.get('default'),
            example=merged.get('example'),
            format=merged.get('format') or '',
            description=merged.get('description') or '',
            nullable=bool(merged.get('nullable')),
            read_only=bool(merged.get('readOnly')),
            write_only=bool(merged.get('writeOnly')),
            deprecated=bool(merged.get('deprecated')),
            not_=not_schema,
        )

    def merge_sub_schemas(
        self,
        fields: Dict[str, Any],
        visited: Tuple[str, ...] = (),
    ) -> Tuple[Dict[str, Any], str]:
        """
        Flatten ``allOf``/``anyOf``/``oneOf``/``not`` into one field dict.

        ``allOf`` branches are merged with last-write-wins on properties and a
        union of required names. ``anyOf`` and ``oneOf`` contribute one branch
        each, preferring a branch that is a reference.

        Args:
            fields: Fields of the resolved node
            visited: References already merged, to stop self including allOf

        Returns:
            Tuple of merged fields and the first reference among the branches
        """
        fields = self._normalize_fields(fields)
        all_of = list(fields.get('allOf') or [])
        any_of = fields.get('anyOf') or []
        one_of = fields.get('oneOf') or []
        not_node = fields.get('not')

        if not all_of and not any_of and not one_of and not_node is None:
            if not fields.get('type'):
                typ = TYPE_OBJECT
                enum = fields.get('enum') or []
                if enum:
                    typ = get_openapi_type_from_value(enum[0]) or TYPE_OBJECT
                fields = {**fields, 'type': typ}
            return fields, ''

        result = {k: v for k, v in fields.items() if k not in ('allOf', 'anyOf', 'oneOf', 'not')}
        properties = dict(fields.get('properties') or {})
        required = list(fields.get('required') or [])

        implied_type = fields.get('type') or (TYPE_OBJECT if all_of else '')

        for picked in (self._pick(any_of), self._pick(one_of)):
            if picked is not None:
                all_of.append(picked)

        sub_ref = ''
        nested: List[Any] = []
        for raw in all_of:
            if raw is None:
                continue
            sub, ref = self.deref(raw)
            if sub is None or (ref and ref in visited):
                continue
            if ref:
                visited = (*visited, ref)
                if not sub_ref:
                    sub_ref = ref

            sub_fields = self._normalize_fields(self.fields(sub))
            sub_type = fix_schema_type_typos(sub_fields.get('type'))

            if not implied_type:
                if sub_type:
                    implied_type = sub_type
                elif self._items_have_properties(sub_fields.get('items')):
                    implied_type = TYPE_ARRAY
                else:
                    implied_type = TYPE_OBJECT

            if implied_type == TYPE_OBJECT:
                for prop_name, prop in (sub_fields.get('properties') or {}).items():
                    if not sub_ref:
                        _, sub_ref = self.deref(prop)
                    properties[prop_name] = prop

            if implied_type == TYPE_ARRAY and sub_fields.get('items') is not None:
                if not sub_ref:
                    _, sub_ref = self.deref(sub_fields['items'])
                result['items'] = sub_fields['items']

            for key in _MERGEABLE_SCALARS:
                if result.get(key) is None and sub_fields.get(key) is not None:
                    result[key] = sub_fields[key]

            nested.extend(sub_fields.get('allOf') or [])
            for picked in (self._pick(sub_fields.get('anyOf') or []), self._pick(sub_fields.get('oneOf') or [])):
                if picked is not None:
                    nested.append(picked)
            if sub_fields.get('not') is not None and not_node is None:
                not_node = sub_fields['not']

            required.extend(sub_fields.get('required') or [])

        result['type'] = implied_type or TYPE_OBJECT
        result['properties'] = properties
        result['required'] = deduplicate(required)
        if not_node is not None:
            result['not'] = not_node

        if nested:
            result['allOf'] = nested
            merged, nested_ref = self.merge_sub_schemas(result, visited)
            return merged, sub_ref or nested_ref

        return result, sub_ref

    def _pick(self, branches: List[Any]) -> Any:
        """First branch that is a reference, else the first non-empty one."""
        first = None
        for branch in branches:
            if branch is None:
                continue
            _, ref = self.deref(branch)
            if ref:
                return branch
            if first is None:
                first = branch
        return first

    def _items_have_properties(self, items: Any) -> bool:
        if items is None:
            return False
        resolved, _ = self.deref(items)
        if resolved is None:
            return False
        return bool(self.fields(resolved).get('properties'))

    def _additional_properties(self, value: Any) -> Any:
        if value is None or value is False:
            return None
        if value is True:
            return Schema(type=TYPE_STRING)
        if isinstance(value, dict) and not value:
            return Schema(type=TYPE_STRING)
        return value

    @staticmethod
    def _normalize_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Smooth out differences between OpenAPI versions.

        ``type: [string, "null"]`` becomes ``string`` with ``nullable``, and
        the 3.0 boolean ``exclusiveMinimum``/``exclusiveMaximum`` flags become
        the numeric bounds used by 3.1.
        """
        typ = fields.get('type')
        if isinstance(typ, (list, tuple)):
            types = [t for t in typ if t and t != 'null']
            fields = {**fields, 'type': types[0] if types else None}
            if 'null' in typ:
                fields['nullable'] = True

        for exclusive, bound in (('exclusiveMinimum', 'minimum'), ('exclusiveMaximum', 'maximum')):
            flag = fields.get(exclusive)
            if isinstance(flag, bool):
                fields = dict(fields)
                fields[exclusive] = fields.pop(bound, None) if flag else None
        return fields
