"""
specmock replacers

Each replacer looks at one source of values (contexts, the schema format,
the primitive type, the schema example or default) and returns a value or
None to let the next one try. The chain itself lives in ``factory``.
"""

import base64
import binascii
import datetime
import logging
import math
import random
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from faker import Faker

from ..common import compile_key_pattern, maybe_regex_pattern, random_choice, to_snake_case
from ..contexts import ContextFunction, get_faker
from ..schema import (
    TYPE_ARRAY,
    TYPE_BOOLEAN,
    TYPE_INTEGER,
    TYPE_NUMBER,
    TYPE_OBJECT,
    TYPE_STRING,
    Schema,
)
from .state import ReplaceState


logger = logging.getLogger("specmock.replacer")

# Returned by a context to force an explicit "no value".
NULL_VALUE = '__null__'

DATE_FORMAT = '%Y-%m-%d'
DATE_TIME_FORMAT = '%Y-%m-%dT%H:%M:%S.000Z'

INT32_MAX = 2 ** 31 - 1
INT64_MAX = 2 ** 63 - 1

_INTEGER_FORMATS = ('int32', 'int64', 'uint8', 'uint16', 'uint32', 'uint64')
_FORMAT_MAX = {
    'int32': INT32_MAX,
    'int64': INT64_MAX,
    'uint8': 2 ** 8 - 1,
    'uint16': 2 ** 16 - 1,
    'uint32': 2 ** 32 - 1,
    'uint64': INT64_MAX,
}
_FIXED_LENGTH_FORMATS = ('date', 'date-time', 'datetime', 'uuid')


@dataclass
class ReplaceContext:
    """
    Everything a replacer may look at.

    Attributes:
        schema: Schema of the value, None when replacing free content
        state: Position of the value in the payload
        area_prefix: Prefix of the header/path context sections, e.g. ``in-``
            selects ``in-header`` and ``in-path``
        data: Context maps, highest priority first
        faker: Faker instance for canned values
        functions: Top level context generators by key
    """

    schema: Optional[Schema]
    state: ReplaceState
    area_prefix: str = 'in-'
    data: List[Dict[str, Any]] = field(default_factory=list)
    faker: Faker = field(default_factory=get_faker)
    functions: Dict[str, ContextFunction] = field(default_factory=dict)

    def string_expression(self) -> str:
        """Value of the ``expression`` context generator, or a random word."""
        fn = self.functions.get('expression')
        if fn is not None:
            value = fn()
            if isinstance(value, str) and value:
                return value
        return self.faker.word()


Replacer = Callable[[ReplaceContext], Any]


# Type checks

def _is_integer_value(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def _is_number_value(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_correctly_replaced_type(value: Any, needed_type: str) -> bool:
    """
    Whether a value has the runtime type of an OpenAPI type.

    ``bool`` is never accepted as a number.
    """
    if needed_type in ('', TYPE_STRING):
        return isinstance(value, str)
    if needed_type == TYPE_INTEGER:
        return _is_integer_value(value)
    if needed_type == TYPE_NUMBER:
        return _is_number_value(value)
    if needed_type == TYPE_BOOLEAN:
        return isinstance(value, bool)
    if needed_type == TYPE_OBJECT:
        return isinstance(value, dict)
    if needed_type == TYPE_ARRAY:
        return isinstance(value, (list, tuple))
    return needed_type == 'any'


def _expected_uuid_length(schema: Schema) -> int:
    if schema.min_length is not None and schema.max_length is not None \
            and schema.min_length == schema.max_length:
        return schema.min_length
    if schema.max_length is not None:
        return schema.max_length
    if schema.min_length is not None:
        return schema.min_length
    return 0


def _parse_int_string(value: Any, limit: int) -> bool:
    if not isinstance(value, str):
        return False
    try:
        return abs(int(value, 10)) <= limit
    except ValueError:
        return False


def _is_date(value: str, fmt: str) -> bool:
    try:
        datetime.datetime.strptime(value, fmt)
        return True
    except ValueError:
        return False


def _is_date_time(value: str) -> bool:
    try:
        datetime.datetime.fromisoformat(value.replace('Z', '+00:00'))
        return True
    except ValueError:
        return _is_date(value, DATE_TIME_FORMAT)


def has_correct_schema_value(schema: Optional[Schema], value: Any) -> bool:
    """
    Whether a candidate value fits the schema type and format.

    Args:
        schema: Target schema, anything goes when None
        value: Candidate value

    Returns:
        True if the value can be used
    """
    if schema is None:
        return True
    if not is_correctly_replaced_type(value, schema.type):
        return False

    fmt = schema.format
    if fmt in ('int32', 'int64'):
        limit = _FORMAT_MAX[fmt]
        if schema.type == TYPE_STRING:
            return _parse_int_string(value, limit)
        return _is_integer_value(value) and abs(int(value)) <= limit
    if fmt == 'date':
        if not isinstance(value, str):
            return _is_integer_value(value)
        return _is_date(value, DATE_FORMAT)
    if fmt in ('date-time', 'datetime'):
        if not isinstance(value, str):
            return _is_integer_value(value)
        return _is_date_time(value)
    if fmt == 'email':
        return isinstance(value, str) and '@' in value
    if fmt == 'uuid':
        if not isinstance(value, str):
            return False
        expected = _expected_uuid_length(schema)
        if expected not in (0, 32, 36):
            return len(value) == expected and all(c in '0123456789abcdefABCDEF' for c in value)
        try:
            uuid.UUID(value)
            return True
        except ValueError:
            return False
    return True


# Context lookups

def replace_value_with_context(path: List[str], context_data: Any) -> Any:
    """
    Resolve a snake_cased name path against one context value.

    Maps are searched by the last path element first, then by the first
    element to descend into a section, then by regex keys matched against
    the field name. Lists give a random element and generators are called.

    Returns:
        Context value, or None when nothing matches
    """
    if isinstance(context_data, dict):
        return _replace_value_with_map_context(path, context_data)
    if callable(context_data):
        return context_data()
    if isinstance(context_data, (list, tuple)):
        value = random_choice(context_data)
        return value() if callable(value) else value
    if isinstance(context_data, (str, int, float, bool)):
        return context_data
    return None


def _lookup_key(data: Dict[str, Any], name: str) -> Tuple[bool, Any]:
    if name in data:
        return True, data[name]
    for key, value in data.items():
        if to_snake_case(str(key)) == name:
            return True, value
    return False, None


def _replace_value_with_map_context(path: List[str], data: Dict[str, Any]) -> Any:
    if not path:
        return None

    field_name = path[-1]
    found, value = _lookup_key(data, field_name)
    if found:
        return replace_value_with_context(path[1:], value)

    if len(path) > 1:
        found, value = _lookup_key(data, path[0])
        if found:
            return replace_value_with_context(path[1:], value)

    for key, value in data.items():
        key = str(key)
        if not maybe_regex_pattern(key):
            continue
        pattern = compile_key_pattern(key)
        if pattern is not None and pattern.match(field_name):
            return replace_value_with_context(path[1:], value)

    return None


def _cast_to_schema_format(schema: Optional[Schema], value: Any) -> Any:
    if schema is None:
        return value
    if schema.format == 'uuid':
        return None
    if schema.format in _INTEGER_FORMATS and schema.type in (TYPE_INTEGER, TYPE_NUMBER):
        try:
            return int(value)
        except (TypeError, ValueError):
            return value
    return value


def _replace_in_area(ctx: ReplaceContext, area: str) -> Any:
    if not ctx.area_prefix or not ctx.state.name_path:
        return None

    path = [to_snake_case(ctx.state.name_path[0])]
    section = f"{ctx.area_prefix}{area}"
    for data in ctx.data:
        replacements = data.get(section)
        if replacements is None:
            continue
        value = replace_value_with_context(path, replacements)
        if value is not None:
            return value
    return None


# Replacers, in chain order

def replace_in_headers(ctx: ReplaceContext) -> Any:
    """Header values from the ``<prefix>header`` context section."""
    if not ctx.state.is_header:
        return None

    value = _replace_in_area(ctx, 'header')
    if ctx.schema is None or not ctx.state.name_path:
        return value

    if ctx.state.name_path[0].lower() == 'authorization':
        fmt = ctx.schema.format
        if fmt == 'basic':
            if value is None:
                value = f"{ctx.faker.user_name()}:{ctx.faker.password()}"
            return 'Basic ' + base64.b64encode(str(value).encode()).decode()
        if fmt == 'bearer':
            if value is None:
                value = ctx.faker.password()
            return f"Bearer {value}"

    return value


def replace_in_path(ctx: ReplaceContext) -> Any:
    """Path parameter values from the ``<prefix>path`` context section."""
    if not ctx.state.is_path_param:
        return None
    return _replace_in_area(ctx, 'path')


def replace_from_context(ctx: ReplaceContext) -> Any:
    """Value of the first context map that knows the current name path."""
    path = [to_snake_case(name) for name in ctx.state.name_path]
    if not path:
        return None

    for data in ctx.data:
        value = replace_value_with_context(path, data)
        if value is None:
            continue
        value = _cast_to_schema_format(ctx.schema, value)
        if value == '':
            return None
        return value

    return None


def _non_zero_int(limit: int) -> int:
    return random.randint(1, limit)


def replace_from_schema_format(ctx: ReplaceContext) -> Any:
    """Canned value for well known formats."""
    schema = ctx.schema
    if schema is None:
        return None

    faker = ctx.faker
    fmt = schema.format

    if fmt in ('byte', 'binary'):
        return base64.b64encode(ctx.string_expression().encode()).decode()
    if fmt == 'date':
        return faker.date_object().strftime(DATE_FORMAT)
    if fmt in ('date-time', 'datetime'):
        return faker.date_time().strftime(DATE_TIME_FORMAT)
    if fmt == 'email':
        return faker.email()
    if fmt == 'uuid':
        expected = _expected_uuid_length(schema)
        if expected in (0, 36):
            return str(uuid.uuid4())
        if expected == 32:
            return uuid.uuid4().hex
        return ''.join(random.choice('0123456789abcdef') for _ in range(expected))
    if fmt == 'password':
        return faker.password()
    if fmt == 'hostname':
        return faker.domain_name()
    if fmt in ('uri', 'url'):
        return faker.url()
    if fmt in _INTEGER_FORMATS:
        value = _non_zero_int(_FORMAT_MAX[fmt])
        return str(value) if schema.type == TYPE_STRING else value
    if fmt == 'ipv4':
        return faker.ipv4()
    if fmt == 'ipv6':
        return faker.ipv6()
    return None


def replace_from_schema_primitive(ctx: ReplaceContext) -> Any:
    """Random enum member, or a random value of the primitive type."""
    schema = ctx.schema
    if schema is None:
        return None

    enum = [value for value in schema.enum if value is not None and value != 'null']
    if enum:
        return random.choice(enum)

    if schema.type == TYPE_STRING:
        return ctx.string_expression()
    if schema.type in (TYPE_INTEGER, TYPE_NUMBER):
        return _non_zero_int(_FORMAT_MAX.get(schema.format, INT32_MAX))
    if schema.type == TYPE_BOOLEAN:
        return random.choice([True, False])
    return None


def replace_from_schema_example(ctx: ReplaceContext) -> Any:
    """Example declared in the schema."""
    if ctx.schema is None:
        return None
    return ctx.schema.example


def replace_from_schema_fallback(ctx: ReplaceContext) -> Any:
    """Default declared in the schema."""
    if ctx.schema is None:
        return None
    return ctx.schema.default


# Constraints

def apply_schema_constraints(schema: Optional[Schema], value: Any) -> Any:
    """
    Bring an accepted value within the schema constraints.

    Strings are snapped to the enum, padded with ``-`` or truncated to the
    length bounds and checked against the pattern. Numbers are snapped to
    the enum, clamped to the bounds and moved to a multiple of
    ``multipleOf`` inside them.

    Returns:
        Constrained value, None when a string cannot match the pattern
    """
    if schema is None:
        return value

    if schema.type == TYPE_BOOLEAN:
        enum = [v for v in schema.enum if isinstance(v, bool)]
        if enum and value not in enum:
            return random.choice(enum)
        return value

    if schema.type == TYPE_STRING and isinstance(value, str):
        return _apply_string_constraints(schema, value)

    if schema.type in (TYPE_INTEGER, TYPE_NUMBER) and _is_number_value(value):
        result = _apply_number_constraints(schema, float(value))
        if schema.type == TYPE_INTEGER or _is_integer_schema(schema):
            return int(result)
        if isinstance(value, int) and float(result).is_integer():
            return int(result)
        return result

    return value


def _ensure_base64(value: str) -> str:
    try:
        base64.b64decode(value, validate=True)
        return value
    except (binascii.Error, ValueError):
        return base64.b64encode(value.encode()).decode()


def _matches_pattern(pattern: str, value: str) -> Optional[bool]:
    try:
        return re.search(pattern, value) is not None
    except re.error:
        logger.debug(f"Invalid schema pattern {pattern!r}")
        return None


def _apply_string_constraints(schema: Schema, value: str) -> Optional[str]:
    if schema.format in ('byte', 'binary'):
        return _ensure_base64(value)

    enum = [str(v) for v in schema.enum if v is not None and v != 'null']
    if enum and value not in enum:
        value = random.choice(enum)

    if schema.format not in _FIXED_LENGTH_FORMATS:
        if schema.min_length is not None and len(value) < schema.min_length:
            value += '-' * (schema.min_length - len(value))
        if schema.max_length is not None and len(value) > schema.max_length:
            value = value[:schema.max_length]

    if schema.pattern and _matches_pattern(schema.pattern, value) is False:
        matching = [v for v in enum if _matches_pattern(schema.pattern, v)]
        return random.choice(matching) if matching else None

    return value


def _is_integer_schema(schema: Schema) -> bool:
    return schema.type == TYPE_INTEGER or schema.format in _INTEGER_FORMATS


def _bounds(schema: Schema, integer: bool) -> Tuple[Optional[float], Optional[float]]:
    step = 1 if integer else 0.01

    low = schema.minimum
    if schema.exclusive_minimum is not None:
        exclusive = schema.exclusive_minimum + step
        low = exclusive if low is None else max(low, exclusive)

    high = schema.maximum
    if schema.exclusive_maximum is not None:
        exclusive = schema.exclusive_maximum - step
        high = exclusive if high is None else min(high, exclusive)

    if integer:
        low = math.ceil(low) if low is not None else None
        high = math.floor(high) if high is not None else None
    return low, high


def _within(value: float, low: Optional[float], high: Optional[float]) -> bool:
    return (low is None or value >= low) and (high is None or value <= high)


def _apply_number_constraints(schema: Schema, value: float) -> float:
    enum = [v for v in schema.enum if _is_number_value(v)]
    if enum:
        return value if value in enum else float(random.choice(enum))

    integer = _is_integer_schema(schema)
    low, high = _bounds(schema, integer)
    if low is not None and high is not None and low > high:
        return low

    if low is not None and value < low:
        value = low
    if high is not None and value > high:
        value = high

    step = schema.multiple_of
    if step:
        for candidate in (
            round(value / step) * step,
            math.ceil(value / step) * step,
            math.floor(value / step) * step,
        ):
            if _within(candidate, low, high):
                value = candidate
                break

    if integer:
        value = round(value)
    return value


REPLACERS: List[Replacer] = [
    replace_in_headers,
    replace_in_path,
    replace_from_context,
    replace_from_schema_format,
    replace_from_schema_primitive,
    replace_from_schema_example,
    replace_from_schema_fallback,
]
