"""
specmock value replacer factory

Builds the callable the content generator asks for every value.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..contexts import ContextFunction, get_faker
from ..schema import Schema
from .impl import (
    NULL_VALUE,
    REPLACERS,
    ReplaceContext,
    Replacer,
    apply_schema_constraints,
    has_correct_schema_value,
)
from .state import ReplaceState


logger = logging.getLogger("specmock.replacer")

DEFAULT_AREA_PREFIX = 'in-'


def get_context_functions(contexts: Sequence[Dict[str, Any]]) -> Dict[str, ContextFunction]:
    """Top level generators of all contexts, earlier contexts winning."""
    functions: Dict[str, ContextFunction] = {}
    for data in contexts:
        for key, value in data.items():
            if isinstance(value, ContextFunction) and key not in functions:
                functions[key] = value
    return functions


class ValueReplacer:
    """
    Runs the replacer chain for one schema node.

    The first replacer producing a value of the schema type wins. The value
    is then constrained to the schema. ``NULL_VALUE`` from any replacer
    ends the chain with None and empty strings are skipped.

    Example:
        replacer = create_value_replacer([{'name': 'Jane'}])
        replacer(Schema(type='string'), ReplaceState().with_name('name'))  # 'Jane'
    """

    def __init__(
        self,
        contexts: Optional[List[Dict[str, Any]]] = None,
        replacers: Optional[List[Replacer]] = None,
        area_prefix: str = DEFAULT_AREA_PREFIX,
    ):
        self.contexts = list(contexts or [])
        self.replacers = list(REPLACERS if replacers is None else replacers)
        self.area_prefix = area_prefix
        self.functions = get_context_functions(self.contexts)
        self.faker = get_faker()

    def __call__(self, schema: Optional[Schema], state: Optional[ReplaceState] = None) -> Any:
        ctx = ReplaceContext(
            schema=schema,
            state=state or ReplaceState(),
            area_prefix=self.area_prefix,
            data=self.contexts,
            faker=self.faker,
            functions=self.functions,
        )

        for replacer in self.replacers:
            value = replacer(ctx)
            if value is None:
                continue
            if isinstance(value, str) and value == NULL_VALUE:
                return None

            if schema is not None:
                if not has_correct_schema_value(schema, value):
                    logger.debug(
                        f"{getattr(replacer, '__name__', 'replacer')} value {value!r} does not fit "
                        f"{schema.type} at {'.'.join(ctx.state.name_path)}"
                    )
                    continue
                value = apply_schema_constraints(schema, value)
                if value is None:
                    continue

            if isinstance(value, str) and value == '':
                continue
            return value

        return None


def create_value_replacer(
    contexts: Optional[List[Dict[str, Any]]] = None,
    replacers: Optional[List[Replacer]] = None,
    area_prefix: str = DEFAULT_AREA_PREFIX,
) -> ValueReplacer:
    """
    Create a value replacer over a list of context maps.

    Args:
        contexts: Context maps, highest priority first
        replacers: Replacer chain, defaults to ``REPLACERS``
        area_prefix: Prefix of the header and path context sections

    Returns:
        Callable ``(schema, state) -> value or None``
    """
    return ValueReplacer(contexts, replacers, area_prefix)
