"""
specmock Contexts Module

YAML context files with literal values and fake data generators used to
pin or enrich generated content.
"""

from .fakes import (
    FAKE_FUNCTIONS,
    FUNC_FACTORIES_1_ARG,
    FUNC_FACTORIES_2_ARGS,
    fake_value,
    get_fake_functions,
    get_faker,
)
from .parsers import (
    FAKE_NAMESPACE,
    ContextFunction,
    collect_contexts,
    default_context_names,
    fake_namespace,
    load_contexts,
    load_contexts_from_dir,
    parse_context,
    parse_context_file,
    parse_context_value,
    resolve_aliases,
)

__all__ = [
    # Fakes
    'FAKE_FUNCTIONS',
    'FUNC_FACTORIES_1_ARG',
    'FUNC_FACTORIES_2_ARGS',
    'fake_value',
    'get_fake_functions',
    'get_faker',

    # Parsing
    'FAKE_NAMESPACE',
    'ContextFunction',
    'collect_contexts',
    'default_context_names',
    'fake_namespace',
    'load_contexts',
    'load_contexts_from_dir',
    'parse_context',
    'parse_context_file',
    'parse_context_value',
    'resolve_aliases',
]
