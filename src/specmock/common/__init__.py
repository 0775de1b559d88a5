"""
specmock Common Utilities

Shared utilities and helpers used across specmock modules.
"""

from .utils import (
    safe_json_parse,
    to_snake_case,
    maybe_regex_pattern,
    compile_key_pattern,
    max_repetition,
    append_first_non_empty,
    get_by_dotted_path,
    set_by_dotted_path,
    random_choice,
    deduplicate,
)

__all__ = [
    'safe_json_parse',
    'to_snake_case',
    'maybe_regex_pattern',
    'compile_key_pattern',
    'max_repetition',
    'append_first_non_empty',
    'get_by_dotted_path',
    'set_by_dotted_path',
    'random_choice',
    'deduplicate',
]
