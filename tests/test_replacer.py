"""
Tests for specmock value replacers

Tests the replacer chain including:
- Replace state transitions and read/write filtering
- Header, path and context lookups
- Schema format, primitive, example and default fallbacks
- Type checks and schema constraints
"""

import base64
import dataclasses
import uuid

import pytest

from specmock.contexts import ContextFunction
from specmock.replacer import (
    NULL_VALUE,
    ReplaceState,
    apply_schema_constraints,
    create_value_replacer,
    get_context_functions,
    has_correct_schema_value,
    is_correctly_replaced_type,
    replace_value_with_context,
)
from specmock.schema import Schema


def named(*names):
    state = ReplaceState()
    for name in names:
        state = state.with_name(name)
    return state


class TestReplaceState:
    """Test ReplaceState."""

    def test_with_methods_return_new_states(self):
        """Test states are never changed in place."""
        root = ReplaceState()
        child = root.with_name('pet').with_name('name').with_element_index(2)

        assert root.name_path == ()
        assert child.name_path == ('pet', 'name')
        assert child.element_index == 2

    def test_frozen(self):
        """Test states cannot be mutated."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            ReplaceState().is_header = True

    def test_flags(self):
        """Test header, path and content flags."""
        state = ReplaceState().with_header().with_path_param().with_content_type('application/json')

        assert state.is_header is True
        assert state.is_path_param is True
        assert state.content_type == 'application/json'

    def test_read_write_filtering(self):
        """Test readOnly fields only in responses and writeOnly only in requests."""
        read_only = Schema(type='string', read_only=True)
        write_only = Schema(type='string', write_only=True)
        request = ReplaceState().with_write_only()
        response = ReplaceState().with_read_only()

        assert request.is_match_schema_read_write_to_state(write_only) is True
        assert request.is_match_schema_read_write_to_state(read_only) is False
        assert response.is_match_schema_read_write_to_state(read_only) is True
        assert response.is_match_schema_read_write_to_state(write_only) is False
        assert ReplaceState().is_match_schema_read_write_to_state(Schema()) is True

    def test_path_params_always_match(self):
        """Test path parameters ignore read/write flags."""
        state = ReplaceState().with_path_param()

        assert state.is_match_schema_read_write_to_state(Schema(type='string', read_only=True)) is True


class TestTypeChecks:
    """Test runtime type checks."""

    def test_is_correctly_replaced_type(self):
        """Test values against OpenAPI types."""
        assert is_correctly_replaced_type('a', 'string') is True
        assert is_correctly_replaced_type('a', '') is True
        assert is_correctly_replaced_type(3, 'integer') is True
        assert is_correctly_replaced_type(3.0, 'integer') is True
        assert is_correctly_replaced_type(3.5, 'integer') is False
        assert is_correctly_replaced_type(True, 'integer') is False
        assert is_correctly_replaced_type(True, 'number') is False
        assert is_correctly_replaced_type(2.5, 'number') is True
        assert is_correctly_replaced_type(False, 'boolean') is True
        assert is_correctly_replaced_type({}, 'object') is True
        assert is_correctly_replaced_type([], 'array') is True
        assert is_correctly_replaced_type('a', 'array') is False

    def test_formats(self):
        """Test values against formats."""
        assert has_correct_schema_value(Schema(type='string', format='date'), '2024-01-31') is True
        assert has_correct_schema_value(Schema(type='string', format='date'), 'yesterday') is False
        assert has_correct_schema_value(Schema(type='string', format='date-time'), '2024-01-31T10:00:00Z') is True
        assert has_correct_schema_value(Schema(type='string', format='email'), 'jane@example.com') is True
        assert has_correct_schema_value(Schema(type='string', format='email'), 'jane') is False
        assert has_correct_schema_value(Schema(type='string', format='int32'), '123') is True
        assert has_correct_schema_value(Schema(type='string', format='int32'), 'abc') is False
        assert has_correct_schema_value(Schema(type='integer', format='int32'), 2 ** 40) is False
        assert has_correct_schema_value(Schema(type='string', format='uuid'), str(uuid.uuid4())) is True
        assert has_correct_schema_value(Schema(type='string', format='uuid'), 'abc') is False
        assert has_correct_schema_value(None, object()) is True

    def test_short_uuid(self):
        """Test uuid fields with a custom length accept hex strings of that length."""
        schema = Schema(type='string', format='uuid', min_length=8, max_length=8)

        assert has_correct_schema_value(schema, 'deadbeef') is True
        assert has_correct_schema_value(schema, 'deadbee') is False


class TestContextLookup:
    """Test resolving name paths against context values."""

    def test_last_element_first(self):
        """Test the field name is looked up first."""
        assert replace_value_with_context(['person', 'name'], {'name': 'Jane'}) == 'Jane'

    def test_descend_into_section(self):
        """Test the first element selects a section."""
        data = {'person': {'name': 'Jane'}}

        assert replace_value_with_context(['person', 'name'], data) == 'Jane'
        assert replace_value_with_context(['person', 'age'], data) is None

    def test_snake_case_keys(self):
        """Test keys are compared in snake_case."""
        assert replace_value_with_context(['first_name'], {'firstName': 'Jane'}) == 'Jane'

    def test_regex_keys(self):
        """Test keys that look like expressions match field names."""
        data = {'.*_id': 7, 'email*': 'a@b.c'}

        assert replace_value_with_context(['user_id'], data) == 7
        assert replace_value_with_context(['email_address'], data) == 'a@b.c'
        assert replace_value_with_context(['name'], data) is None

    def test_lists_and_generators(self):
        """Test lists give an element and generators are called."""
        assert replace_value_with_context(['color'], {'color': ['red', 'blue']}) in ('red', 'blue')
        assert replace_value_with_context(['code'], {'code': ContextFunction('x', lambda: 'ABC')}) == 'ABC'


class TestValueReplacer:
    """Test the replacer chain."""

    def test_context_value(self):
        """Test context values win."""
        replacer = create_value_replacer([{'name': 'Jane'}])

        assert replacer(Schema(type='string'), named('name')) == 'Jane'

    def test_context_priority(self):
        """Test earlier contexts win."""
        replacer = create_value_replacer([{'name': 'Jane'}, {'name': 'John'}])

        assert replacer(Schema(type='string'), named('name')) == 'Jane'

    def test_nested_name_path(self):
        """Test nested fields find their context by name."""
        replacer = create_value_replacer([{'city': 'NY'}])

        assert replacer(Schema(type='string'), named('address', 'city')) == 'NY'

    def test_null_value(self):
        """Test the null marker forces no value."""
        replacer = create_value_replacer([{'name': NULL_VALUE}])

        assert replacer(Schema(type='string'), named('name')) is None

    def test_wrong_type_skipped(self):
        """Test context values of the wrong type fall through."""
        replacer = create_value_replacer([{'age': 'old'}])

        value = replacer(Schema(type='integer'), named('age'))

        assert isinstance(value, int)
        assert not isinstance(value, bool)

    def test_generator_context(self):
        """Test context generators are called per value."""
        replacer = create_value_replacer([{'tv_show': ContextFunction('func:echo:Sanford & Son', lambda: 'Sanford & Son')}])

        assert replacer(Schema(type='string'), named('tvShow')) == 'Sanford & Son'

    def test_format(self):
        """Test format values when no context matches."""
        replacer = create_value_replacer()

        value = replacer(Schema(type='string', format='uuid'), named('id'))
        assert str(uuid.UUID(value)) == value

        value = replacer(Schema(type='string', format='email'), named('contact'))
        assert '@' in value

    def test_integer_format(self):
        """Test integer formats stay within their range."""
        replacer = create_value_replacer()

        value = replacer(Schema(type='integer', format='int32'), named('count'))

        assert 1 <= value <= 2 ** 31 - 1

    def test_enum(self):
        """Test enum members are used for primitives."""
        replacer = create_value_replacer()

        for _ in range(10):
            assert replacer(Schema(type='string', enum=['a', 'b']), named('kind')) in ('a', 'b')

    def test_boolean(self):
        """Test booleans."""
        replacer = create_value_replacer()

        assert isinstance(replacer(Schema(type='boolean'), named('active')), bool)

    def test_example_for_objects(self):
        """Test object schemas use their example."""
        replacer = create_value_replacer()

        assert replacer(Schema(type='object', example={'a': 1}), named('meta')) == {'a': 1}

    def test_default_last(self):
        """Test the default is the last resort."""
        replacer = create_value_replacer()

        assert replacer(Schema(type='object', default={'x': 1}), named('meta')) == {'x': 1}
        assert replacer(Schema(type='object'), named('meta')) is None

    def test_expression_context(self):
        """Test the expression generator feeds free strings."""
        replacer = create_value_replacer([{'expression': ContextFunction('func:echo:hello', lambda: 'hello')}])

        assert replacer(Schema(type='string'), ReplaceState()) == 'hello'

    def test_custom_chain(self):
        """Test a custom replacer chain."""
        replacer = create_value_replacer(replacers=[lambda ctx: 'x'])

        assert replacer(Schema(type='string'), named('anything')) == 'x'
        assert replacer(Schema(type='integer'), named('anything')) is None

    def test_empty_strings_skipped(self):
        """Test empty strings fall through to the next replacer."""
        replacer = create_value_replacer(replacers=[lambda ctx: '', lambda ctx: 'y'])

        assert replacer(Schema(type='string'), named('anything')) == 'y'

    def test_get_context_functions(self):
        """Test top level generators, earlier contexts winning."""
        first = ContextFunction('a', lambda: 1)
        second = ContextFunction('b', lambda: 2)

        functions = get_context_functions([{'gen': first, 'plain': 1}, {'gen': second}])

        assert functions == {'gen': first}


class TestHeaderAndPathReplacers:
    """Test header and path parameter sections."""

    def test_header_section(self):
        """Test header values from the in-header section."""
        replacer = create_value_replacer([{'in-header': {'x-request-id': 'abc'}}])

        assert replacer(Schema(type='string'), named('x-request-id').with_header()) == 'abc'

    def test_header_section_ignored_for_body(self):
        """Test header sections do not leak into body fields."""
        replacer = create_value_replacer([{'in-header': {'token': 'abc'}}])

        assert replacer(Schema(type='string', enum=['zzz']), named('token')) == 'zzz'

    def test_bearer_authorization(self):
        """Test bearer authorization headers."""
        replacer = create_value_replacer([{'in-header': {'authorization': 'secret'}}])

        value = replacer(Schema(type='string', format='bearer'), named('authorization').with_header())

        assert value == 'Bearer secret'

    def test_basic_authorization(self):
        """Test basic authorization headers are encoded."""
        replacer = create_value_replacer([{'in-header': {'authorization': 'jane:pw'}}])

        value = replacer(Schema(type='string', format='basic'), named('authorization').with_header())

        assert value == 'Basic ' + base64.b64encode(b'jane:pw').decode()

    def test_generated_authorization(self):
        """Test authorization headers without context values."""
        replacer = create_value_replacer()

        value = replacer(Schema(type='string', format='bearer'), named('authorization').with_header())

        assert value.startswith('Bearer ')

    def test_path_section(self):
        """Test path parameters from the in-path section."""
        replacer = create_value_replacer([{'in-path': {'id': 42}}])

        assert replacer(Schema(type='integer'), named('id').with_path_param()) == 42


class TestConstraints:
    """Test values are brought within schema constraints."""

    def test_string_length(self):
        """Test strings are padded and truncated."""
        assert apply_schema_constraints(Schema(type='string', min_length=5), 'ab') == 'ab---'
        assert apply_schema_constraints(Schema(type='string', max_length=2), 'Jane') == 'Ja'

    def test_string_enum(self):
        """Test strings outside the enum are replaced by a member."""
        assert apply_schema_constraints(Schema(type='string', enum=['a']), 'zzz') == 'a'

    def test_pattern(self):
        """Test pattern mismatches pick a matching enum member or give None."""
        schema = Schema(type='string', pattern='^[0-9]+$', enum=['123', 'abc'])

        assert apply_schema_constraints(schema, 'zzz') == '123'
        assert apply_schema_constraints(Schema(type='string', pattern='^[0-9]+$'), 'abc') is None
        assert apply_schema_constraints(Schema(type='string', pattern='^[0-9]+$'), '42') == '42'

    def test_pattern_mismatch_falls_through(self):
        """Test the chain skips values the pattern rejects."""
        matching = create_value_replacer([{'code': 'abc'}])
        rejected = create_value_replacer([{'code': 'xyz'}])

        assert matching(Schema(type='string', pattern='^[a-c]+$'), named('code')) == 'abc'
        assert rejected(Schema(type='string', pattern='^[0-9]{3}$', example='123'), named('code')) == '123'

    def test_byte_format(self):
        """Test byte strings are base64 encoded."""
        value = apply_schema_constraints(Schema(type='string', format='byte'), 'hello world')

        assert base64.b64decode(value) == b'hello world'

    def test_number_bounds(self):
        """Test numbers are clamped."""
        schema = Schema(type='integer', minimum=10, maximum=20)

        assert apply_schema_constraints(schema, 5) == 10
        assert apply_schema_constraints(schema, 50) == 20
        assert apply_schema_constraints(schema, 15) == 15

    def test_exclusive_bounds(self):
        """Test exclusive bounds move integers inside."""
        assert apply_schema_constraints(Schema(type='integer', exclusive_maximum=10), 15) == 9
        assert apply_schema_constraints(Schema(type='integer', exclusive_minimum=10), 3) == 11

    def test_multiple_of(self):
        """Test values are moved to a multiple."""
        schema = Schema(type='integer', minimum=0, maximum=100, multiple_of=5)

        assert apply_schema_constraints(schema, 12) == 10
        assert apply_schema_constraints(schema, 13) == 15

    def test_integer_result(self):
        """Test integer schemas give ints."""
        value = apply_schema_constraints(Schema(type='integer', maximum=7.0), 9)

        assert value == 7
        assert isinstance(value, int)

    def test_number_result(self):
        """Test number schemas keep fractions."""
        assert apply_schema_constraints(Schema(type='number', maximum=1.5), 3) == 1.5

    def test_number_enum(self):
        """Test numbers outside the enum are replaced by a member."""
        assert apply_schema_constraints(Schema(type='integer', enum=[1, 2]), 5) in (1, 2)
        assert apply_schema_constraints(Schema(type='integer', enum=[1, 2]), 2) == 2

    def test_boolean_enum(self):
        """Test booleans outside the enum."""
        assert apply_schema_constraints(Schema(type='boolean', enum=[True]), False) is True

    def test_no_schema(self):
        """Test values pass through without a schema."""
        assert apply_schema_constraints(None, 'anything') == 'anything'
