"""
Tests for specmock contexts

Tests context files including:
- fake:, func: and botify: generators
- Aliases and joins across namespaces
- Collecting contexts in priority order
- The fake namespace used by placeholders
"""

import pytest

from specmock.contexts import (
    FAKE_FUNCTIONS,
    FAKE_NAMESPACE,
    ContextFunction,
    collect_contexts,
    default_context_names,
    fake_namespace,
    fake_value,
    load_contexts,
    load_contexts_from_dir,
    parse_context,
    parse_context_file,
    parse_context_value,
)
from specmock.errors import ContextLoadError


class TestFakeFunctions:
    """Test the named fake generators."""

    def test_names_are_dotted(self):
        """Test generator names are grouped by topic."""
        assert 'person.first_name' in FAKE_FUNCTIONS
        assert 'company.job_title' in FAKE_FUNCTIONS
        assert all('.' in name for name in FAKE_FUNCTIONS)

    def test_generators_return_values(self):
        """Test every generator produces a JSON friendly value."""
        for name, fn in FAKE_FUNCTIONS.items():
            value = fn()
            assert isinstance(value, (str, int, float, bool)), name

    def test_fake_value(self):
        """Test generating by name."""
        assert isinstance(fake_value('internet.email'), str)

        with pytest.raises(KeyError):
            fake_value('nope.nothing')


class TestParseContextValue:
    """Test generator prefixes."""

    def test_fake(self):
        """Test fake: values bind a named generator."""
        value = parse_context_value('fake:company.job_title')

        assert isinstance(value, ContextFunction)
        result = value()
        assert isinstance(result, str)
        assert result != ''

    def test_fake_from_key(self):
        """Test an empty fake: name uses the key."""
        value = parse_context_value('fake:', full_key='person.first_name', key='first_name')

        assert isinstance(value, ContextFunction)
        assert isinstance(value(), str)

    def test_unknown_fake_stays_literal(self):
        """Test unknown fake names keep the raw string."""
        assert parse_context_value('fake:does.not_exist') == 'fake:does.not_exist'

    def test_func_echo(self):
        """Test func:echo returns its argument verbatim."""
        value = parse_context_value('func:echo:Sanford & Son')

        assert value() == 'Sanford & Son'

    def test_func_echo_keeps_colons(self):
        """Test arguments may contain colons."""
        value = parse_context_value('func:echo:12:30')

        assert value() == '12:30'

    def test_func_int_between(self):
        """Test two argument factories."""
        value = parse_context_value('func:int_between:18, 20')

        for _ in range(20):
            assert 18 <= value() <= 20

    def test_func_invalid_arguments(self):
        """Test bad factory arguments keep the raw string."""
        assert parse_context_value('func:int_between:a,b') == 'func:int_between:a,b'

    def test_func_without_argument(self):
        """Test func: with a generator name and no argument."""
        value = parse_context_value('func:uuid.v4')

        assert isinstance(value, ContextFunction)
        assert len(value()) == 36

    def test_botify(self):
        """Test botify patterns."""
        value = parse_context_value('botify:??-###')

        result = value()
        assert len(result) == 6
        assert result[2] == '-'
        assert result[3:].isdigit()

    def test_plain_strings(self):
        """Test strings without a known prefix are literals."""
        assert parse_context_value('Jane') == 'Jane'
        assert parse_context_value('http://example.com') == 'http://example.com'

    def test_function_equality(self):
        """Test functions compare by source."""
        assert parse_context_value('fake:uuid.v4') == parse_context_value('fake:uuid.v4')
        assert parse_context_value('fake:uuid.v4') != parse_context_value('fake:hash.md5')


class TestParseContext:
    """Test context file parsing."""

    def test_parse(self):
        """Test literals, generators and nesting."""
        values, aliases = parse_context(
            "name: Jane\n"
            "age: 30\n"
            "job: fake:company.job_title\n"
            "tv-show: func:echo:Sanford & Son\n"
            "cities: [NY, LA]\n"
            "person:\n"
            "  email: fake:internet.email\n"
        )

        assert values['name'] == 'Jane'
        assert values['age'] == 30
        assert isinstance(values['job'](), str)
        assert values['tv-show']() == 'Sanford & Son'
        assert values['cities'] == ['NY', 'LA']
        assert '@' in values['person']['email']()
        assert aliases == {}

    def test_aliases_collected(self):
        """Test alias: values are returned separately."""
        values, aliases = parse_context("owner:\n  name: alias:people.name\n")

        assert aliases == {'owner.name': 'people.name'}
        assert values == {'owner': {}}

    def test_empty(self):
        """Test an empty file."""
        assert parse_context('') == ({}, {})

    def test_invalid_yaml(self):
        """Test broken YAML raises ContextLoadError."""
        with pytest.raises(ContextLoadError):
            parse_context("name: [broken\n")

    def test_not_a_mapping(self):
        """Test lists are rejected."""
        with pytest.raises(ContextLoadError):
            parse_context("- a\n- b\n")

    def test_missing_file(self, tmp_path):
        """Test unreadable files raise ContextLoadError."""
        with pytest.raises(ContextLoadError):
            parse_context_file(tmp_path / 'missing.yml')


class TestLoadContexts:
    """Test loading several namespaces."""

    def test_alias_across_files(self):
        """Test aliases resolve into other namespaces."""
        contexts = load_contexts({
            'people': b"name: Jane\n",
            'orders': b"buyer:\n  name: alias:people.name\n",
        })

        assert contexts['orders']['buyer']['name'] == 'Jane'

    def test_alias_to_generator(self):
        """Test aliases can point at generators."""
        contexts = load_contexts({
            'common': b"code: func:echo:ABC\n",
            'service': b"code: alias:common.code\n",
        })

        assert contexts['service']['code']() == 'ABC'

    def test_missing_alias_skipped(self):
        """Test unresolved aliases are left out."""
        contexts = load_contexts({'service': b"name: alias:nowhere.name\n"})

        assert contexts['service'] == {}

    def test_join(self):
        """Test join: combines values of other contexts."""
        contexts = load_contexts({
            'people': b"first: Jane\nlast: func:echo:Doe\n",
            'orders': b"label: join:-,people.first,people.last,literal\n",
        })

        assert contexts['orders']['label']() == 'Jane-Doe-literal'

    def test_parsing_twice_gives_same_contexts(self):
        """Test loading the same files again yields equal value maps."""
        files = {
            'people': b"name: Jane\nid: fake:uuid.v4\ntitle: func:echo:Dr\ntags: [a, b]\n",
            'orders': (
                b"buyer:\n"
                b"  name: alias:people.name\n"
                b"  id: alias:people.id\n"
                b"label: join:-,people.title,people.name\n"
                b"total: 12.5\n"
            ),
        }

        first = load_contexts(files)
        second = load_contexts(files)

        assert first == second
        assert first['orders']['buyer'] == {
            'name': 'Jane',
            'id': ContextFunction('fake:uuid.v4', str),
        }
        assert first['orders']['label'] == ContextFunction('join:-,people.title,people.name', str)
        assert first['orders']['label']() == second['orders']['label']() == 'Dr-Jane'

    def test_broken_file_skipped(self):
        """Test broken files do not stop the others."""
        contexts = load_contexts({
            'good': b"name: Jane\n",
            'bad': b"name: [broken\n",
        })

        assert contexts == {'good': {'name': 'Jane'}}

    def test_from_dir(self, tmp_path):
        """Test loading a contexts directory by file stem."""
        (tmp_path / 'common.yml').write_text("name: Jane\n")
        (tmp_path / 'person.yaml').write_text("job: fake:company.job_title\n")
        (tmp_path / 'notes.txt').write_text("ignored")

        contexts = load_contexts_from_dir(tmp_path)

        assert set(contexts) == {'common', 'person'}
        assert contexts['common']['name'] == 'Jane'

    def test_from_missing_dir(self, tmp_path):
        """Test a missing directory gives no contexts."""
        assert load_contexts_from_dir(tmp_path / 'missing') == {}


class TestCollectContexts:
    """Test building the ordered context list."""

    def test_priority_order(self):
        """Test initial values first, then the referenced namespaces in order."""
        result = collect_contexts(
            [{'common': ''}, {'service': 'person'}],
            {'common': {'name': 'Jane'}, 'service': {'person': {'job': 'X'}}},
            {'city': 'NY'},
        )

        assert result == [{'city': 'NY'}, {'name': 'Jane'}, {'job': 'X'}]

    def test_missing_namespaces_skipped(self):
        """Test unknown namespaces and sections are skipped."""
        result = collect_contexts(
            [{'missing': ''}, {'common': 'nope'}, {'common': ''}],
            {'common': {'name': 'Jane'}},
        )

        assert result == [{'name': 'Jane'}]

    def test_dotted_section(self):
        """Test sections may be nested."""
        result = collect_contexts(
            [{'service': 'pets.dogs'}],
            {'service': {'pets': {'dogs': {'breed': 'Corgi'}}}},
        )

        assert result == [{'breed': 'Corgi'}]


class TestFakeNamespace:
    """Test the namespace behind {fake:...} placeholders."""

    def test_keys(self):
        """Test every generator is keyed with the fake: prefix."""
        namespace = fake_namespace()

        assert 'fake:uuid.v4' in namespace
        assert len(namespace) == len(FAKE_FUNCTIONS)
        assert len(namespace['fake:uuid.v4']()) == 36

    def test_default_context_names(self):
        """Test loaded namespaces come first and fake last."""
        names = default_context_names({'common': {}, FAKE_NAMESPACE: {}, 'person': {}})

        assert names == [{'common': ''}, {'person': ''}, {'fake': ''}]
