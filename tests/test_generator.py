"""
Tests for specmock content generation

Tests the generator including:
- Walking schemas into JSON values
- readOnly/writeOnly filtering and nullable members
- {name} placeholders in fixed JSON files
- Content encoding and cURL bodies
- URL, query and header parameters
- Generated requests and responses for operations
"""

import json
import xml.etree.ElementTree as ET

import pytest

from specmock.config import ParseConfig
from specmock.contexts import default_context_names, collect_contexts, fake_namespace
from specmock.errors import ContentEncodeError
from specmock.generator import (
    GeneratedRequest,
    GeneratedResponse,
    create_curl_body,
    encode_content,
    extract_placeholders,
    generate_content_from_file_properties,
    generate_content_from_json,
    generate_content_from_schema,
    generate_query,
    generate_request,
    generate_request_from_fixed_resource,
    generate_request_headers,
    generate_response,
    generate_response_from_fixed_resource,
    generate_response_headers,
    generate_url_from_schema_parameters,
)
from specmock.openapi import NativeDocument, NativeSchemaBuilder, OperationDescription, Parameter
from specmock.replacer import NULL_VALUE, ReplaceState, create_value_replacer
from specmock.schema import Schema


PET = {
    'type': 'object',
    'required': ['id', 'name'],
    'properties': {
        'id': {'type': 'integer', 'readOnly': True},
        'name': {'type': 'string'},
        'secret': {'type': 'string', 'writeOnly': True},
    },
}

PETS_DOCUMENT = {
    'openapi': '3.0.3',
    'info': {'title': 'Pets', 'version': '1.0.0'},
    'paths': {
        '/pets/{id}': {
            'parameters': [
                {'name': 'id', 'in': 'path', 'required': True, 'schema': {'type': 'integer'}},
            ],
            'put': {
                'parameters': [
                    {'name': 'verbose', 'in': 'query', 'schema': {'type': 'boolean'}},
                    {'name': 'X-Trace', 'in': 'header', 'schema': {'type': 'string'}},
                ],
                'requestBody': {
                    'content': {'application/json': {'schema': {'$ref': '#/components/schemas/Pet'}}},
                },
                'responses': {
                    '200': {
                        'description': 'Updated',
                        'headers': {'X-Rate': {'schema': {'type': 'integer'}}},
                        'content': {'application/json': {'schema': {'$ref': '#/components/schemas/Pet'}}},
                    },
                },
            },
            'delete': {
                'responses': {'204': {'description': 'Deleted'}},
            },
        },
        '/report': {
            'get': {
                'responses': {
                    '200': {
                        'description': 'Report',
                        'content': {'text/csv': {'schema': {'type': 'string'}}},
                    },
                },
            },
        },
    },
    'components': {'schemas': {'Pet': PET}},
}

PET_CONTEXT = {
    'id': 7,
    'name': 'Rex',
    'secret': 's3',
    'verbose': True,
    'in-header': {'x-trace': 'abc', 'x-rate': 9},
}


def always(value):
    """Replacer returning the same value for every node."""
    return lambda schema, state: value


def get_operation(resource, method):
    document = NativeDocument(PETS_DOCUMENT)
    return document.get_operation(OperationDescription(service='pets', resource=resource, method=method))


class TestGenerateContentFromSchema:
    """Test walking schemas."""

    def test_no_schema(self):
        """Test a missing schema generates nothing."""
        assert generate_content_from_schema(None, always('x')) is None

    def test_array_min_items(self):
        """Test arrays honor minItems."""
        schema = Schema(type='array', items=Schema(type='string'), min_items=3)

        assert generate_content_from_schema(schema, always('x')) == ['x', 'x', 'x']

    def test_array_defaults_to_one_item(self):
        """Test arrays without minItems get one item."""
        schema = Schema(type='array', items=Schema(type='string'))

        assert generate_content_from_schema(schema, always('x')) == ['x']

    def test_array_max_items_caps(self):
        """Test maxItems wins over minItems."""
        schema = Schema(type='array', items=Schema(type='string'), min_items=5, max_items=2)

        assert generate_content_from_schema(schema, always('x')) == ['x', 'x']

    def test_empty_array(self):
        """Test arrays without items are empty, or None when nullable."""
        assert generate_content_from_schema(Schema(type='array'), always('x')) == []
        assert generate_content_from_schema(Schema(type='array', nullable=True), always('x')) is None

    def test_only_required(self):
        """Test only required properties are generated."""
        node = {
            'type': 'object',
            'required': ['age'],
            'properties': {'name': {'type': 'string'}, 'age': {'type': 'integer'}},
        }
        document = NativeDocument({'openapi': '3.0.3', 'info': {}, 'paths': {}})
        schema = NativeSchemaBuilder(document, ParseConfig(only_required=True)).build(node)

        result = generate_content_from_schema(schema, create_value_replacer())

        assert list(result) == ['age']
        assert isinstance(result['age'], int)

    def test_read_only_in_responses(self):
        """Test readOnly members only appear in responses."""
        schema = Schema(properties={
            'id': Schema(type='integer', read_only=True),
            'password': Schema(type='string', write_only=True),
            'name': Schema(type='string'),
        })
        replacer = create_value_replacer([{'id': 1, 'password': 'pw', 'name': 'Jane'}])

        response = generate_content_from_schema(schema, replacer, ReplaceState().with_read_only())
        request = generate_content_from_schema(schema, replacer, ReplaceState().with_write_only())

        assert response == {'id': 1, 'name': 'Jane'}
        assert request == {'password': 'pw', 'name': 'Jane'}

    def test_null_members_omitted(self):
        """Test NULL from the replacer drops the member."""
        schema = Schema(properties={'name': Schema(type='string'), 'nick': Schema(type='string')})

        def replacer(schema, state):
            return NULL_VALUE if state.name_path[-1] == 'nick' else 'Jane'

        assert generate_content_from_schema(schema, replacer) == {'name': 'Jane'}

    def test_empty_nested_objects(self):
        """Test empty nested objects are kept unless nullable."""
        schema = Schema(properties={
            'meta': Schema(type='object'),
            'extra': Schema(type='object', nullable=True),
        })

        assert generate_content_from_schema(schema, always(None)) == {'meta': {}}

    def test_root_object_never_none(self):
        """Test the payload root is at least an empty object."""
        schema = Schema(properties={'extra': Schema(type='object', nullable=True)})

        assert generate_content_from_schema(schema, always(None)) == {}

    def test_max_properties(self):
        """Test maxProperties stops the object early."""
        schema = Schema(
            properties={name: Schema(type='string') for name in ('a', 'b', 'c')},
            max_properties=2,
        )

        assert generate_content_from_schema(schema, always('x')) == {'a': 'x', 'b': 'x'}

    def test_whole_object_from_replacer(self):
        """Test a replacer may provide a complete object."""
        schema = Schema(properties={
            'address': Schema(properties={'city': Schema(type='string'), 'zip': Schema(type='string')}),
        })

        def replacer(schema, state):
            return {'city': 'NY'} if schema.type == 'object' else 'x'

        assert generate_content_from_schema(schema, replacer) == {'address': {'city': 'NY'}}

    def test_wrong_type_walks_members(self):
        """Test a replacement of the wrong type is ignored for objects."""
        schema = Schema(properties={'address': Schema(properties={'city': Schema(type='string')})})

        assert generate_content_from_schema(schema, always('x')) == {'address': {'city': 'x'}}


class TestPlaceholders:
    """Test {name} placeholders."""

    def test_extract(self):
        """Test placeholders are found in order."""
        assert extract_placeholders('/pets/{id}/{name}') == ['{id}', '{name}']
        assert extract_placeholders('/pets') == []

    def test_generate_content_from_json(self):
        """Test placeholders are replaced in nested values."""
        replacer = create_value_replacer([{'id': 42, 'name': 'Jane'}])
        data = {'id': '{id}', 'greeting': 'Hi {name}!', 'list': ['{id}'], 'n': 5}

        result = generate_content_from_json(data, replacer)

        assert result == {'id': 42, 'greeting': 'Hi Jane!', 'list': [42], 'n': 5}

    def test_unknown_placeholder_kept(self):
        """Test unresolved placeholders stay in place."""
        result = generate_content_from_json({'a': '{unknown}'}, create_value_replacer())

        assert result == {'a': '{unknown}'}

    def test_no_replacer(self):
        """Test content is returned as is without a replacer."""
        assert generate_content_from_json({'a': '{id}'}, None) == {'a': '{id}'}

    def test_fake_placeholder(self):
        """Test {fake:...} placeholders use the fake namespace."""
        contexts = {'fake': fake_namespace()}
        replacer = create_value_replacer(collect_contexts(default_context_names(contexts), contexts))

        result = generate_content_from_json({'id': '{fake:uuid.v4}'}, replacer)

        assert len(result['id']) == 36


class TestFileProperties:
    """Test fixed file content."""

    def test_json_placeholders(self, tmp_path):
        """Test JSON files get placeholders replaced."""
        path = tmp_path / 'index.json'
        path.write_text('{"id": "{id}", "name": "static"}')

        content = generate_content_from_file_properties(
            path, 'application/json', create_value_replacer([{'id': 7}]))

        assert json.loads(content) == {'id': 7, 'name': 'static'}

    def test_other_files_raw(self, tmp_path):
        """Test non JSON files are served as they are."""
        path = tmp_path / 'index.html'
        path.write_text('<p>{id}</p>')

        content = generate_content_from_file_properties(
            path, 'text/html', create_value_replacer([{'id': 7}]))

        assert content == b'<p>{id}</p>'

    def test_missing_or_invalid(self, tmp_path):
        """Test unreadable and broken files give None."""
        broken = tmp_path / 'broken.json'
        broken.write_text('{broken')

        assert generate_content_from_file_properties('', 'application/json', None) is None
        assert generate_content_from_file_properties(tmp_path / 'missing.json', 'application/json', None) is None
        assert generate_content_from_file_properties(broken, 'application/json', None) is None


class TestEncodeContent:
    """Test content encoding."""

    def test_none(self):
        """Test no content encodes to None."""
        assert encode_content(None, 'application/json') is None

    def test_json(self):
        """Test JSON and +json types."""
        assert encode_content({'a': 1}, '') == b'{"a": 1}'
        assert encode_content({'a': 1}, 'application/json; charset=utf-8') == b'{"a": 1}'
        assert encode_content([1], 'application/vnd.api+json') == b'[1]'

    def test_form(self):
        """Test forms are encoded as JSON, empty forms as nothing."""
        assert encode_content({}, 'application/x-www-form-urlencoded') == b''
        assert encode_content({'a': 'b'}, 'multipart/form-data') == b'{"a": "b"}'

    def test_xml(self):
        """Test XML encoding under a root element."""
        content = encode_content({'pet': {'name': 'Rex', 'tags': ['a', 'b'], 'ok': True}}, 'application/xml')

        root = ET.fromstring(content)
        assert root.tag == 'root'
        assert root.find('pet/name').text == 'Rex'
        assert [item.text for item in root.findall('pet/tags/item')] == ['a', 'b']
        assert root.find('pet/ok').text == 'true'

    def test_yaml(self):
        """Test YAML encoding."""
        assert encode_content({'a': 1}, 'application/x-yaml') == b'a: 1\n'

    def test_text(self):
        """Test scalars for other content types."""
        assert encode_content('hello', 'text/plain') == b'hello'
        assert encode_content(b'raw', 'application/octet-stream') == b'raw'
        assert encode_content(5, 'text/plain') == b'5'

    def test_unencodable(self):
        """Test objects cannot be sent as plain text."""
        with pytest.raises(ContentEncodeError):
            encode_content({'a': 1}, 'text/plain')


class TestCurlBody:
    """Test cURL body arguments."""

    def test_json(self):
        """Test JSON bodies use --data-raw."""
        assert create_curl_body({'a': 1}, 'application/json') == "--data-raw '{\"a\": 1}'"

    def test_urlencoded(self):
        """Test url encoded forms, sorted by key."""
        body = create_curl_body({'b': 'x y', 'a': 1}, 'application/x-www-form-urlencoded')

        assert body == "--data-urlencode 'a=1' \\\n--data-urlencode 'b=x+y'"

    def test_multipart(self):
        """Test multipart forms."""
        assert create_curl_body({'a': 'b'}, 'multipart/form-data') == "--form 'a=\"b\"'"

    def test_form_requires_mapping(self):
        """Test form bodies must be objects."""
        with pytest.raises(ContentEncodeError):
            create_curl_body(['a'], 'application/x-www-form-urlencoded')

    def test_none(self):
        """Test no content gives no arguments."""
        assert create_curl_body(None, 'application/json') == ''


class TestParameters:
    """Test URL, query and header parameters."""

    def test_url_path_params(self):
        """Test declared path parameters are filled."""
        params = [Parameter(name='id', in_='path', required=True, schema=Schema(type='integer'))]
        replacer = create_value_replacer([{'id': 7}])

        assert generate_url_from_schema_parameters('/pets/{id}', replacer, params) == '/pets/7'

    def test_url_in_path_section(self):
        """Test the in-path section wins for path parameters."""
        params = [Parameter(name='id', in_='path', required=True, schema=Schema(type='integer'))]
        replacer = create_value_replacer([{'in-path': {'id': 3}, 'id': 7}])

        assert generate_url_from_schema_parameters('/pets/{id}', replacer, params) == '/pets/3'

    def test_url_undeclared_placeholder(self):
        """Test placeholders without a declared parameter are filled as strings."""
        replacer = create_value_replacer([{'owner': 'jane'}])

        assert generate_url_from_schema_parameters('/users/{owner}', replacer, []) == '/users/jane'

    def test_query(self):
        """Test scalars, booleans and arrays in the query string."""
        params = [
            Parameter(name='limit', in_='query', schema=Schema(type='integer')),
            Parameter(name='tags', in_='query', schema=Schema(type='array', items=Schema(type='string'))),
            Parameter(name='q', in_='query', schema=Schema(type='string')),
            Parameter(name='deep', in_='query', schema=Schema(type='boolean')),
            Parameter(name='id', in_='path', schema=Schema(type='integer')),
        ]
        replacer = create_value_replacer([{'limit': 10, 'tags': ['a'], 'q': 'a b', 'deep': False, 'id': 1}])

        assert generate_query(replacer, params) == 'limit=10&tags[]=a&q=a+b&deep=false'

    def test_request_headers(self):
        """Test header parameters by lower-cased name."""
        params = [
            Parameter(name='X-Trace', in_='header', schema=Schema(type='string')),
            Parameter(name='limit', in_='query', schema=Schema(type='integer')),
        ]
        replacer = create_value_replacer([{'in-header': {'x-trace': 'abc'}}])

        assert generate_request_headers(params, replacer) == {'x-trace': 'abc'}

    def test_response_headers(self):
        """Test response headers are strings and transport headers are skipped."""
        headers = {
            'X-Rate': Parameter(name='x-rate', in_='header', schema=Schema(type='integer')),
            'Content-Length': Parameter(name='content-length', in_='header', schema=Schema(type='integer')),
        }
        replacer = create_value_replacer([{'in-header': {'x-rate': 5}}])

        assert generate_response_headers(headers, replacer) == {'x-rate': '5'}


class TestGenerateOperations:
    """Test requests and responses for operations."""

    def test_generate_request(self):
        """Test a complete example request."""
        replacer = create_value_replacer([PET_CONTEXT])

        request = generate_request(get_operation('/pets/{id}', 'PUT'), replacer, path_prefix='/pets-api')

        assert request.method == 'PUT'
        assert request.path == '/pets-api/pets/7'
        assert request.headers == {'x-trace': 'abc'}
        assert request.query == 'verbose=true'
        assert json.loads(request.body) == {'name': 'Rex', 'secret': 's3'}
        assert request.content_type == 'application/json'
        assert request.curl.startswith("--data-raw '")

    def test_generate_request_to_dict(self):
        """Test the admin representation of a request."""
        replacer = create_value_replacer([PET_CONTEXT])

        result = generate_request(get_operation('/pets/{id}', 'PUT'), replacer).to_dict()

        assert result['method'] == 'PUT'
        assert result['path'] == '/pets/7'
        assert result['contentType'] == 'application/json'
        assert result['contentSchema']['type'] == 'object'
        assert 'curl' in result['examples']

    def test_generate_response(self):
        """Test a JSON response with headers."""
        replacer = create_value_replacer([PET_CONTEXT])

        response = generate_response(get_operation('/pets/{id}', 'PUT'), replacer)

        assert response.status_code == 200
        assert response.headers == {'x-rate': '9', 'content-type': 'application/json'}
        assert json.loads(response.content) == {'id': 7, 'name': 'Rex'}

    def test_generate_response_text(self):
        """Test non JSON responses."""
        response = generate_response(get_operation('/report', 'GET'), create_value_replacer([{}]))

        assert response.content_type == 'text/csv'
        assert isinstance(response.content, bytes)
        assert response.content != b''

    def test_generate_response_without_content(self):
        """Test responses without content default to JSON."""
        response = generate_response(get_operation('/pets/{id}', 'DELETE'), create_value_replacer())

        assert response.status_code == 204
        assert response.content is None
        assert response.content_type == 'application/json'
        assert response.to_dict()['content'] is None

    def test_fixed_request(self):
        """Test fixed route requests fill path placeholders."""
        request = generate_request_from_fixed_resource(
            '/pets/{id}', 'get', 'application/json', create_value_replacer([{'id': 7}]))

        assert request == GeneratedRequest(method='GET', path='/pets/7', content_type='application/json')

    def test_fixed_response(self, tmp_path):
        """Test fixed route responses."""
        path = tmp_path / 'index.json'
        path.write_text('{"id": "{id}"}')

        response = generate_response_from_fixed_resource(
            str(path), 'application/json', create_value_replacer([{'id': 7}]))

        assert response.status_code == 200
        assert response.headers == {'content-type': 'application/json'}
        assert response.to_dict()['content'] == {'id': 7}

    def test_response_to_dict_text(self):
        """Test non JSON content is decoded as text."""
        response = GeneratedResponse(content=b'a,b', content_type='text/csv')

        assert response.to_dict() == {
            'statusCode': 200,
            'headers': {},
            'content': 'a,b',
            'contentType': 'text/csv',
        }
