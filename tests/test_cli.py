"""
Tests for the specmock CLI

Tests the command-line interface including:
- Generating a request/response pair for one operation
- Starting the mock server
- Argument errors
"""

import json
from unittest.mock import patch

import pytest
import yaml

from specmock.cli import main
from specmock.errors import ConfigError


SPEC = {
    'openapi': '3.0.3',
    'info': {'title': 'Petstore', 'version': '1.0.0'},
    'paths': {
        '/pets/{id}': {
            'get': {
                'parameters': [
                    {'name': 'id', 'in': 'path', 'required': True, 'schema': {'type': 'integer'}},
                ],
                'responses': {
                    '200': {
                        'description': 'Pet',
                        'content': {
                            'application/json': {
                                'schema': {
                                    'type': 'object',
                                    'properties': {
                                        'id': {'type': 'integer'},
                                        'name': {'type': 'string'},
                                    },
                                },
                            },
                        },
                    },
                },
            },
        },
    },
}


@pytest.fixture
def spec_file(tmp_path):
    path = tmp_path / 'petstore.yml'
    path.write_text(yaml.safe_dump(SPEC))
    return path


@pytest.fixture
def context_file(tmp_path):
    path = tmp_path / 'common.yml'
    path.write_text("id: 7\nname: Rex\n")
    return path


class TestGenerateCommand:
    """Test the generate command."""

    def test_generate(self, spec_file, context_file, capsys):
        """Test the request and response are printed as JSON."""
        main(['generate', str(spec_file), '--resource', '/pets/{id}', '--context', str(context_file)])

        result = json.loads(capsys.readouterr().out)
        assert result['request']['method'] == 'GET'
        assert result['request']['path'] == '/pets/7'
        assert result['response']['statusCode'] == 200
        assert result['response']['content'] == {'id': 7, 'name': 'Rex'}

    def test_generate_without_contexts(self, spec_file, capsys):
        """Test generation falls back to random values."""
        main(['generate', str(spec_file), '--resource', '/pets/{id}'])

        content = json.loads(capsys.readouterr().out)['response']['content']
        assert isinstance(content['id'], int)
        assert isinstance(content['name'], str)

    def test_unknown_resource(self, spec_file, capsys):
        """Test unknown operations exit with an error."""
        with pytest.raises(SystemExit) as exc_info:
            main(['generate', str(spec_file), '--resource', '/owners'])

        assert exc_info.value.code == 1
        assert 'Failed to find operation' in capsys.readouterr().err

    def test_unknown_method(self, spec_file):
        """Test undeclared methods exit with an error."""
        with pytest.raises(SystemExit) as exc_info:
            main(['generate', str(spec_file), '--resource', '/pets/{id}', '--method', 'DELETE'])

        assert exc_info.value.code == 1

    def test_missing_spec(self, tmp_path):
        """Test missing documents exit with an error."""
        with pytest.raises(SystemExit) as exc_info:
            main(['generate', str(tmp_path / 'missing.yml'), '--resource', '/pets'])

        assert exc_info.value.code == 1

    def test_missing_context(self, spec_file, tmp_path):
        """Test unreadable context files exit with an error."""
        with pytest.raises(SystemExit) as exc_info:
            main(['generate', str(spec_file), '--resource', '/pets/{id}', '--context', str(tmp_path / 'nope.yml')])

        assert exc_info.value.code == 1


class TestServeCommand:
    """Test the serve command."""

    @patch('specmock.mock.create_mock_server')
    def test_serve(self, mock_create):
        """Test the server is created with the overrides and started."""
        main(['serve', '--base-dir', '/srv/mock', '--port', '2300'])

        mock_create.assert_called_once_with('/srv/mock', host=None, port=2300, provider=None)
        mock_create.return_value.start.assert_called_once()

    @patch('specmock.mock.create_mock_server')
    def test_serve_keyboard_interrupt(self, mock_create, capsys):
        """Test stopping the server with Ctrl+C."""
        mock_create.return_value.start.side_effect = KeyboardInterrupt

        main(['serve'])

        assert 'Mock server stopped' in capsys.readouterr().out

    @patch('specmock.mock.create_mock_server', side_effect=ConfigError("bad config"))
    def test_serve_config_error(self, mock_create):
        """Test configuration errors exit with an error."""
        with pytest.raises(SystemExit) as exc_info:
            main(['serve'])

        assert exc_info.value.code == 1


class TestMain:
    """Test argument handling."""

    def test_no_command(self, capsys):
        """Test running without a command prints help."""
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
        assert 'serve' in capsys.readouterr().out

    def test_invalid_provider(self, spec_file):
        """Test argparse rejects unknown providers."""
        with pytest.raises(SystemExit) as exc_info:
            main(['generate', str(spec_file), '--resource', '/pets/{id}', '--provider', 'other'])

        assert exc_info.value.code == 2
