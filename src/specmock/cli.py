"""
specmock CLI

Command-line interface for the mock server and offline generation.

Commands:
    serve       - Start the mock HTTP server
    generate    - Print an example request and response for one operation

Examples:
    # Serve everything under ./resources/data
    specmock serve --base-dir . --port 2200

    # Preview a generated response
    specmock generate petstore.yml --resource /pets/{id} --method GET --context common.yml
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .contexts import (
    FAKE_NAMESPACE,
    collect_contexts,
    default_context_names,
    fake_namespace,
    load_contexts,
)
from .errors import ConfigError, DocumentLoadError, MethodNotAllowedError, ResourceNotFoundError
from .generator import generate_request, generate_response
from .openapi import PROVIDER_NATIVE, PROVIDERS, OperationDescription, new_document_from_file
from .replacer import create_value_replacer


def cmd_serve(args):
    """
    Start the mock HTTP server.

    Args:
        args: Parsed command-line arguments
    """
    from .mock import create_mock_server

    print("specmock Mock Server")
    print(f"   Base directory: {args.base_dir}")

    try:
        server = create_mock_server(args.base_dir, host=args.host, port=args.port, provider=args.provider)
    except (ConfigError, ImportError) as e:
        print(f"Failed to create mock server: {e}")
        sys.exit(1)

    # Start server (blocking)
    try:
        server.start()
    except KeyboardInterrupt:
        print("\n\nMock server stopped")


def cmd_generate(args):
    """
    Print the generated request and response of one operation as JSON.

    Args:
        args: Parsed command-line arguments
    """
    try:
        document = new_document_from_file(args.spec, args.provider)
        operation = document.get_operation(OperationDescription(
            service='',
            resource=args.resource,
            method=args.method,
        ))
    except (DocumentLoadError, ResourceNotFoundError, MethodNotAllowedError) as e:
        print(f"Failed to find operation: {e}", file=sys.stderr)
        sys.exit(1)

    files = {}
    for context_file in args.context or []:
        path = Path(context_file)
        try:
            files[path.stem] = path.read_bytes()
        except OSError as e:
            print(f"Failed to read context {path}: {e}", file=sys.stderr)
            sys.exit(1)

    namespaces = load_contexts(files)
    namespaces[FAKE_NAMESPACE] = fake_namespace()
    replacer = create_value_replacer(collect_contexts(default_context_names(namespaces), namespaces))

    result = {
        'request': generate_request(operation, replacer).to_dict(),
        'response': generate_response(operation, replacer).to_dict(),
    }
    print(json.dumps(result, indent=2, default=str))


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="specmock - mock HTTP server driven by OpenAPI specifications",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve services and contexts from ./resources/data
  %(prog)s serve --base-dir . --port 2200

  # Use the pydantic document provider
  %(prog)s serve --base-dir . --provider pydantic

  # Generate a request/response pair
  %(prog)s generate petstore.yml --resource /pets --method POST --context common.yml
        """
    )
    parser.add_argument('--log-level', default='INFO', help='Logging level (default: INFO)')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # --- SERVE command ---
    serve_parser = subparsers.add_parser('serve', help='Start mock HTTP server')
    serve_parser.add_argument('--base-dir', default='.', help='Directory holding resources/data (default: .)')
    serve_parser.add_argument('--host', help='Host to bind (default: from config, 127.0.0.1)')
    serve_parser.add_argument('--port', type=int, help='Port to bind (default: from config, 2200)')
    serve_parser.add_argument('--provider', choices=sorted(PROVIDERS), help='Document provider (default: from config)')

    # --- GENERATE command ---
    generate_parser = subparsers.add_parser('generate', help='Generate request and response for an operation')
    generate_parser.add_argument('spec', help='OpenAPI document (YAML or JSON)')
    generate_parser.add_argument('--resource', required=True, help='Resource path as declared, e.g. /pets/{id}')
    generate_parser.add_argument('--method', default='GET', help='HTTP method (default: GET)')
    generate_parser.add_argument('--context', action='append', help='Context YAML file, may be repeated')
    generate_parser.add_argument('--provider', choices=sorted(PROVIDERS), default=PROVIDER_NATIVE,
                                 help=f'Document provider (default: {PROVIDER_NATIVE})')

    # Parse arguments
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    # Dispatch to command handler
    if args.command == 'serve':
        cmd_serve(args)
    elif args.command == 'generate':
        cmd_generate(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == '__main__':
    main()
