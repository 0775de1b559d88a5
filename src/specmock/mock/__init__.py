"""
specmock Mock Module

HTTP mock server serving generated and fixed responses.
"""

from .files import FileProperties, content_type_from_extension, get_properties_from_file_path
from .services import (
    ROUTE_TYPE_FIXED,
    ROUTE_TYPE_OPENAPI,
    RouteDescription,
    ServiceItem,
    ServiceRegistry,
)
from .loader import ServiceLoader, fixed_route, openapi_routes
from .history import HistoryRecord, RequestHistory
from .validation import validate_request, validate_response
from .server import MockServer, MockMetrics, create_mock_server

__all__ = [
    # Files
    'FileProperties',
    'content_type_from_extension',
    'get_properties_from_file_path',

    # Services
    'ROUTE_TYPE_FIXED',
    'ROUTE_TYPE_OPENAPI',
    'RouteDescription',
    'ServiceItem',
    'ServiceRegistry',
    'ServiceLoader',
    'fixed_route',
    'openapi_routes',

    # History
    'HistoryRecord',
    'RequestHistory',

    # Validation
    'validate_request',
    'validate_response',

    # Server
    'MockServer',
    'MockMetrics',
    'create_mock_server',
]
