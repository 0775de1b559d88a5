"""
specmock Mock Server

FastAPI-based HTTP mock server generating responses from API documents and
serving fixed response files.

Features:
- Routes for every operation of the API documents and every fixed file
- Context driven content generation
- Latency and error injection per service
- Request and response validation
- Admin API for services, contexts, history and metrics
"""

import logging
import threading
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

try:
    from fastapi import FastAPI, Request, Response
    from fastapi.responses import JSONResponse
    from fastapi.concurrency import run_in_threadpool
    import uvicorn
    FASTAPI_AVAILABLE = True
except ImportError:
    FASTAPI_AVAILABLE = False

from ..common import safe_json_parse
from ..config import AppConfig, ServiceConfig
from ..contexts import (
    FAKE_NAMESPACE,
    ContextFunction,
    collect_contexts,
    default_context_names,
    fake_namespace,
)
from ..errors import ResourceNotFoundError, ServiceNotFoundError
from ..generator import (
    GeneratedResponse,
    generate_request,
    generate_request_from_fixed_resource,
    generate_response,
    generate_response_from_fixed_resource,
)
from ..openapi import CacheOperationAdapter, MemoryStorage, Operation, OperationDescription
from ..replacer import ValueReplacer, create_value_replacer
from .history import HistoryRecord, RequestHistory
from .loader import ServiceLoader
from .services import ROUTE_TYPE_OPENAPI, RouteDescription, ServiceRegistry
from .validation import validate_request, validate_response


MOCK_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


@dataclass
class MockMetrics:
    """Track mock server metrics."""

    total_requests: int = 0
    served_requests: int = 0
    unmatched_requests: int = 0
    injected_errors: int = 0
    validation_failures: int = 0
    cache_hits: int = 0
    start_time: str = field(default_factory=lambda: datetime.now().isoformat())
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def increment(self, name: str) -> None:
        with self._lock:
            setattr(self, name, getattr(self, name) + 1)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        uptime_seconds = (datetime.now() - datetime.fromisoformat(self.start_time)).total_seconds()
        return {
            'total_requests': self.total_requests,
            'served_requests': self.served_requests,
            'unmatched_requests': self.unmatched_requests,
            'injected_errors': self.injected_errors,
            'validation_failures': self.validation_failures,
            'cache_hits': self.cache_hits,
            'uptime_seconds': round(uptime_seconds, 2),
            'start_time': self.start_time
        }


def render_context(value: Any) -> Any:
    """Context values as JSON data, generators shown by their source."""
    if isinstance(value, ContextFunction):
        return value.source
    if isinstance(value, dict):
        return {str(k): render_context(v) for k, v in value.items()}
    if isinstance(value, list):
        return [render_context(v) for v in value]
    if callable(value):
        return repr(value)
    return value


def _simple_response(status_code: int, message: str, success: bool = False) -> 'JSONResponse':
    return JSONResponse(status_code=status_code, content={'success': success, 'message': message})


class MockServer:
    """
    FastAPI-based mock server for API documents and fixed files.

    Loads services and contexts from the resources directory of the
    configuration unless they are given.

    Example:
        # Load everything under ./resources/data and start the server
        server = MockServer(AppConfig.from_base_dir('.'))
        server.start(port=2200)

        # Testing with prepared services
        server = MockServer(config, services=registry, contexts={'common': {'name': 'Jane'}})
        client = TestClient(server.get_app())
    """

    def __init__(
        self,
        config: AppConfig,
        services: Optional[ServiceRegistry] = None,
        contexts: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        """
        Initialize mock server.

        Args:
            config: Application configuration
            services: Registered services, loaded from disk when None
            contexts: Context namespaces, loaded from disk when None
        """
        if not FASTAPI_AVAILABLE:
            raise ImportError("FastAPI is required for mock server. Install with: pip install fastapi uvicorn")

        self.config = config
        self.metrics = MockMetrics()
        self.history = RequestHistory(config.history_duration)
        self.schema_cache = MemoryStorage()

        self.logger = logging.getLogger("specmock.mock")
        self.logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))

        loader = ServiceLoader(config)
        self.services = services if services is not None else loader.load_services()
        self.contexts: Dict[str, Dict[str, Any]] = dict(contexts if contexts is not None else loader.load_contexts())
        self.contexts.setdefault(FAKE_NAMESPACE, fake_namespace())

        self.app = self._create_app()

    def _create_app(self) -> 'FastAPI':
        """Create FastAPI application with routes."""
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            self.history.start()
            self.logger.debug(f"Request history cleared every {self.history.duration}s")
            try:
                yield
            finally:
                self.history.stop()

        app = FastAPI(
            title="specmock",
            description="Mock HTTP server generating responses from API documents",
            version="1.0.0",
            lifespan=lifespan
        )
        prefix = self.config.admin_prefix

        # Admin API routes
        if self.config.admin_enabled:
            @app.get(f"{prefix}/services")
            async def list_services():
                """List registered services."""
                services = [s.to_dict(with_routes=False) for s in self.services.all()]
                return JSONResponse(content={'total': len(services), 'services': services})

            @app.get(f"{prefix}/services/{{name}}")
            async def get_service(name: str):
                """Get a service with its routes."""
                service = self.services.get(name)
                if service is None:
                    return _simple_response(404, f"Service {name} not found")
                return JSONResponse(content=service.to_dict())

            @app.delete(f"{prefix}/services/{{name}}")
            async def delete_service(name: str):
                """Remove a service and stop serving its routes."""
                if not self.services.remove(name):
                    return _simple_response(404, f"Service {name} not found")
                self.logger.info(f"Service {name} removed")
                return _simple_response(200, f"Service {name} removed", success=True)

            @app.post(f"{prefix}/services/{{name}}/generate")
            async def generate_resource(name: str, request: Request):
                """Generate an example request and response for a resource."""
                payload = safe_json_parse(await request.body())
                if payload is None:
                    return _simple_response(400, "Invalid JSON payload")
                if not isinstance(payload, dict) or not payload.get('resource'):
                    return _simple_response(400, "Payload requires a resource")

                try:
                    result = await run_in_threadpool(
                        self.generate,
                        name,
                        payload['resource'],
                        payload.get('method') or 'GET',
                        payload.get('replacements') or None,
                    )
                except (ServiceNotFoundError, ResourceNotFoundError) as e:
                    return _simple_response(404, str(e))
                return JSONResponse(content=result)

            @app.get(f"{prefix}/contexts")
            async def list_contexts():
                """List loaded contexts, generators shown by their source."""
                contexts = {
                    name: render_context(values)
                    for name, values in sorted(self.contexts.items())
                    if name != FAKE_NAMESPACE
                }
                return JSONResponse(content={'total': len(contexts), 'contexts': contexts})

            @app.get(f"{prefix}/history")
            async def get_history():
                """Get served requests."""
                records = [r.to_dict() for r in self.history.get_all()]
                return JSONResponse(content={'total': len(records), 'requests': records})

            @app.delete(f"{prefix}/history")
            async def clear_history():
                """Clear served requests and cached responses."""
                count = self.history.clear()
                return JSONResponse(content={'status': 'cleared', 'cleared_count': count})

            @app.get(f"{prefix}/metrics")
            async def get_metrics():
                """Get server metrics."""
                return JSONResponse(content=self.metrics.to_dict())

        # Catch-all route for mock requests (must be last)
        @app.api_route("/{path:path}", methods=MOCK_METHODS)
        async def mock_request(request: Request, path: str):
            """Handle incoming requests and serve mock responses."""
            body = await request.body()
            return await run_in_threadpool(
                self._handle_request,
                request.method,
                request.url.path,
                request.url.query,
                dict(request.headers),
                body,
            )

        return app

    def create_replacer(
        self,
        service_name: str,
        replacements: Optional[Dict[str, Any]] = None,
    ) -> ValueReplacer:
        """
        Value replacer over the contexts of a service.

        Services without configured contexts use every loaded namespace.
        ``replacements`` take priority over all of them.
        """
        service_config = self.config.get_service_config(service_name)
        names = service_config.contexts or default_context_names(self.contexts)
        return create_value_replacer(collect_contexts(names, self.contexts, replacements))

    def _prepare_operation(self, service_name: str, operation: Operation, service_config: ServiceConfig) -> Operation:
        if service_config.cache.schema:
            operation = CacheOperationAdapter(service_name, operation, self.schema_cache)
        return operation.with_parse_config(service_config.parse_config)

    def _find_operation(self, route: RouteDescription, method: str) -> Optional[Operation]:
        if route.file is None or route.file.spec is None:
            return None
        description = OperationDescription(
            service=route.file.service_name,
            resource=route.resource,
            method=method,
        )
        return route.file.spec.find_operation(description)

    def _apply_latency_and_error(self, service_name: str, service_config: ServiceConfig) -> Optional['Response']:
        """Sleep for the configured latency, then roll for an injected error."""
        latency = service_config.get_latency()
        if latency > 0:
            self.logger.debug(f"Applying latency of {latency:.3f}s to {service_name}")
            time.sleep(latency)

        status = service_config.get_error()
        if not status:
            return None

        self.metrics.increment('injected_errors')
        self.logger.warning(f"Injected error {status} for service {service_name}")
        return Response(
            content=f"configured service error: {status}",
            status_code=status,
            media_type="text/plain"
        )

    def _to_response(self, generated: GeneratedResponse) -> 'Response':
        return Response(
            content=generated.content or b'',
            status_code=generated.status_code,
            headers=generated.headers,
            media_type=generated.content_type
        )

    def _handle_request(
        self,
        method: str,
        path: str,
        query: str,
        headers: Dict[str, str],
        body: bytes,
    ) -> 'Response':
        """
        Serve one mock request.

        Args:
            method: HTTP method
            path: Request path
            query: Raw query string
            headers: Request headers
            body: Raw request body

        Returns:
            Response generated for the matching route
        """
        self.metrics.increment('total_requests')
        self.logger.debug(f"Incoming: {method} {path}")

        route = self.services.find_route(method, path)
        if route is None or route.file is None:
            self.metrics.increment('unmatched_requests')
            allowed = self.services.allowed_methods(path)
            if allowed:
                return _simple_response(405, f"Method {method} not allowed for {path}")
            return _simple_response(404, f"No route found for {method} {path}")

        service_name = route.file.service_name
        service_config = self.config.get_service_config(service_name)

        cache_key = f"{service_name}:{path}?{query}"
        use_cache = method.upper() == 'GET' and service_config.cache.get_requests
        if use_cache:
            cached = self.history.get_response(cache_key)
            if cached is not None:
                self.logger.debug(f"Cache hit for {path}")
                self.metrics.increment('cache_hits')
                latency = service_config.get_latency()
                if latency > 0:
                    time.sleep(latency)
                return self._to_response(cached)

        if route.type == ROUTE_TYPE_OPENAPI:
            result = self._serve_openapi(route, method, query, headers, body, service_config)
        else:
            result = self._serve_fixed(route, service_config)

        if isinstance(result, GeneratedResponse):
            if use_cache:
                self.history.set_response(cache_key, result)
            self._record(route, method, path, query, headers, body, result)
            self.metrics.increment('served_requests')
            return self._to_response(result)
        return result

    def _serve_openapi(
        self,
        route: RouteDescription,
        method: str,
        query: str,
        headers: Dict[str, str],
        body: bytes,
        service_config: ServiceConfig,
    ) -> Any:
        service_name = route.file.service_name
        operation = self._find_operation(route, method)
        if operation is None:
            # The document changed after the routes were registered.
            return Response(content=b"resource not found", status_code=404, media_type="text/plain")
        operation = self._prepare_operation(service_name, operation, service_config)

        if service_config.validate.request:
            error = validate_request(
                operation,
                body,
                headers.get('content-type', ''),
                parse_qs(query, keep_blank_values=True),
                headers,
            )
            if error:
                self.metrics.increment('validation_failures')
                self.logger.info(f"Invalid request {method} {route.path}: {error}")
                return _simple_response(400, f"Invalid request: {error}")

        response = generate_response(operation, self.create_replacer(service_name))

        if service_config.validate.response:
            error = validate_response(operation, response.content, response.content_type)
            if error:
                self.metrics.increment('validation_failures')
                self.logger.info(f"Invalid response {method} {route.path}: {error}")
                return _simple_response(400, f"Invalid response: {error}")

        injected = self._apply_latency_and_error(service_name, service_config)
        if injected is not None:
            return injected
        return response

    def _serve_fixed(self, route: RouteDescription, service_config: ServiceConfig) -> Any:
        service_name = route.file.service_name
        injected = self._apply_latency_and_error(service_name, service_config)
        if injected is not None:
            return injected

        return generate_response_from_fixed_resource(
            str(route.file.file_path),
            route.file.content_type,
            self.create_replacer(service_name),
        )

    def _record(
        self,
        route: RouteDescription,
        method: str,
        path: str,
        query: str,
        headers: Dict[str, str],
        body: bytes,
        response: GeneratedResponse,
    ) -> None:
        self.history.add(HistoryRecord(
            resource=route.resource,
            method=method.upper(),
            path=path,
            query=query,
            headers=headers,
            body=body.decode('utf-8', 'replace'),
            status_code=response.status_code,
            response_content_type=response.content_type,
            response_body=(response.content or b'').decode('utf-8', 'replace'),
        ))

    def generate(
        self,
        service_name: str,
        resource: str,
        method: str = 'GET',
        replacements: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Generate an example request and response for a service resource.

        Args:
            service_name: Registered service
            resource: Resource as declared in the document, or the full route path
            method: HTTP method
            replacements: Values taking priority over every context

        Returns:
            ``{"request": ..., "response": ...}``

        Raises:
            ServiceNotFoundError: If the service is not registered
            ResourceNotFoundError: If the service has no such route
        """
        service = self.services.get(service_name)
        if service is None:
            raise ServiceNotFoundError(f"Service {service_name} not found")

        route = service.find_resource(method, resource)
        if route is None or route.file is None:
            raise ResourceNotFoundError(f"Resource {method.upper()} {resource} not found in {service_name}")

        replacer = self.create_replacer(service_name, replacements)

        if route.type == ROUTE_TYPE_OPENAPI:
            operation = self._find_operation(route, method)
            if operation is None:
                raise ResourceNotFoundError(f"Resource {method.upper()} {resource} not found in {service_name}")
            service_config = self.config.get_service_config(service_name)
            operation = self._prepare_operation(service_name, operation, service_config)

            request = generate_request(operation, replacer, resource=route.resource, path_prefix=route.file.prefix)
            response = generate_response(operation, replacer)
        else:
            request = generate_request_from_fixed_resource(route.path, route.method, route.content_type, replacer)
            response = generate_response_from_fixed_resource(
                str(route.file.file_path), route.file.content_type, replacer
            )

        return {'request': request.to_dict(), 'response': response.to_dict()}

    def start(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        access_log: bool = True
    ):
        """
        Start the mock server.

        Args:
            host: Host to bind to (overrides config)
            port: Port to bind to (overrides config)
            access_log: Enable access logging
        """
        actual_host = host or self.config.host
        actual_port = port or self.config.port

        routes: List[RouteDescription] = [r for s in self.services.all() for r in s.get_routes()]
        print("specmock server starting...")
        print(f"   Host: {actual_host}:{actual_port}")
        print(f"   Services loaded: {len(self.services)} ({len(routes)} routes)")
        print(f"   Contexts loaded: {len([n for n in self.contexts if n != FAKE_NAMESPACE])}")

        if self.config.admin_enabled:
            print(f"   Admin API: http://{actual_host}:{actual_port}{self.config.admin_prefix}/services")

        print()

        uvicorn.run(
            self.app,
            host=actual_host,
            port=actual_port,
            log_level=self.config.log_level,
            access_log=access_log
        )

    def get_app(self) -> 'FastAPI':
        """
        Get the FastAPI app instance for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        return self.app


def create_mock_server(
    base_dir: str,
    host: Optional[str] = None,
    port: Optional[int] = None,
    provider: Optional[str] = None,
) -> MockServer:
    """
    Convenience function to create and configure a mock server.

    Args:
        base_dir: Directory holding ``resources/data``
        host: Host to bind to, overrides the config file
        port: Port to bind to, overrides the config file
        provider: Document provider (``native`` or ``pydantic``), overrides the config file

    Returns:
        Configured MockServer instance

    Example:
        server = create_mock_server('.', port=2200, provider='pydantic')
        server.start()
    """
    config = AppConfig.from_base_dir(base_dir)
    if host:
        config.host = host
    if port:
        config.port = port
    if provider:
        config.schema_provider = provider

    return MockServer(config)
