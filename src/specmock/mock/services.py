"""
specmock service registry

Services own their routes and API documents. Route lists are read by
requests while the admin API and the loader change them, so every access
goes through the service lock.
"""

import re
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern

from .files import FileProperties


ROUTE_TYPE_OPENAPI = 'openapi'
ROUTE_TYPE_FIXED = 'fixed'

_PARAM_RE = re.compile(r'\{[^/{}]+\}')


def compile_route_path(path: str) -> Pattern:
    """Regex for a route path, ``{name}`` matching one path segment."""
    pattern = ''
    last = 0
    for match in _PARAM_RE.finditer(path):
        pattern += re.escape(path[last:match.start()]) + '[^/]+'
        last = match.end()
    pattern += re.escape(path[last:])
    return re.compile(f'^{pattern}/?$')


@dataclass
class RouteDescription:
    """
    One served (method, path) pair.

    Attributes:
        method: Upper-cased HTTP method
        path: Full path including the service prefix
        type: ``openapi`` or ``fixed``
        content_type: Content type of a fixed response
        overwrites: Fixed file replacing an API operation
        resource: Path as declared, without the service prefix
        file: Properties of the file behind the route
    """

    method: str
    path: str
    type: str
    content_type: str = ''
    overwrites: bool = False
    resource: str = ''
    file: Optional[FileProperties] = None
    pattern: Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        self.method = self.method.upper()
        self.pattern = compile_route_path(self.path)

    @property
    def is_parametrized(self) -> bool:
        return bool(_PARAM_RE.search(self.path))

    def matches(self, method: str, path: str) -> bool:
        return self.method == method.upper() and self.pattern.match(path) is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'method': self.method,
            'path': self.path,
            'type': self.type,
            'content_type': self.content_type,
            'overwrites': self.overwrites,
        }


class ServiceItem:
    """
    A service with its routes and API files.

    Example:
        service = ServiceItem('petstore')
        service.add_routes([RouteDescription('GET', '/petstore/pets', ROUTE_TYPE_OPENAPI)])
        service.find_route('GET', '/petstore/pets')
    """

    def __init__(self, name: str):
        self.name = name
        self.routes: List[RouteDescription] = []
        self.openapi_files: List[FileProperties] = []
        self._lock = threading.RLock()

    def add_routes(self, routes: List[RouteDescription]) -> None:
        """
        Add routes, a route with the same method and path is replaced.

        Fixed routes replacing API routes are flagged with ``overwrites``.
        """
        with self._lock:
            for route in routes:
                for index, existing in enumerate(self.routes):
                    if existing.method == route.method and existing.path == route.path:
                        if route.type == ROUTE_TYPE_FIXED and existing.type == ROUTE_TYPE_OPENAPI:
                            route.overwrites = True
                        self.routes[index] = route
                        break
                else:
                    self.routes.append(route)

    def add_openapi_files(self, files: List[FileProperties]) -> None:
        with self._lock:
            known = {f.file_path for f in self.openapi_files}
            for item in files:
                if item.file_path not in known:
                    self.openapi_files.append(item)
                    known.add(item.file_path)

    def remove_route(self, method: str, path: str) -> bool:
        """Remove a route, returns whether it existed."""
        with self._lock:
            for index, route in enumerate(self.routes):
                if route.method == method.upper() and route.path == path:
                    del self.routes[index]
                    return True
        return False

    def get_routes(self) -> List[RouteDescription]:
        """Routes sorted by path then method."""
        with self._lock:
            return sorted(self.routes, key=lambda r: (r.path, r.method))

    def find_route(self, method: str, path: str) -> Optional[RouteDescription]:
        """Route serving a request; literal paths win over parametrized ones."""
        with self._lock:
            candidates = [r for r in self.routes if r.matches(method, path)]
        if not candidates:
            return None
        candidates.sort(key=lambda r: (r.is_parametrized, -len(r.path)))
        return candidates[0]

    def allowed_methods(self, path: str) -> List[str]:
        """Methods of the routes matching a path."""
        with self._lock:
            return sorted({r.method for r in self.routes if r.pattern.match(path)})

    def find_resource(self, method: str, resource: str) -> Optional[RouteDescription]:
        """Route by its declared resource, as used by the admin API."""
        with self._lock:
            for route in self.routes:
                if route.method == method.upper() and resource in (route.resource, route.path):
                    return route
        return None

    def to_dict(self, with_routes: bool = True) -> Dict[str, Any]:
        with self._lock:
            result: Dict[str, Any] = {
                'name': self.name,
                'routes_count': len(self.routes),
                'openapi_files': [f.file_name for f in self.openapi_files],
            }
            if with_routes:
                result['routes'] = [r.to_dict() for r in sorted(self.routes, key=lambda r: (r.path, r.method))]
            return result


class ServiceRegistry:
    """Services by name, safe for concurrent lookups and removals."""

    def __init__(self, services: Optional[Dict[str, ServiceItem]] = None):
        self._services: Dict[str, ServiceItem] = dict(services or {})
        self._lock = threading.RLock()

    def get(self, name: str) -> Optional[ServiceItem]:
        with self._lock:
            return self._services.get(name)

    def get_or_create(self, name: str) -> ServiceItem:
        with self._lock:
            service = self._services.get(name)
            if service is None:
                service = ServiceItem(name)
                self._services[name] = service
            return service

    def remove(self, name: str) -> bool:
        with self._lock:
            return self._services.pop(name, None) is not None

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._services)

    def all(self) -> List[ServiceItem]:
        with self._lock:
            return [self._services[name] for name in sorted(self._services)]

    def find_route(self, method: str, path: str) -> Optional[RouteDescription]:
        """Route serving a request across all services."""
        best = None
        for service in self.all():
            route = service.find_route(method, path)
            if route is None:
                continue
            if best is None or (route.is_parametrized, -len(route.path)) < (best.is_parametrized, -len(best.path)):
                best = route
        return best

    def allowed_methods(self, path: str) -> List[str]:
        methods = set()
        for service in self.all():
            methods.update(service.allowed_methods(path))
        return sorted(methods)

    def __len__(self) -> int:
        with self._lock:
            return len(self._services)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._services
