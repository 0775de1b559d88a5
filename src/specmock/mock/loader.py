"""
specmock service loader

Scans the services directory in parallel and registers one route per API
operation and one per fixed file. API routes are registered first so
fixed files placed at the same method and path take precedence.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..config import AppConfig
from ..contexts import load_contexts_from_dir
from ..errors import DocumentLoadError
from .files import FileProperties, get_properties_from_file_path
from .services import (
    ROUTE_TYPE_FIXED,
    ROUTE_TYPE_OPENAPI,
    RouteDescription,
    ServiceRegistry,
)


logger = logging.getLogger("specmock.mock")


def openapi_routes(props: FileProperties) -> List[RouteDescription]:
    """Routes for every operation of an API file."""
    if props.spec is None:
        return []

    routes = []
    for resource, methods in props.spec.get_resources().items():
        for method in methods:
            routes.append(RouteDescription(
                method=method,
                path=props.prefix + resource,
                type=ROUTE_TYPE_OPENAPI,
                resource=resource,
                file=props,
            ))
    return routes


def fixed_route(props: FileProperties) -> RouteDescription:
    """Route of a fixed response file."""
    return RouteDescription(
        method=props.method,
        path=props.prefix + props.resource,
        type=ROUTE_TYPE_FIXED,
        content_type=props.content_type,
        resource=props.resource,
        file=props,
    )


class ServiceLoader:
    """
    Loads services and contexts from the resources directory.

    Example:
        loader = ServiceLoader(AppConfig.from_base_dir('.'))
        services = loader.load_services()
        contexts = loader.load_contexts()
    """

    def __init__(self, config: AppConfig, max_workers: int = 8):
        self.config = config
        self.max_workers = max_workers

    def _list_files(self) -> List[Path]:
        services_dir = self.config.paths.services
        if not services_dir.is_dir():
            logger.warning(f"Services directory not found: {services_dir}")
            return []
        return sorted(p for p in services_dir.rglob('*') if p.is_file() and not p.name.startswith('.'))

    def _read_properties(self, file_path: Path) -> FileProperties:
        return get_properties_from_file_path(file_path, self.config.paths, self.config.schema_provider)

    def scan(self) -> Tuple[List[FileProperties], List[FileProperties]]:
        """
        Read the properties of every service file.

        Returns:
            Tuple of (API files, fixed files), each sorted by path
        """
        openapi_files: List[FileProperties] = []
        fixed_files: List[FileProperties] = []

        files = self._list_files()
        if not files:
            return openapi_files, fixed_files

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_path = {
                executor.submit(self._read_properties, file_path): file_path
                for file_path in files
            }

            for future in as_completed(future_to_path):
                file_path = future_to_path[future]
                try:
                    props = future.result()
                except (DocumentLoadError, OSError, ValueError) as e:
                    logger.error(f"Failed to load {file_path}: {e}")
                    continue

                if props.is_openapi:
                    openapi_files.append(props)
                else:
                    fixed_files.append(props)

        openapi_files.sort(key=lambda p: str(p.file_path))
        fixed_files.sort(key=lambda p: str(p.file_path))
        return openapi_files, fixed_files

    def load_services(self, registry: Optional[ServiceRegistry] = None) -> ServiceRegistry:
        """Register all services into ``registry`` (a new one by default)."""
        registry = registry if registry is not None else ServiceRegistry()
        openapi_files, fixed_files = self.scan()

        for props in openapi_files:
            routes = openapi_routes(props)
            service = registry.get_or_create(props.service_name)
            service.add_openapi_files([props])
            service.add_routes(routes)
            logger.info(f"Registered {len(routes)} routes from {props.file_name} for service {props.service_name}")

        for props in fixed_files:
            route = fixed_route(props)
            registry.get_or_create(props.service_name).add_routes([route])
            logger.debug(f"Registered fixed route {route.method} {route.path}")

        logger.info(f"Loaded {len(registry)} services")
        return registry

    def load_contexts(self) -> Dict[str, Dict[str, Any]]:
        """Context namespaces from the contexts directory."""
        contexts_dir = self.config.paths.contexts
        if not contexts_dir.is_dir():
            logger.warning(f"Contexts directory not found: {contexts_dir}")
            return {}

        return load_contexts_from_dir(contexts_dir)
