"""
specmock Configuration

YAML-backed configuration for the application, per-service behavior
(latency, error injection, contexts, validation, caching) and schema
parsing limits.

Example config.yml:

    app:
      port: 2200
      schemaProvider: native
      historyDuration: 300
    services:
      petstore:
        latency: 100ms
        errors:
          p10: 500
          p15: 400
        contexts:
          - common:
          - petstore: pets
        parseConfig:
          maxLevels: 6
          maxRecursionLevels: 1
          onlyRequired: false
        validate:
          request: true
"""

import random
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import ConfigError


_DURATION_RE = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*(ms|s|m)?\s*$')


def parse_duration(value: Union[str, int, float, None]) -> float:
    """
    Parse a duration into seconds.

    Accepts plain numbers (seconds) and strings with ``ms``, ``s`` or ``m``
    suffixes.

    Args:
        value: Duration like ``0.5``, ``"250ms"``, ``"1s"``

    Returns:
        Duration in seconds

    Raises:
        ConfigError: If the value cannot be parsed
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise ConfigError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    match = _DURATION_RE.match(str(value))
    if not match:
        raise ConfigError(f"Invalid duration: {value!r}")

    amount = float(match.group(1))
    unit = match.group(2) or 's'
    if unit == 'ms':
        return amount / 1000
    if unit == 'm':
        return amount * 60
    return amount


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key; config files use both camelCase and snake_case."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _parse_percentiles(values: Dict[str, Any], converter) -> List[tuple]:
    """Turn ``{"p10": x}`` maps into a sorted list of ``(10, x)`` pairs."""
    result = []
    for key, value in (values or {}).items():
        key = str(key)
        if not key.startswith('p'):
            continue
        try:
            percent = int(key[1:])
        except ValueError:
            continue
        result.append((percent, converter(value)))
    result.sort(key=lambda kv: kv[0])
    return result


@dataclass
class ParseConfig:
    """
    Limits applied while normalizing schemas.

    Attributes:
        max_levels: Maximum nesting depth of generated content, 0 means unlimited
        max_recursion_levels: How many times the same reference may repeat on
            one path, 0 means the first repeat is cut
        only_required: Generate only required object properties
    """

    max_levels: int = 0
    max_recursion_levels: int = 0
    only_required: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ParseConfig':
        """Create ParseConfig from dictionary."""
        data = data or {}
        return cls(
            max_levels=int(_pick(data, 'max_levels', 'maxLevels', default=0) or 0),
            max_recursion_levels=int(
                _pick(data, 'max_recursion_levels', 'maxRecursionLevels', default=0) or 0
            ),
            only_required=bool(_pick(data, 'only_required', 'onlyRequired', default=False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'max_levels': self.max_levels,
            'max_recursion_levels': self.max_recursion_levels,
            'only_required': self.only_required,
        }


@dataclass
class ServiceValidateConfig:
    """Request/response validation toggles."""

    request: bool = False
    response: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ServiceValidateConfig':
        data = data or {}
        return cls(request=bool(data.get('request', False)), response=bool(data.get('response', False)))


@dataclass
class ServiceCacheConfig:
    """Caching toggles; normalized schemas are cached by default."""

    schema: bool = True
    get_requests: bool = True

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ServiceCacheConfig':
        data = data or {}
        return cls(
            schema=bool(data.get('schema', True)),
            get_requests=bool(_pick(data, 'get_requests', 'getRequests', default=True)),
        )


@dataclass
class ServiceConfig:
    """
    Configuration of a single service.

    Latency and errors can be given as percentile tables: a random roll
    between 1 and 100 picks the first entry whose percentile covers it.
    ``{"p10": 500, "p20": 400}`` returns 500 for 10% of requests, 400 for
    the next 10% and no error otherwise.
    """

    latency: float = 0.0
    latencies: Dict[str, float] = field(default_factory=dict)
    errors: Dict[str, int] = field(default_factory=dict)
    contexts: List[Dict[str, str]] = field(default_factory=list)
    parse_config: ParseConfig = field(default_factory=ParseConfig)
    validate: ServiceValidateConfig = field(default_factory=ServiceValidateConfig)
    cache: ServiceCacheConfig = field(default_factory=ServiceCacheConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ServiceConfig':
        """Create ServiceConfig from dictionary."""
        data = data or {}

        contexts = []
        for item in data.get('contexts') or []:
            if isinstance(item, str):
                contexts.append({item: ''})
            elif isinstance(item, dict):
                contexts.append({str(k): '' if v is None else str(v) for k, v in item.items()})
            else:
                raise ConfigError(f"Invalid context reference: {item!r}")

        return cls(
            latency=parse_duration(data.get('latency')),
            latencies={str(k): parse_duration(v) for k, v in (data.get('latencies') or {}).items()},
            errors={str(k): int(v) for k, v in (data.get('errors') or {}).items()},
            contexts=contexts,
            parse_config=ParseConfig.from_dict(_pick(data, 'parse_config', 'parseConfig')),
            validate=ServiceValidateConfig.from_dict(data.get('validate')),
            cache=ServiceCacheConfig.from_dict(data.get('cache')),
        )

    def get_latency(self) -> float:
        """Latency in seconds for the next request."""
        table = _parse_percentiles(self.latencies, float)
        if not table:
            return self.latency

        roll = random.randint(1, 100)
        for percent, value in table:
            if roll <= percent:
                return value
        return 0.0

    def get_error(self) -> int:
        """HTTP status code to fail the next request with, or 0 for none."""
        table = _parse_percentiles(self.errors, int)
        if not table:
            return 0

        roll = random.randint(1, 100)
        for percent, status in table:
            if roll <= percent:
                return status
        return 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'latency': self.latency,
            'latencies': dict(self.latencies),
            'errors': dict(self.errors),
            'contexts': [dict(c) for c in self.contexts],
            'parse_config': self.parse_config.to_dict(),
            'validate': {'request': self.validate.request, 'response': self.validate.response},
            'cache': {'schema': self.cache.schema, 'get_requests': self.cache.get_requests},
        }


@dataclass
class Paths:
    """
    Filesystem layout, derived from one base directory.

    Layout:
        <base>/resources/data/services/openapi/<service>/spec.yml
        <base>/resources/data/services/<service>/<method?>/<path>.json
        <base>/resources/data/contexts/<namespace>.yml
    """

    base: Path
    resources: Path
    data: Path
    contexts: Path
    services: Path
    services_openapi: Path
    services_fixed_root: str = 'root'
    config_file: Optional[Path] = None

    @classmethod
    def from_base(cls, base: Union[str, Path]) -> 'Paths':
        base = Path(base)
        resources = base / 'resources'
        data = resources / 'data'
        services = data / 'services'
        return cls(
            base=base,
            resources=resources,
            data=data,
            contexts=data / 'contexts',
            services=services,
            services_openapi=services / 'openapi',
            config_file=data / 'config.yml',
        )


@dataclass
class AppConfig:
    """Application level configuration."""

    paths: Paths
    host: str = '127.0.0.1'
    port: int = 2200
    schema_provider: str = 'native'
    history_duration: float = 300.0
    log_level: str = 'info'
    admin_enabled: bool = True
    admin_prefix: str = '/__admin__'
    services: Dict[str, ServiceConfig] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], base_dir: Union[str, Path]) -> 'AppConfig':
        """Create AppConfig from a parsed config file."""
        data = data or {}
        app = data.get('app') or {}

        provider = str(_pick(app, 'schema_provider', 'schemaProvider', default='native'))
        if provider not in ('native', 'pydantic'):
            raise ConfigError(f"Unknown schema provider: {provider}")

        return cls(
            paths=Paths.from_base(base_dir),
            host=app.get('host', '127.0.0.1'),
            port=int(app.get('port', 2200)),
            schema_provider=provider,
            history_duration=parse_duration(_pick(app, 'history_duration', 'historyDuration', default=300)),
            log_level=str(_pick(app, 'log_level', 'logLevel', default='info')),
            admin_enabled=bool(_pick(app, 'admin_enabled', 'adminEnabled', default=True)),
            admin_prefix=str(_pick(app, 'admin_prefix', 'adminPrefix', default='/__admin__')),
            services={
                str(name): ServiceConfig.from_dict(svc)
                for name, svc in (data.get('services') or {}).items()
            },
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path], base_dir: Optional[Union[str, Path]] = None) -> 'AppConfig':
        """
        Load configuration from a YAML file.

        Args:
            path: Path to the config file
            base_dir: Base directory for resources, defaults to the current one

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config {path}: {e}") from e

        return cls.from_dict(data, base_dir if base_dir is not None else Path.cwd())

    @classmethod
    def from_base_dir(cls, base_dir: Union[str, Path]) -> 'AppConfig':
        """Load ``resources/data/config.yml`` under ``base_dir`` if it exists."""
        paths = Paths.from_base(base_dir)
        if paths.config_file is not None and paths.config_file.exists():
            return cls.from_yaml(paths.config_file, base_dir)
        return cls(paths=paths)

    def get_service_config(self, name: str) -> ServiceConfig:
        """Service config by name, defaults when not configured."""
        config = self.services.get(name)
        if config is None:
            config = ServiceConfig()
            self.services[name] = config
        return config
