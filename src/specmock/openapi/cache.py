"""
specmock operation cache

Decorator over ``Operation`` that keeps normalized parameters, request body
and response so schemas are built once per service and operation.

Cache keys do not include the parse configuration: changing it through
``with_parse_config`` after the first read keeps returning the cached
values.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from ..config import ParseConfig
from ..schema import Schema
from .base import Operation, Parameter, Response


logger = logging.getLogger("specmock.openapi")

FIELD_PARAMETERS = 'parameters'
FIELD_REQUEST_BODY = 'requestBody'
FIELD_RESPONSE = 'response'

MISSING = object()


class CacheStorage(ABC):
    """Key/value storage used by the operation cache."""

    @abstractmethod
    def get(self, key: str) -> Any:
        """Stored value, or ``MISSING`` sentinel when absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a value, may raise CacheStorageError."""


class MemoryStorage(CacheStorage):
    """In-process storage guarded by a single lock."""

    def __init__(self):
        self._data: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            return self._data.get(key, MISSING)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def clear(self) -> int:
        with self._lock:
            count = len(self._data)
            self._data.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class CacheOperationAdapter(Operation):
    """
    Operation wrapper memoizing results per ``<service>:<operation_id>:<field>``.

    Example:
        storage = MemoryStorage()
        operation = CacheOperationAdapter('petstore', document.find_operation(desc), storage)
        operation.get_response()  # built
        operation.get_response()  # served from storage
    """

    def __init__(self, service: str, operation: Operation, storage: CacheStorage):
        super().__init__(operation.resource, operation.method, operation.security_components)
        self.service = service
        self.operation = operation
        self.storage = storage
        self.hits = 0
        self.misses = 0
        self._counter_lock = threading.Lock()

    def id(self) -> str:
        return self.operation.id()

    def cache_key(self, field: str) -> str:
        operation_id = self.operation.id() or f"{self.operation.method} {self.operation.resource}"
        return f"{self.service}:{operation_id}:{field}"

    def with_parse_config(self, config: Optional[ParseConfig]) -> 'CacheOperationAdapter':
        self.operation.with_parse_config(config)
        return self

    def _cached(self, field: str, compute) -> Any:
        key = self.cache_key(field)
        try:
            value = self.storage.get(key)
        except Exception as e:
            logger.error(f"Failed to read {key} from cache: {e}")
            value = MISSING

        if value is not MISSING:
            with self._counter_lock:
                self.hits += 1
            return value

        with self._counter_lock:
            self.misses += 1
        value = compute()
        try:
            self.storage.set(key, value)
        except Exception as e:
            logger.error(f"Failed to cache {key}: {e}")
        return value

    def get_parameters(self) -> List[Parameter]:
        return self._cached(FIELD_PARAMETERS, self.operation.get_parameters)

    def get_request_body(self) -> Tuple[Optional[Schema], str]:
        return self._cached(FIELD_REQUEST_BODY, self.operation.get_request_body)

    def get_response(self) -> Response:
        return self._cached(FIELD_RESPONSE, self.operation.get_response)

    # The wrapped operation does the actual reading.
    def _schema_builder(self, parse_config):
        return self.operation._schema_builder(parse_config)

    def _raw_parameters(self):
        return self.operation._raw_parameters()

    def _raw_request_body(self):
        return self.operation._raw_request_body()

    def _raw_responses(self):
        return self.operation._raw_responses()

    def _security_requirements(self):
        return self.operation._security_requirements()
