"""
specmock request history

Keeps the requests served by the mock routes for the admin API, and the
GET responses served again from cache. Both are cleared on a timer.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


logger = logging.getLogger("specmock.mock")


class ReadWriteLock:
    """Many readers or a single writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self):
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            while self._writing or self._readers > 0:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


@dataclass
class HistoryRecord:
    """One served request with the response it got."""

    resource: str
    method: str
    path: str
    query: str = ''
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ''
    status_code: int = 200
    response_content_type: str = ''
    response_body: str = ''
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'resource': self.resource,
            'method': self.method,
            'path': self.path,
            'query': self.query,
            'headers': self.headers,
            'body': self.body,
            'response': {
                'status_code': self.status_code,
                'content_type': self.response_content_type,
                'body': self.response_body,
            },
            'timestamp': self.timestamp,
        }


class RequestHistory:
    """
    Served requests, cleared every ``duration`` seconds once started.

    Example:
        history = RequestHistory(duration=300)
        history.start()
        history.add(HistoryRecord('/pets', 'GET', '/petstore/pets'))
        history.get_all()
        history.stop()
    """

    def __init__(self, duration: float = 300.0):
        self.duration = duration
        self._records: List[HistoryRecord] = []
        self._responses: Dict[str, Any] = {}
        self._lock = ReadWriteLock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def add(self, record: HistoryRecord) -> None:
        with self._lock.write():
            self._records.append(record)

    def get_all(self) -> List[HistoryRecord]:
        with self._lock.read():
            return list(self._records)

    def clear(self) -> int:
        """Remove every record and cached response, returns how many records were removed."""
        with self._lock.write():
            count = len(self._records)
            self._records = []
            self._responses = {}
        return count

    def get_response(self, key: str) -> Optional[Any]:
        with self._lock.read():
            return self._responses.get(key)

    def set_response(self, key: str, response: Any) -> None:
        with self._lock.write():
            self._responses[key] = response

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._records)

    def _run(self) -> None:
        while not self._stop.wait(self.duration):
            count = self.clear()
            logger.debug(f"Request history cleared ({count} records)")

    def start(self) -> None:
        """Start the clearing timer; a non-positive duration keeps records forever."""
        if self.duration <= 0 or (self._thread is not None and self._thread.is_alive()):
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name='specmock-history', daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=1)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
