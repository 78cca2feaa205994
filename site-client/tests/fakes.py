"""In-memory stand-ins for the database and HTTP services used in tests."""

import copy
import itertools
from datetime import UTC, datetime
from typing import Any, Callable

import requests

from folio_site.database import apply_event


class MemoryHandle:
    def __init__(self, store: "MemoryStore", entry: tuple[str, Callable[[Any], None]] | None):
        self._store = store
        self._entry = entry

    def close(self) -> None:
        if self._entry in self._store.listeners:
            self._store.listeners.remove(self._entry)


class MemoryStore:
    """Same interface as RealtimeStore. Listeners fire synchronously."""

    def __init__(self, data: dict[str, Any] | None = None):
        self.data: Any = copy.deepcopy(data) if data else {}
        self.fail_writes = False
        self.fail_paths: set[str] = set()
        self.writes: list[tuple[str, str, Any]] = []
        self.listeners: list[tuple[str, Callable[[Any], None]]] = []
        self._keys = itertools.count(1)

    def subscribe(self, path, on_value, on_error) -> MemoryHandle:
        if path in self.fail_paths:
            on_error(PermissionError(f"Permission denied: {path}"))
            return MemoryHandle(self, None)
        entry = (path, on_value)
        self.listeners.append(entry)
        on_value(self.get(path))
        return MemoryHandle(self, entry)

    def get(self, path: str) -> Any:
        node = self.data
        for segment in (s for s in path.split("/") if s):
            if not isinstance(node, dict):
                return None
            node = node.get(segment)
        return copy.deepcopy(node)

    def _record(self, op: str, path: str, value: Any) -> None:
        if self.fail_writes:
            raise RuntimeError("PERMISSION_DENIED")
        self.writes.append((op, path, copy.deepcopy(value)))

    def _put(self, path: str, value: Any) -> None:
        self.data = apply_event(self.data, "put", path, copy.deepcopy(value)) or {}

    def _notify(self) -> None:
        for path, on_value in list(self.listeners):
            on_value(self.get(path))

    def set(self, path: str, value: Any) -> None:
        self._record("set", path, value)
        self._put(path, value)
        self._notify()

    def push(self, path: str, value: Any) -> str:
        self._record("push", path, value)
        key = f"-K{next(self._keys):05d}"
        self._put(f"{path}/{key}", value)
        self._notify()
        return key

    def update(self, path: str, fields: dict[str, Any]) -> None:
        self._record("update", path, fields)
        for name, value in fields.items():
            self._put(f"{path}/{name}", value)
        self._notify()

    def remove(self, path: str) -> None:
        self._record("remove", path, None)
        self._put(path, None)
        self._notify()


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeHttp:
    """Answers requests by URL. Unknown URLs fail to connect."""

    def __init__(self, routes: dict[str, FakeResponse | Exception] | None = None):
        self.routes = routes or {}
        self.calls: list[dict[str, Any]] = []

    def _answer(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        answer = self.routes.get(url)
        if answer is None:
            raise requests.ConnectionError(f"Cannot reach {url}")
        if isinstance(answer, Exception):
            raise answer
        return answer

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._answer(url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._answer(url, **kwargs)


def ms_floor(moment: datetime) -> datetime:
    """Truncate to milliseconds, the precision of stored timestamps."""
    return moment.replace(microsecond=moment.microsecond // 1000 * 1000)


def utc_now() -> datetime:
    return ms_floor(datetime.now(UTC))
