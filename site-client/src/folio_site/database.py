"""Firebase Realtime Database client for the site."""

import logging
from typing import Any, Callable

from firebase_admin import App, db  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

ValueCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]


def _segments(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


def _set_at(tree: Any, segments: list[str], value: Any) -> Any:
    if not segments:
        return value

    if isinstance(tree, dict):
        node = dict(tree)
    elif isinstance(tree, list):
        # Arrays come back for densely integer-keyed data
        node = {str(i): item for i, item in enumerate(tree) if item is not None}
    else:
        node = {}

    head, rest = segments[0], segments[1:]
    child = _set_at(node.get(head), rest, value)
    if child is None or child == {}:
        node.pop(head, None)
    else:
        node[head] = child
    return node or None


def apply_event(tree: Any, event_type: str, path: str, data: Any) -> Any:
    """Fold one listener event into a locally held value.

    ``put`` replaces the value at ``path`` (None deletes it). ``patch``
    writes each child of ``data`` under ``path``. Returns the new value of
    the whole tree; the input is not modified.
    """
    segments = _segments(path)
    if event_type == "put":
        return _set_at(tree, segments, data)
    if event_type == "patch":
        if not isinstance(data, dict):
            return tree
        for key, value in data.items():
            tree = _set_at(tree, segments + _segments(key), value)
        return tree

    logger.debug("Ignoring %s event at %s", event_type, path)
    return tree


class Subscription:
    """A live listener on one path.

    Keeps the full value of the path and hands it to ``on_value`` after
    every change.
    """

    def __init__(self, path: str, on_value: ValueCallback, on_error: ErrorCallback):
        self.path = path
        self._on_value = on_value
        self._on_error = on_error
        self._value: Any = None
        self._registration: Any = None

    def _handle(self, event: db.Event) -> None:
        try:
            self._value = apply_event(self._value, event.event_type, event.path, event.data)
            self._on_value(self._value)
        except Exception as e:
            logger.exception("Listener for %s failed", self.path)
            self._on_error(e)

    def close(self) -> None:
        """Stop listening. Safe to call more than once."""
        if self._registration is not None:
            self._registration.close()
            self._registration = None
            logger.debug("Closed listener for %s", self.path)


class RealtimeStore:
    """Handles all Realtime Database operations for the site."""

    def __init__(self, app: App | None = None):
        self._app = app

    def _ref(self, path: str) -> db.Reference:
        return db.reference(path, app=self._app)

    def subscribe(
        self,
        path: str,
        on_value: ValueCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        """Listen to a path until the returned subscription is closed.

        Connection failures are reported through ``on_error``; the SDK
        handles reconnects once a listener is established.
        """
        subscription = Subscription(path, on_value, on_error)
        try:
            subscription._registration = self._ref(path).listen(subscription._handle)
            logger.debug("Listening to %s", path)
        except Exception as e:
            logger.exception("Failed to listen to %s", path)
            on_error(e)
        return subscription

    def get(self, path: str) -> Any:
        """Read the current value at a path once."""
        return self._ref(path).get()

    def set(self, path: str, value: Any) -> None:
        """Overwrite the value at a path."""
        self._ref(path).set(value)

    def push(self, path: str, value: Any) -> str:
        """Append a value under a new store-assigned key.

        Returns the new key.
        """
        return self._ref(path).push(value).key

    def update(self, path: str, fields: dict[str, Any]) -> None:
        """Write only the given children of a path."""
        self._ref(path).update(fields)

    def remove(self, path: str) -> None:
        """Delete the value at a path. Missing paths are not an error."""
        self._ref(path).delete()
