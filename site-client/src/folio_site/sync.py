"""Realtime synchronization of site content into application state."""

import logging
import threading
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from folio_shared import (
    Analytics,
    ClientWork,
    Collection,
    ContactMessage,
    Feedback,
    HireRequest,
    Post,
    Profile,
    Service,
    Skill,
)

from .database import RealtimeStore, Subscription

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class Channel(Generic[T]):
    """Latest value of one synchronized path.

    The synchronizer is the only writer. Readers take snapshots with
    ``read()`` or register a watcher that is called after every publish.
    """

    def __init__(self, name: str, initial: T):
        self.name = name
        self._value = initial
        self._loaded = threading.Event()
        self._watchers: list[Callable[[T], None]] = []
        self._lock = threading.Lock()

    @property
    def loading(self) -> bool:
        """True until the first snapshot or error arrives. Never goes back."""
        return not self._loaded.is_set()

    def read(self) -> T:
        with self._lock:
            return self._value

    def wait_loaded(self, timeout: float | None = None) -> bool:
        return self._loaded.wait(timeout)

    def watch(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Call ``callback`` with every published value. Returns an unwatch function."""
        with self._lock:
            self._watchers.append(callback)

        def unwatch() -> None:
            with self._lock:
                if callback in self._watchers:
                    self._watchers.remove(callback)

        return unwatch

    def publish(self, value: T) -> None:
        with self._lock:
            self._value = value
            watchers = list(self._watchers)
        self._loaded.set()

        for watcher in watchers:
            try:
                watcher(value)
            except Exception:
                logger.exception("Watcher on %s failed", self.name)


def _collection(name: str) -> Channel[tuple[Any, ...]]:
    return Channel(name, ())


@dataclass
class SiteState:
    """Application state for one session, owned by the app root."""

    profile: Channel[Profile | None] = field(default_factory=lambda: Channel("profile", None))
    skills: Channel[tuple[Skill, ...]] = field(default_factory=lambda: _collection("skills"))
    services: Channel[tuple[Service, ...]] = field(default_factory=lambda: _collection("services"))
    works: Channel[tuple[ClientWork, ...]] = field(default_factory=lambda: _collection("works"))
    posts: Channel[tuple[Post, ...]] = field(default_factory=lambda: _collection("posts"))
    feedback: Channel[tuple[Feedback, ...]] = field(default_factory=lambda: _collection("feedback"))
    hire_requests: Channel[tuple[HireRequest, ...]] = field(
        default_factory=lambda: _collection("hireRequests")
    )
    contacts: Channel[tuple[ContactMessage, ...]] = field(
        default_factory=lambda: _collection("contacts")
    )
    analytics: Channel[tuple[Analytics, ...]] = field(
        default_factory=lambda: _collection("analytics")
    )

    def channels(self) -> list[Channel[Any]]:
        return [
            self.profile,
            self.skills,
            self.services,
            self.works,
            self.posts,
            self.feedback,
            self.hire_requests,
            self.contacts,
            self.analytics,
        ]

    @property
    def loading(self) -> bool:
        return any(channel.loading for channel in self.channels())


# Collection path -> (state attribute, entity model)
COLLECTIONS: dict[Collection, tuple[str, type[BaseModel]]] = {
    Collection.SKILLS: ("skills", Skill),
    Collection.SERVICES: ("services", Service),
    Collection.WORKS: ("works", ClientWork),
    Collection.POSTS: ("posts", Post),
    Collection.FEEDBACK: ("feedback", Feedback),
    Collection.HIRE_REQUESTS: ("hire_requests", HireRequest),
    Collection.CONTACTS: ("contacts", ContactMessage),
    Collection.ANALYTICS: ("analytics", Analytics),
}


def materialize(value: Any) -> list[dict[str, Any]]:
    """Turn a keyed object into a list of entity dicts tagged with their key.

    The key always wins over any ``id`` stored inside the value. Entries
    that are not objects are dropped.
    """
    if not value:
        return []
    if isinstance(value, list):
        value = {str(i): item for i, item in enumerate(value) if item is not None}
    if not isinstance(value, dict):
        return []
    return [{**item, "id": key} for key, item in value.items() if isinstance(item, dict)]


def parse_collection(model: type[M], value: Any) -> tuple[M, ...]:
    """Validate a collection snapshot into entities, skipping bad entries."""
    entities: list[M] = []
    for raw in materialize(value):
        try:
            entities.append(model.model_validate(raw))
        except ValidationError as e:
            logger.warning(
                "Skipping invalid %s entry %s: %d errors",
                model.__name__,
                raw["id"],
                e.error_count(),
            )
    return tuple(entities)


class DataSynchronizer:
    """Keeps a SiteState in step with the database."""

    def __init__(self, store: RealtimeStore, state: SiteState):
        self._store = store
        self._state = state
        self._subscriptions: list[Subscription] = []

    @property
    def running(self) -> bool:
        return bool(self._subscriptions)

    def start(self) -> None:
        """Subscribe to the profile and every collection."""
        if self._subscriptions:
            return

        self._subscriptions.append(
            self._store.subscribe(
                Collection.PROFILE.value, self._on_profile, self._on_profile_error
            )
        )
        for collection, (attr, model) in COLLECTIONS.items():
            channel = getattr(self._state, attr)
            self._subscriptions.append(
                self._store.subscribe(
                    collection.value,
                    partial(self._on_collection, channel, model),
                    partial(self._on_collection_error, channel),
                )
            )
        logger.info("Subscribed to %d paths", len(self._subscriptions))

    def stop(self) -> None:
        """Close every subscription."""
        for subscription in self._subscriptions:
            subscription.close()
        self._subscriptions = []

    def _on_profile(self, value: Any) -> None:
        if not value:
            self._state.profile.publish(None)
            return
        try:
            profile = Profile.model_validate(value)
        except ValidationError:
            logger.warning("Stored profile is invalid, treating as missing")
            profile = None
        self._state.profile.publish(profile)

    def _on_profile_error(self, error: Exception) -> None:
        logger.error("Profile subscription failed: %s", error)
        self._state.profile.publish(None)

    def _on_collection(self, channel: Channel[Any], model: type[BaseModel], value: Any) -> None:
        if not value:
            logger.debug("%s is empty", channel.name)
            channel.publish(())
            return
        entities = parse_collection(model, value)
        logger.debug("Loaded %d %s", len(entities), channel.name)
        channel.publish(entities)

    def _on_collection_error(self, channel: Channel[Any], error: Exception) -> None:
        logger.error("Subscription to %s failed: %s", channel.name, error)
        channel.publish(())
