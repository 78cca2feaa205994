"""Realtime Database serialization helpers.

Handles conversion between Python snake_case and the camelCase field names
stored in the database, and the paths every client reads and writes.
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel


class Collection(StrEnum):
    """Top-level database paths."""

    PROFILE = "profile"
    SKILLS = "skills"
    SERVICES = "services"
    WORKS = "works"
    POSTS = "posts"
    FEEDBACK = "feedback"
    HIRE_REQUESTS = "hireRequests"
    CONTACTS = "contacts"
    ANALYTICS = "analytics"


def entity_path(collection: Collection | str, entity_id: str) -> str:
    """Path of one entity inside a keyed collection."""
    return f"{collection}/{entity_id}"


def reviews_path(service_id: str) -> str:
    """Path of the review map nested under a service."""
    return f"{Collection.SERVICES}/{service_id}/reviews"


def review_path(service_id: str, review_id: str) -> str:
    return f"{reviews_path(service_id)}/{review_id}"


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


def iso_now() -> str:
    """Current UTC time in the ISO-8601 form browsers write (millisecond, Z)."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored ISO-8601 timestamp. Returns None if it can't be read."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def model_to_store(model: BaseModel, exclude: set[str] | None = None) -> dict[str, Any]:
    """Convert a pydantic model to the database value format.

    - Uses the camelCase aliases as keys
    - Drops the store-assigned ``id`` and the local ``kind`` discriminant
    - Drops unset optional fields (None)
    """
    skip = {"id", "kind"} | (exclude or set())
    return model.model_dump(
        mode="json",
        by_alias=True,
        exclude=skip,
        exclude_none=True,
    )
