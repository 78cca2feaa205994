"""Realtime Database data models for the portfolio site.

These models define the schema for every path the site reads and writes.
The public site and the admin console must conform to this schema.
"""

import re
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from .store import to_camel


def _coerce_rating(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


# Ratings are not enforced by the database; unreadable values become None.
Rating = Annotated[int | None, BeforeValidator(_coerce_rating)]


def star_count(rating: int | None) -> int:
    """Number of stars to render. Anything outside 1-5 renders none."""
    if rating is None or not 1 <= rating <= 5:
        return 0
    return rating


def clamp_rating(value: Any, default: int = 5) -> int:
    """Rating to write: an int in 1-5. Unreadable input gives ``default``."""
    rating = _coerce_rating(value)
    if rating is None:
        rating = default
    return max(1, min(5, rating))


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        pass
    # Hand-entered counts such as "5+"
    match = re.match(r"\s*(\d+)", value) if isinstance(value, str) else None
    return int(match.group(1)) if match else 0


def _lines(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, dict):
        value = list(value.values())
    if isinstance(value, list):
        return [_text(item) for item in value if _text(item)]
    return []


def _optional_text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


# Profile fields fall back to their defaults one by one, so a single bad
# value never hides the rest of the profile.
Text = Annotated[str, BeforeValidator(_text)]
Count = Annotated[int, BeforeValidator(_count)]
Lines = Annotated[list[str], BeforeValidator(_lines)]
OptionalText = Annotated[str | None, BeforeValidator(_optional_text)]


class StoreModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Profile(StoreModel):
    """Realtime Database: profile (singleton)

    Fields this model does not know are kept and written back on save.
    """

    model_config = ConfigDict(extra="allow")

    name: Text = ""
    headlines: Lines = Field(default_factory=list)
    intro: Text = ""
    profile_pic: Text = ""
    banner_image: OptionalText = None
    experience_years: Count = 0
    clients_completed: Count = 0
    email: Text = ""
    linkedin: Text = ""
    facebook: Text = ""
    instagram: Text = ""


class Skill(StoreModel):
    """Realtime Database: skills/{skillId}"""

    id: str
    name: str


class Review(StoreModel):
    """Realtime Database: services/{serviceId}/reviews/{reviewId}"""

    id: str
    reviewer_name: str
    rating: Rating = None
    comment: str = ""
    image: str | None = None
    date: str = ""

    @property
    def stars(self) -> int:
        return star_count(self.rating)


class Service(StoreModel):
    """Realtime Database: services/{serviceId}

    Reviews live in a keyed map under the service. The map key is the
    review id; a missing map means the service has no reviews.
    """

    id: str
    title: str
    description: str = ""
    image: str = ""
    reviews: dict[str, Review] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _key_reviews(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        raw = data.get("reviews")
        if not isinstance(raw, dict):
            return {**data, "reviews": {}}
        reviews = {
            key: {**value, "id": key}
            for key, value in raw.items()
            if isinstance(value, dict)
        }
        return {**data, "reviews": reviews}

    @property
    def review_list(self) -> list[Review]:
        return list(self.reviews.values())


class ClientWork(StoreModel):
    """Realtime Database: works/{workId}"""

    id: str
    client_name: str
    review_text: str = ""
    image: str = ""


class Post(StoreModel):
    """Realtime Database: posts/{postId}"""

    id: str
    title: str
    content: str = ""
    image: str = ""
    date: str = ""


class Feedback(StoreModel):
    """Realtime Database: feedback/{feedbackId}

    Hidden until an admin approves it.
    """

    id: str
    name: str
    rating: Rating = None
    message: str = ""
    is_visible: bool = False
    date: str = ""

    @property
    def stars(self) -> int:
        return star_count(self.rating)


class HireRequest(StoreModel):
    """Realtime Database: hireRequests/{requestId}"""

    kind: Literal["hire"] = "hire"
    id: str
    service_id: str
    service_title: str
    name: str
    email: str
    message: str = ""
    date: str = ""
    is_completed: bool = False


class ContactMessage(StoreModel):
    """Realtime Database: contacts/{contactId}"""

    kind: Literal["contact"] = "contact"
    id: str
    name: str
    email: str
    message: str = ""
    date: str = ""
    is_completed: bool = False


# The discriminant is local only; it is set from the path an item was read from.
InboxItem = Annotated[HireRequest | ContactMessage, Field(discriminator="kind")]


class Analytics(StoreModel):
    """Realtime Database: analytics/{recordId}

    One record per public page view. Never pruned automatically.
    """

    id: str | None = None
    ip: str
    page: str = "/"
    timestamp: str = ""
