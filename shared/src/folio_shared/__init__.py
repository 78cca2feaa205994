from .models import (
    Profile,
    Skill,
    Service,
    Review,
    ClientWork,
    Post,
    Feedback,
    HireRequest,
    ContactMessage,
    InboxItem,
    Analytics,
    clamp_rating,
    star_count,
)
from .store import Collection

__all__ = [
    "Profile",
    "Skill",
    "Service",
    "Review",
    "ClientWork",
    "Post",
    "Feedback",
    "HireRequest",
    "ContactMessage",
    "InboxItem",
    "Analytics",
    "Collection",
    "clamp_rating",
    "star_count",
]
