"""Content mutations for the admin console and the public forms.

Every action is a single database write. Outcomes are reported through a
notifier instead of being raised; nothing is retried.
"""

import logging
import threading
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any, Callable, TypeVar

from folio_shared import Collection, ContactMessage, HireRequest, Profile, Service, clamp_rating
from folio_shared.store import (
    entity_path,
    iso_now,
    model_to_store,
    review_path,
    reviews_path,
    to_camel,
)

from .database import RealtimeStore
from .images import encode_image

logger = logging.getLogger(__name__)

T = TypeVar("T")

FAILURE_MESSAGE = "Something went wrong. Please try again."
DELETE_PROMPT = "Delete this item? This cannot be undone."
IMAGE_FAILURE = "That file is not a usable image."
PROFILE_UNREAD = "The saved profile could not be loaded. Reload before saving."


class NoticeLevel(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class Notice:
    """One-shot, dismissible message for the user who triggered an action."""

    level: NoticeLevel
    message: str


Notifier = Callable[[Notice], None]
Confirm = Callable[[str], bool]


def log_notice(notice: Notice) -> None:
    """Default notifier: write notices to the log."""
    if notice.level == NoticeLevel.FAILURE:
        logger.warning("%s", notice.message)
    else:
        logger.info("%s", notice.message)


def _blank(*values: Any) -> bool:
    return any(value is None or (isinstance(value, str) and not value.strip()) for value in values)


class ContentEditor:
    """Translates user actions into database writes."""

    def __init__(self, store: RealtimeStore, notify: Notifier = log_notice):
        self._store = store
        self._notify = notify

    def _write(
        self,
        operation: Callable[[], T],
        success: str | None,
        failure: str = FAILURE_MESSAGE,
    ) -> tuple[bool, T | None]:
        try:
            result = operation()
        except Exception:
            logger.exception("Database write failed")
            self._notify(Notice(NoticeLevel.FAILURE, failure))
            return False, None
        if success:
            self._notify(Notice(NoticeLevel.SUCCESS, success))
        return True, result

    def report_failure(self, message: str = FAILURE_MESSAGE) -> None:
        self._notify(Notice(NoticeLevel.FAILURE, message))

    def _append(self, path: str, value: dict[str, Any], success: str | None) -> str | None:
        _, key = self._write(lambda: self._store.push(path, value), success)
        if key is not None:
            logger.info("Created %s/%s", path, key)
        return key

    # Admin creates

    def add_skill(self, name: str) -> str | None:
        if _blank(name):
            return None
        return self._append(Collection.SKILLS.value, {"name": name}, "Skill added.")

    def add_post(self, title: str, content: str, image: str = "") -> str | None:
        if _blank(title, content):
            return None
        return self._append(
            Collection.POSTS.value,
            {"title": title, "content": content, "image": image, "date": iso_now()},
            "Post published.",
        )

    def add_service(self, title: str, description: str, image: str = "") -> str | None:
        if _blank(title, description):
            return None
        return self._append(
            Collection.SERVICES.value,
            {"title": title, "description": description, "image": image},
            "Service added.",
        )

    def add_work(self, client_name: str, review_text: str, image: str = "") -> str | None:
        if _blank(client_name, review_text):
            return None
        return self._append(
            Collection.WORKS.value,
            {"clientName": client_name, "reviewText": review_text, "image": image},
            "Client work added.",
        )

    def add_service_review(
        self,
        service_id: str,
        reviewer_name: str,
        comment: str,
        rating: int = 5,
        image: str = "",
    ) -> str | None:
        if _blank(reviewer_name, comment):
            return None
        return self._append(
            reviews_path(service_id),
            {
                "reviewerName": reviewer_name,
                "rating": clamp_rating(rating),
                "comment": comment,
                "image": image,
                "date": iso_now(),
            },
            "Review added to service.",
        )

    # Public submissions

    def submit_feedback(self, name: str, message: str, rating: int = 5) -> str | None:
        """Submit visitor feedback. It stays hidden until approved."""
        if _blank(name, message):
            return None
        return self._append(
            Collection.FEEDBACK.value,
            {
                "name": name,
                "rating": clamp_rating(rating),
                "message": message,
                "isVisible": False,
                "date": iso_now(),
            },
            None,
        )

    def submit_contact(self, name: str, email: str, message: str) -> str | None:
        if _blank(name, email, message):
            return None
        return self._append(
            Collection.CONTACTS.value,
            {"name": name, "email": email, "message": message, "date": iso_now()},
            None,
        )

    def submit_hire_request(
        self,
        service_id: str,
        service_title: str,
        name: str,
        email: str,
        message: str,
    ) -> str | None:
        if _blank(name, email):
            return None
        return self._append(
            Collection.HIRE_REQUESTS.value,
            {
                "name": name,
                "email": email,
                "message": message,
                "serviceId": service_id,
                "serviceTitle": service_title,
                "date": iso_now(),
            },
            "Hiring request sent. I will get back to you soon.",
        )

    # Updates

    def update_field(self, path: str, field: str, value: Any) -> bool:
        """Write one field of an existing entity, leaving the others alone."""
        name = to_camel(field)
        ok, _ = self._write(
            lambda: self._store.update(path, {name: value}),
            f"Updated {name}.",
        )
        return ok

    def toggle_feedback_visibility(self, feedback_id: str, current: bool) -> bool:
        visible = not current
        ok, _ = self._write(
            lambda: self._store.update(
                entity_path(Collection.FEEDBACK, feedback_id), {"isVisible": visible}
            ),
            f"Feedback is now {'visible' if visible else 'hidden'}.",
        )
        return ok

    def toggle_completed(self, item: HireRequest | ContactMessage) -> bool:
        """Flip the completion flag of an inbox item."""
        collection = Collection.HIRE_REQUESTS if item.kind == "hire" else Collection.CONTACTS
        completed = not item.is_completed
        ok, _ = self._write(
            lambda: self._store.update(
                entity_path(collection, item.id), {"isCompleted": completed}
            ),
            "Request marked completed." if completed else "Request re-opened.",
        )
        return ok

    def has_stored_profile(self) -> bool:
        """Whether the database holds a profile. A failed read counts as yes."""
        try:
            return bool(self._store.get(Collection.PROFILE.value))
        except Exception:
            logger.exception("Could not read the stored profile")
            return True

    def save_profile(self, profile: Profile) -> bool:
        """Overwrite the whole profile."""
        ok, _ = self._write(
            lambda: self._store.set(Collection.PROFILE.value, model_to_store(profile)),
            "Profile saved.",
        )
        return ok

    def attach_image(self, path: str, field: str, image_path: Path) -> bool:
        """Encode a local image and store it in one field of an entity."""
        try:
            encoded = encode_image(image_path)
        except (OSError, ValueError):
            logger.warning("Could not read image %s", image_path, exc_info=True)
            self.report_failure(IMAGE_FAILURE)
            return False
        return self.update_field(path, field, encoded)

    # Deletes

    def delete(self, path: str, confirm: Confirm) -> bool:
        """Delete the entity at ``path`` once the user confirms."""
        if not confirm(DELETE_PROMPT):
            logger.debug("Delete of %s cancelled", path)
            return False
        ok, _ = self._write(lambda: self._store.remove(path), "Item deleted.")
        if ok:
            logger.info("Deleted %s", path)
        return ok

    def delete_review(self, service_id: str, review_id: str, confirm: Confirm) -> bool:
        return self.delete(review_path(service_id, review_id), confirm)

    # Form state

    def hire_form(self, service: Service) -> "PublicForm":
        return PublicForm(
            lambda **fields: self.submit_hire_request(service.id, service.title, **fields),
            {"name": "", "email": "", "message": ""},
        )

    def contact_form(self) -> "PublicForm":
        return PublicForm(self.submit_contact, {"name": "", "email": "", "message": ""})

    def feedback_form(self) -> "PublicForm":
        return PublicForm(self.submit_feedback, {"name": "", "rating": 5, "message": ""})


class PublicForm:
    """State of a public submission form.

    The submit control is disabled while a request is in flight, so repeated
    clicks send one request. It is enabled again whatever the outcome.
    """

    def __init__(self, submit: Callable[..., str | None], fields: dict[str, Any]):
        self._submit = submit
        self._initial = dict(fields)
        self.fields = dict(fields)
        self.submitting = False
        self.submitted = False
        self._lock = threading.Lock()

    @property
    def can_submit(self) -> bool:
        return not self.submitting

    def set(self, **values: Any) -> None:
        unknown = set(values) - set(self._initial)
        if unknown:
            raise ValueError(f"Unknown form fields: {', '.join(sorted(unknown))}")
        self.fields.update(values)

    def submit(self) -> str | None:
        """Send the form. Returns the new entity key, or None."""
        with self._lock:
            if self.submitting:
                return None
            self.submitting = True
        try:
            key = self._submit(**self.fields)
        finally:
            with self._lock:
                self.submitting = False

        if key is not None:
            self.fields = dict(self._initial)
            self.submitted = True
        return key


class InlineField:
    """A console text field bound to one stored field of an entity.

    Edits are written when the field loses focus, and only if the value
    changed since it was loaded. A failed write puts the last confirmed
    value back.
    """

    def __init__(self, editor: ContentEditor, path: str, field: str, default: Any):
        self._editor = editor
        self.path = path
        self.field = field
        self.default = default
        self.value = default

    def edit(self, value: Any) -> None:
        self.value = value

    def blur(self) -> bool:
        """Returns True if a write was made and accepted."""
        if self.value == self.default:
            return False
        if self._editor.update_field(self.path, self.field, self.value):
            self.default = self.value
            return True
        self.value = self.default
        return False


class ProfileDraft:
    """Local copy of the profile that collects edits until saved.

    Remote snapshots arrive on the listener thread; the draft follows them
    only while it holds no unsaved edits.
    """

    def __init__(self, editor: ContentEditor, profile: Profile | None = None):
        self._editor = editor
        self._lock = threading.Lock()
        self._version = 0
        self._base_missing = True
        self.draft = Profile()
        self.dirty = False
        self.reset(profile)

    def reset(self, profile: Profile | None) -> None:
        with self._lock:
            self._reset(profile)

    def _reset(self, profile: Profile | None) -> None:
        self.draft = profile.model_copy(deep=True) if profile else Profile()
        self._base_missing = profile is None
        self.dirty = False

    def on_remote_change(self, profile: Profile | None) -> None:
        with self._lock:
            if not self.dirty:
                self._reset(profile)

    def edit(self, **changes: Any) -> None:
        unknown = set(changes) - set(Profile.model_fields)
        if unknown:
            raise ValueError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
        with self._lock:
            self.draft = Profile.model_validate({**self.draft.model_dump(), **changes})
            self._version += 1
            self.dirty = True

    def attach_picture(self, image_path: Path) -> bool:
        """Load a new profile picture into the draft."""
        try:
            encoded = encode_image(image_path)
        except (OSError, ValueError):
            logger.warning("Could not read image %s", image_path, exc_info=True)
            self._editor.report_failure(IMAGE_FAILURE)
            return False
        self.edit(profile_pic=encoded)
        return True

    def save(self) -> bool:
        with self._lock:
            draft = self.draft.model_copy(deep=True)
            version = self._version
            base_missing = self._base_missing

        # A draft that never saw the stored profile must not overwrite it
        if base_missing and self._editor.has_stored_profile():
            logger.warning("Refusing to save a profile draft with no loaded base")
            self._editor.report_failure(PROFILE_UNREAD)
            return False
        if not self._editor.save_profile(draft):
            return False

        with self._lock:
            self._base_missing = False
            if self._version == version:
                self.dirty = False
        return True
