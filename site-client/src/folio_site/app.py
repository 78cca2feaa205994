"""Application root for one site session."""

import logging
import threading

import requests

from .auth import AdminView, AuthGate, FirebaseIdentityProvider
from .config import Config
from .database import RealtimeStore
from .mutations import ContentEditor, Notifier, ProfileDraft, log_notice
from .sync import DataSynchronizer, SiteState
from .tracker import VisitorTracker

logger = logging.getLogger(__name__)


class PortfolioApp:
    """Owns the session state and wires the data layer around it.

    Readers get state through ``state``; all writes go through ``editor``.
    """

    def __init__(
        self,
        store: RealtimeStore,
        config: Config,
        identity: FirebaseIdentityProvider | None = None,
        notify: Notifier = log_notice,
        http: requests.Session | None = None,
    ):
        self.config = config
        self.state = SiteState()
        self.synchronizer = DataSynchronizer(store, self.state)
        self.tracker = VisitorTracker(store, config, session=http)
        self.editor = ContentEditor(store, notify)
        self.gate = AuthGate(
            identity or FirebaseIdentityProvider(config.web_api_key, session=http)
        )
        self.profile_draft = ProfileDraft(self.editor)
        self._unwatch_profile = self.state.profile.watch(self.profile_draft.on_remote_change)

    def start(self) -> None:
        self.synchronizer.start()

    def stop(self) -> None:
        self.synchronizer.stop()
        self._unwatch_profile()
        self.gate.close()
        logger.debug("Session stopped")

    def wait_loaded(self, timeout: float | None = None) -> bool:
        """Block until every path has resolved once. Returns False on timeout."""
        timeout = self.config.load_timeout_seconds if timeout is None else timeout
        return all(channel.wait_loaded(timeout) for channel in self.state.channels())

    def navigate(self, path: str) -> threading.Thread | None:
        """Handle a route change. Tracking runs in the background."""
        return self.tracker.on_route_change(path)

    def admin_view(self) -> AdminView:
        return self.gate.admin_view
