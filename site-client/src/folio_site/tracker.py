"""Visitor analytics for public page views."""

import logging
import threading

import requests

from folio_shared import Collection
from folio_shared.store import iso_now

from .config import Config
from .database import RealtimeStore

logger = logging.getLogger(__name__)

PRIVATE_IP = "Private/Internal"


def lookup_ip(session: requests.Session, url: str, timeout: float) -> str | None:
    """Ask one IP service for the public address. Returns None on any failure."""
    try:
        response = session.get(url, timeout=timeout)
        if not response.ok:
            logger.debug("IP lookup via %s returned %d", url, response.status_code)
            return None
        ip = response.json().get("ip")
    except (requests.RequestException, ValueError, AttributeError):
        logger.debug("IP lookup via %s failed", url, exc_info=True)
        return None
    return ip or None


def resolve_ip(session: requests.Session, config: Config) -> str:
    """Resolve the public IP: primary service, then fallback, then placeholder."""
    timeout = config.ip_lookup_timeout_seconds
    ip = lookup_ip(session, config.primary_ip_url, timeout)
    if ip:
        return ip

    ip = lookup_ip(session, config.fallback_ip_url, timeout)
    if ip:
        logger.debug("Resolved IP via fallback service")
        return ip

    logger.debug("All IP lookups failed, using %s", PRIVATE_IP)
    return PRIVATE_IP


class VisitorTracker:
    """Records one analytics entry per public route change.

    Tracking is best effort: nothing here raises to the caller.
    """

    def __init__(
        self,
        store: RealtimeStore,
        config: Config,
        session: requests.Session | None = None,
    ):
        self._store = store
        self._config = config
        self._session = session or requests.Session()
        self._last_path: str | None = None
        self._lock = threading.Lock()

    def is_admin_path(self, path: str) -> bool:
        return self._config.admin_marker in path

    def on_route_change(self, path: str) -> threading.Thread | None:
        """Track a navigation in the background.

        Repeating the current path is not a route change. Returns the
        worker thread, or None if nothing is tracked.
        """
        with self._lock:
            if path == self._last_path:
                return None
            self._last_path = path

        if self.is_admin_path(path):
            return None

        thread = threading.Thread(
            target=self.track,
            args=(path,),
            name="visitor-tracker",
            daemon=True,
        )
        thread.start()
        return thread

    def track(self, path: str) -> str | None:
        """Record a visit to ``path`` and wait for it.

        Returns the new analytics key, or None if skipped or the write failed.
        """
        if self.is_admin_path(path):
            logger.debug("Not tracking admin path %s", path)
            return None

        ip = resolve_ip(self._session, self._config)
        record = {
            "ip": ip,
            "page": path or "/",
            "timestamp": iso_now(),
        }
        try:
            key = self._store.push(Collection.ANALYTICS.value, record)
        except Exception:
            logger.warning("Failed to record visit to %s", record["page"], exc_info=True)
            return None

        logger.debug("Recorded visit %s to %s from %s", key, record["page"], ip)
        return key
