"""Tests for visitor tracking."""

import requests

from fakes import FakeHttp, FakeResponse, MemoryStore, utc_now
from folio_shared.store import parse_timestamp
from folio_site.config import Config
from folio_site.tracker import PRIVATE_IP, VisitorTracker, lookup_ip, resolve_ip

PRIMARY = "https://api.ipify.org?format=json"
FALLBACK = "https://ipapi.co/json/"


def _records(store: MemoryStore) -> list[dict]:
    return list((store.get("analytics") or {}).values())


class TestResolveIp:
    def test_primary_success(self, config: Config) -> None:
        http = FakeHttp({PRIMARY: FakeResponse(200, {"ip": "203.0.113.5"})})
        assert resolve_ip(http, config) == "203.0.113.5"
        assert [c["url"] for c in http.calls] == [PRIMARY]

    def test_uses_timeout(self, config: Config) -> None:
        http = FakeHttp({PRIMARY: FakeResponse(200, {"ip": "203.0.113.5"})})
        resolve_ip(http, config)
        assert http.calls[0]["timeout"] == config.ip_lookup_timeout_seconds

    def test_fallback_on_error_status(self, config: Config) -> None:
        http = FakeHttp({
            PRIMARY: FakeResponse(503, None),
            FALLBACK: FakeResponse(200, {"ip": "198.51.100.7", "city": "Dhaka"}),
        })
        assert resolve_ip(http, config) == "198.51.100.7"

    def test_fallback_on_connection_error(self, config: Config) -> None:
        http = FakeHttp({FALLBACK: FakeResponse(200, {"ip": "198.51.100.7"})})
        assert resolve_ip(http, config) == "198.51.100.7"

    def test_placeholder_when_both_fail(self, config: Config) -> None:
        http = FakeHttp({
            PRIMARY: requests.Timeout("slow"),
            FALLBACK: FakeResponse(429, {"error": True}),
        })
        assert resolve_ip(http, config) == PRIVATE_IP

    def test_bad_json_is_failure(self) -> None:
        http = FakeHttp({PRIMARY: FakeResponse(200, ValueError("not json"))})
        assert lookup_ip(http, PRIMARY, 1.0) is None

    def test_missing_ip_field_is_failure(self) -> None:
        http = FakeHttp({PRIMARY: FakeResponse(200, {"status": "ok"})})
        assert lookup_ip(http, PRIMARY, 1.0) is None


class TestVisitorTracker:
    def test_both_services_down(self, config: Config, store: MemoryStore) -> None:
        tracker = VisitorTracker(store, config, session=FakeHttp())
        before = utc_now()

        assert tracker.track("/services") is not None

        records = _records(store)
        assert len(records) == 1
        assert records[0]["ip"] == "Private/Internal"
        assert records[0]["page"] == "/services"
        stamped = parse_timestamp(records[0]["timestamp"])
        assert stamped is not None and stamped >= before

    def test_empty_path_recorded_as_root(self, config: Config, store: MemoryStore) -> None:
        tracker = VisitorTracker(store, config, session=FakeHttp())
        tracker.track("")
        assert _records(store)[0]["page"] == "/"

    def test_admin_paths_skipped(self, config: Config, store: MemoryStore) -> None:
        http = FakeHttp()
        tracker = VisitorTracker(store, config, session=http)

        assert tracker.track("/admin") is None
        assert tracker.on_route_change("/admin/posts") is None

        assert _records(store) == []
        assert http.calls == []

    def test_append_failure_is_swallowed(self, config: Config, store: MemoryStore) -> None:
        store.fail_writes = True
        tracker = VisitorTracker(store, config, session=FakeHttp())

        assert tracker.track("/") is None

    def test_once_per_route_change(self, config: Config, store: MemoryStore) -> None:
        tracker = VisitorTracker(store, config, session=FakeHttp())

        for path in ["/", "/", "/posts", "/admin", "/posts"]:
            thread = tracker.on_route_change(path)
            if thread is not None:
                thread.join(timeout=5)

        assert [r["page"] for r in _records(store)] == ["/", "/posts", "/posts"]

    def test_appends_never_update(self, config: Config, store: MemoryStore) -> None:
        tracker = VisitorTracker(store, config, session=FakeHttp())
        tracker.track("/")
        tracker.track("/")

        assert [op for op, _, _ in store.writes] == ["push", "push"]
        assert len(_records(store)) == 2
