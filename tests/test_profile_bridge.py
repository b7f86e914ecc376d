import requests

from tabgrouper.core.profile_bridge import ProfileBridge


class FakeResponse:
    def __init__(self, status=200, payload=None):
        self.status_code = status
        self.ok = status < 400
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON")
        return self._payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code}")


class FakeSession:
    def __init__(self, routes=None, down=False):
        self.routes = routes or {}
        self.down = down
        self.requests = []

    def _answer(self, method, url, timeout):
        self.requests.append((method, url, timeout))
        if self.down:
            raise requests.ConnectionError("refused")
        return self.routes.get((method, url), FakeResponse(404))

    def get(self, url, timeout=None):
        return self._answer("GET", url, timeout)

    def post(self, url, timeout=None):
        return self._answer("POST", url, timeout)


BASE = ProfileBridge.DEFAULT_BASE_URL


def test_unreachable_service_is_unavailable():
    session = FakeSession(down=True)
    bridge = ProfileBridge(session=session)

    assert bridge.connect() is False
    assert bridge.list_profiles() == {}
    assert bridge.apply_profile("coding") is False
    assert bridge.capture_layout() is None
    assert bridge.reload_config() is False
    # only the health probe went out
    assert len(session.requests) == 1


def test_health_probe_uses_short_timeout():
    session = FakeSession({("GET", f"{BASE}/health"): FakeResponse(200)})
    bridge = ProfileBridge(session=session)

    assert bridge.connect() is True
    assert session.requests[0] == ("GET", f"{BASE}/health", 1)


def test_list_profiles_returns_data():
    session = FakeSession(
        {
            ("GET", f"{BASE}/health"): FakeResponse(200),
            ("GET", f"{BASE}/profiles"): FakeResponse(200, {"data": {"coding": {}, "review": {}}}),
        }
    )
    bridge = ProfileBridge(session=session)
    bridge.connect()

    assert list(bridge.list_profiles()) == ["coding", "review"]


def test_apply_profile_quotes_name():
    session = FakeSession(
        {
            ("GET", f"{BASE}/health"): FakeResponse(200),
            ("POST", f"{BASE}/profiles/deep%20work/apply"): FakeResponse(200),
        }
    )
    bridge = ProfileBridge(session=session)
    bridge.connect()

    assert bridge.apply_profile("deep work") is True
    assert bridge.apply_profile("missing") is False


def test_capture_layout_and_bad_payload():
    session = FakeSession(
        {
            ("GET", f"{BASE}/health"): FakeResponse(200),
            ("GET", f"{BASE}/windows/capture"): FakeResponse(200, {"data": [{"id": 1}]}),
            ("GET", f"{BASE}/profiles"): FakeResponse(200),
        }
    )
    bridge = ProfileBridge(session=session)
    bridge.connect()

    assert bridge.capture_layout() == [{"id": 1}]
    assert bridge.list_profiles() == {}
