import pytest
import requests

from iot_thermostat.exceptions import AuthError, RemoteError
from iot_thermostat.models import Mode
from iot_thermostat.remote import ApiClient

class FakeResponse:
    def __init__(self, status=200, payload=None):
        self.status_code = status; self._payload = payload
    @property
    def ok(self): return 200 <= self.status_code < 400
    def json(self):
        if isinstance(self._payload, Exception): raise self._payload
        return self._payload

class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses); self.calls = []
    def _next(self, method, url, **kw):
        self.calls.append((method, url, kw))
        r = self.responses.pop(0)
        if isinstance(r, Exception): raise r
        return r
    def post(self, url, **kw): return self._next("POST", url, **kw)
    def request(self, method, url, **kw): return self._next(method, url, **kw)
    def close(self): pass

def client(*responses):
    s = FakeSession(responses)
    return ApiClient("http://api.local:3000", "dev-1", "s3cret", timeout_s=2, session=s), s

TOKEN = FakeResponse(200, {"token": "abc", "device": "dev-1"})
DOC = {"_id": "dev-1", "name": "Hall", "state": "HEAT", "setTemp": 70.5,
       "currentTemp": 68.2, "lastChecked": "2026-10-19T10:00:00Z", "auth_users": ["u1"]}

def test_login_posts_form_and_keeps_token():
    c, s = client(TOKEN)
    assert c.login() == "abc" and c.token == "abc"
    method, url, kw = s.calls[0]
    assert (method, url) == ("POST", "http://api.local:3000/api/iot/login")
    assert kw["data"] == {"deviceId": "dev-1", "secret": "s3cret"}
    assert kw["timeout"] == 2

def test_login_rejected_raises_auth_error():
    c, _ = client(FakeResponse(401, {"message": "nope"}))
    with pytest.raises(AuthError):
        c.login()

def test_fetch_state_logs_in_first_and_parses_document():
    c, s = client(TOKEN, FakeResponse(200, DOC))
    st = c.fetch_state()
    assert st.mode is Mode.HEAT and st.set_temp == 70.5 and st.id == "dev-1"
    assert st.auth_users == ["u1"]
    method, url, kw = s.calls[1]
    assert (method, url) == ("GET", "http://api.local:3000/api/iot/dev-1")
    assert kw["headers"]["Authorization"] == "Bearer abc"

def test_malformed_field_does_not_discard_document():
    c, _ = client(TOKEN, FakeResponse(200, dict(DOC, setTemp="hot", state=5)))
    st = c.fetch_state()
    assert st.set_temp is None and st.mode is None and st.name == "Hall"

def test_401_reauthenticates_and_retries_once():
    c, s = client(TOKEN, FakeResponse(401), FakeResponse(200, {"token": "new"}), FakeResponse(200, DOC))
    assert c.fetch_state().set_temp == 70.5
    assert c.token == "new"
    assert s.calls[-1][2]["headers"]["Authorization"] == "Bearer new"

def test_second_401_gives_up():
    c, s = client(TOKEN, FakeResponse(401), TOKEN, FakeResponse(401))
    with pytest.raises(RemoteError):
        c.fetch_state()
    assert len(s.calls) == 4

def test_transport_error_becomes_remote_error():
    c, _ = client(TOKEN, requests.ConnectionError("down"))
    with pytest.raises(RemoteError):
        c.fetch_state()

def test_push_state_puts_current_temp():
    c, s = client(TOKEN, FakeResponse(201, {"message": "updated"}))
    c.push_state(71.234)
    method, url, kw = s.calls[1]
    assert method == "PUT" and url.endswith("/api/iot/dev-1")
    assert kw["json"] == {"_id": "dev-1", "currentTemp": 71.23}

def test_refresh_swallows_failures():
    c, _ = client(requests.Timeout("slow"))
    c.refresh()
    assert c.token is None

@pytest.mark.parametrize("payload", ["ok", ["abc"], None, 42])
def test_login_non_object_body_is_auth_error(payload):
    c, _ = client(FakeResponse(200, payload))
    with pytest.raises(AuthError):
        c.login()
    assert c.token is None

def test_refresh_survives_non_object_login_body():
    c, _ = client(FakeResponse(200, ["abc"]))
    c.refresh()
    assert c.token is None

def test_fetch_with_non_object_login_body_is_remote_error():
    c, s = client(FakeResponse(200, "ok"))
    with pytest.raises(RemoteError):
        c.fetch_state()
    assert len(s.calls) == 1

class SlowSession(FakeSession):
    """Every call costs `step` seconds on a fake monotonic clock."""
    def __init__(self, responses, clock, step):
        super().__init__(responses); self.clock = clock; self.step = step
    def _next(self, method, url, **kw):
        r = super()._next(method, url, **kw)
        self.clock[0] += self.step
        return r

def test_request_shares_one_timeout_budget(monkeypatch):
    clock = [100.0]
    monkeypatch.setattr("iot_thermostat.remote.time.monotonic", lambda: clock[0])
    s = SlowSession([TOKEN, FakeResponse(401), TOKEN, FakeResponse(200, DOC)], clock, step=1.5)
    c = ApiClient("http://api.local:3000", "dev-1", "s3cret", timeout_s=2, session=s)
    with pytest.raises(RemoteError):
        c.fetch_state()
    # login used 1.5s, the GET got the remaining 0.5s, the re-login had none left
    assert [kw["timeout"] for _, _, kw in s.calls] == [2, 0.5]
    assert clock[0] - 100.0 <= 2 + 1.5
