import pytest

from kv_store import MemoryKVStore
from room_store import RoomStore
from server import create_app


class FakeClock:
    def __init__(self, start=1_700_000_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


class FlaskResponse:
    def __init__(self, resp):
        self.status_code = resp.status_code
        self.reason = resp.status
        self._json = resp.get_json(silent=True)

    def json(self):
        if self._json is None:
            raise ValueError("no JSON body")
        return self._json


class FlaskHttp:
    """Just enough of requests.Session to point RoomApiClient at a Flask test client."""

    def __init__(self, client):
        self.client = client
        self.headers = {}
        self.calls = []

    def request(self, method, url, timeout=None, params=None, json=None):
        path = url.split("://", 1)[-1]
        path = path[path.index("/"):]
        self.calls.append((method, path))
        resp = self.client.open(path, method=method, query_string=params, json=json, headers=self.headers)
        return FlaskResponse(resp)

    def close(self):
        pass


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return RoomStore(MemoryKVStore(), clock=clock)


@pytest.fixture
def app(store):
    app = create_app(store=store, prefix="")
    app.testing = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def flask_http(client):
    return FlaskHttp(client)
