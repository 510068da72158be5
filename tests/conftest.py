from __future__ import annotations

import json

import pytest
import requests

ROUTER = "http://192.168.119.1"

LOGIN_PAGE = "<form method='post'><input type='hidden' name='token' value='csrf123'><input type='password' name='password'></form>"
INFO_PAGE = "<script>var token='deadbeef42';</script>"


def make_response(status_code: int = 200, text: str = "", headers: dict | None = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response._content = text.encode("utf-8")
    response.encoding = "utf-8"
    response.headers.update(headers or {})
    return response


def make_payload(clients: dict | None = None, ethernet: dict | None = None) -> str:
    return json.dumps([{}, clients or {}, {}, {}, ethernet or {}])


class FakeRouter:
    """Stands in for the router behind a real requests.Session.

    Routes are keyed by (method, path); each value is a response or an
    exception, or a list of them consumed one per call.
    """

    def __init__(self, session: requests.Session):
        self.session = session
        self.routes = {}
        self.calls = []

    def on(self, method: str, path: str, *results):
        self.routes[(method, path)] = list(results)

    def __call__(self, method, url, **kwargs):
        path = url[len(ROUTER):]
        self.calls.append((method, path, kwargs))
        results = self.routes.get((method, path))
        if not results:
            return make_response(404, "not found")
        result = results.pop(0) if len(results) > 1 else results[0]
        if isinstance(result, Exception):
            raise result
        if method == "GET" and path == "/login.php":
            # the login page starts a PHP session
            self.session.cookies.set("PHPSESSID", "abc", domain="192.168.119.1", path="/")
        return result

    def paths(self):
        return [(method, path) for method, path, _ in self.calls]


@pytest.fixture
def http_session():
    return requests.Session()


@pytest.fixture
def fake_router(http_session):
    router = FakeRouter(http_session)
    http_session.request = router
    return router


@pytest.fixture
def happy_router(fake_router):
    fake_router.on("GET", "/login.php", make_response(200, LOGIN_PAGE))
    fake_router.on("POST", "/login.php", make_response(302, "", {"Location": "/info.php"}))
    fake_router.on("GET", "/info.php", make_response(200, INFO_PAGE))
    return fake_router
