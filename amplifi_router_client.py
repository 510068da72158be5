from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import requests

from amplifi_router_client_exceptions import *
from amplifi_router_utils import *

AMPLIFI_CLIENT_DEFAULT_HEADERS = {
    "User-Agent": "amplifi-router-exporter/1.0"
}

DEFAULT_TIMEOUT = 10

LOGIN_PATH = "/login.php"
INFO_PATH = "/info.php"
INFO_ASYNC_PATH = "/info-async.php"

logger = logging.getLogger(__name__)


class RouterSession:
    """Authentication state for the router web UI.

    Holds the cookie jar (inside the requests session) and the info token
    scraped from the status page. Any failure further down the line is
    expected to call :meth:`reset_auth` so the next cycle logs in again.
    """

    def __init__(self, host: str, password: str, session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.host = normalize_host(host)
        self.password = password
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.info_token: Optional[str] = None
        self.authenticated = False

    @property
    def hostname(self) -> str:
        return urlparse(self.host).hostname or ""

    def has_session_cookie(self) -> bool:
        hostname = self.hostname
        for cookie in self.session.cookies:
            domain = cookie.domain or ""
            if domain.lstrip(".") == hostname or (domain.startswith(".") and hostname.endswith(domain)):
                return True
        return False

    def is_authenticated(self) -> bool:
        return self.authenticated or self.has_session_cookie()

    def request(self, method: str, path: str, stage: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, f"{self.host}{path}",
                                        headers=AMPLIFI_CLIENT_DEFAULT_HEADERS,
                                        timeout=self.timeout,
                                        **kwargs)
        except requests.RequestException as e:
            raise TransportException(f"request to {path} failed: {e.__class__.__name__}", stage) from e

    def ensure_session(self) -> None:
        # An existing cookie is trusted as is; a stale one surfaces later as a failed request.
        if self.is_authenticated():
            self.authenticated = True
            return

        try:
            self._login()
        except AmplifiRouterException:
            # cookies set by the login page must not pass for a session
            self.reset_auth()
            raise
        self.authenticated = True
        logger.info(f"Logged in to router at {self.host}")

    def _login(self) -> None:
        response = self.request("GET", LOGIN_PATH, "login")
        if response.status_code != 200:
            raise StatusException("login page request failed", "login",
                                  status_code=response.status_code, body=response.text)

        csrf_token = extract_csrf_token(response.text)
        if csrf_token is None:
            raise ParseException("CSRF token not found in login page", "login")
        logger.debug(f"CSRF token found (length={len(csrf_token)})")

        response = self.request("POST", LOGIN_PATH, "login",
                                data={"token": csrf_token, "password": self.password},
                                allow_redirects=False)
        if response.status_code != 200 and not 300 <= response.status_code < 400:
            raise AuthenticationException("login rejected", "login",
                                          status_code=response.status_code, body=response.text)

    def get_info_token(self) -> str:
        if self.info_token:
            return self.info_token

        response = self.request("GET", INFO_PATH, "info_token")
        if response.status_code != 200:
            raise StatusException("info page request failed", "info_token",
                                  status_code=response.status_code, body=response.text)

        token = extract_info_token(response.text)
        if token is None:
            raise ParseException("info token not found in info page", "info_token")

        self.info_token = token
        logger.debug(f"Info token cached (length={len(token)})")
        return token

    def reset_auth(self) -> None:
        self.session.cookies.clear()
        self.info_token = None
        self.authenticated = False

    def test_auth(self) -> None:
        self.ensure_session()


@dataclass
class RouterClient:
    router_session: RouterSession

    @property
    def host(self) -> str:
        return self.router_session.host

    def fetch_full_info(self, token: str) -> str:
        response = self.router_session.request("POST", INFO_ASYNC_PATH, "info",
                                               data={"token": token, "do": "full"})
        if response.status_code != 200:
            raise StatusException("status request failed", "info",
                                  status_code=response.status_code, body=response.text)
        return response.text

    def get_metrics(self) -> str:
        self.router_session.ensure_session()
        token = self.router_session.get_info_token()
        return self.fetch_full_info(token)

    def reset_auth(self) -> None:
        self.router_session.reset_auth()


class RouterClientFactory:

    def __init__(self, host: str, timeout: float = DEFAULT_TIMEOUT):
        self.host = normalize_host(host)
        self.timeout = timeout

    def auth(self, password: str, session: Optional[requests.Session] = None) -> RouterClient:
        """Build a client; login is deferred to the first poll cycle."""
        router_session = RouterSession(self.host, password, session=session, timeout=self.timeout)
        return RouterClient(router_session)
