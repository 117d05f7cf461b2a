"""Pytest configuration and a fake xGen panel for the client tests."""

from __future__ import annotations

import asyncio
import json
from dataclasses import replace
from typing import Any
from urllib.parse import parse_qsl

import httpx
import pytest

from xgen_client import XGenClient, XGenConfig

TOKEN = "CDCDFDFF112F31DB"

LOGIN_PAGE = (
    "<html><head><title>xGen :: Secure Network</title></head><body>"
    '<form action="/login.cgi" method="post">'
    '<input name="lgname"><input name="lgpin" type="password">'
    "</form></body></html>"
)


def login_success_page(token: str) -> str:
    """HTML returned by /login.cgi after a successful login."""

    return (
        "<html><head><script>"
        f'function getSession(){{return "{token}";}}'
        "</script></head><body>Welcome</body></html>"
    )


def blank_bankstates() -> str:
    """An 80 character (40 byte) bankstates string with no bits set."""

    return "00" * 40


def set_byte(blob: str, char_offset: int, value: int) -> str:
    """Return blob with the byte at char_offset replaced."""

    return blob[:char_offset] + f"{value:02X}" + blob[char_offset + 2 :]


class FakePanel:
    """Emulates the panel's login, status and key function endpoints."""

    def __init__(self) -> None:
        """Start with a valid account and an all-zero status."""

        self.tokens = [TOKEN, "0123456789ABCDEF", "FEDCBA9876543210"]
        self.current_token: str | None = None
        self.bankstates = blank_bankstates()
        self.login_count = 0
        self.login_delay = 0.01
        self.login_body: str | None = None
        self.requests: list[tuple[str, str, list[tuple[str, str]], httpx.Request]] = []
        # Number of upcoming authenticated requests answered with the login page
        self.expire_next = 0
        self.status_body: str | None = None
        self.key_function_payload: Any = {"result": 0}
        self.fail_status = False

    @property
    def transport(self) -> httpx.MockTransport:
        """Transport to hand to XGenClient."""

        return httpx.MockTransport(self.handler)

    def calls_to(self, path: str) -> list[list[tuple[str, str]]]:
        """Form fields of every request sent to path."""

        return [form for p, _, form, _ in self.requests if p == path]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        """Dispatch a request like the panel's web server would."""

        path = request.url.path
        form = parse_qsl(request.content.decode()) if request.content else []
        self.requests.append((path, request.method, form, request))

        if path == "/login.cgi":
            return await self._login(form)

        if self.expire_next > 0:
            self.expire_next -= 1
            return httpx.Response(200, text=LOGIN_PAGE)

        fields = dict(form)
        # GET pages rely on the session cookie alone
        if request.method != "GET" and fields.get("sess") != self.current_token:
            return httpx.Response(200, text=LOGIN_PAGE)

        if path == "/user/status.json":
            if self.fail_status:
                raise httpx.ConnectError("panel unreachable", request=request)
            if self.status_body is not None:
                return httpx.Response(200, text=self.status_body)
            return httpx.Response(200, json={"bankstates": self.bankstates})

        if path == "/user/keyfunction.cgi":
            return httpx.Response(200, text=json.dumps(self.key_function_payload))

        return httpx.Response(200, text="ok")

    async def _login(self, form: list[tuple[str, str]]) -> httpx.Response:
        self.login_count += 1
        await asyncio.sleep(self.login_delay)

        if self.login_body is not None:
            return httpx.Response(200, text=self.login_body)

        fields = dict(form)
        if fields.get("lgname") != "admin" or fields.get("lgpin") != "1234":
            return httpx.Response(200, text=LOGIN_PAGE)

        self.current_token = self.tokens[(self.login_count - 1) % len(self.tokens)]
        return httpx.Response(
            200,
            text=login_success_page(self.current_token),
            headers={"Set-Cookie": "xgen=1; Path=/"},
        )


@pytest.fixture
def panel() -> FakePanel:
    """A fresh fake panel."""

    return FakePanel()


@pytest.fixture
def config() -> XGenConfig:
    """Client configuration matching the fake panel's account."""

    return XGenConfig(
        host="192.168.1.50",
        username="admin",
        pin="1234",
        area_index=0,
        poll_interval=0.05,
        pulse_duration=0.05,
    )


@pytest.fixture
def make_client(panel: FakePanel, config: XGenConfig):
    """Factory building an XGenClient wired to the fake panel."""

    def _make(**overrides: Any) -> XGenClient:
        return XGenClient(replace(config, **overrides), transport=panel.transport)

    return _make
