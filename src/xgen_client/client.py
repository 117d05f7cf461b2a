"""
Async client for the xGen panel web interface.

This module provides the main XGenClient class for talking to Reliance XR
(xGen) alarm panels over their embedded HTTP server.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, fields
from enum import IntEnum
from typing import Any

import httpx

from .errors import AuthRejected, MalformedResponse, PanelError, SessionExpired, TransportError
from .protocol import (
    FORM_CONTENT_TYPE,
    KEY_FUNCTION_PATH,
    STATUS_PATH,
    area_selector,
    build_form,
    looks_like_login_page,
)
from .session import SessionStore
from .state import CommandResult, Status

logger = logging.getLogger(__name__)

# Pause before logging in again after the panel dropped our session
RELOGIN_DELAY = 0.2

# Length of the body excerpt attached to MalformedResponse
SNIPPET_LENGTH = 120

# camelCase keys used by existing plugin config files
_CONFIG_ALIASES = {
    "areaIndex": "area_index",
    "rollerDoorZone": "door_zone",
    "doorZone": "door_zone",
    "zoneOpenBank": "zone_open_bank",
    "zoneOpenWhenSet": "zone_open_when_set",
    "enableEventNotifications": "enable_event_notifications",
}
_CONFIG_MS_ALIASES = {
    "pollMs": "poll_interval",
    "eventPulseMs": "pulse_duration",
}


class KeyFunction(IntEnum):
    """Key function numbers understood by /user/keyfunction.cgi."""

    DISARM = 0
    ARM_STAY = 1
    ARM_AWAY = 15


@dataclass(slots=True)
class XGenConfig:
    """Configuration for XGenClient and XGenMonitor."""

    host: str
    username: str = ""
    pin: str = ""
    area_index: int = 0
    poll_interval: float = 2.0
    door_zone: int = 0
    zone_open_bank: int = 0
    zone_open_when_set: bool = True
    pulse_duration: float = 1.5
    enable_event_notifications: bool = True
    timeout: float = 10.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> XGenConfig:
        """
        Build a config from a dict.

        Accepts snake_case field names as well as the camelCase keys of the
        Homebridge plugin config (millisecond values are converted to seconds).
        """
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}

        for key, value in data.items():
            if value is None:
                continue
            if key in _CONFIG_MS_ALIASES:
                values[_CONFIG_MS_ALIASES[key]] = float(value) / 1000
            elif key in _CONFIG_ALIASES:
                values[_CONFIG_ALIASES[key]] = value
            elif key in known:
                values[key] = value

        values.setdefault("host", "")
        config = cls(**values)
        config.username = str(config.username)
        config.pin = str(config.pin)
        config.area_index = int(config.area_index)
        config.door_zone = int(config.door_zone)
        config.zone_open_bank = int(config.zone_open_bank)
        config.zone_open_when_set = config.zone_open_when_set is True
        config.enable_event_notifications = config.enable_event_notifications is True
        config.poll_interval = float(config.poll_interval)
        config.pulse_duration = float(config.pulse_duration)
        return config


class XGenClient:
    """
    Async client for xGen alarm panels.

    Example usage:
        ```python
        async with XGenClient({"host": "192.168.1.50", "username": "admin", "pin": "1234"}) as client:
            status = await client.status(0)
            print(status.area_mode)
            await client.arm_away(0)
        ```
    """

    def __init__(
        self,
        config: dict[str, Any] | XGenConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the xGen client.

        Args:
            config: Configuration dict or XGenConfig instance
            transport: Optional httpx transport (used by tests)
        """
        if isinstance(config, dict):
            self.config = XGenConfig.from_dict(config)
        else:
            self.config = config

        if not self.config.host:
            raise ValueError("Panel host is not configured")

        # The httpx client owns the cookie jar; only this class and the
        # session store touch it
        self._http = httpx.AsyncClient(
            base_url=f"http://{self.config.host}",
            timeout=self.config.timeout,
            transport=transport,
        )
        self._session = SessionStore(self._http, self.config.username, self.config.pin)

    @property
    def session(self) -> SessionStore:
        """Session store holding the current token."""
        return self._session

    @property
    def base_url(self) -> str:
        """Base URL of the panel."""
        return str(self._http.base_url)

    async def __aenter__(self) -> XGenClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Cancel any in-flight login and release the HTTP connection pool."""
        await self._session.cancel_login()
        await self._http.aclose()
        logger.debug("Client closed")

    async def ensure_logged_in(self) -> str:
        """Log in unless a session already exists."""
        return await self._session.ensure_logged_in()

    async def login(self) -> str:
        """Force a fresh login (joins one already in flight)."""
        return await self._session.login()

    def invalidate_session(self) -> None:
        """Drop the session so the next call logs in again."""
        self._session.invalidate()

    # ========================================================================
    # Low-level communication
    # ========================================================================

    async def call(
        self,
        path: str,
        *,
        method: str = "GET",
        form: Mapping[str, Any] | None = None,
        expect_json: bool = True,
        retry: bool = True,
    ) -> Any:
        """
        Issue an authenticated request.

        If the panel answers with its login page the session is treated as
        expired: the client logs in again and repeats the request once.

        Args:
            path: Request path (e.g. '/user/status.json')
            method: HTTP method; GET with form fields is sent as POST
            form: Form fields (sent after the session token)
            expect_json: Parse the body as JSON
            retry: Allow one re-login and retry on session expiry

        Returns:
            Decoded JSON payload, or the body text if expect_json is False

        Raises:
            AuthRejected: Session was rejected again after re-login
            MalformedResponse: Body is not valid JSON
            PanelError: Payload carries an error object
            TransportError: Network failure
        """
        try:
            text = await self._request(path, method, form)
        except SessionExpired as err:
            if not retry:
                raise AuthRejected(
                    f"Panel returned login page for {path} again after re-login",
                    details={"path": path},
                ) from err

            logger.warning(f"Session/login HTML returned for {path}. Re-logging in and retrying...")
            self._session.invalidate()
            await asyncio.sleep(RELOGIN_DELAY)
            await self._session.login()
            return await self.call(
                path, method=method, form=form, expect_json=expect_json, retry=False
            )

        if not expect_json:
            return text

        try:
            payload = json.loads(text)
        except ValueError as e:
            raise MalformedResponse(
                f"Invalid JSON from {path}: {text[:SNIPPET_LENGTH]}",
                details={"path": path, "body": text[:SNIPPET_LENGTH]},
            ) from e

        # Some pages return { "error": { "code": 0, "time": "..." } }
        if isinstance(payload, dict) and payload.get("error"):
            raise PanelError(
                f"Panel error response from {path}: {json.dumps(payload['error'])}",
                details={"path": path, "error": payload["error"]},
            )

        return payload

    async def _request(
        self, path: str, method: str, form: Mapping[str, Any] | None
    ) -> str:
        """Send one request and return the body, raising SessionExpired on login HTML."""
        session = await self._session.ensure_logged_in()

        http_method = method.upper()
        data: dict[str, str] | None = None
        if http_method != "GET":
            data = build_form(session, form)
        elif form:
            http_method = "POST"
            data = build_form(session, form)

        logger.debug(f"TX {http_method} {path} {form or {}}")

        try:
            response = await self._http.request(
                http_method,
                path,
                data=data,
                headers={"Content-Type": FORM_CONTENT_TYPE} if data is not None else None,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {path} failed: {e}", details={"path": path}) from e

        text = response.text
        logger.debug(f"RX {response.status_code} {path}: {text[:SNIPPET_LENGTH]}")

        if looks_like_login_page(text):
            raise SessionExpired(
                f"Login page returned for {path}",
                status=response.status_code,
                details={"path": path},
            )
        return text

    # ========================================================================
    # Panel endpoints
    # ========================================================================

    async def status(self, area_index: int | None = None) -> Status:
        """
        Fetch the current status of an area.

        Args:
            area_index: 0-based area index (defaults to the configured area)

        Returns:
            Parsed Status carrying the bankstates blob
        """
        if area_index is None:
            area_index = self.config.area_index

        payload = await self.call(
            STATUS_PATH, method="POST", form={"arsel": area_index}, expect_json=True
        )
        return Status.from_payload(payload, area_index)

    async def key_function(
        self, function_number: int, area_index: int | None = None
    ) -> CommandResult:
        """
        Send a key function command, mirroring the panel's web UI.

        Args:
            function_number: Key function number (see KeyFunction)
            area_index: 0-based area index (defaults to the configured area)

        Returns:
            CommandResult with the panel's response payload
        """
        if area_index is None:
            area_index = self.config.area_index

        start, mask = area_selector(area_index)
        payload = await self.call(
            KEY_FUNCTION_PATH,
            method="POST",
            form={"fnum": int(function_number), "start": start, "mask": mask},
            expect_json=True,
        )
        return CommandResult(
            function_number=int(function_number), start=start, mask=mask, raw=payload
        )

    async def disarm(self, area_index: int | None = None) -> CommandResult:
        """Disarm an area."""
        logger.info(f"Sending keyFunction fnum={int(KeyFunction.DISARM)}")
        return await self.key_function(KeyFunction.DISARM, area_index)

    async def arm_stay(self, area_index: int | None = None) -> CommandResult:
        """Arm an area in stay (partial) mode."""
        logger.info(f"Sending keyFunction fnum={int(KeyFunction.ARM_STAY)}")
        return await self.key_function(KeyFunction.ARM_STAY, area_index)

    async def arm_away(self, area_index: int | None = None) -> CommandResult:
        """Arm an area in away (full) mode."""
        logger.info(f"Sending keyFunction fnum={int(KeyFunction.ARM_AWAY)}")
        return await self.key_function(KeyFunction.ARM_AWAY, area_index)
