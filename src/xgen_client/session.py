"""
Session management for the xGen web interface.

The panel issues a session token on login and expects it as the ``sess``
form field on every authenticated request. SessionStore owns that token and
makes sure only one login is ever in flight.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from .errors import AuthProtocolError, AuthRejected, TransportError
from .protocol import (
    FORM_CONTENT_TYPE,
    LOGIN_PATH,
    extract_session_token,
    looks_like_login_page,
)

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Holds the current session token and coordinates logins.

    Concurrent callers of login() or ensure_logged_in() share a single
    in-flight login: they all resolve with the same token, or all fail with
    the same error.
    """

    def __init__(self, http: httpx.AsyncClient, username: str, pin: str) -> None:
        """
        Initialize the session store.

        Args:
            http: HTTP client shared with XGenClient (carries the cookie jar)
            username: Panel user name
            pin: Panel user PIN
        """
        self._http = http
        self._username = username
        self._pin = pin

        self._token: str | None = None
        # Shared in-flight login, cleared by the task itself before it finishes
        self._login_task: asyncio.Task[str] | None = None

    @property
    def token(self) -> str | None:
        """Current session token, or None if not logged in."""
        return self._token

    @property
    def login_in_progress(self) -> bool:
        """Whether a login is currently in flight."""
        return self._login_task is not None

    def invalidate(self) -> None:
        """Forget the current session token."""
        if self._token:
            logger.debug(f"Invalidating session {self._token}")
        self._token = None

    async def ensure_logged_in(self) -> str:
        """Return the current token, logging in first if there is none."""
        if self._token:
            return self._token
        return await self.login()

    async def login(self) -> str:
        """
        Log in, or join the login that is already in flight.

        Returns:
            The new session token

        Raises:
            AuthRejected: Panel returned the login page again
            AuthProtocolError: Response had no token and was not the login page
            TransportError: Network failure
        """
        if self._login_task is None:
            self._login_task = asyncio.create_task(self._run_login())
        else:
            logger.debug("Login already in progress, waiting for it")
        return await asyncio.shield(self._login_task)

    async def cancel_login(self) -> None:
        """Cancel an in-flight login and wait for it to unwind."""
        task = self._login_task
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _run_login(self) -> str:
        try:
            return await self._login()
        finally:
            self._login_task = None

    async def _login(self) -> str:
        """Submit credentials and parse the session token."""
        self._token = None
        logger.debug(f"Logging in as {self._username}")

        try:
            response = await self._http.post(
                LOGIN_PATH,
                data={"lgname": self._username, "lgpin": self._pin},
                headers={"Content-Type": FORM_CONTENT_TYPE},
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Login request failed: {e}") from e

        text = response.text
        token = extract_session_token(text)

        if not token:
            if looks_like_login_page(text):
                raise AuthRejected(
                    "Login not accepted (panel returned login page again). "
                    "Check username/pin and that this user has web/area permissions.",
                    status=response.status_code,
                )
            raise AuthProtocolError(
                "Login failed (no sess token found in HTML)",
                status=response.status_code,
                details={"body": text[:120]},
            )

        self._token = token
        logger.info(f"Logged in successfully. sess={token}")
        return token
