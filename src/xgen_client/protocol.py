"""
Protocol utilities for xGen panel communication.

This module provides low-level utilities for:
- Login page detection (the panel answers any unauthenticated request with it)
- Session token extraction from the login response HTML
- Area addressing (byte start + bit mask)
- Form framing for authenticated requests
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

# Fixed endpoints
LOGIN_PATH = "/login.cgi"
STATUS_PATH = "/user/status.json"
KEY_FUNCTION_PATH = "/user/keyfunction.cgi"

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# Markers that only appear on the login page
LOGIN_PAGE_MARKERS = (
    "xgen :: secure network",
    "/login.htm",
    "lgname",
    "lgpin",
)

# getSession(){return "CDCDFDFF112F31DB";}
SESSION_PATTERN = re.compile(
    r'getSession\(\)\s*\{\s*return\s*"([A-F0-9]{16})"\s*;\s*\}', re.IGNORECASE
)
SESSION_FALLBACK_PATTERN = re.compile(r'sess\s*=\s*"?([A-F0-9]{16})"?', re.IGNORECASE)


def looks_like_login_page(text: str | None) -> bool:
    """
    Check whether a response body is the panel's login page.

    Args:
        text: Response body

    Returns:
        True if any login page marker is present
    """
    if not text:
        return False
    lowered = text.lower()
    return any(marker in lowered for marker in LOGIN_PAGE_MARKERS)


def extract_session_token(html: str | None) -> str | None:
    """
    Extract the 16-character session token from login response HTML.

    Args:
        html: Login response body

    Returns:
        The token, or None if neither pattern matches
    """
    if not html:
        return None

    for pattern in (SESSION_PATTERN, SESSION_FALLBACK_PATTERN):
        match = pattern.search(html)
        if match:
            return match.group(1)
    return None


def area_selector(area_index: int) -> tuple[int, int]:
    """
    Encode an area index the way the panel addresses areas.

    Args:
        area_index: 0-based area index

    Returns:
        Tuple of (start, mask): start byte and bit mask within that byte
    """
    return area_index // 8, 1 << (area_index % 8)


def build_form(session: str, fields: Mapping[str, Any] | None = None) -> dict[str, str]:
    """
    Build the form body of an authenticated request.

    The session token is always the first field.

    Args:
        session: Session token
        fields: Additional form fields

    Returns:
        Ordered dict of form fields ready for urlencoding
    """
    form = {"sess": session}
    for name, value in (fields or {}).items():
        form[name] = str(value)
    return form
