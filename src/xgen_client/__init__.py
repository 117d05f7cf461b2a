"""
xGen Client - Unofficial Python client for Reliance XR (xGen) alarm panels.

This library provides async access to the panel's embedded web interface:
session handling, bankstates decoding, and a polling monitor that turns
status changes into events.
"""

from __future__ import annotations

from .client import KeyFunction, XGenClient, XGenConfig
from .errors import (
    AuthProtocolError,
    AuthRejected,
    ErrorCode,
    MalformedResponse,
    PanelError,
    SessionExpired,
    TransportError,
    XGenError,
)
from .monitor import ChangeEvent, PollState, ReconcilerSnapshot, XGenMonitor
from .protocol import (
    area_selector,
    build_form,
    extract_session_token,
    looks_like_login_page,
)
from .pulse import PulseEvent, PulseNotifier
from .session import SessionStore
from .state import (
    AreaMode,
    CommandResult,
    Status,
    byte_at,
    decode_area_mode,
    is_exit_delay,
    is_zone_open,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Client
    "KeyFunction",
    "XGenClient",
    "XGenConfig",
    "SessionStore",
    # Errors
    "AuthProtocolError",
    "AuthRejected",
    "ErrorCode",
    "MalformedResponse",
    "PanelError",
    "SessionExpired",
    "TransportError",
    "XGenError",
    # Monitor
    "ChangeEvent",
    "PollState",
    "ReconcilerSnapshot",
    "XGenMonitor",
    "PulseEvent",
    "PulseNotifier",
    # Protocol utilities
    "area_selector",
    "build_form",
    "extract_session_token",
    "looks_like_login_page",
    # State decoding
    "AreaMode",
    "CommandResult",
    "Status",
    "byte_at",
    "decode_area_mode",
    "is_exit_delay",
    "is_zone_open",
]
