"""
State classes and bitfield decoding for xGen status responses.

The panel reports status as a single ``bankstates`` hex string. Each pair of
hex characters is one byte; each bit in a byte belongs to one area (or one
zone), so an area or zone is addressed by a byte offset plus a bit mask.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .errors import MalformedResponse

# Char offsets of the area arming bytes within bankstates (see status.js)
PARTIAL_ARM_OFFSET = 4
FULL_ARM_OFFSET = 6
EXIT_DELAY_OFFSETS = (8, 10)

_HEX_BYTE = re.compile(r"[0-9A-Fa-f]{2}")


class AreaMode(StrEnum):
    """Arming mode of a single area."""

    DISARMED = "DISARMED"
    STAY = "STAY"
    AWAY = "AWAY"
    UNKNOWN = "UNKNOWN"


def byte_at(blob: str, char_offset: int) -> int:
    """
    Read one byte from a hex string.

    Args:
        blob: Hex string (two characters per byte)
        char_offset: Character offset of the byte's first hex digit

    Returns:
        Integer value of the byte, or 0 if the slice is out of range or not hex
    """
    if not isinstance(blob, str) or not isinstance(char_offset, int) or char_offset < 0:
        return 0
    pair = blob[char_offset : char_offset + 2]
    if not _HEX_BYTE.fullmatch(pair):
        return 0
    return int(pair, 16)


def area_mask(area_index: int) -> int:
    """Bit mask of an area within its byte."""
    return 1 << (area_index % 8)


def decode_area_mode(blob: str, area_index: int) -> AreaMode:
    """
    Derive the arming mode of an area from bankstates.

    Full arm wins over partial arm. Exit delay is reported as DISARMED: the
    panel already sets the arm bit for most of the exit delay, and the
    remaining window is not distinguished.

    Args:
        blob: bankstates hex string
        area_index: 0-based area index

    Returns:
        AWAY, STAY or DISARMED (UNKNOWN only for an empty blob)
    """
    if not blob:
        return AreaMode.UNKNOWN

    mask = area_mask(area_index)
    partial = byte_at(blob, PARTIAL_ARM_OFFSET)
    full = byte_at(blob, FULL_ARM_OFFSET)

    if full & mask:
        return AreaMode.AWAY
    if partial & mask:
        return AreaMode.STAY
    return AreaMode.DISARMED


def is_exit_delay(blob: str, area_index: int) -> bool:
    """Whether either exit-delay byte has the area's bit set."""
    mask = area_mask(area_index)
    return any(byte_at(blob, offset) & mask for offset in EXIT_DELAY_OFFSETS)


def is_zone_open(
    blob: str, zone_number: int, bank: int = 0, open_when_set: bool = True
) -> bool:
    """
    Derive the open/closed state of a zone from bankstates.

    ``bank`` is accepted so callers can pass the configured zone bank, but it
    does not move the byte offset: bank 0 with ``2 * (zi // 8)`` is the only
    layout verified against a real panel.

    Args:
        blob: bankstates hex string
        zone_number: 1-based zone number
        bank: Zone bank selector (currently contributes no offset)
        open_when_set: True if a set bit means open, False if it means closed

    Returns:
        True if the zone is open
    """
    zi = zone_number - 1
    mask = 1 << (zi % 8)
    offset = 2 * (zi // 8)

    bit_set = (byte_at(blob, offset) & mask) != 0
    return bit_set if open_when_set else not bit_set


@dataclass(slots=True)
class Status:
    """Parsed response of the status endpoint."""

    area_index: int
    bankstates: str
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any, area_index: int) -> Status:
        """Build a Status from the decoded JSON body."""
        bankstates = payload.get("bankstates") if isinstance(payload, dict) else None
        if not isinstance(bankstates, str) or not bankstates:
            raise MalformedResponse(
                "Status response has no bankstates",
                details={"payload": str(payload)[:120]},
            )
        return cls(area_index=area_index, bankstates=bankstates, raw=payload)

    @property
    def area_mode(self) -> AreaMode:
        """Arming mode of the requested area."""
        return decode_area_mode(self.bankstates, self.area_index)

    @property
    def is_exiting(self) -> bool:
        """Whether the requested area is in exit delay."""
        return is_exit_delay(self.bankstates, self.area_index)

    def is_zone_open(
        self, zone_number: int, bank: int = 0, open_when_set: bool = True
    ) -> bool:
        """Open/closed state of a zone in this status."""
        return is_zone_open(self.bankstates, zone_number, bank, open_when_set)

    def __str__(self) -> str:
        states = [str(self.area_mode)]
        if self.is_exiting:
            states.append("Exit")
        return ", ".join(states)


@dataclass(slots=True)
class CommandResult:
    """Result of a key function command."""

    function_number: int
    start: int
    mask: int
    raw: Any = None
