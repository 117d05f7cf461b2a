"""Tests for bankstates decoding."""

from __future__ import annotations

import pytest

from conftest import blank_bankstates, set_byte
from xgen_client import (
    AreaMode,
    MalformedResponse,
    Status,
    byte_at,
    decode_area_mode,
    is_exit_delay,
    is_zone_open,
)
from xgen_client.state import EXIT_DELAY_OFFSETS, FULL_ARM_OFFSET, PARTIAL_ARM_OFFSET


def test_byte_at_reads_every_byte_value():
    """Every two-digit hex string decodes to its value, in either case."""

    for value in range(256):
        assert byte_at(f"xx{value:02x}", 2) == value
        assert byte_at(f"xx{value:02X}", 2) == value


@pytest.mark.parametrize(
    ("blob", "offset"),
    [
        ("0A", -1),
        ("0A", 1),
        ("0A", 2),
        ("0A", 40),
        ("", 0),
        ("zz", 0),
        ("+f", 0),
        (" f", 0),
        ("f ", 0),
        ("_1", 0),
        ("0x", 0),
        ("0A", None),
        ("0A", 1.5),
        ("0A", "2"),
        (None, 0),
    ],
)
def test_byte_at_returns_zero_for_bad_input(blob, offset):
    """Short, out-of-range and non-hex slices read as zero instead of raising."""

    assert byte_at(blob, offset) == 0


def test_decode_area_mode_full_arm_is_away():
    """Area 0 with bit 0 in the full-arm byte is AWAY."""

    blob = set_byte(blank_bankstates(), FULL_ARM_OFFSET, 0x01)
    assert blob.startswith("00000001")
    assert decode_area_mode(blob, 0) == AreaMode.AWAY


def test_decode_area_mode_partial_arm_is_stay():
    blob = set_byte(blank_bankstates(), PARTIAL_ARM_OFFSET, 0x01)
    assert decode_area_mode(blob, 0) == AreaMode.STAY


def test_decode_area_mode_away_wins_over_stay():
    blob = set_byte(blank_bankstates(), PARTIAL_ARM_OFFSET, 0xFF)
    blob = set_byte(blob, FULL_ARM_OFFSET, 0xFF)
    assert decode_area_mode(blob, 3) == AreaMode.AWAY


def test_decode_area_mode_exit_delay_reads_as_disarmed():
    """The exit delay bytes alone never produce an armed mode."""

    blob = "00000000400100000000" + "00" * 30
    assert is_exit_delay(blob, 0)
    assert decode_area_mode(blob, 0) == AreaMode.DISARMED


def test_decode_area_mode_uses_area_bit():
    """Area 9 maps to bit 1 (mask 0x02) of the same bytes."""

    blob = set_byte(blank_bankstates(), FULL_ARM_OFFSET, 0x02)
    assert decode_area_mode(blob, 9) == AreaMode.AWAY
    assert decode_area_mode(blob, 1) == AreaMode.AWAY
    assert decode_area_mode(blob, 0) == AreaMode.DISARMED


def test_decode_area_mode_is_total_over_bit_combinations():
    """Every combination of the arm and exit bits yields exactly one armed state."""

    for partial in (0, 1):
        for full in (0, 1):
            for exit_bits in (0, 1, 2, 3):
                blob = set_byte(blank_bankstates(), PARTIAL_ARM_OFFSET, partial)
                blob = set_byte(blob, FULL_ARM_OFFSET, full)
                for i, offset in enumerate(EXIT_DELAY_OFFSETS):
                    blob = set_byte(blob, offset, (exit_bits >> i) & 1)

                mode = decode_area_mode(blob, 0)
                if full:
                    assert mode == AreaMode.AWAY
                elif partial:
                    assert mode == AreaMode.STAY
                else:
                    assert mode == AreaMode.DISARMED


def test_decode_area_mode_empty_blob_is_unknown():
    assert decode_area_mode("", 0) == AreaMode.UNKNOWN


def test_is_zone_open_addresses_byte_and_bit():
    """Zone 1 is bit 0 of byte 0; zone 10 is bit 1 of byte 1."""

    blob = set_byte(blank_bankstates(), 0, 0x01)
    assert is_zone_open(blob, 1, 0, True)
    assert not is_zone_open(blob, 2, 0, True)

    blob = set_byte(blank_bankstates(), 2, 0x02)
    assert is_zone_open(blob, 10, 0, True)
    assert not is_zone_open(blob, 9, 0, True)


def test_is_zone_open_polarity_is_inverse():
    blobs = [blank_bankstates(), "FF" * 40, "A5" * 40, "0", "zz", ""]
    for blob in blobs:
        for zone in (1, 5, 8, 9, 16, 33, 320):
            assert is_zone_open(blob, zone, 0, True) == (not is_zone_open(blob, zone, 0, False))


def test_is_zone_open_ignores_bank():
    """The bank selector is accepted but does not move the byte."""

    blob = set_byte(blank_bankstates(), 0, 0x10)
    for bank in (0, 1, 3):
        assert is_zone_open(blob, 5, bank, True)


def test_status_from_payload():
    blob = set_byte(blank_bankstates(), FULL_ARM_OFFSET, 0x01)
    status = Status.from_payload({"bankstates": blob, "other": 1}, 0)

    assert status.bankstates == blob
    assert status.area_mode == AreaMode.AWAY
    assert status.raw["other"] == 1
    assert str(status) == "AWAY"


@pytest.mark.parametrize("payload", [{}, {"bankstates": ""}, {"bankstates": 12}, [1, 2], None])
def test_status_from_payload_without_bankstates(payload):
    with pytest.raises(MalformedResponse):
        Status.from_payload(payload, 0)
