"""Decoding helpers turning raw felt arrays into typed outcomes."""

from __future__ import annotations

import string
from typing import Any, Sequence

from app.domain import EventOutcome, RawEvent

ADDRESS_HEX_DIGITS = 64
MIN_EVENT_FIELDS = 3
U8_MAX = (1 << 8) - 1
U64_MAX = (1 << 64) - 1
FELT_PRIME = (1 << 251) + 17 * (1 << 192) + 1


def format_address(address: str) -> str:
    """Left-pad ``address`` to 64 hex digits behind a ``0x`` prefix.

    Digit casing is kept as given; only the prefix and zero padding change.
    """

    hex_str = address[2:] if address.startswith("0x") else address
    return "0x" + hex_str.rjust(ADDRESS_HEX_DIGITS, "0")


def felt_to_int(value: Any) -> int:
    """Parse a felt given as ``0x`` hex string, decimal string or int."""

    if isinstance(value, bool):
        raise ValueError(f"not a felt: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"felt must be non-negative: {value}")
        return value
    if isinstance(value, str):
        candidate = value.strip()
        if candidate.lower().startswith("0x"):
            parsed = int(candidate, 16)
        else:
            parsed = int(candidate, 10)
        if parsed < 0:
            raise ValueError(f"felt must be non-negative: {value!r}")
        return parsed
    raise ValueError(f"not a felt: {value!r}")


def parse_hex_felt(value: str) -> int:
    """Parse a stored contract address; hex digits with an optional ``0x`` prefix."""

    candidate = value.strip()
    digits = candidate[2:] if candidate.lower().startswith("0x") else candidate
    if not digits or len(digits) > ADDRESS_HEX_DIGITS or not all(c in string.hexdigits for c in digits):
        raise ValueError(f"invalid felt hex string: {value!r}")
    parsed = int(digits, 16)
    if parsed >= FELT_PRIME:
        raise ValueError(f"felt out of range: {value!r}")
    return parsed


def to_fixed_hex(value: Any) -> str:
    return "0x" + format(felt_to_int(value), f"0{ADDRESS_HEX_DIGITS}x")


def _bounded_int(value: Any, upper: int) -> int:
    try:
        parsed = felt_to_int(value)
    except ValueError:
        return 0
    return parsed if parsed <= upper else 0


def _event_address(value: Any) -> str:
    try:
        return format_address(to_fixed_hex(value))
    except ValueError:
        return format_address(str(value).strip())


def decode_outcome_fields(data: Sequence[Any]) -> EventOutcome | None:
    """Decode ``[event_address, outcome, timestamp, ...]``; ``None`` when too short.

    Unparseable or out-of-range numeric fields decode to 0 instead of
    invalidating the event.
    """

    if len(data) < MIN_EVENT_FIELDS:
        return None
    return EventOutcome(
        event_address=_event_address(data[0]),
        outcome=_bounded_int(data[1], U8_MAX),
        timestamp=_bounded_int(data[2], U64_MAX),
    )


def decode_event_outcome(event: RawEvent) -> EventOutcome | None:
    return decode_outcome_fields(event.data)
