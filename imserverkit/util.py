"""Byte-order conversion, timestamps and small string helpers."""

from __future__ import annotations

import string
import sys
import time
from datetime import datetime

_LOWER_TABLE = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)
_UPPER_TABLE = str.maketrans(string.ascii_lowercase, string.ascii_uppercase)
_WHITESPACE = " \t\n\r"


def _swap_to_network(value: int, width: int) -> int:
    """Reinterpret a host-order integer so its memory image is big-endian."""
    return int.from_bytes(value.to_bytes(width, "big"), sys.byteorder)


def _swap_to_host(value: int, width: int) -> int:
    """Reinterpret a network-order integer in host byte order."""
    return int.from_bytes(value.to_bytes(width, sys.byteorder), "big")


def host_to_network16(value: int) -> int:
    """Convert a 16-bit value from host to network byte order."""
    return _swap_to_network(value, 2)


def network_to_host16(value: int) -> int:
    """Convert a 16-bit value from network to host byte order."""
    return _swap_to_host(value, 2)


def host_to_network32(value: int) -> int:
    """Convert a 32-bit value from host to network byte order."""
    return _swap_to_network(value, 4)


def network_to_host32(value: int) -> int:
    """Convert a 32-bit value from network to host byte order."""
    return _swap_to_host(value, 4)


def host_to_network64(value: int) -> int:
    """Convert a 64-bit value from host to network byte order."""
    return _swap_to_network(value, 8)


def network_to_host64(value: int) -> int:
    """Convert a 64-bit value from network to host byte order."""
    return _swap_to_host(value, 8)


def get_timestamp_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def get_timestamp_us() -> int:
    """Current wall-clock time in microseconds since the epoch."""
    return time.time_ns() // 1_000


def get_timestamp_string() -> str:
    """Local time formatted as ``YYYY-MM-DD HH:MM:SS.ffffff``."""
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")


def sleep_ms(ms: int) -> None:
    """Sleep for the given number of milliseconds."""
    time.sleep(max(ms, 0) / 1000.0)


def split_string(text: str, delimiter: str) -> list[str]:
    """Split on a single-character delimiter; a trailing empty field is dropped."""
    if len(delimiter) != 1:
        raise ValueError("delimiter must be a single character")
    parts = text.split(delimiter)
    if parts and parts[-1] == "":
        parts.pop()
    return parts


def trim_string(text: str) -> str:
    """Strip spaces, tabs, newlines and carriage returns from both ends."""
    return text.strip(_WHITESPACE)


def to_lower(text: str) -> str:
    """Lower-case ASCII letters, leaving everything else untouched."""
    return text.translate(_LOWER_TABLE)


def to_upper(text: str) -> str:
    """Upper-case ASCII letters, leaving everything else untouched."""
    return text.translate(_UPPER_TABLE)


def start_with(text: str, prefix: str) -> bool:
    """Whether ``text`` begins with ``prefix``."""
    return text.startswith(prefix)


def end_with(text: str, suffix: str) -> bool:
    """Whether ``text`` ends with ``suffix``."""
    return text.endswith(suffix)