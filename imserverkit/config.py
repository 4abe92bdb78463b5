"""INI-style configuration file reader."""

from __future__ import annotations

import math
import os
import re
import threading
from typing import ClassVar, Optional

_SPACE = " \t\n\v\f\r"
_INT_PREFIX = re.compile(r"[ \t\n\v\f\r]*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(
    r"[ \t\n\v\f\r]*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)
_INT32_MIN = -(1 << 31)
_INT32_MAX = (1 << 31) - 1
_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "off"})


class Config:
    """Sectioned key/value settings loaded from an INI-style file.

    Lines starting with ``#`` or ``;`` are comments, ``[name]`` opens a
    section and ``key = value`` sets a value in the current section. Keys
    outside any section are ignored.
    """

    _instance: ClassVar[Optional["Config"]] = None
    _instance_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, dict[str, str]] = {}

    @classmethod
    def instance(cls) -> "Config":
        """The process-wide shared configuration."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def load(self, file_path: str | os.PathLike[str]) -> None:
        """Replace the current settings with those read from ``file_path``.

        Previously loaded settings are dropped even if the file cannot be
        opened, in which case ``OSError`` is raised.
        """
        with self._lock:
            self._data = {}
            with open(file_path, encoding="utf-8", newline="") as handle:
                text = handle.read()
            data: dict[str, dict[str, str]] = {}
            section = ""
            for raw in text.split("\n"):
                line = raw.strip(_SPACE)
                if not line or line[0] in "#;":
                    continue
                if line[0] == "[" and line[-1] == "]" and len(line) >= 2:
                    section = line[1:-1].strip(_SPACE)
                    continue
                key, sep, value = line.partition("=")
                if not sep:
                    continue
                key = key.strip(_SPACE)
                if section and key:
                    data.setdefault(section, {})[key] = value.strip(_SPACE)
            self._data = data

    def get_string(self, section: str, key: str, default: str = "") -> str:
        """Value of ``key`` in ``section``, or ``default``."""
        with self._lock:
            return self._data.get(section, {}).get(key, default)

    def get_int(self, section: str, key: str, default: int = 0) -> int:
        """Leading 32-bit integer of the value, or ``default``."""
        match = _INT_PREFIX.match(self.get_string(section, key))
        if match is None:
            return default
        value = int(match.group(1))
        if not _INT32_MIN <= value <= _INT32_MAX:
            return default
        return value

    def get_bool(self, section: str, key: str, default: bool = False) -> bool:
        """true/1/yes/on or false/0/no/off; anything else gives ``default``."""
        value = self.get_string(section, key)
        if value in _TRUE_WORDS:
            return True
        if value in _FALSE_WORDS:
            return False
        return default

    def get_double(self, section: str, key: str, default: float = 0.0) -> float:
        """Leading floating-point number of the value, or ``default``."""
        match = _FLOAT_PREFIX.match(self.get_string(section, key))
        if match is None:
            return default
        text = match.group(1)
        value = float(text)
        if math.isinf(value) and "inf" not in text.lower():
            return default
        return value