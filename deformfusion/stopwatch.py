"""Named timings that can be printed or broadcast over UDP."""

from __future__ import annotations

import socket
import struct
import sys
import time
from contextlib import contextmanager, suppress
from typing import ClassVar, Dict, Iterator, Optional, TextIO, Tuple

SEND_INTERVAL_MS = 10000
DEFAULT_ADDRESS = ("127.0.0.1", 45454)

_HEADER = struct.Struct("<iQ")
_UINT64_MASK = (1 << 64) - 1


class Stopwatch:
    """Collects timings in milliseconds and tick/tock stamps in microseconds."""

    _instance: ClassVar[Optional["Stopwatch"]] = None

    def __init__(self, address: Tuple[str, int] = DEFAULT_ADDRESS) -> None:
        self._address = address
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        now = self.current_system_time()
        self.signature = now
        self._last_send = now
        self._timings_ms: Dict[str, float] = {}
        self._ticks_us: Dict[str, int] = {}
        self._tocks_us: Dict[str, int] = {}

    @classmethod
    def get_instance(cls) -> "Stopwatch":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @staticmethod
    def current_system_time() -> int:
        """Wall-clock time in microseconds."""
        return time.time_ns() // 1000

    def add_stopwatch_timing(self, name: str, duration: int) -> None:
        """Record a duration given in microseconds; non-positive ones are ignored."""
        if duration > 0:
            self._timings_ms[name] = duration / 1000.0

    def set_custom_signature(self, signature: int) -> None:
        self.signature = signature

    def timings(self) -> Dict[str, float]:
        return dict(sorted(self._timings_ms.items()))

    def print_all(self, stream: Optional[TextIO] = None) -> None:
        out = sys.stdout if stream is None else stream
        for name, value in self.timings().items():
            out.write(f"{name}: {value:g}ms\n")
        out.write("\n")

    def pulse(self, name: str) -> None:
        self._timings_ms[name] = 1.0

    def tick(self, name: str, start: Optional[int] = None) -> None:
        self._ticks_us[name] = self.current_system_time() if start is None else start

    def tock(self, name: str, end: Optional[int] = None) -> None:
        end = self.current_system_time() if end is None else end
        self._tocks_us[name] = end
        start = self._ticks_us.get(name)
        if start is not None:
            duration = (end - start) / 1000.0
            if duration > 0:
                self._timings_ms[name] = duration

    @contextmanager
    def timed(self, name: str) -> Iterator[None]:
        """Time the enclosed block and record it under ``name``."""
        start = self.current_system_time()
        yield
        self.add_stopwatch_timing(name, self.current_system_time() - start)

    def serialise_timings(self) -> bytes:
        """Packet: int32 size, uint64 signature, then (type, name NUL, value) entries."""
        body = bytearray()
        sections = (
            (0, self._timings_ms, "<f"),
            (1, self._ticks_us, "<Q"),
            (2, self._tocks_us, "<Q"),
        )
        for type_code, values, fmt in sections:
            for name in sorted(values):
                body.append(type_code)
                body += name.encode() + b"\0"
                value = values[name]
                if fmt == "<Q":
                    value &= _UINT64_MASK
                body += struct.pack(fmt, value)
        header = _HEADER.pack(_HEADER.size + len(body), self.signature & _UINT64_MASK)
        return header + bytes(body)

    def send_all(self) -> bool:
        """Send the timings if the send interval has passed; return whether it had."""
        now = self.current_system_time()
        if now - self._last_send <= SEND_INTERVAL_MS:
            return False
        with suppress(OSError):
            self._socket.sendto(self.serialise_timings(), self._address)
        self._last_send = now
        return True

    def close(self) -> None:
        self._socket.close()

    def __enter__(self) -> "Stopwatch":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()