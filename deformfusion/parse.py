"""Command-line lookup helpers and installation directories."""

from __future__ import annotations

import os
import re
import sys
from typing import Optional, Sequence, Union

_FLOAT_PREFIX = re.compile(
    r"\s*([+-]?(?:inf(?:inity)?|nan|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))",
    re.IGNORECASE,
)
_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")

PathLike = Union[str, "os.PathLike[str]"]


def find_arg(argv: Sequence[str], name: str) -> int:
    """Index of ``name`` in ``argv``, skipping the program name; -1 if absent."""
    for index, arg in enumerate(argv[1:], start=1):
        if arg == name:
            return index
    return -1


def _value_after(argv: Sequence[str], name: str) -> Optional[str]:
    index = find_arg(argv, name)
    if index >= 0 and index + 1 < len(argv):
        return argv[index + 1]
    return None


def string_arg(argv: Sequence[str], name: str, default: Optional[str] = None) -> Optional[str]:
    """The argument after ``name``, or ``default`` when there is none."""
    value = _value_after(argv, name)
    return default if value is None else value


def float_arg(argv: Sequence[str], name: str, default: Optional[float] = None) -> Optional[float]:
    """The float after ``name``; a leading numeric prefix is read, else 0.0."""
    value = _value_after(argv, name)
    if value is None:
        return default
    match = _FLOAT_PREFIX.match(value)
    return float(match.group(1)) if match else 0.0


def int_arg(argv: Sequence[str], name: str, default: Optional[int] = None) -> Optional[int]:
    """The integer after ``name``; a leading digit prefix is read, else 0."""
    value = _value_after(argv, name)
    if value is None:
        return default
    match = _INT_PREFIX.match(value)
    return int(match.group(1)) if match else 0


def shader_dir(path: PathLike) -> str:
    """Return the shader directory, which must exist."""
    directory = os.fspath(path)
    if not os.path.exists(directory):
        raise FileNotFoundError(f"shader directory not found: {directory}")
    return directory


def base_dir(exe_path: Optional[PathLike] = None) -> str:
    """Directory above the last ``/build/`` component of the executable's path."""
    path = os.fspath(exe_path) if exe_path is not None else os.path.realpath(sys.argv[0])
    cut = path.rfind("/build/")
    return path if cut < 0 else path[:cut]