"""Typed shader uniform values and the packed surfel vertex layout."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, ClassVar, Tuple

import numpy as np


class UniformType(Enum):
    INT = auto()
    FLOAT = auto()
    VEC2 = auto()
    VEC3 = auto()
    VEC4 = auto()
    MAT4 = auto()
    NONE = auto()


_ARRAY_TYPES = {
    (2,): UniformType.VEC2,
    (3,): UniformType.VEC3,
    (4,): UniformType.VEC4,
    (4, 4): UniformType.MAT4,
}


class Uniform:
    """A named shader parameter whose type follows from its value.

    Integers and booleans become INT, floats become FLOAT (single precision),
    and arrays of shape (2,), (3,), (4,) or (4, 4) become VEC2, VEC3, VEC4
    or MAT4.
    """

    __slots__ = ("name", "type", "value")

    def __init__(self, name: str, value: Any) -> None:
        self.name = name
        if isinstance(value, (bool, int, np.integer)):
            self.type = UniformType.INT
            self.value = int(value)
        elif isinstance(value, (float, np.floating)):
            self.type = UniformType.FLOAT
            self.value = float(np.float32(value))
        elif isinstance(value, (str, bytes)):
            raise TypeError(f"uniform {name!r} cannot hold a {type(value).__name__}")
        else:
            try:
                array = np.array(value, dtype=np.float32)
            except (TypeError, ValueError) as exc:
                raise TypeError(f"uniform {name!r} cannot hold {value!r}") from exc
            kind = _ARRAY_TYPES.get(array.shape)
            if kind is None:
                raise ValueError(f"uniform {name!r} has unsupported shape {array.shape}")
            self.type = kind
            self.value = array

    def __repr__(self) -> str:
        return f"Uniform({self.name!r}, {self.type.name}, {self.value!r})"


_VERTEX_LAYOUT = struct.Struct("<12f")

Vec3 = Tuple[float, float, float]


@dataclass
class Vertex:
    """A surfel as stored in vertex buffers: three packed vec4s.

    position + confidence, color (24-bit integer held in a float) + unused +
    init_time + timestamp, normal + radius.
    """

    SIZE: ClassVar[int] = _VERTEX_LAYOUT.size

    position: Vec3 = (0.0, 0.0, 0.0)
    confidence: float = 0.0
    color: float = 0.0
    unused: float = 0.0
    init_time: float = 0.0
    timestamp: float = 0.0
    normal: Vec3 = (0.0, 0.0, 0.0)
    radius: float = 0.0

    def to_bytes(self) -> bytes:
        return _VERTEX_LAYOUT.pack(
            *self.position,
            self.confidence,
            self.color,
            self.unused,
            self.init_time,
            self.timestamp,
            *self.normal,
            self.radius,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "Vertex":
        if len(data) != cls.SIZE:
            raise ValueError(f"a vertex takes {cls.SIZE} bytes, got {len(data)}")
        values = _VERTEX_LAYOUT.unpack(data)
        return cls(
            position=tuple(values[0:3]),
            confidence=values[3],
            color=values[4],
            unused=values[5],
            init_time=values[6],
            timestamp=values[7],
            normal=tuple(values[8:11]),
            radius=values[11],
        )