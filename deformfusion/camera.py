"""Process-wide camera resolution and pinhole intrinsics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional


@dataclass(frozen=True)
class Resolution:
    """Image size shared by every component of the pipeline.

    The first call to :meth:`get_instance` fixes the size; later calls
    return the same object and ignore their arguments.
    """

    width: int
    height: int

    _instance: ClassVar[Optional["Resolution"]] = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Resolution has not been initialised with a positive width and height")

    @classmethod
    def get_instance(cls, width: int = 0, height: int = 0) -> "Resolution":
        if cls._instance is None:
            cls._instance = cls(width, height)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Forget the shared instance so that it can be set up again."""
        cls._instance = None

    def cols(self) -> int:
        return self.width

    def rows(self) -> int:
        return self.height

    def num_pixels(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class Intrinsics:
    """Pinhole camera parameters shared by every component of the pipeline.

    The first call to :meth:`get_instance` fixes the values; later calls
    return the same object and ignore their arguments.
    """

    fx: float
    fy: float
    cx: float
    cy: float

    _instance: ClassVar[Optional["Intrinsics"]] = None

    def __post_init__(self) -> None:
        if self.fx == 0 or self.fy == 0:
            raise ValueError("Intrinsics have not been initialised with non-zero focal lengths")

    @classmethod
    def get_instance(
        cls, fx: float = 0.0, fy: float = 0.0, cx: float = 0.0, cy: float = 0.0
    ) -> "Intrinsics":
        if cls._instance is None:
            cls._instance = cls(float(fx), float(fy), float(cx), float(cy))
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Forget the shared instance so that it can be set up again."""
        cls._instance = None