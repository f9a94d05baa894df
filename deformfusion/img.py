"""A rows-by-columns image whose pixels hold a fixed element type."""

from __future__ import annotations

from typing import Any, Optional

import numpy as np


class Img:
    """Image of ``rows`` x ``cols`` pixels, each of ``channels`` values of ``dtype``.

    Without ``data`` the image owns freshly zeroed storage. With ``data`` it
    wraps the given buffer, sharing memory where the buffer allows it.
    """

    def __init__(
        self,
        rows: int,
        cols: int,
        dtype: Any = np.uint8,
        channels: int = 1,
        data: Optional[Any] = None,
    ) -> None:
        if rows < 0 or cols < 0:
            raise ValueError("image dimensions must not be negative")
        if channels < 1:
            raise ValueError("an image needs at least one channel")
        self.rows = rows
        self.cols = cols
        self.channels = channels
        shape = (rows, cols) if channels == 1 else (rows, cols, channels)
        if data is None:
            self.data = np.zeros(shape, dtype=dtype)
            self.owned = True
        else:
            array = np.asarray(data, dtype=dtype)
            if array.size != rows * cols * channels:
                raise ValueError(
                    f"buffer holds {array.size} values, expected {rows * cols * channels}"
                )
            self.data = array.reshape(shape)
            self.owned = False

    def at(self, row: int, col: int) -> Any:
        """Pixel at ``(row, col)``; a writable view when there are several channels."""
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise IndexError(f"pixel ({row}, {col}) outside {self.rows}x{self.cols} image")
        return self.data[row, col]

    def flat(self, i: int) -> Any:
        """Pixel at row-major index ``i``."""
        if not 0 <= i < self.rows * self.cols:
            raise IndexError(f"pixel index {i} outside image of {self.rows * self.cols} pixels")
        row, col = divmod(i, self.cols)
        return self.data[row, col]

    def __repr__(self) -> str:
        return (
            f"Img(rows={self.rows}, cols={self.cols}, dtype={self.data.dtype}, "
            f"channels={self.channels}, owned={self.owned})"
        )