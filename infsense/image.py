"""A small reference-counted-style image matrix with typed elements."""

from __future__ import annotations

import enum
import struct
from typing import Any

__all__ = ["ElementType", "mat_type", "GMat", "DEFAULT_TYPE"]


class ElementType(enum.IntEnum):
    """Element type codes stored in the low three bits of a matrix type."""

    U8 = 0
    S8 = 1
    U16 = 2
    S16 = 3
    S32 = 4
    F32 = 5
    F64 = 6
    USER_TYPE = 7


_STRUCT_CODES = {
    ElementType.U8: "B",
    ElementType.S8: "b",
    ElementType.U16: "H",
    ElementType.S16: "h",
    ElementType.S32: "i",
    ElementType.F32: "f",
    ElementType.F64: "d",
}


def mat_type(element: int = ElementType.U8, channels: int = 1) -> int:
    """Combine an element type and a channel count into a matrix type code."""
    if channels < 1:
        raise ValueError(f"channel count must be positive, got {channels}")
    return (int(element) & 0x7) + ((channels - 1) << 3)


DEFAULT_TYPE = mat_type(ElementType.U8, 1)


def _byte_view(data: Any) -> memoryview:
    view = memoryview(data)
    if not view.c_contiguous:
        raise ValueError("image data must be a contiguous buffer")
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view


class GMat:
    """A rows x cols matrix of typed, possibly multi-channel elements.

    Without ``copy`` a supplied buffer is shared, so writes to it are seen
    through the matrix; otherwise the matrix owns a fresh buffer.
    """

    def __init__(self, rows: int = 0, cols: int = 0, type: int = DEFAULT_TYPE,
                 data: Any = None, copy: bool = False) -> None:
        self.rows = rows
        self.cols = cols
        self.type = type
        self.data: memoryview | None = None

        byte_num = self.total() * self.elem_size()
        if data is not None and not copy:
            view = _byte_view(data)
            if len(view) < byte_num:
                raise ValueError(
                    f"buffer holds {len(view)} bytes, matrix needs {byte_num}")
            self.data = view
            return

        if byte_num <= 0:
            return
        buffer = bytearray(byte_num)
        if data is not None:
            view = _byte_view(data)
            if len(view) < byte_num:
                raise ValueError(
                    f"buffer holds {len(view)} bytes, matrix needs {byte_num}")
            buffer[:] = view[:byte_num]
        self.data = memoryview(buffer)

    @classmethod
    def create(cls, rows: int, cols: int, type: int = DEFAULT_TYPE,
               data: Any = None, copy: bool = False) -> GMat:
        return cls(rows, cols, type, data, copy)

    @classmethod
    def zeros(cls, rows: int, cols: int, type: int = DEFAULT_TYPE) -> GMat:
        """Return a matrix whose buffer is filled with zero bytes."""
        return cls(rows, cols, type)

    def release(self) -> None:
        """Drop the buffer and reset the shape."""
        self.data = None
        self.rows = 0
        self.cols = 0

    def empty(self) -> bool:
        return self.data is None

    def elem_size(self) -> int:
        """Bytes per element, all channels included."""
        return self.channels() * self.elem_size1()

    def elem_size1(self) -> int:
        """Bytes per channel value."""
        return 1 << ((self.type & 0x7) >> 1)

    def channels(self) -> int:
        return (self.type >> 3) + 1

    def total(self) -> int:
        return self.cols * self.rows

    def clone(self) -> GMat:
        """Return a deep copy with its own buffer."""
        return GMat(self.rows, self.cols, self.type, self.data, True)

    def row(self, index: int = 0) -> GMat:
        """Return a one-row matrix sharing this matrix's buffer."""
        if self.data is None:
            raise ValueError("matrix is empty")
        if not 0 <= index < self.rows:
            raise IndexError(f"row {index} out of range for {self.rows} rows")
        step = self.elem_size() * self.cols
        return GMat(1, self.cols, self.type,
                    self.data[index * step:(index + 1) * step])

    def at(self, ix: int, iy: int | None = None) -> Any:
        """Return the element at linear index ``ix``, or at column ``ix`` of row ``iy``.

        Single-channel matrices yield a number, multi-channel ones a tuple.
        """
        if self.data is None:
            raise ValueError("matrix is empty")
        code = _STRUCT_CODES.get(ElementType(self.type & 0x7))
        if code is None:
            raise ValueError("elements of a user type cannot be decoded")
        if iy is None:
            index = ix
        else:
            if not 0 <= ix < self.cols:
                raise IndexError(f"column {ix} out of range")
            index = iy * self.cols + ix
        if not 0 <= index < self.total():
            raise IndexError(f"element {index} out of range")
        channels = self.channels()
        values = struct.unpack_from(f"={channels}{code}", self.data,
                                    index * self.elem_size())
        return values[0] if channels == 1 else values

    def width(self) -> int:
        return self.cols

    def height(self) -> int:
        return self.rows

    def __repr__(self) -> str:
        return (f"GMat(rows={self.rows}, cols={self.cols}, type={self.type}, "
                f"empty={self.empty()})")