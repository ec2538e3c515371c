"""
Boolean mask algebra.

A fixed-size width x height grid of booleans with bounds-checked
cell access, intersection and zero-filled translation.
"""

from __future__ import annotations
import numpy as np


class BooleanMask:
    """
    Boolean grid indexed as (x, y); x is the column, y the row.

    offset() is not invertible: cells pushed past the grid edge are
    dropped, so offset(dx, dy).offset(-dx, -dy) only restores the mask
    when no true cell left the grid on the way out.
    """

    def __init__(self, width: int, height: int) -> None:
        if width < 0 or height < 0:
            raise ValueError(f"Mask dimensions must be non-negative, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self._cells = np.zeros((self.height, self.width), dtype=bool)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "BooleanMask":
        """Build a mask from a 2D array (rows = y); nonzero cells are true."""
        arr = np.asarray(arr)
        if arr.ndim != 2:
            raise ValueError(f"Expected a 2D array, got {arr.ndim}D")
        mask = cls(arr.shape[1], arr.shape[0])
        mask._cells[:] = arr != 0
        return mask

    def to_array(self) -> np.ndarray:
        """Copy of the grid as a (height, width) bool array."""
        return self._cells.copy()

    def _check(self, x: int, y: int) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"({x}, {y}) is outside a {self.width}x{self.height} mask")

    def get(self, x: int, y: int) -> bool:
        self._check(x, y)
        return bool(self._cells[y, x])

    def set(self, x: int, y: int, value: bool = True) -> None:
        self._check(x, y)
        self._cells[y, x] = bool(value)

    def set_true(self) -> "BooleanMask":
        self._cells[:] = True
        return self

    def set_false(self) -> "BooleanMask":
        self._cells[:] = False
        return self

    def count(self) -> int:
        """Number of true cells."""
        return int(np.count_nonzero(self._cells))

    def and_(self, other: "BooleanMask") -> "BooleanMask":
        """
        Intersection, sized like `other`. A cell is true only where both
        masks are true at the same coordinate.
        """
        result = BooleanMask(other.width, other.height)
        w = min(self.width, other.width)
        h = min(self.height, other.height)
        result._cells[:h, :w] = self._cells[:h, :w] & other._cells[:h, :w]
        return result

    def overlap(self, other: "BooleanMask") -> int:
        """Number of cells true in both masks; same as and_(other).count()."""
        w = min(self.width, other.width)
        h = min(self.height, other.height)
        return int(np.count_nonzero(self._cells[:h, :w] & other._cells[:h, :w]))

    def offset(self, dx: int, dy: int) -> "BooleanMask":
        """
        Copy with content moved dx columns right and dy rows down.
        Vacated cells are false; cells moved past the edge are lost.
        """
        dx, dy = int(dx), int(dy)
        result = BooleanMask(self.width, self.height)
        if abs(dx) >= self.width or abs(dy) >= self.height:
            return result
        src_x = slice(max(0, -dx), self.width - max(0, dx))
        src_y = slice(max(0, -dy), self.height - max(0, dy))
        dst_x = slice(max(0, dx), self.width - max(0, -dx))
        dst_y = slice(max(0, dy), self.height - max(0, -dy))
        result._cells[dst_y, dst_x] = self._cells[src_y, src_x]
        return result

    def __and__(self, other: "BooleanMask") -> "BooleanMask":
        return self.and_(other)

    def __eq__(self, other) -> bool:
        if not isinstance(other, BooleanMask):
            return NotImplemented
        return (self.width, self.height) == (other.width, other.height) and bool(
            np.array_equal(self._cells, other._cells)
        )

    def __repr__(self) -> str:
        return f"BooleanMask({self.width}x{self.height}, {self.count()} true)"
