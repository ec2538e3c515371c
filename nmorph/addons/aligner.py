"""
Boolean-mask alignment of components against a reference shape.

BooleanAligner finds the integer translation that best overlaps a
test mask with the reference. BooleanAlignmentTask applies it to an
array of components by recursive bisection: slices at or below the
sequential cutoff are processed directly, larger slices are split in
two. Every component is aligned independently, so running leaves on
an executor gives the same per-component result as running them in
sequence.

Supports cooperative cancellation via an optional `cancel_cb`.
"""

from __future__ import annotations
import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

from nmorph.addons.geometry import Point
from nmorph.addons.mask import BooleanMask
from nmorph.core.errors import NmorphError

logger = logging.getLogger(__name__)

SEQUENTIAL_CUTOFF = 30
DEFAULT_MAX_SHIFT = 10


class BooleanAligner:
    """
    Exhaustive translation search against a fixed reference mask.

    align() returns (row, col) such that test.offset(col, row) has the
    largest overlap with the reference. Ties go to the smaller
    |row| + |col|, then to the first offset in row-major order.
    """

    def __init__(self, reference: BooleanMask, max_shift: int = DEFAULT_MAX_SHIFT) -> None:
        if max_shift < 0:
            raise ValueError("max_shift must be >= 0")
        self.reference = reference
        self.max_shift = int(max_shift)
        r = range(-self.max_shift, self.max_shift + 1)
        self._candidates = sorted(((dy, dx) for dy in r for dx in r),
                                  key=lambda o: (abs(o[0]) + abs(o[1]), o[0], o[1]))

    def score(self, test: BooleanMask, row: int, col: int) -> int:
        """Overlap between the reference and the test mask shifted by (row, col)."""
        return self.reference.overlap(test.offset(col, row))

    def align(self, test: BooleanMask) -> Tuple[int, int]:
        if (test.width, test.height) != (self.reference.width, self.reference.height):
            raise ValueError(
                f"Test mask {test.width}x{test.height} does not match reference "
                f"{self.reference.width}x{self.reference.height}"
            )
        best, best_score = (0, 0), -1
        for row, col in self._candidates:
            s = self.score(test, row, col)
            if s > best_score:
                best, best_score = (row, col), s
        return best


@dataclass
class AlignmentOutcome:
    """Offset applied to one component, or the error that prevented it."""
    index: int
    offset: Tuple[int, int] | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.offset is not None


class BooleanAlignmentTask:
    """
    Align components to a reference mask in place.

    Each item must provide vertically_rotated() returning an object
    with boolean_mask(height, width), and move_centre_of_mass(point).
    The best (row, col) is found on the rotated copy's mask, then the
    item's centre of mass is set to (col, row). This is an absolute
    position, not a translation by that amount; the item itself is not
    rotated.

    Args:
        reference: mask shared read-only by all leaves.
        items: components to align; each is mutated by one leaf only.
        cutoff: largest slice processed without splitting.
        executor: optional concurrent.futures executor for the leaves.
        progress_cb: called with the number of items finished by a leaf.
        cancel_cb: optional function returning True when work should stop.
    """

    def __init__(
        self,
        reference: BooleanMask,
        items: Sequence,
        cutoff: int = SEQUENTIAL_CUTOFF,
        max_shift: int = DEFAULT_MAX_SHIFT,
        executor: Executor | None = None,
        progress_cb: Callable[[int], None] | None = None,
        cancel_cb: Callable[[], bool] | None = None,
    ) -> None:
        if cutoff < 1:
            raise ValueError("cutoff must be >= 1")
        self.aligner = BooleanAligner(reference, max_shift)
        self.items = items
        self.cutoff = int(cutoff)
        self.executor = executor
        self.progress_cb = progress_cb
        self.cancel_cb = cancel_cb

    def invoke(self) -> List[AlignmentOutcome]:
        """Align every item; outcomes are returned in item order."""
        leaves = list(self._split(0, len(self.items)))
        if self.executor is None:
            results = [self._compute_directly(lo, hi) for lo, hi in leaves]
        else:
            futures = [self.executor.submit(self._compute_directly, lo, hi) for lo, hi in leaves]
            results = [f.result() for f in futures]
        outcomes = [o for leaf in results for o in leaf]
        failed = sum(1 for o in outcomes if o.error is not None)
        if failed:
            logger.warning("Alignment failed for %d of %d components", failed, len(self.items))
        return outcomes

    def _split(self, lo: int, hi: int):
        """Yield (lo, hi) leaf slices by recursive bisection."""
        if self._cancelled():
            return
        if hi - lo <= self.cutoff:
            if hi > lo:
                yield lo, hi
            return
        mid = lo + (hi - lo) // 2
        yield from self._split(lo, mid)
        yield from self._split(mid, hi)

    def _compute_directly(self, lo: int, hi: int) -> List[AlignmentOutcome]:
        outcomes = []
        for i in range(lo, hi):
            if self._cancelled():
                break
            outcomes.append(self._align_one(i))
        if self.progress_cb:
            self.progress_cb(len(outcomes))
        return outcomes

    def _align_one(self, i: int) -> AlignmentOutcome:
        item = self.items[i]
        ref = self.aligner.reference
        try:
            test = item.vertically_rotated().boolean_mask(ref.height, ref.width)
            row, col = self.aligner.align(test)
            # absolute position: the rotated copy is centred on the origin
            item.move_centre_of_mass(Point(col, row))
        except (NmorphError, ValueError) as e:
            logger.warning("Cannot align component %d: %s", i, e)
            return AlignmentOutcome(i, error=e)
        return AlignmentOutcome(i, offset=(row, col))

    def _cancelled(self) -> bool:
        return bool(self.cancel_cb and self.cancel_cb())


def align_components(
    reference: BooleanMask,
    items: Sequence,
    executor: Executor | None = None,
    **kwargs,
) -> List[AlignmentOutcome]:
    """Convenience wrapper around BooleanAlignmentTask.invoke()."""
    return BooleanAlignmentTask(reference, items, executor=executor, **kwargs).invoke()
