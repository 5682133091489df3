import numpy as np

from busybeaver.simulator.transition_table import BLANK


class Tape:
    """Growable tape of uint8 cells addressed by signed offset from the start cell.

    The buffer doubles on whichever side runs out; ``origin`` is the buffer
    index of position 0. ``lo``/``hi`` bound the cells the head has visited.
    """

    def __init__(self, initial_size=512):
        size = max(int(initial_size), 2)
        self.cells = np.zeros(size, dtype=np.uint8)
        self.origin = size // 2
        self.lo = 0
        self.hi = 0

    def __len__(self):
        return self.hi - self.lo + 1

    @property
    def span(self):
        return self.hi - self.lo + 1

    def _grow(self, position):
        size = len(self.cells)
        index = position + self.origin
        if index < 0:
            extra = max(size, -index)
            self.cells = np.concatenate((np.zeros(extra, dtype=np.uint8), self.cells))
            self.origin += extra
        elif index >= size:
            extra = max(size, index - size + 1)
            self.cells = np.concatenate((self.cells, np.zeros(extra, dtype=np.uint8)))

    def read(self, position):
        index = position + self.origin
        if 0 <= index < len(self.cells):
            return int(self.cells[index])
        return BLANK

    def write(self, position, symbol):
        index = position + self.origin
        if not 0 <= index < len(self.cells):
            self._grow(position)
            index = position + self.origin
        self.cells[index] = symbol

    def visit(self, position):
        """Mark ``position`` visited. Returns +1 / -1 for a new rightmost / leftmost cell, else 0."""
        if position > self.hi:
            self.hi = position
            self._ensure(position)
            return 1
        if position < self.lo:
            self.lo = position
            self._ensure(position)
            return -1
        return 0

    def _ensure(self, position):
        index = position + self.origin
        if not 0 <= index < len(self.cells):
            self._grow(position)

    def nonblank_count(self):
        return int(np.count_nonzero(self.cells))

    def segment(self, start, stop):
        """Copy of cells ``start..stop`` inclusive, blank beyond the buffer."""
        if stop < start:
            return np.zeros(0, dtype=np.uint8)
        out = np.zeros(stop - start + 1, dtype=np.uint8)
        first = max(start + self.origin, 0)
        last = min(stop + self.origin, len(self.cells) - 1)
        if first <= last:
            offset = first - (start + self.origin)
            out[offset : offset + last - first + 1] = self.cells[first : last + 1]
        return out

    def snapshot(self):
        """(lo, cells) of the visited span, copied."""
        return self.lo, self.segment(self.lo, self.hi)

    def trimmed(self):
        """(first, cells) of the non-blank region, or (0, empty) on a blank tape."""
        nonzero = np.flatnonzero(self.cells)
        if len(nonzero) == 0:
            return 0, np.zeros(0, dtype=np.uint8)
        first, last = int(nonzero[0]), int(nonzero[-1])
        return first - self.origin, self.cells[first : last + 1].copy()

    def render(self, head, window=10):
        """Text window around the tape contents and the head, as in the machine visualiser."""
        start = min(self.lo, head) - window
        stop = max(self.hi, head) + window
        cells = self.segment(start, stop)
        tape_str = " ".join(str(int(c)) for c in cells)
        head_str = " ".join("^" if start + i == head else " " for i in range(len(cells)))
        return tape_str, head_str.rstrip()
