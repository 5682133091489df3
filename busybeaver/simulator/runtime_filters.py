from collections import deque

import numpy as np

from busybeaver.filters.verdicts import CONTINUE, reject
from busybeaver.simulator.transition_table import BLANK


def _window(lo, cells, start, stop):
    """Cells ``start..stop`` of a (lo, cells) snapshot, blank outside it."""
    out = np.zeros(stop - start + 1, dtype=np.uint8)
    first = max(start, lo)
    last = min(stop, lo + len(cells) - 1)
    if first <= last:
        out[first - start : last - start + 1] = cells[first - lo : last - lo + 1]
    return out


class RecordSnapshot:
    """Configuration at a step where the head reached a new leftmost or rightmost cell."""

    __slots__ = ("step", "state", "pos", "lo", "cells", "bound", "matches")

    def __init__(self, step, state, pos, lo, cells, bound):
        self.step = step
        self.state = state
        self.pos = pos
        self.lo = lo
        self.cells = cells
        # Furthest head excursion away from this side since the previous record on it
        self.bound = bound
        self.matches = {}

    def window(self, start, stop):
        return _window(self.lo, self.cells, start, stop)


class ExecutionTrace:
    """Detector state for one run: escaper run length, cycler checkpoint, record history."""

    def __init__(self, config):
        self.short_threshold = config["short_escaper_threshold"]
        self.long_threshold = config["long_escaper_threshold"]
        self.spacing = config["cycler_checkpoint_spacing"]
        self.interval = config["cycler_checkpoint_interval"]
        self.periods = config["translated_cycler_periods"]

        self.step = 0
        self.state = 0
        self.head = 0
        self.record = 0

        self.run_length = 0
        self.run_direction = 0

        self.checkpoint = None
        self.next_checkpoint = self.interval
        self.gap = self.interval

        history = config["translated_cycler_history"]
        self.right_records = deque(maxlen=history)
        self.left_records = deque(maxlen=history)
        self.right_bound = 0
        self.left_bound = 0

    def observe(self, step, state, head, record, tape):
        self.step = step
        self.state = state
        self.head = head
        self.record = record

        if record:
            if record == self.run_direction:
                self.run_length += 1
            else:
                self.run_direction = record
                self.run_length = 1
        else:
            self.run_length = 0

        self.right_bound = min(self.right_bound, head)
        self.left_bound = max(self.left_bound, head)
        if record > 0:
            lo, cells = tape.snapshot()
            self.right_records.append(RecordSnapshot(step, state, head, lo, cells, self.right_bound))
            self.right_bound = head
        elif record < 0:
            lo, cells = tape.snapshot()
            self.left_records.append(RecordSnapshot(step, state, head, lo, cells, self.left_bound))
            self.left_bound = head

    def take_checkpoint(self, tape):
        first, cells = tape.trimmed()
        self.checkpoint = (self.state, self.head, first, cells)
        if self.spacing == "exponential":
            self.next_checkpoint = self.step + self.gap
            self.gap *= 2
        else:
            self.next_checkpoint = self.step + self.interval


# === Runtime filters ===
# Each filter reads the trace after the step it describes and returns a
# FilterResult; any rejection proves the machine never halts.


def short_escaper(trace, machine, tape):
    """Head keeps breaking records one way and its state loops on blank in that direction."""
    if trace.run_length <= trace.short_threshold:
        return CONTINUE
    write, move, next_state = machine.lookup(trace.state, BLANK)
    if next_state == trace.state and move == trace.run_direction:
        return reject("short_escaper")
    return CONTINUE


def long_escaper(trace, machine, tape):
    if trace.run_length > trace.long_threshold:
        return reject("long_escaper")
    return CONTINUE


def cycler(trace, machine, tape):
    """Current configuration equals the last checkpoint."""
    checkpoint = trace.checkpoint
    if checkpoint is not None and checkpoint[0] == trace.state and checkpoint[1] == trace.head:
        first, cells = tape.trimmed()
        if first == checkpoint[2] and np.array_equal(cells, checkpoint[3]):
            return reject("cycler")
    if trace.step >= trace.next_checkpoint:
        trace.take_checkpoint(tape)
    return CONTINUE


def _translated_match(records, side, periods):
    newest = records[-1]
    bound = newest.bound
    history = list(records)
    for earlier in reversed(history[:-1]):
        if earlier.state == newest.state:
            shift = newest.pos - earlier.pos
            if side > 0:
                low = min(bound, earlier.pos)
                before = earlier.window(low, earlier.pos)
                after = newest.window(low + shift, newest.pos)
            else:
                high = max(bound, earlier.pos)
                before = earlier.window(earlier.pos, high)
                after = newest.window(newest.pos, high + shift)
            if np.array_equal(before, after):
                key = (shift, newest.step - earlier.step)
                count = earlier.matches.get(key, 0) + 1
                if count > newest.matches.get(key, 0):
                    newest.matches[key] = count
                if count >= periods:
                    return True
        bound = min(bound, earlier.bound) if side > 0 else max(bound, earlier.bound)
    return False


def translated_cycler(trace, machine, tape):
    """The tape around two same-state records differs only by a shift, for enough periods in a row."""
    if trace.record > 0:
        matched = _translated_match(trace.right_records, 1, trace.periods)
    elif trace.record < 0:
        matched = _translated_match(trace.left_records, -1, trace.periods)
    else:
        return CONTINUE
    return reject("translated_cycler") if matched else CONTINUE


RUNTIME_FILTERS = [short_escaper, long_escaper, cycler, translated_cycler]
