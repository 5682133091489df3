from typing import NamedTuple, Optional, Tuple

import numpy as np

from busybeaver.errors import InvalidTransitionTableError

BLANK = 0
HALT = -1

# Direction bits, as stored in rulesets
LEFT = 0
RIGHT = 1

HALT_LETTER = "Z"
UNDEFINED_CELL = "---"


class Transition(NamedTuple):
    write: int
    move: int
    next_state: int

    @property
    def halts(self):
        return self.next_state == HALT

    def to_string(self):
        direction = "L" if self.move == LEFT else "R"
        return f"{self.write}{direction}{state_letter(self.next_state)}"

    @staticmethod
    def from_string(cell):
        if len(cell) != 3:
            raise InvalidTransitionTableError(f"Malformed transition '{cell}'.")
        write, direction, letter = cell
        if direction not in "LR" or not write.isdigit():
            raise InvalidTransitionTableError(f"Malformed transition '{cell}'.")
        move = LEFT if direction == "L" else RIGHT
        return Transition(int(write), move, state_from_letter(letter))


# The only halting transition the generator emits: write a mark, step right, stop.
HALT_TRANSITION = Transition(1, RIGHT, HALT)


def state_letter(state):
    return HALT_LETTER if state == HALT else chr(ord("A") + state)


def state_from_letter(letter):
    if letter == HALT_LETTER:
        return HALT
    if not letter.isalpha() or not letter.isupper():
        raise InvalidTransitionTableError(f"Unknown state letter '{letter}'.")
    return ord(letter) - ord("A")


def transition_options(num_states, num_symbols):
    """All transitions a generated cell may take, halting transition last."""
    options = []
    for new_symbol in range(num_symbols):
        for direction in (LEFT, RIGHT):
            for new_state in range(num_states):
                options.append(Transition(new_symbol, direction, new_state))
    options.append(HALT_TRANSITION)
    return options


def search_space_size(num_states, num_symbols):
    """Size of the unreduced space: every cell picks a symbol, a direction and a state or halt."""
    codomain = num_symbols * 2 * (num_states + 1)
    return codomain ** (num_states * num_symbols)


class TransitionTable:
    """Immutable (possibly partial) transition function of an N-state, K-symbol machine.

    Cells are stored state-major: cell ``state * num_symbols + symbol``.
    Undefined cells hold ``None``. ``with_cell`` returns a new table, so
    partial tables can sit on the generator's work stack without copies
    being shared.
    """

    __slots__ = ("num_states", "num_symbols", "cells")

    def __init__(self, num_states, num_symbols, cells=None):
        if num_states < 1 or num_symbols < 2:
            raise InvalidTransitionTableError(
                f"Cannot build a table with {num_states} states and {num_symbols} symbols."
            )
        size = num_states * num_symbols
        if cells is None:
            cells = (None,) * size
        cells = tuple(cells)
        if len(cells) != size:
            raise InvalidTransitionTableError(f"Expected {size} cells, got {len(cells)}.")
        self.num_states = num_states
        self.num_symbols = num_symbols
        self.cells = cells

    def __eq__(self, other):
        if not isinstance(other, TransitionTable):
            return NotImplemented
        return (self.num_states, self.num_symbols, self.cells) == (
            other.num_states,
            other.num_symbols,
            other.cells,
        )

    def __hash__(self):
        return hash((self.num_states, self.num_symbols, self.cells))

    def __repr__(self):
        return f"TransitionTable({self.to_standard()!r})"

    def __len__(self):
        return sum(1 for cell in self.cells if cell is not None)

    def cell_index(self, state, symbol):
        return state * self.num_symbols + symbol

    def get(self, state, symbol) -> Optional[Transition]:
        return self.cells[self.cell_index(state, symbol)]

    def with_cell(self, index, transition):
        cells = list(self.cells)
        cells[index] = transition
        return TransitionTable(self.num_states, self.num_symbols, cells)

    def next_undefined(self):
        """Index of the first undefined cell in generation order, or None."""
        for index, cell in enumerate(self.cells):
            if cell is None:
                return index
        return None

    def is_complete(self):
        return all(cell is not None for cell in self.cells)

    def defined_cells(self):
        for index, cell in enumerate(self.cells):
            if cell is not None:
                state, symbol = divmod(index, self.num_symbols)
                yield state, symbol, cell

    def completed_with_halts(self):
        """Fill every undefined cell with the halting transition."""
        return TransitionTable(
            self.num_states,
            self.num_symbols,
            [HALT_TRANSITION if cell is None else cell for cell in self.cells],
        )

    # === Encodings ===
    def encode(self):
        """Persisted text form: ``from_state,from_symbol,to_state,to_symbol,direction`` cells joined by ``|``."""
        parts = []
        for state, symbol, cell in self.defined_cells():
            parts.append(f"{state},{symbol},{cell.next_state},{cell.write},{cell.move}")
        return "|".join(parts)

    @staticmethod
    def decode(encoded, num_states, num_symbols):
        table = TransitionTable(num_states, num_symbols)
        if not encoded:
            return table
        cells = list(table.cells)
        for part in encoded.split("|"):
            try:
                from_state, from_symbol, to_state, to_symbol, direction = (int(v) for v in part.split(","))
            except ValueError as exc:
                raise InvalidTransitionTableError(f"Malformed encoded transition '{part}'.") from exc
            if not (0 <= from_state < num_states and 0 <= from_symbol < num_symbols):
                raise InvalidTransitionTableError(f"Transition '{part}' is out of range.")
            cells[from_state * num_symbols + from_symbol] = Transition(to_symbol, direction, to_state)
        return TransitionTable(num_states, num_symbols, cells)

    def to_standard(self):
        """Standard notation, e.g. ``1RB1LB_1LA1RZ``."""
        rows = []
        for state in range(self.num_states):
            row = ""
            for symbol in range(self.num_symbols):
                cell = self.get(state, symbol)
                row += UNDEFINED_CELL if cell is None else cell.to_string()
            rows.append(row)
        return "_".join(rows)

    @staticmethod
    def from_standard(text):
        rows = text.strip().split("_")
        if not rows or len(rows[0]) % 3:
            raise InvalidTransitionTableError(f"Malformed machine '{text}'.")
        num_symbols = len(rows[0]) // 3
        cells = []
        for row in rows:
            if len(row) != 3 * num_symbols:
                raise InvalidTransitionTableError(f"Row '{row}' does not have {num_symbols} cells.")
            for i in range(num_symbols):
                chunk = row[3 * i : 3 * i + 3]
                cells.append(None if chunk == UNDEFINED_CELL else Transition.from_string(chunk))
        return TransitionTable(len(rows), num_symbols, cells)

    # === Compilation ===
    def validate(self):
        for index, cell in enumerate(self.cells):
            state, symbol = divmod(index, self.num_symbols)
            if cell is None:
                raise InvalidTransitionTableError(
                    f"Transition for state {state_letter(state)} on symbol {symbol} is undefined."
                )
            if not 0 <= cell.write < self.num_symbols:
                raise InvalidTransitionTableError(f"Cell {index} writes unknown symbol {cell.write}.")
            if cell.move not in (LEFT, RIGHT):
                raise InvalidTransitionTableError(f"Cell {index} has unknown direction {cell.move}.")
            if not (cell.next_state == HALT or 0 <= cell.next_state < self.num_states):
                raise InvalidTransitionTableError(f"Cell {index} targets unknown state {cell.next_state}.")

    def compile(self):
        self.validate()
        return CompiledTable(self)


class CompiledTable:
    """A validated, complete table with flat lookup lists for the step loop."""

    __slots__ = ("table", "num_states", "num_symbols", "writes", "moves", "next_states")

    def __init__(self, table: TransitionTable):
        self.table = table
        self.num_states = table.num_states
        self.num_symbols = table.num_symbols
        self.writes: Tuple[int, ...] = tuple(cell.write for cell in table.cells)
        # +1 / -1 so the step loop can add directly to the head position
        self.moves: Tuple[int, ...] = tuple(1 if cell.move == RIGHT else -1 for cell in table.cells)
        self.next_states: Tuple[int, ...] = tuple(cell.next_state for cell in table.cells)

    def lookup(self, state, symbol):
        index = state * self.num_symbols + symbol
        return self.writes[index], self.moves[index], self.next_states[index]

    def as_array(self):
        """(N*K, 3) int32 rows of (write, dir_bit, next_state), halt as -1, for the numba kernels."""
        rows = [(cell.write, cell.move, cell.next_state) for cell in self.table.cells]
        return np.asarray(rows, dtype=np.int32)
