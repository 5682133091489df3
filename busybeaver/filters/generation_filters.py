from busybeaver.filters.verdicts import CONTINUE, Disposition, finalize, reject
from busybeaver.simulator.transition_table import BLANK, HALT, LEFT

# Generation filters look at a partial table right after one more cell was
# fixed. Undefined cells are None and are never assumed to be anything.


def start_state_halts(table):
    """A on blank halts: the first step decides everything, keep one completion."""
    first = table.get(0, BLANK)
    if first is not None and first.halts:
        return finalize("start_state_halts", Disposition.HALTED)
    return CONTINUE


def start_state_looper(table):
    first = table.get(0, BLANK)
    if first is not None and first.next_state == 0:
        return reject("start_state_looper")
    return CONTINUE


def canonical_direction(table):
    """Mirror images behave identically, so the first move is always right."""
    first = table.get(0, BLANK)
    if first is not None and first.move == LEFT:
        return reject("canonical_direction")
    return CONTINUE


def canonical_state_order(table):
    """States must be numbered in the order the cells first mention them.

    Scanning cells state-major, a cell may target any state seen so far or
    the next unseen one, and a state's own cells may only appear once it has
    been seen. Anything else is a relabelling of a machine we already emit,
    or a machine with an unreachable state.
    """
    max_seen = 0
    for state, symbol, cell in table.defined_cells():
        if state > max_seen:
            return reject("canonical_state_order")
        if cell.next_state == HALT:
            continue
        if cell.next_state > max_seen + 1:
            return reject("canonical_state_order")
        if cell.next_state == max_seen + 1:
            max_seen += 1
    return CONTINUE


def neighbour_looper(table):
    """A hands over to B on blank and B either runs off the same way or bounces back over a blank tape."""
    first = table.get(0, BLANK)
    if first is None or first.halts or first.next_state == 0:
        return CONTINUE
    neighbour = first.next_state
    second = table.get(neighbour, BLANK)
    if second is None or second.halts:
        return CONTINUE
    if second.next_state == neighbour and second.move == first.move:
        return reject("neighbour_looper")
    if first.write == BLANK and second.write == BLANK and second.next_state == 0 and second.move != first.move:
        return reject("neighbour_looper")
    return CONTINUE


GENERATION_FILTERS = [
    start_state_halts,
    start_state_looper,
    canonical_direction,
    canonical_state_order,
    neighbour_looper,
]
