from dataclasses import dataclass

from busybeaver.filters.verdicts import CONTINUE, Disposition, finalize, reject
from busybeaver.simulator.transition_table import BLANK, HALT


@dataclass(frozen=True)
class CompileSettings:
    objective: str = "steps"
    step_budget: int = 10_000
    # Champion score frozen at batch start
    baseline_score: int = 0


def reachable_cells(machine):
    """Over-approximate the (state, symbol) pairs the machine can ever read.

    A reachable cell makes its target state readable on every symbol some
    reachable cell can write, blank included. Iterates to a fixpoint.
    """
    writable = {BLANK}
    reachable = {(0, BLANK)}
    changed = True
    while changed:
        changed = False
        for state, symbol in list(reachable):
            write, move, next_state = machine.lookup(state, symbol)
            if write not in writable:
                writable.add(write)
                changed = True
            if next_state == HALT:
                continue
            for x in writable:
                if (next_state, x) not in reachable:
                    reachable.add((next_state, x))
                    changed = True
    return reachable


def halting_skipper(machine, settings):
    """Run the machine directly while it only ever reads blank cells.

    Short enough that running it is cheaper than a simulator; if it halts in
    that window the outcome is exact.
    """
    tape = {}
    state = 0
    head = 0
    for step in range(1, 2 * machine.num_states + 3):
        symbol = tape.get(head, BLANK)
        if symbol != BLANK:
            break
        write, move, next_state = machine.lookup(state, symbol)
        tape[head] = write
        head += move
        if next_state == HALT:
            score = sum(1 for value in tape.values() if value != BLANK)
            return finalize("halting_skipper", Disposition.HALTED, steps=step, score=score)
        state = next_state
    return CONTINUE


def naive_beaver(machine, settings):
    """No halting cell at all, or none in a state reachable from A."""
    halting_states = {
        index // machine.num_symbols for index, target in enumerate(machine.next_states) if target == HALT
    }
    if not halting_states:
        return reject("naive_beaver")

    seen = {0}
    stack = [0]
    while stack:
        state = stack.pop()
        if state in halting_states:
            return CONTINUE
        for symbol in range(machine.num_symbols):
            target = machine.next_states[state * machine.num_symbols + symbol]
            if target != HALT and target not in seen:
                seen.add(target)
                stack.append(target)
    return reject("naive_beaver")


def never_halter(machine, settings):
    for state, symbol in reachable_cells(machine):
        if machine.lookup(state, symbol)[2] == HALT:
            return CONTINUE
    return reject("never_halter")


def never_scores(machine, settings):
    """Prune machines that cannot beat the champion's score even optimistically."""
    if settings.objective != "score":
        return CONTINUE
    bound = 1
    for state, symbol in reachable_cells(machine):
        write, move, next_state = machine.lookup(state, symbol)
        if next_state != HALT and write != BLANK:
            bound = settings.step_budget
            break
    if bound <= settings.baseline_score:
        return reject("never_scores", Disposition.NOT_A_CANDIDATE)
    return CONTINUE


COMPILE_FILTERS = [halting_skipper, naive_beaver, never_halter, never_scores]
