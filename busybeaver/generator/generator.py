from collections import Counter

from busybeaver.filters.generation_filters import GENERATION_FILTERS
from busybeaver.filters.verdicts import Verdict, run_filters
from busybeaver.simulator.transition_table import TransitionTable, transition_options


class Generator:
    """Depth-first enumeration of transition tables, one cell at a time.

    Cells are filled state-major. Every candidate child goes through the
    generation filters before it is pushed: rejected children prune their
    whole subtree, finalized children are replaced by a single completion
    with every undefined cell halting.
    """

    def __init__(self, num_states, num_symbols, filters=None):
        self.num_states = num_states
        self.num_symbols = num_symbols
        self.options = transition_options(num_states, num_symbols)
        self.filters = GENERATION_FILTERS if filters is None else filters
        self.counters = Counter()
        self.generated = 0

    def root(self):
        return TransitionTable(self.num_states, self.num_symbols)

    def children(self, table):
        index = table.next_undefined()
        kept = []
        for option in self.options:
            child = table.with_cell(index, option)
            result = run_filters(self.filters, child)
            if result.verdict is Verdict.REJECT:
                self.counters[result.filter_name] += 1
            elif result.verdict is Verdict.FINALIZE:
                self.counters[result.filter_name] += 1
                kept.append(child.completed_with_halts())
            else:
                kept.append(child)
        return kept

    def partitions(self, depth):
        """Surviving partial tables with ``depth`` cells fixed, in enumeration order.

        Tables completed before reaching ``depth`` (finalized ones) are
        returned as they are; ``generate`` yields them unchanged.
        """
        frontier = []
        stack = [self.root()]
        while stack:
            table = stack.pop()
            if len(table) >= depth or table.is_complete():
                frontier.append(table)
                continue
            stack.extend(reversed(self.children(table)))
        return frontier

    def generate(self, start=None):
        """Lazily yield every complete table below ``start`` (the root by default)."""
        stack = [self.root() if start is None else start]
        while stack:
            table = stack.pop()
            if table.is_complete():
                self.generated += 1
                yield table
                continue
            stack.extend(reversed(self.children(table)))
