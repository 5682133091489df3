from dataclasses import dataclass
from typing import Optional

from busybeaver.filters.verdicts import Disposition, Verdict, run_filters
from busybeaver.simulator.runtime_filters import RUNTIME_FILTERS, ExecutionTrace
from busybeaver.simulator.tape import Tape
from busybeaver.simulator.transition_table import HALT


@dataclass(frozen=True)
class SimulationOutcome:
    disposition: Disposition
    steps: int
    score: int
    filter_name: Optional[str] = None

    @property
    def halted(self):
        return self.disposition is Disposition.HALTED


class Simulator:
    """Runs compiled machines over a growable tape until they halt, a runtime filter fires, or a budget runs out."""

    def __init__(self, config, filters=None):
        self.config = config
        self.step_budget = config["step_budget"]
        self.tape_budget = config["tape_budget"]
        self.initial_tape_size = config["initial_tape_size"]
        self.filters = RUNTIME_FILTERS if filters is None else filters

    def run(self, machine):
        tape = Tape(self.initial_tape_size)
        trace = ExecutionTrace(self.config)
        state = 0
        head = 0
        steps = 0

        while True:
            write, move, next_state = machine.lookup(state, tape.read(head))
            tape.write(head, write)
            head += move
            steps += 1

            if next_state == HALT:
                return SimulationOutcome(Disposition.HALTED, steps, tape.nonblank_count())

            state = next_state
            record = tape.visit(head)
            if tape.span > self.tape_budget:
                return SimulationOutcome(Disposition.HOLDOUT, steps, tape.nonblank_count(), "tape_budget")

            trace.observe(steps, state, head, record, tape)
            result = run_filters(self.filters, trace, machine, tape)
            if result.verdict is Verdict.REJECT:
                return SimulationOutcome(
                    Disposition.PROVEN_NON_HALTING, steps, tape.nonblank_count(), result.filter_name
                )

            if steps >= self.step_budget:
                return SimulationOutcome(Disposition.HOLDOUT, steps, tape.nonblank_count(), "step_budget")
