import time
from dataclasses import asdict, dataclass
from typing import Optional

from busybeaver.filters.verdicts import Disposition, Stage
from busybeaver.simulator.transition_table import TransitionTable


@dataclass(frozen=True)
class MachineRecord:
    transition_function: str
    number_of_states: int
    number_of_symbols: int
    halted: bool
    steps: int
    score: int
    time_to_run: int
    disposition: Disposition
    stage: Stage
    reason: Optional[str] = None

    @property
    def notation(self):
        return self.table().to_standard()

    def table(self):
        return TransitionTable.decode(self.transition_function, self.number_of_states, self.number_of_symbols)

    def as_row(self):
        """Column values of the ``turing_machines`` table, without the id."""
        return (
            self.transition_function,
            self.number_of_states,
            self.number_of_symbols,
            int(self.halted),
            self.steps,
            self.score,
            self.time_to_run,
        )

    def as_dict(self):
        entry = asdict(self)
        entry["disposition"] = self.disposition.value
        entry["stage"] = self.stage.value
        entry["machine"] = self.notation
        return entry

    @staticmethod
    def from_dict(entry):
        return MachineRecord(
            transition_function=entry["transition_function"],
            number_of_states=entry["number_of_states"],
            number_of_symbols=entry["number_of_symbols"],
            halted=bool(entry["halted"]),
            steps=entry["steps"],
            score=entry["score"],
            time_to_run=entry.get("time_to_run", 0),
            disposition=Disposition(entry["disposition"]),
            stage=Stage(entry["stage"]),
            reason=entry.get("reason"),
        )


def classify(table, outcome, stage, time_to_run=0):
    """Build the record for a decided machine.

    ``outcome`` is a compile ``FilterResult`` or a ``SimulationOutcome``;
    both carry disposition, steps, score and the deciding filter's name.
    """
    return MachineRecord(
        transition_function=table.encode(),
        number_of_states=table.num_states,
        number_of_symbols=table.num_symbols,
        halted=outcome.disposition is Disposition.HALTED,
        steps=outcome.steps,
        score=outcome.score,
        time_to_run=int(time_to_run),
        disposition=outcome.disposition,
        stage=stage,
        reason=outcome.filter_name,
    )


def evaluate_machine(table, compiler, simulator):
    """Compile, filter and if needed simulate one complete table."""
    started = time.perf_counter()
    machine, result = compiler.compile(table)
    if result.decided:
        elapsed = (time.perf_counter() - started) * 1000
        return classify(table, result, Stage.COMPILE, elapsed)

    outcome = simulator.run(machine)
    elapsed = (time.perf_counter() - started) * 1000
    return classify(table, outcome, Stage.RUNTIME, elapsed)
