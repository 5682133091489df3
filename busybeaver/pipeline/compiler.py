from busybeaver.filters.compile_filters import COMPILE_FILTERS, CompileSettings
from busybeaver.filters.verdicts import run_filters


class Compiler:
    """Validates a complete table, compiles it and runs the static compile filters."""

    def __init__(self, config, baseline_score=0, filters=None):
        self.settings = CompileSettings(
            objective=config["objective"],
            step_budget=config["step_budget"],
            baseline_score=baseline_score,
        )
        self.filters = COMPILE_FILTERS if filters is None else filters

    def compile(self, table):
        """Return ``(machine, result)``.

        Raises ``InvalidTransitionTableError`` for an incomplete or
        out-of-range table; ``result`` is ``CONTINUE`` when the machine
        still has to be simulated.
        """
        machine = table.compile()
        return machine, run_filters(self.filters, machine, self.settings)
