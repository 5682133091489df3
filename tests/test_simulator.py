import pytest

from busybeaver.filters.verdicts import Disposition
from busybeaver.simulator.simulator import Simulator
from busybeaver.simulator.transition_table import TransitionTable
from busybeaver.simulator.turing_machine import TuringMachine

from conftest import BB2, BB3


def simulate(notation, config):
    machine = TransitionTable.from_standard(notation).compile()
    return Simulator(config).run(machine)


def test_known_champions_halt(make_config):
    config = make_config()

    outcome = simulate(BB2, config)
    assert outcome.disposition is Disposition.HALTED
    assert (outcome.steps, outcome.score) == (6, 4)

    outcome = simulate(BB3, make_config(states=3))
    assert outcome.halted
    assert (outcome.steps, outcome.score) == (21, 5)


def test_cycler_is_detected(make_config):
    outcome = simulate("1RB1RB_0LA1RZ", make_config())
    assert outcome.disposition is Disposition.PROVEN_NON_HALTING
    assert outcome.filter_name == "cycler"
    assert outcome.steps == 4


def test_cycler_with_linear_checkpoints(make_config):
    outcome = simulate("1RB1RB_0LA1RZ", make_config(cycler_checkpoint_spacing="linear", cycler_checkpoint_interval=2))
    assert outcome.filter_name == "cycler"
    assert outcome.steps == 4


def test_translated_cycler_needs_repeated_periods(make_config):
    outcome = simulate("1RB1RA_1LA1RZ", make_config())
    assert outcome.disposition is Disposition.PROVEN_NON_HALTING
    assert outcome.filter_name == "translated_cycler"
    assert outcome.steps == 9

    outcome = simulate("1RB1RA_1LA1RZ", make_config(translated_cycler_periods=1))
    assert outcome.filter_name == "translated_cycler"
    assert outcome.steps == 5


def test_short_escaper_threshold(make_config):
    outcome = simulate("1RB1RZ_0RB1RZ", make_config(short_escaper_threshold=2))
    assert outcome.filter_name == "short_escaper"
    assert outcome.steps == 3

    outcome = simulate("1RB1RZ_0RB1RZ", make_config(short_escaper_threshold=2, step_budget=2))
    assert outcome.disposition is Disposition.HOLDOUT
    assert outcome.steps == 2


def test_long_escaper_threshold(make_config):
    outcome = simulate("1RB1RZ_1RA1RZ", make_config(long_escaper_threshold=3, step_budget=3))
    assert outcome.disposition is Disposition.HOLDOUT
    assert outcome.filter_name == "step_budget"

    outcome = simulate("1RB1RZ_1RA1RZ", make_config(long_escaper_threshold=3, step_budget=100))
    assert outcome.filter_name == "long_escaper"
    assert outcome.steps == 4


def test_tape_budget_makes_a_holdout(make_config):
    outcome = simulate("1RB1RZ_1RA1RZ", make_config(tape_budget=3))
    assert outcome.disposition is Disposition.HOLDOUT
    assert outcome.filter_name == "tape_budget"
    assert outcome.steps == 3


def test_no_filters_means_budget_holdout(make_config):
    machine = TransitionTable.from_standard("1RB1RB_0LA1RZ").compile()
    outcome = Simulator(make_config(step_budget=50), filters=[]).run(machine)
    assert outcome.disposition is Disposition.HOLDOUT
    assert outcome.steps == 50


def test_turing_machine_matches_simulator(make_config):
    machine = TuringMachine(TransitionTable.from_standard(BB3))
    assert machine.run(max_steps=100) == 21
    assert machine.halted
    assert machine.score == 5
    assert machine.serialize()[1] == [1, 1, -1]

    machine.reset()
    assert machine.run(max_steps=5) == 5
    assert not machine.halted


def shuttle(right, left):
    """Blank-tape machine that walks ``right`` cells right, then ``left`` cells back, forever.

    One state per step, so the period is ``right + left`` steps and the drift
    ``right - left`` cells per period.
    """
    letters = "ABCDEFGHIJKLMNOP"
    period = right + left
    rows = []
    for state in range(period):
        direction = "R" if state < right else "L"
        rows.append(f"0{direction}{letters[(state + 1) % period]}1RZ")
    return "_".join(rows)


@pytest.mark.parametrize("half", [1, 2, 3, 4, 6])
def test_cycler_detection_scales_with_period(make_config, half):
    period = 2 * half
    outcome = simulate(shuttle(half, half), make_config(states=period))
    assert outcome.filter_name == "cycler"

    # Checkpoints sit at powers of two; the first gap of at least one period catches it
    checkpoint = 1
    while checkpoint < period:
        checkpoint *= 2
    assert outcome.steps == checkpoint + period
    assert outcome.steps < 3 * period


@pytest.mark.parametrize("right, left", [(2, 1), (3, 1), (3, 2), (4, 1), (5, 3)])
def test_translated_cycler_detection_scales_with_period(make_config, right, left):
    period, drift = right + left, right - left
    outcome = simulate(shuttle(right, left), make_config(states=period))
    assert outcome.disposition is Disposition.PROVEN_NON_HALTING
    assert outcome.filter_name == "translated_cycler"

    # Third period, first record that already broke a record in the first two
    assert outcome.steps == 2 * period + right - drift + 1

    outcome = simulate(shuttle(right, left), make_config(states=period, translated_cycler_periods=3))
    assert outcome.steps == 3 * period + right - drift + 1
