from busybeaver.simulator.evaluator import evaluate_batch, run_machine
from busybeaver.simulator.transition_table import TransitionTable

from conftest import BB2, BB3


def array(notation):
    return TransitionTable.from_standard(notation).compile().as_array()


def test_kernel_runs_known_champions():
    steps, halted, score, overflow = run_machine(array(BB2), 2, 1000, 64)
    assert (steps, halted, score, overflow) == (6, True, 4, False)

    steps, halted, score, overflow = run_machine(array(BB3), 2, 1000, 64)
    assert (steps, halted, score, overflow) == (21, True, 5, False)


def test_kernel_stops_at_step_limit():
    steps, halted, score, overflow = run_machine(array("1RB1RB_0LA1RZ"), 2, 100, 64)
    assert steps == 100
    assert not halted
    assert not overflow


def test_kernel_reports_overflow():
    steps, halted, score, overflow = run_machine(array("1RB1RZ_1RA1RZ"), 2, 100, 8)
    assert overflow
    assert not halted
    assert steps == 4
    assert score == 4


def test_evaluate_batch_on_cpu():
    machines = [TransitionTable.from_standard(n).compile() for n in (BB2, "1RB1RB_0LA1RZ")]
    results = evaluate_batch(machines, 2, max_steps=50, tape_size=64)
    assert results == [(6, True, 4, False), (50, False, 1, False)]
    assert evaluate_batch([], 2) == []
