from busybeaver.filters.generation_filters import (
    GENERATION_FILTERS,
    canonical_state_order,
    neighbour_looper,
)
from busybeaver.filters.verdicts import Verdict, run_filters
from busybeaver.simulator.transition_table import TransitionTable

from conftest import BB2, BB3


def verdict(notation):
    return run_filters(GENERATION_FILTERS, TransitionTable.from_standard(notation))


def test_start_state_halting_finalizes():
    result = verdict("1RZ---_------")
    assert result.verdict is Verdict.FINALIZE
    assert result.filter_name == "start_state_halts"


def test_start_state_looper_rejects():
    result = verdict("1RA---_------")
    assert result.verdict is Verdict.REJECT
    assert result.filter_name == "start_state_looper"


def test_first_move_must_go_right():
    result = verdict("1LB---_------")
    assert result.verdict is Verdict.REJECT
    assert result.filter_name == "canonical_direction"


def test_canonical_state_order():
    skips_a_state = TransitionTable.from_standard("1RC---_------_------")
    assert canonical_state_order(skips_a_state).verdict is Verdict.REJECT

    undiscovered_state = TransitionTable.from_standard("1RB1LB_1LA1RA_1RA---")
    assert canonical_state_order(undiscovered_state).verdict is Verdict.REJECT

    discovered_in_order = TransitionTable.from_standard("1RB1LC_------_------")
    assert canonical_state_order(discovered_in_order).verdict is Verdict.CONTINUE

    discovered_by_b = TransitionTable.from_standard("1RB1LB_1LC---_------")
    assert canonical_state_order(discovered_by_b).verdict is Verdict.CONTINUE


def test_neighbour_runs_away():
    table = TransitionTable.from_standard("1RB---_0RB---")
    assert neighbour_looper(table).verdict is Verdict.REJECT


def test_neighbour_bounces_over_blank_tape():
    table = TransitionTable.from_standard("0RB---_0LA---")
    assert neighbour_looper(table).verdict is Verdict.REJECT


def test_neighbour_bounce_after_a_mark_continues():
    table = TransitionTable.from_standard("1RB---_0LA---")
    assert neighbour_looper(table).verdict is Verdict.CONTINUE


def test_champion_prefixes_survive_every_filter():
    for notation in (BB2, BB3):
        table = TransitionTable.from_standard(notation)
        partial = TransitionTable(table.num_states, table.num_symbols)
        for index, cell in enumerate(table.cells):
            partial = partial.with_cell(index, cell)
            assert run_filters(GENERATION_FILTERS, partial).verdict is Verdict.CONTINUE
