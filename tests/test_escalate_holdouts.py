import json

from busybeaver.filters.verdicts import Disposition, Stage
from busybeaver.pipeline.champion import ChampionBoard
from busybeaver.pipeline.classifier import classify
from busybeaver.simulator.simulator import SimulationOutcome
from busybeaver.simulator.transition_table import TransitionTable
from busybeaver.sink.sqlite_sink import SQLiteSink
from busybeaver.tools.escalate_holdouts import escalated_config, escalate_holdouts, load_holdouts

from conftest import BB2

RUNAWAY = "1RB1RZ_1RA1RZ"


def write_holdouts(path, notations):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for notation in notations:
            table = TransitionTable.from_standard(notation)
            holdout = classify(table, SimulationOutcome(Disposition.HOLDOUT, 5, 3, "step_budget"), Stage.RUNTIME)
            f.write(json.dumps(holdout.as_dict()) + "\n")


def test_escalated_budgets(make_config):
    config = make_config(step_budget=5, tape_budget=64, escalation_factor=3)
    escalated = escalated_config(config)
    assert escalated["step_budget"] == 15
    assert escalated["tape_budget"] == 192
    assert config["step_budget"] == 5


def test_load_holdouts_drops_duplicates(tmp_path):
    path = tmp_path / "holdouts.jsonl"
    write_holdouts(path, [BB2, RUNAWAY, BB2])
    assert list(load_holdouts(path)) == [BB2, RUNAWAY]


def test_escalation_settles_and_promotes(make_config, tmp_path):
    config = make_config(step_budget=5, escalation_factor=2, translated_cycler_periods=50)
    holdouts = tmp_path / "pools" / "holdouts.jsonl"
    long_runners = tmp_path / "pools" / "long_runners.txt"
    write_holdouts(holdouts, [BB2, RUNAWAY])
    sink = SQLiteSink()

    records = escalate_holdouts(
        str(holdouts),
        config,
        results_root=str(tmp_path / "results"),
        long_runners_file=str(long_runners),
        sinks=[sink],
    )

    by_machine = {record.notation: record for record in records}
    assert by_machine[BB2].halted
    assert (by_machine[BB2].steps, by_machine[BB2].score) == (6, 4)
    assert by_machine[BB2].reason == "escalation_kernel"
    assert by_machine[RUNAWAY].disposition is Disposition.HOLDOUT
    assert by_machine[RUNAWAY].steps == 10

    assert long_runners.read_text(encoding="utf-8").split() == [RUNAWAY]
    assert sink.count(2, 2) == 2
    assert ChampionBoard.load(config["champion_file"]).get(2, 2, "steps").steps == 6

    results_file = tmp_path / "results" / "holdouts" / "escalated.jsonl"
    assert len(results_file.read_text(encoding="utf-8").splitlines()) == 2
    checkpoint = json.loads((tmp_path / "results" / "holdouts" / "escalated_checkpoint.json").read_text())
    assert checkpoint["completed"] == [BB2, RUNAWAY]

    # Checkpointed machines are skipped on the next run
    again = escalate_holdouts(
        str(holdouts), config, results_root=str(tmp_path / "results"), long_runners_file=str(long_runners)
    )
    assert again == []


def test_escalation_proves_non_halting(make_config, tmp_path):
    config = make_config(step_budget=5, escalation_factor=2)
    holdouts = tmp_path / "holdouts.jsonl"
    write_holdouts(holdouts, ["1RB1RA_1LA1RZ"])

    records = escalate_holdouts(
        str(holdouts),
        config,
        results_root=str(tmp_path / "results"),
        long_runners_file=str(tmp_path / "long_runners.txt"),
    )
    assert records[0].disposition is Disposition.PROVEN_NON_HALTING
    assert records[0].reason == "translated_cycler"
    assert not (tmp_path / "long_runners.txt").exists()
