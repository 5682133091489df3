import json
import threading

from busybeaver.filters.verdicts import Disposition, Stage
from busybeaver.pipeline.champion import ChampionBoard, beats
from busybeaver.pipeline.classifier import classify
from busybeaver.simulator.simulator import SimulationOutcome
from busybeaver.simulator.transition_table import TransitionTable

from conftest import BB2


def halted(notation, steps, score):
    table = TransitionTable.from_standard(notation)
    return classify(table, SimulationOutcome(Disposition.HALTED, steps, score), Stage.RUNTIME)


def test_ranking_is_a_total_order():
    low = halted("1RB1RZ_1LA1RZ", 3, 3)
    high = halted(BB2, 6, 4)
    assert beats(high, low, "steps")
    assert not beats(low, high, "steps")
    assert beats(low, None, "score")

    # Same steps: the other objective decides
    more_marks = halted("1RB1LB_1RZ1RZ", 6, 5)
    assert beats(more_marks, high, "steps")

    # Full tie: the smaller encoding wins, whichever comes first
    a = halted("1RB1LB_1LA1RZ", 6, 4)
    b = halted("1RB1RB_1LA1RZ", 6, 4)
    smaller, larger = sorted([a, b], key=lambda r: r.transition_function)
    assert beats(smaller, larger, "steps")
    assert not beats(larger, smaller, "steps")


def test_compare_and_update_ignores_non_halting():
    board = ChampionBoard()
    table = TransitionTable.from_standard(BB2)
    holdout = classify(table, SimulationOutcome(Disposition.HOLDOUT, 100, 10), Stage.RUNTIME)
    assert not board.compare_and_update((2, 2, "steps"), holdout)
    assert board.get(2, 2, "steps") is None


def test_offer_tracks_both_objectives():
    board = ChampionBoard()
    fast = halted(BB2, 6, 4)
    wide = halted("1RB1LB_1RZ1RZ", 2, 5)

    assert board.offer(fast) == ["steps", "score"]
    assert board.offer(wide) == ["score"]
    assert board.get(2, 2, "steps") is fast
    assert board.get(2, 2, "score") is wide
    assert board.baseline(2, 2, "score") == 5
    assert board.baseline(3, 2, "steps") == 0


def test_concurrent_updates_keep_the_best():
    board = ChampionBoard()
    records = [halted(BB2, steps, 1) for steps in range(1, 50)]

    def offer_all(chunk):
        for record in chunk:
            board.offer(record)

    threads = [threading.Thread(target=offer_all, args=(records[i::4],)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert board.get(2, 2, "steps").steps == 49


def test_save_and_load(tmp_path):
    path = tmp_path / "results" / "champions.json"
    board = ChampionBoard()
    board.offer(halted(BB2, 6, 4))
    board.save(str(path))

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert set(saved) == {"2_2_steps", "2_2_score"}
    assert saved["2_2_steps"]["machine"] == BB2

    loaded = ChampionBoard.load(str(path))
    assert loaded.get(2, 2, "steps") == board.get(2, 2, "steps")
    assert ChampionBoard.load(str(tmp_path / "missing.json")).snapshot() == {}
