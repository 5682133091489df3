import json
import os
import threading

from busybeaver.config.config_loader import OBJECTIVES
from busybeaver.pipeline.classifier import MachineRecord


def objective_value(record, objective):
    return record.steps if objective == "steps" else record.score


def beats(candidate, current, objective):
    """Total order: objective value, then the other objective, then the smaller encoding."""
    if current is None:
        return True
    other = "score" if objective == "steps" else "steps"
    candidate_key = (objective_value(candidate, objective), objective_value(candidate, other))
    current_key = (objective_value(current, objective), objective_value(current, other))
    if candidate_key != current_key:
        return candidate_key > current_key
    return candidate.transition_function < current.transition_function


def _key_name(key):
    states, symbols, objective = key
    return f"{states}_{symbols}_{objective}"


class ChampionBoard:
    """Best known halting machine per (states, symbols, objective).

    Shared by the scheduler; updates go through ``compare_and_update``,
    which holds the lock only for the comparison and swap.
    """

    def __init__(self, champions=None):
        self._lock = threading.Lock()
        self._champions = dict(champions or {})

    def get(self, states, symbols, objective):
        with self._lock:
            return self._champions.get((states, symbols, objective))

    def compare_and_update(self, key, record):
        if not record.halted:
            return False
        with self._lock:
            if beats(record, self._champions.get(key), key[2]):
                self._champions[key] = record
                return True
            return False

    def offer(self, record):
        """Try the record against both objectives; return those it improved."""
        improved = []
        for objective in OBJECTIVES:
            key = (record.number_of_states, record.number_of_symbols, objective)
            if self.compare_and_update(key, record):
                improved.append(objective)
        return improved

    def baseline(self, states, symbols, objective):
        champion = self.get(states, symbols, objective)
        return 0 if champion is None else objective_value(champion, objective)

    def snapshot(self):
        with self._lock:
            return dict(self._champions)

    # === Persistence ===
    def save(self, path):
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        entries = {_key_name(key): record.as_dict() for key, record in sorted(self.snapshot().items())}
        with open(path, "w", encoding="utf-8") as f:
            json.dump(entries, f, indent=4)

    @classmethod
    def load(cls, path):
        if not os.path.exists(path):
            return cls()
        with open(path, "r", encoding="utf-8") as f:
            entries = json.load(f)
        champions = {}
        for name, entry in entries.items():
            states, symbols, objective = name.split("_")
            champions[(int(states), int(symbols), objective)] = MachineRecord.from_dict(entry)
        return cls(champions)
