import json
import multiprocessing
import os
import signal
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import islice
from typing import List, Optional

from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from busybeaver.filters.verdicts import Disposition, Stage
from busybeaver.generator.generator import Generator
from busybeaver.logger.logger import console, console_message
from busybeaver.pipeline.champion import ChampionBoard
from busybeaver.pipeline.classifier import evaluate_machine
from busybeaver.pipeline.compiler import Compiler
from busybeaver.simulator.simulator import Simulator
from busybeaver.simulator.transition_table import search_space_size


@dataclass(frozen=True)
class PartitionTask:
    index: int
    start: object
    config: dict
    baseline_score: int = 0


@dataclass
class PartitionResult:
    """Counters for one finished partition. Records travel separately, in batches."""

    index: int
    counters: Counter = field(default_factory=Counter)
    generated: int = 0
    simulated: int = 0
    error: Optional[str] = None


@dataclass
class RunSummary:
    states: int
    symbols: int
    objective: str
    total_space: int
    partitions: int = 0
    completed_partitions: int = 0
    generated: int = 0
    simulated: int = 0
    dispositions: Counter = field(default_factory=Counter)
    filters: Counter = field(default_factory=Counter)
    holdouts: List = field(default_factory=list)
    failed: List = field(default_factory=list)
    champions: dict = field(default_factory=dict)
    improved: bool = False
    cancelled: bool = False

    @property
    def reduction(self):
        """Share of the full candidate space never handed to the simulator."""
        return 1 - self.simulated / self.total_space

    @property
    def champion(self):
        return self.champions.get(self.objective)

    def as_dict(self):
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": "search",
            "states": self.states,
            "symbols": self.symbols,
            "objective": self.objective,
            "total_space": self.total_space,
            "partitions": self.partitions,
            "completed_partitions": self.completed_partitions,
            "generated": self.generated,
            "simulated": self.simulated,
            "reduction": self.reduction,
            "dispositions": dict(self.dispositions),
            "filters": dict(self.filters),
            "holdouts": len(self.holdouts),
            "failed": [index for index, _ in self.failed],
            "champions": {
                objective: record.as_dict() if record is not None else None
                for objective, record in self.champions.items()
            },
            "improved": self.improved,
            "cancelled": self.cancelled,
        }


# === Worker ===
_messages = None


def _ignore_sigint():
    # Ctrl+C is the parent's cancellation request, workers finish their partition
    signal.signal(signal.SIGINT, signal.SIG_IGN)


def _init_worker(messages):
    global _messages
    _messages = messages
    _ignore_sigint()


def _partition_records(task, result):
    config = task.config
    generator = Generator(config["states"], config["symbols"])
    compiler = Compiler(config, task.baseline_score)
    simulator = Simulator(config)

    for table in generator.generate(task.start):
        record = evaluate_machine(table, compiler, simulator)
        if record.stage is Stage.RUNTIME:
            result.simulated += 1
        if record.reason:
            result.counters[record.reason] += 1
        yield record

    result.counters.update(generator.counters)
    result.generated = generator.generated


def run_partition(task, emit):
    """Enumerate, compile and simulate every machine below one partition.

    Records are handed to ``emit`` in lists of at most ``batch_size`` and not
    kept. Any error inside the partition fails only this partition; errors
    raised by ``emit`` propagate.
    """
    result = PartitionResult(task.index)
    records = _partition_records(task, result)
    batch_size = task.config["batch_size"]

    while True:
        try:
            batch = list(islice(records, batch_size))
        except Exception as e:
            return PartitionResult(task.index, error=repr(e))
        if not batch:
            return result
        emit(batch)


def _run_pooled_partition(task):
    """Pool entry point: batches and the final result share one queue, so they arrive in order."""
    result = run_partition(task, lambda records: _messages.put(("records", records)))
    _messages.put(("done", result))


class Scheduler:
    """Splits the generation tree into partitions and runs them in-process or on a pool.

    At most one partition per worker is in flight; cancellation is checked
    before each submission, so in-flight partitions always finish. Records
    reach the sinks batch by batch; only counters, champions and holdouts are
    kept for the summary.
    """

    def __init__(self, config, sinks=None, champions=None, cancel_event=None, logger=None):
        self.config = config
        self.sinks = list(sinks or [])
        self.champions = champions if champions is not None else ChampionBoard()
        self.cancel_event = cancel_event or threading.Event()
        self.logger = logger

    def cancel(self):
        self.cancel_event.set()

    @property
    def cancelled(self):
        return self.cancel_event.is_set()

    def build_tasks(self, summary):
        config = self.config
        generator = Generator(config["states"], config["symbols"])
        partitions = generator.partitions(config["partition_depth"])
        summary.filters.update(generator.counters)
        summary.partitions = len(partitions)

        # Workers all see the same champion score for the whole batch
        baseline_score = self.champions.baseline(config["states"], config["symbols"], "score")
        return [PartitionTask(i, start, config, baseline_score) for i, start in enumerate(partitions)]

    def run(self):
        config = self.config
        states, symbols = config["states"], config["symbols"]
        summary = RunSummary(states, symbols, config["objective"], search_space_size(states, symbols))
        starting = {
            objective: self.champions.get(states, symbols, objective) for objective in ("steps", "score")
        }

        tasks = self.build_tasks(summary)
        workers = config["cpu_cores"]
        console_message(f"Searching {states}-state {symbols}-symbol machines: {len(tasks):,} partitions, {workers} worker(s).")

        with Progress(
            SpinnerColumn(),
            BarColumn(),
            "[progress.percentage]{task.percentage:>3.0f}%",
            TextColumn("{task.completed:.0f}/{task.total:.0f} Partitions"),
            TimeElapsedColumn(),
            console=console,
            disable=not config["show_progress"],
        ) as progress:
            bar = progress.add_task("[cyan]Searching...", total=len(tasks))

            def write(records):
                self._write_records(records, summary)

            def merge(result):
                self._merge(result, summary)
                progress.update(bar, advance=1)

            if workers == 1:
                self._run_inline(tasks, write, merge)
            else:
                self._run_pool(tasks, workers, write, merge)

        summary.cancelled = self.cancelled
        summary.holdouts.sort(key=lambda record: record.transition_function)
        summary.champions = {
            objective: self.champions.get(states, symbols, objective) for objective in ("steps", "score")
        }
        summary.improved = summary.champions != starting

        self._write_holdouts(summary.holdouts)
        if config.get("champion_file"):
            self.champions.save(config["champion_file"])
        if self.logger is not None:
            self.logger.log(summary.as_dict())
        return summary

    def _run_inline(self, tasks, write, merge):
        for task in tasks:
            if self.cancelled:
                break
            merge(run_partition(task, write))

    def _run_pool(self, tasks, workers, write, merge):
        # Bounded, so workers block while the parent is busy with the sinks
        messages = multiprocessing.Queue(maxsize=2 * workers)
        pending = iter(tasks)
        in_flight = 0

        with multiprocessing.Pool(processes=workers, initializer=_init_worker, initargs=(messages,)) as pool:
            while True:
                while in_flight < workers and not self.cancelled:
                    task = next(pending, None)
                    if task is None:
                        break
                    pool.apply_async(
                        _run_pooled_partition,
                        (task,),
                        error_callback=lambda e, index=task.index: messages.put(
                            ("done", PartitionResult(index, error=repr(e)))
                        ),
                    )
                    in_flight += 1
                if in_flight == 0:
                    break
                kind, payload = messages.get()
                if kind == "records":
                    write(payload)
                else:
                    merge(payload)
                    in_flight -= 1

    def _write_records(self, records, summary):
        for record in records:
            summary.dispositions[record.disposition.value] += 1
            if record.disposition is Disposition.HOLDOUT:
                summary.holdouts.append(record)
            elif record.halted:
                self.champions.offer(record)

        for sink in self.sinks:
            sink.write_batch(records)

    def _merge(self, result, summary):
        if result.error is not None:
            console_message(f"Partition {result.index} failed: {result.error}", "ERROR")
            summary.failed.append((result.index, result.error))
            return

        summary.completed_partitions += 1
        summary.generated += result.generated
        summary.simulated += result.simulated
        summary.filters.update(result.counters)

    def _write_holdouts(self, holdouts):
        """Merge this run's holdouts into the holdout channel, one line per machine."""
        path = self.config.get("holdouts_file")
        if not path or not holdouts:
            return

        entries = {}
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    if line.strip():
                        entry = json.loads(line)
                        key = (entry["number_of_states"], entry["number_of_symbols"], entry["transition_function"])
                        entries[key] = entry
        for record in holdouts:
            entries[(record.number_of_states, record.number_of_symbols, record.transition_function)] = record.as_dict()

        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            for key in sorted(entries):
                f.write(json.dumps(entries[key]) + "\n")
