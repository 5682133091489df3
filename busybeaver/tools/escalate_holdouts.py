# busybeaver/tools/escalate_holdouts.py

import argparse
import json
import time
from pathlib import Path

from rich.progress import Progress, SpinnerColumn, BarColumn, TextColumn, TimeElapsedColumn

from busybeaver.config.config_loader import load_config
from busybeaver.filters.verdicts import Disposition, Stage
from busybeaver.logger.logger import console, console_message
from busybeaver.pipeline.champion import ChampionBoard
from busybeaver.pipeline.classifier import classify
from busybeaver.simulator.evaluator import evaluate_batch
from busybeaver.simulator.simulator import SimulationOutcome, Simulator
from busybeaver.simulator.transition_table import TransitionTable


# === Promotion for Long-Runners ===
def promote_long_runner(machine_id, pool_file="pools/long_runners.txt"):
    Path(pool_file).parent.mkdir(parents=True, exist_ok=True)
    with open(pool_file, "a", encoding="utf-8") as f:
        f.write(machine_id + "\n")


# === Utility Loaders ===
def load_holdouts(holdouts_file):
    """Read holdout entries, one JSON record per line; later duplicates are dropped."""
    entries = {}
    with open(holdouts_file, "r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            entry = json.loads(line)
            table = TransitionTable.decode(
                entry["transition_function"], entry["number_of_states"], entry["number_of_symbols"]
            )
            entries.setdefault(table.to_standard(), table)
    return entries


def load_checkpoint(checkpoint_path):
    if checkpoint_path.exists():
        with open(checkpoint_path, "r", encoding="utf-8") as f:
            checkpoint = json.load(f)
        return checkpoint.get("completed", [])
    return []


def save_checkpoint(completed, checkpoint_path):
    with open(checkpoint_path, "w", encoding="utf-8") as f:
        json.dump({"completed": completed}, f, indent=4)


def escalated_config(config):
    factor = config["escalation_factor"]
    escalated = dict(config)
    escalated["step_budget"] = config["step_budget"] * factor
    escalated["tape_budget"] = config["tape_budget"] * factor
    return escalated


def escalate_batch(tables, config, simulator):
    """Raw kernel first; machines it cannot settle go through the filtered simulator."""
    families = {}
    for position, table in enumerate(tables):
        families.setdefault((table.num_states, table.num_symbols), []).append(position)

    # Filled in input order whatever the family grouping
    records = [None] * len(tables)
    for (states, symbols), positions in families.items():
        group = [tables[position] for position in positions]
        machines = [table.compile() for table in group]
        started = time.perf_counter()
        raw = evaluate_batch(
            machines,
            symbols,
            max_steps=config["step_budget"],
            tape_size=2 * config["tape_budget"] + 1,
            use_gpu=config["use_gpu"],
        )
        kernel_ms = (time.perf_counter() - started) * 1000 / len(group)

        for position, table, machine, (steps, halted, score, overflow) in zip(positions, group, machines, raw):
            if halted:
                outcome = SimulationOutcome(Disposition.HALTED, steps, score, "escalation_kernel")
                records[position] = classify(table, outcome, Stage.RUNTIME, kernel_ms)
                continue
            started = time.perf_counter()
            outcome = simulator.run(machine)
            elapsed = kernel_ms + (time.perf_counter() - started) * 1000
            records[position] = classify(table, outcome, Stage.RUNTIME, elapsed)
    return records


# === Main Escalation Runner ===
def escalate_holdouts(
    holdouts_file,
    config,
    output_name="escalated",
    results_root="results",
    long_runners_file="pools/long_runners.txt",
    sinks=None,
    champions=None,
):
    pool_name = Path(holdouts_file).stem
    results_folder = Path(results_root) / pool_name
    results_folder.mkdir(parents=True, exist_ok=True)
    results_file = results_folder / f"{output_name}.jsonl"
    checkpoint_file = results_folder / f"{output_name}_checkpoint.json"

    escalated = escalated_config(config)
    simulator = Simulator(escalated)
    if champions is None:
        champions = ChampionBoard.load(config["champion_file"])
    batch_size = config["batch_size"]

    all_holdouts = load_holdouts(holdouts_file)
    completed = load_checkpoint(checkpoint_file)
    done = set(completed)
    pending = [machine_id for machine_id in all_holdouts if machine_id not in done]
    console_message(f"Loaded {len(all_holdouts):,} holdouts. {len(pending):,} pending.")
    console_message(
        f"Escalated budgets: {escalated['step_budget']:,} steps, {escalated['tape_budget']:,} cells."
    )

    all_records = []
    with open(results_file, "a", encoding="utf-8") as results_fh:
        for batch_start in range(0, len(pending), batch_size):
            batch = pending[batch_start:batch_start + batch_size]
            console_message(f"Processing batch {batch_start // batch_size + 1} with {len(batch):,} machines...")

            with Progress(
                SpinnerColumn(),
                BarColumn(),
                "[progress.percentage]{task.percentage:>3.0f}%",
                TextColumn("{task.completed:.0f}/{task.total:.0f} Machines"),
                TimeElapsedColumn(),
                console=console,
                disable=not config["show_progress"],
            ) as progress:
                task = progress.add_task("[cyan]Escalating...", total=len(batch))
                records = escalate_batch([all_holdouts[machine_id] for machine_id in batch], escalated, simulator)
                progress.update(task, advance=len(batch))

            for machine_id, record in zip(batch, records):
                results_fh.write(json.dumps(record.as_dict()) + "\n")
                completed.append(machine_id)
                if record.halted:
                    champions.offer(record)
                elif record.disposition is Disposition.HOLDOUT:
                    # === Auto-Promote Long Runners ===
                    promote_long_runner(machine_id, long_runners_file)
            results_fh.flush()

            for sink in sinks or []:
                sink.write_batch(records)
            save_checkpoint(completed, checkpoint_file)
            console_message("Batch completed. Checkpoint saved.")
            all_records.extend(records)

    if config.get("champion_file"):
        champions.save(config["champion_file"])
    console_message("All holdouts escalated. Results saved.", "SUCCESS")
    return all_records


# === CLI ===
def main():
    parser = argparse.ArgumentParser(description="Re-simulate Busy Beaver holdouts with escalated budgets and checkpointing.")
    parser.add_argument("--holdouts", help="Holdouts file (JSON lines); defaults to holdouts_file from the config")
    parser.add_argument("--config", default="config/runtime_config.json", help="Runtime configuration file")
    parser.add_argument("--output", default="escalated", help="Output result file name (default: escalated)")
    parser.add_argument("--gpu", action="store_true", help="Use the GPU kernel for the raw pass")
    args = parser.parse_args()

    config = load_config(args.config, verbose=False)
    if args.gpu:
        config["use_gpu"] = True
    escalate_holdouts(args.holdouts or config["holdouts_file"], config, output_name=args.output)


if __name__ == "__main__":
    main()
