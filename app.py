# app.py

import argparse
import signal
import sys
from pathlib import Path

from rich.prompt import Prompt, IntPrompt, Confirm
from rich.table import Table

from busybeaver.config.config_loader import OBJECTIVES, build_config, load_config, save_config
from busybeaver.logger.logger import JSONLogger, console
from busybeaver.pipeline.champion import ChampionBoard
from busybeaver.pipeline.scheduler import Scheduler
from busybeaver.sink.sqlite_sink import SQLiteSink
from busybeaver.tools.escalate_holdouts import escalate_holdouts
from busybeaver.tools.ruleset_inspect import parse_machine, pretty_print_ruleset
from busybeaver.simulator.turing_machine import TuringMachine

CONFIG_PATH = "config/runtime_config.json"


# === Utilities ===
def load_runtime_config(path=CONFIG_PATH):
    if not Path(path).exists():
        console.print(f"[red]Error: {path} not found![/red]")
        sys.exit(1)
    return load_config(path, verbose=False)


def save_runtime_config(config, path=CONFIG_PATH):
    save_config(config, path)
    console.print("[green]Configuration updated successfully.[/green]")


def show_main_menu():
    console.print("\n[bold cyan]Busy Beaver Search[/bold cyan]")
    console.print("\\[1] Run Search")
    console.print("\\[2] Escalate Holdouts")
    console.print("\\[3] Inspect Machine")
    console.print("\\[4] Edit Config")
    console.print("\\[5] Exit")


def report_summary(summary):
    table = Table(title="Search Summary", show_header=True, header_style="bold magenta")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Machine family", f"{summary.states} states, {summary.symbols} symbols")
    table.add_row("Full space", f"{summary.total_space:,}")
    table.add_row("Partitions", f"{summary.completed_partitions:,}/{summary.partitions:,}")
    table.add_row("Generated", f"{summary.generated:,}")
    table.add_row("Simulated", f"{summary.simulated:,}")
    table.add_row("Reduction", f"{summary.reduction:.4%}")
    for disposition, count in sorted(summary.dispositions.items()):
        table.add_row(f"  {disposition}", f"{count:,}")
    console.print(table)

    filters = Table(title="Filters", show_header=True, header_style="bold magenta")
    filters.add_column("Filter")
    filters.add_column("Machines", justify="right")
    for name, count in sorted(summary.filters.items()):
        filters.add_row(name, f"{count:,}")
    console.print(filters)

    champion = summary.champion
    if champion is None or not summary.improved:
        console.print("[yellow]No improvement found.[/yellow]")
    if champion is not None:
        console.print(
            f"[green]Champion ({summary.objective}):[/green] {champion.notation} "
            f"steps={champion.steps:,} score={champion.score:,}"
        )

    if summary.holdouts:
        console.print(f"[yellow]{len(summary.holdouts):,} holdouts:[/yellow]")
        for record in summary.holdouts:
            console.print(f"  {record.notation}", markup=False)
    if summary.failed:
        console.print(f"[red]{len(summary.failed)} partition(s) failed.[/red]")
    if summary.cancelled:
        console.print("[yellow]Search cancelled before all partitions ran.[/yellow]")


def run_search(config):
    logger = JSONLogger(config["output_directory"], config["log_file_prefix"])
    sinks = [SQLiteSink(config["database_path"]), logger]
    champions = ChampionBoard.load(config["champion_file"])
    scheduler = Scheduler(config, sinks=sinks, champions=champions, logger=logger)

    # First Ctrl+C stops submitting partitions; in-flight ones finish
    previous = signal.getsignal(signal.SIGINT)

    def request_cancel(signum, frame):
        console.print("[yellow]Cancelling after in-flight partitions...[/yellow]")
        scheduler.cancel()
        signal.signal(signal.SIGINT, previous)

    signal.signal(signal.SIGINT, request_cancel)
    try:
        summary = scheduler.run()
    finally:
        signal.signal(signal.SIGINT, previous)
        sinks[0].close()

    report_summary(summary)
    return summary


def handle_search(config):
    console.print("\n[bold]Run Search[/bold]")

    states = IntPrompt.ask("Number of States", default=config["states"])
    symbols = IntPrompt.ask("Number of Symbols", default=config["symbols"])
    objective = Prompt.ask("Objective", choices=list(OBJECTIVES), default=config["objective"])
    cpu_cores = IntPrompt.ask("Number of CPU Cores", default=config["cpu_cores"])

    try:
        run_config = build_config(config, states=states, symbols=symbols, objective=objective, cpu_cores=cpu_cores)
    except (TypeError, ValueError) as e:
        console.print(f"[red]Invalid settings: {e}[/red]")
        return

    console.print(f"[cyan]Searching {states}-state {symbols}-symbol machines with {cpu_cores} core(s)...[/cyan]")
    run_search(run_config)


def handle_escalate(config):
    console.print("\n[bold]Escalate Holdouts[/bold]")

    holdouts_file = Prompt.ask("Holdouts file", default=config["holdouts_file"])
    if not Path(holdouts_file).exists():
        console.print("[red]No holdouts found. Run a search first.[/red]")
        return
    use_gpu = Confirm.ask("Use GPU for the raw pass?", default=config["use_gpu"])

    sink = SQLiteSink(config["database_path"])
    try:
        records = escalate_holdouts(holdouts_file, dict(config, use_gpu=use_gpu), sinks=[sink])
    finally:
        sink.close()

    settled = sum(1 for record in records if record.disposition.value != "holdout")
    console.print(f"[green]Escalation completed: {settled:,}/{len(records):,} holdouts settled.[/green]")


def handle_inspect():
    console.print("\n[bold]Inspect Machine[/bold]")

    machine = Prompt.ask("Machine (standard notation)", default="1RB1LB_1LA1RZ")
    try:
        table = parse_machine(machine)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return
    pretty_print_ruleset(table)

    steps = IntPrompt.ask("Steps to visualize (0 to skip)", default=0)
    if steps > 0:
        TuringMachine(table).run(max_steps=steps, visualize=True)


def handle_edit_config(config):
    console.print("\n[bold]Edit Configuration[/bold]")

    updates = {
        "states": IntPrompt.ask("Number of States", default=config["states"]),
        "symbols": IntPrompt.ask("Number of Symbols", default=config["symbols"]),
        "objective": Prompt.ask("Objective", choices=list(OBJECTIVES), default=config["objective"]),
        "step_budget": IntPrompt.ask("Step Budget", default=config["step_budget"]),
        "tape_budget": IntPrompt.ask("Tape Budget", default=config["tape_budget"]),
        "cpu_cores": IntPrompt.ask("Number of CPU Cores", default=config["cpu_cores"]),
        "use_gpu": Confirm.ask("Use GPU?", default=config["use_gpu"]),
        "batch_size": IntPrompt.ask("Batch Size", default=config["batch_size"]),
    }

    try:
        save_runtime_config(build_config(config, **updates))
    except (TypeError, ValueError) as e:
        console.print(f"[red]Configuration not saved: {e}[/red]")


def interactive_main(config_path=CONFIG_PATH):
    config = load_runtime_config(config_path)

    while True:
        show_main_menu()
        choice = Prompt.ask("\nChoose an option", choices=["1", "2", "3", "4", "5"], default="5")

        if choice == "1":
            handle_search(config)
        elif choice == "2":
            handle_escalate(config)
        elif choice == "3":
            handle_inspect()
        elif choice == "4":
            handle_edit_config(config)
            config = load_runtime_config(config_path)
        elif choice == "5":
            console.print("[bold green]Goodbye![/bold green]")
            break


# === CLI Mode for Automation ===
def cli_main(args):
    config = load_runtime_config(args.config)

    overrides = {}
    for key in ("states", "symbols", "objective", "cpu_cores"):
        value = getattr(args, key)
        if value is not None:
            overrides[key] = value
    if args.gpu:
        overrides["use_gpu"] = True
    config = build_config(config, **overrides)

    if args.search:
        run_search(config)
    if args.escalate:
        if not Path(config["holdouts_file"]).exists():
            console.print("[red]No holdouts found. Run a search first.[/red]")
            return
        escalate_holdouts(config["holdouts_file"], config)


def main():
    parser = argparse.ArgumentParser(description="Busy Beaver Search Application")
    parser.add_argument("--search", action="store_true", help="Run the search immediately")
    parser.add_argument("--escalate", action="store_true", help="Escalate holdouts immediately")
    parser.add_argument("--config", default=CONFIG_PATH, help="Runtime configuration file")
    parser.add_argument("--states", type=int, help="Override the number of states")
    parser.add_argument("--symbols", type=int, help="Override the number of symbols")
    parser.add_argument("--objective", choices=OBJECTIVES, help="Override the objective")
    parser.add_argument("--cpu_cores", type=int, help="Override the number of worker processes")
    parser.add_argument("--gpu", action="store_true", help="Use the GPU kernel when escalating holdouts")
    args = parser.parse_args()

    if args.search or args.escalate:
        cli_main(args)
    else:
        interactive_main(args.config)


if __name__ == "__main__":
    main()
