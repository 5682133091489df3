import argparse

from rich.table import Table

from busybeaver.logger.logger import console, console_message
from busybeaver.simulator.transition_table import UNDEFINED_CELL, TransitionTable, state_letter
from busybeaver.simulator.turing_machine import TuringMachine


def parse_machine(machine=None, encoded=None, states=None, symbols=None):
    """Accept standard notation (``1RB1LB_1LA1RZ``) or the persisted ``|``-separated encoding."""
    if machine:
        return TransitionTable.from_standard(machine)
    if encoded:
        if states is None or symbols is None:
            raise ValueError("--states and --symbols are required with --encoded.")
        return TransitionTable.decode(encoded, states, symbols)
    raise ValueError("You must specify either --machine or --encoded.")


def cell_action(cell):
    if cell is None:
        return UNDEFINED_CELL
    if cell.halts:
        return "HALT"
    return cell.to_string()


def ruleset_table(table):
    """Terminal state x symbol table in Busy Beaver notation."""
    grid = Table(title="Transition Table", show_header=True, header_style="bold magenta")
    grid.add_column("State", justify="center")
    for symbol in range(table.num_symbols):
        grid.add_column(str(symbol), justify="center")
    for state in range(table.num_states):
        row = [cell_action(table.get(state, symbol)) for symbol in range(table.num_symbols)]
        grid.add_row(state_letter(state), *row)
    return grid


def latex_table(table):
    lines = [r"\begin{array}{c|" + "c" * table.num_symbols + "}"]
    lines.append(
        "State/Symbol & " + " & ".join(f"\\text{{{i}}}" for i in range(table.num_symbols)) + r" \\ \hline"
    )
    for state in range(table.num_states):
        row = [state_letter(state)]
        row += [cell_action(table.get(state, symbol)) for symbol in range(table.num_symbols)]
        lines.append(" & ".join(row) + r" \\")
    lines.append(r"\end{array}")
    return "\n".join(lines)


def pretty_print_ruleset(table):
    console.print(ruleset_table(table))
    console.print("\n=== LaTeX Table ===", markup=False)
    console.print(latex_table(table), markup=False)


def main():
    parser = argparse.ArgumentParser(description="Busy Beaver Ruleset Inspector")
    parser.add_argument("--machine", help="Machine in standard notation, e.g. 1RB1LB_1LA1RZ")
    parser.add_argument("--encoded", help="Persisted transition function encoding")
    parser.add_argument("--states", type=int, help="Number of states (with --encoded)")
    parser.add_argument("--symbols", type=int, help="Number of symbols (with --encoded)")
    parser.add_argument("--visualize", type=int, default=0, help="Run and draw the tape for this many steps")
    args = parser.parse_args()

    table = parse_machine(args.machine, args.encoded, args.states, args.symbols)
    console_message(f"Machine {table.to_standard()}")
    console.print(f"  States: {table.num_states}", markup=False)
    console.print(f"  Symbols: {table.num_symbols}", markup=False)
    console.print(f"  Encoding: {table.encode()}", markup=False)
    pretty_print_ruleset(table)

    if args.visualize:
        machine = TuringMachine(table)
        machine.run(max_steps=args.visualize, visualize=True)


if __name__ == "__main__":
    main()
