import json
import os
from datetime import datetime, timezone

from rich.console import Console
from rich.markup import escape

console = Console()

LEVEL_STYLES = {
    "INFO": "cyan",
    "SUCCESS": "green",
    "WARNING": "yellow",
    "ERROR": "red",
}


def console_message(msg, level="INFO"):
    """Print a tagged status line, e.g. ``[INFO] Generated 1,053 machines``."""
    style = LEVEL_STYLES.get(level, "white")
    console.print(f"[{style}]\\[{level}][/{style}] {escape(str(msg))}")


class JSONLogger:
    """Appends machine records to dated JSON-lines files, one file per channel.

    Doubles as a sink: ``write_batch`` routes each record to the halting,
    non-halting or holdout channel by its disposition.
    """

    def __init__(self, output_directory="logs/", log_file_prefix="busybeaver_"):
        self.output_directory = output_directory
        self.log_file_prefix = log_file_prefix
        os.makedirs(self.output_directory, exist_ok=True)
        self.today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        self.current_log = self._get_log_filename()

    def _get_log_filename(self):
        filename = f"{self.log_file_prefix}{self.today}.jsonl"  # JSON lines format
        return os.path.join(self.output_directory, filename)

    def _log_to_file(self, filename, entries):
        path = os.path.join(self.output_directory, filename)
        with open(path, "a", encoding="utf-8") as f:
            for entry in entries:
                f.write(json.dumps(entry) + "\n")

    def log(self, entry: dict):
        """Log a single entry, such as a run summary, to the main busybeaver log."""
        with open(self.current_log, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")

    def log_halting(self, entries: list):
        self._log_to_file(f"halting_{self.today}.jsonl", entries)

    def log_non_halting(self, entries: list):
        self._log_to_file(f"non_halting_{self.today}.jsonl", entries)

    def log_holdouts(self, entries: list):
        self._log_to_file(f"holdouts_{self.today}.jsonl", entries)

    def write_batch(self, records):
        halting, non_halting, holdouts = [], [], []
        for record in records:
            entry = record.as_dict()
            if record.disposition.value == "halted":
                halting.append(entry)
            elif record.disposition.value == "holdout":
                holdouts.append(entry)
            else:
                non_halting.append(entry)

        if halting:
            self.log_halting(halting)
        if non_halting:
            self.log_non_halting(non_halting)
        if holdouts:
            self.log_holdouts(holdouts)
