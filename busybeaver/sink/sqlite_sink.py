import os
import sqlite3
import time

from busybeaver.logger.logger import console_message

MAX_RETRIES = 3
RETRY_DELAY = 0.05

SCHEMA = """
CREATE TABLE IF NOT EXISTS turing_machines (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    transition_function TEXT NOT NULL,
    number_of_states INTEGER NOT NULL,
    number_of_symbols INTEGER NOT NULL,
    halted INTEGER NOT NULL,
    steps INTEGER NOT NULL,
    score INTEGER NOT NULL,
    time_to_run INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_turing_machines_family
    ON turing_machines(number_of_states, number_of_symbols);
"""

INSERT = """
INSERT INTO turing_machines(
    transition_function, number_of_states, number_of_symbols, halted, steps, score, time_to_run
)
VALUES(?, ?, ?, ?, ?, ?, ?)
"""


class SQLiteSink:
    """Relational sink for machine records, one row per record."""

    def __init__(self, path=":memory:"):
        if path != ":memory:":
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        self.path = path
        self.conn = sqlite3.connect(path, check_same_thread=False)
        self._init_schema()

    def _init_schema(self):
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def write(self, record):
        return self.write_batch([record])

    def write_batch(self, records):
        rows = [record.as_row() for record in records]
        if not rows:
            return 0
        attempt = 0
        while True:
            try:
                with self.conn:
                    self.conn.executemany(INSERT, rows)
                return len(rows)
            except sqlite3.OperationalError as exc:
                attempt += 1
                if attempt > MAX_RETRIES:
                    raise
                console_message(f"Database busy ({exc}), retrying {attempt}/{MAX_RETRIES}...", "WARNING")
                time.sleep(RETRY_DELAY * attempt)

    def count(self, states=None, symbols=None):
        if states is None:
            return self.conn.execute("SELECT COUNT(*) FROM turing_machines").fetchone()[0]
        return self.conn.execute(
            "SELECT COUNT(*) FROM turing_machines WHERE number_of_states = ? AND number_of_symbols = ?",
            (states, symbols),
        ).fetchone()[0]

    def fetch(self, states, symbols):
        """Rows for one machine family as dicts, in insertion order."""
        cursor = self.conn.execute(
            """
            SELECT id, transition_function, number_of_states, number_of_symbols, halted, steps, score, time_to_run
            FROM turing_machines
            WHERE number_of_states = ? AND number_of_symbols = ?
            ORDER BY id
            """,
            (states, symbols),
        )
        columns = [description[0] for description in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def close(self):
        self.conn.close()
