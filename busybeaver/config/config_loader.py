import json
import os
from datetime import datetime

from busybeaver.logger.logger import console

DEFAULT_CONFIG = {
    # Machine family
    "states": 2,
    "symbols": 2,
    "objective": "steps",              # "steps" (S(N)) or "score" (Sigma(N))

    # Simulation budgets
    "step_budget": 10_000,
    "tape_budget": 4096,               # visited cells before a run becomes a holdout
    "initial_tape_size": 512,

    # Runtime filter thresholds
    "short_escaper_threshold": 2,
    "long_escaper_threshold": 16,      # must be >= states
    "cycler_checkpoint_spacing": "exponential",
    "cycler_checkpoint_interval": 1,
    "translated_cycler_periods": 2,
    "translated_cycler_history": 64,

    # Scheduling
    "partition_depth": 2,
    "cpu_cores": 1,
    "use_gpu": False,
    "batch_size": 4096,
    "escalation_factor": 10,

    # Output
    "output_directory": "logs/",
    "log_file_prefix": "busybeaver_",
    "database_path": "results/busy_beaver.sqlite3",
    "champion_file": "results/champions.json",
    "holdouts_file": "pools/holdouts.jsonl",
    "show_progress": True,
}

# Expected types for validation
CONFIG_SCHEMA = {
    "states": int,
    "symbols": int,
    "objective": str,
    "step_budget": int,
    "tape_budget": int,
    "initial_tape_size": int,
    "short_escaper_threshold": int,
    "long_escaper_threshold": int,
    "cycler_checkpoint_spacing": str,
    "cycler_checkpoint_interval": int,
    "translated_cycler_periods": int,
    "translated_cycler_history": int,
    "partition_depth": int,
    "cpu_cores": int,
    "use_gpu": bool,
    "batch_size": int,
    "escalation_factor": int,
    "output_directory": str,
    "log_file_prefix": str,
    "database_path": str,
    "champion_file": str,
    "holdouts_file": str,
    "show_progress": bool,
}

OBJECTIVES = ("steps", "score")
CHECKPOINT_SPACINGS = ("exponential", "linear")

POSITIVE_KEYS = (
    "states",
    "step_budget",
    "tape_budget",
    "initial_tape_size",
    "cycler_checkpoint_interval",
    "translated_cycler_periods",
    "cpu_cores",
    "batch_size",
    "escalation_factor",
)


def validate_config(config):
    for key, expected_type in CONFIG_SCHEMA.items():
        if key not in config:
            raise ValueError(f"Missing required configuration key: {key}")
        if not isinstance(config[key], expected_type):
            raise TypeError(f"Config key '{key}' expected {expected_type}, got {type(config[key])}.")

    for key in POSITIVE_KEYS:
        if config[key] < 1:
            raise ValueError(f"Config key '{key}' must be at least 1, got {config[key]}.")

    if config["symbols"] < 2:
        raise ValueError("A machine needs at least two symbols (blank plus one).")
    if config["objective"] not in OBJECTIVES:
        raise ValueError(f"Objective must be one of {OBJECTIVES}, got '{config['objective']}'.")
    if config["cycler_checkpoint_spacing"] not in CHECKPOINT_SPACINGS:
        raise ValueError(f"Checkpoint spacing must be one of {CHECKPOINT_SPACINGS}.")
    if config["short_escaper_threshold"] < 0:
        raise ValueError("short_escaper_threshold cannot be negative.")

    # Below N consecutive fresh cells a state need not repeat, so the long
    # escaper would no longer be a proof.
    if config["long_escaper_threshold"] < config["states"]:
        raise ValueError("long_escaper_threshold must be at least the number of states.")
    if config["translated_cycler_history"] < 2:
        raise ValueError("translated_cycler_history must keep at least two records.")
    if not 0 <= config["partition_depth"] <= config["states"] * config["symbols"]:
        raise ValueError("partition_depth must lie between 0 and states * symbols.")


def build_config(overrides=None, **kwargs):
    """Merge overrides over the defaults and validate, without touching disk."""
    config = DEFAULT_CONFIG.copy()
    if overrides:
        config.update(overrides)
    config.update(kwargs)
    validate_config(config)
    return config


def load_config(path="config/runtime_config.json", verbose=True):
    if not os.path.exists(path):
        raise FileNotFoundError(f"Configuration file not found at: {path}")

    with open(path, "r", encoding="utf-8") as f:
        user_config = json.load(f)

    # Merge defaults with overrides
    config = build_config(user_config)

    # Validate output directory
    os.makedirs(config["output_directory"], exist_ok=True)

    if verbose:
        console.print(f"[{datetime.now()}] Loaded config:", markup=False)
        for key, value in config.items():
            console.print(f"  {key}: {value}", markup=False)

    return config


def save_config(config, path="config/runtime_config.json"):
    validate_config(config)
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=4)
