import argparse

import app
from busybeaver.config.config_loader import save_config


def cli_args(config_path, **overrides):
    args = dict(
        config=config_path,
        search=False,
        escalate=False,
        states=None,
        symbols=None,
        objective=None,
        cpu_cores=None,
        gpu=False,
    )
    args.update(overrides)
    return argparse.Namespace(**args)


def test_escalate_flag_without_holdouts(make_config, tmp_path, capsys, monkeypatch):
    config_path = str(tmp_path / "runtime_config.json")
    save_config(make_config(), config_path)

    def fail(*args, **kwargs):
        raise AssertionError("escalation should not start")

    monkeypatch.setattr(app, "escalate_holdouts", fail)
    app.cli_main(cli_args(config_path, escalate=True))

    assert "No holdouts found" in capsys.readouterr().out


def test_search_flag_logs_the_run_summary(make_config, tmp_path):
    config_path = str(tmp_path / "runtime_config.json")
    config = make_config()
    save_config(config, config_path)

    app.cli_main(cli_args(config_path, search=True))

    main_logs = list((tmp_path / "logs").glob("busybeaver_*.jsonl"))
    assert len(main_logs) == 1
    summary = main_logs[0].read_text(encoding="utf-8").splitlines()
    assert len(summary) == 1
    assert '"event": "search"' in summary[0]
    assert (tmp_path / "results" / "busy_beaver.sqlite3").exists()
