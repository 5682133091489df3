import json

import pytest

from busybeaver.config.config_loader import DEFAULT_CONFIG, build_config, load_config, save_config


def test_defaults_are_valid():
    config = build_config()
    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG


def test_overrides_merge_over_defaults():
    config = build_config({"states": 3}, objective="score")
    assert config["states"] == 3
    assert config["objective"] == "score"
    assert config["symbols"] == DEFAULT_CONFIG["symbols"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"states": 0},
        {"symbols": 1},
        {"objective": "speed"},
        {"cycler_checkpoint_spacing": "random"},
        {"short_escaper_threshold": -1},
        {"states": 5, "long_escaper_threshold": 4},
        {"translated_cycler_history": 1},
        {"partition_depth": 5},
        {"step_budget": 0},
    ],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ValueError):
        build_config(overrides)


def test_wrong_types_are_rejected():
    with pytest.raises(TypeError):
        build_config(states="3")
    with pytest.raises(TypeError):
        build_config(use_gpu="yes")


def test_load_config(tmp_path):
    path = tmp_path / "runtime_config.json"
    path.write_text(json.dumps({"states": 3, "output_directory": str(tmp_path / "logs")}), encoding="utf-8")

    config = load_config(str(path), verbose=False)
    assert config["states"] == 3
    assert (tmp_path / "logs").is_dir()


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.json"))


def test_save_then_load(tmp_path):
    path = tmp_path / "config" / "runtime_config.json"
    config = build_config(states=3, output_directory=str(tmp_path / "logs"))
    save_config(config, str(path))
    assert load_config(str(path), verbose=True) == config
