import pytest

from busybeaver.config.config_loader import build_config

BB2 = "1RB1LB_1LA1RZ"
BB3 = "1RB1RZ_1LB0RC_1LC1LA"


@pytest.fixture
def make_config(tmp_path):
    """Validated config writing every artefact under tmp_path."""

    def _make(**overrides):
        settings = {
            "show_progress": False,
            "output_directory": str(tmp_path / "logs"),
            "database_path": str(tmp_path / "results" / "busy_beaver.sqlite3"),
            "champion_file": str(tmp_path / "results" / "champions.json"),
            "holdouts_file": str(tmp_path / "pools" / "holdouts.jsonl"),
        }
        settings.update(overrides)
        return build_config(settings)

    return _make
