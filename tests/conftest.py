import pytest
from fastapi.testclient import TestClient

import config
from db import database


def _write_test_config(config_path, extra=""):
    config_path.write_text(
        "\n".join(
            [
                "[tree]",
                "decay_per_day = 10",
                "",
                "[sun_drops]",
                "daily_cap = 50",
                "",
                "[logging]",
                "level = \"WARNING\"",
                extra,
            ]
        ),
        encoding="utf-8",
    )


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Point config and database at a temporary ~/.lingofriends."""
    config_dir = tmp_path / ".lingofriends"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    _write_test_config(config_path)
    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    monkeypatch.setattr(database, "DB_PATH", config_dir / "lingofriends.db")
    for env_name in config.ENV_OVERRIDES.values():
        monkeypatch.delenv(env_name, raising=False)
    return config_dir


@pytest.fixture
def conn(config_dir):
    database.init_db()
    with database.get_conn() as connection:
        yield connection


@pytest.fixture
def client(config_dir):
    from main import app

    with TestClient(app) as test_client:
        yield test_client
