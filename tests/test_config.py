from __future__ import annotations

from pathlib import Path

import pytest

from userapi.config import DEFAULT_PORT, Settings
from userapi.store import ConfigError


def test_defaults_when_environment_is_empty() -> None:
    settings = Settings.from_env({})

    assert settings.database_url is None
    assert settings.port == DEFAULT_PORT == 8080
    assert settings.host == "0.0.0.0"
    assert settings.store == "database"
    assert settings.static_dir == Path("public")
    assert settings.log_level == "INFO"


def test_values_are_read_from_environment() -> None:
    settings = Settings.from_env(
        {
            "DATABASE_URL": " sqlite:///users.db ",
            "PORT": "9000",
            "HOST": "127.0.0.1",
            "USER_STORE": "Memory",
            "STATIC_DIR": "/srv/www",
            "LOG_LEVEL": "debug",
        }
    )

    assert settings.database_url == "sqlite:///users.db"
    assert settings.port == 9000
    assert settings.host == "127.0.0.1"
    assert settings.store == "memory"
    assert settings.static_dir == Path("/srv/www")
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("env", [{"PORT": "http"}, {"PORT": "0"}, {"PORT": "70000"}, {"USER_STORE": "redis"}])
def test_invalid_values_raise_config_error(env) -> None:
    with pytest.raises(ConfigError):
        Settings.from_env(env)


def test_require_database_url() -> None:
    with pytest.raises(ConfigError):
        Settings.from_env({"DATABASE_URL": "  "}).require_database_url()
    assert Settings(database_url="users.db").require_database_url() == "users.db"


def test_dotenv_file_is_loaded(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text("DATABASE_URL=sqlite:///from-dotenv.db\nPORT=8181\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    # setenv first so that teardown also removes the values load_dotenv writes
    for name in ("DATABASE_URL", "PORT"):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)

    settings = Settings.from_env()

    assert settings.database_url == "sqlite:///from-dotenv.db"
    assert settings.port == 8181
