import pytest
from pydantic import ValidationError

from relaybot.config import Settings, is_admin
from relaybot.database import to_async_url


def test_settings_read_expected_env(monkeypatch) -> None:
    monkeypatch.setenv("BOT_TOKEN", "123:abc")
    monkeypatch.setenv("OVERSIGHT_CHAT_ID", "-1009876543210")
    monkeypatch.setenv("ADMIN_IDS", "11, 22,33")
    monkeypatch.setenv("GENDER_OPTIONS", "Male,Female,Other")
    monkeypatch.setenv("STATE_BACKEND", "memory")
    monkeypatch.setenv("PROTECT_CONTENT", "false")

    settings = Settings(_env_file=None)

    assert settings.bot_token == "123:abc"
    assert settings.oversight_chat_id == -1009876543210
    assert settings.admin_ids == [11, 22, 33]
    assert settings.gender_options == ["Male", "Female", "Other"]
    assert settings.state_backend == "memory"
    assert settings.protect_content is False


def test_settings_apply_defaults(monkeypatch) -> None:
    for name in ("ADMIN_IDS", "STATE_BACKEND", "DATABASE_URL", "STATE_KEY_PREFIX", "LOG_LEVEL", "GENDER_OPTIONS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None, bot_token="t", oversight_chat_id="@oversight")

    assert settings.oversight_chat_id == "@oversight"
    assert settings.admin_ids == []
    assert settings.state_backend == "redis"
    assert settings.state_key_prefix == "pairing"
    assert settings.database_url == "sqlite+aiosqlite:///./relaybot.db"
    assert settings.gender_options == ["male", "female"]
    assert settings.protect_content is True


def test_settings_reject_unknown_state_backend() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, bot_token="t", oversight_chat_id="@c", state_backend="etcd")


def test_settings_reject_unknown_log_level() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, bot_token="t", oversight_chat_id="@c", log_level="LOUD")


def test_is_admin_uses_given_settings(settings) -> None:
    assert is_admin(1, settings)
    assert not is_admin(3, settings)


def test_to_async_url_picks_async_drivers() -> None:
    assert to_async_url("postgresql://u:p@db/relay") == "postgresql+asyncpg://u:p@db/relay"
    assert to_async_url("sqlite:///./relaybot.db") == "sqlite+aiosqlite:///./relaybot.db"
    assert to_async_url("sqlite+aiosqlite:///x.db") == "sqlite+aiosqlite:///x.db"
