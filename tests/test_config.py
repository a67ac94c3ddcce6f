import pytest
from pydantic import ValidationError

from event_dispatcher import Dispatcher
from event_dispatcher.config import DispatcherSettings, get_settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("DISPATCHER_NAME_PREFIX", raising=False)
    monkeypatch.delenv("DISPATCHER_AUTO_PREFIX", raising=False)
    settings = DispatcherSettings(_env_file=None)
    assert settings.name_prefix == ""
    assert settings.auto_prefix is False
    assert settings.log_format == "plain"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("DISPATCHER_NAME_PREFIX", "  chat ")
    monkeypatch.setenv("DISPATCHER_AUTO_PREFIX", "true")
    monkeypatch.setenv("DISPATCHER_LOG_LEVEL", "debug")
    settings = DispatcherSettings(_env_file=None)
    assert settings.name_prefix == "chat"
    assert settings.auto_prefix is True
    assert settings.log_level == "DEBUG"


def test_invalid_values_rejected(monkeypatch):
    monkeypatch.setenv("DISPATCHER_AUTO_PREFIX", "sometimes")
    with pytest.raises(ValidationError):
        DispatcherSettings(_env_file=None)

    monkeypatch.delenv("DISPATCHER_AUTO_PREFIX")
    with pytest.raises(ValidationError):
        DispatcherSettings(_env_file=None, log_format="xml")


def test_from_settings_uses_cached_settings(monkeypatch):
    monkeypatch.setenv("DISPATCHER_NAME_PREFIX", "ns")
    monkeypatch.setenv("DISPATCHER_AUTO_PREFIX", "1")
    get_settings.cache_clear()
    try:
        dispatcher = Dispatcher.from_settings()
        calls: list[int] = []
        dispatcher.register("x", calls.append).emit("x", 42)
        assert calls == [42]
        assert dispatcher.event_names() == ("ns:x",)
    finally:
        get_settings.cache_clear()
