import pytest
from pydantic import ValidationError

from buzzer.settings import Settings, get_settings
from buzzer.transport.ws import origin_allowed
from buzzer.transport.ws_manager import ConnRole
from buzzer.util.log_config import _serialize_enums, setup_logging


def test_defaults(monkeypatch):
    for name in ("APP_NAME", "PORT", "ENFORCE_HOST_ROLE", "WS_ALLOWED_ORIGINS", "NAME_MAX_LEN", "LOG_FORMAT"):
        monkeypatch.delenv(name, raising=False)
    s = get_settings()
    assert s.APP_NAME == "buzzer-server"
    assert s.PORT == 8000
    assert s.ENFORCE_HOST_ROLE is False
    assert s.WS_ALLOWED_ORIGINS == "*"
    assert s.NAME_MAX_LEN == 64
    assert s.LOG_FORMAT == "console"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PORT", "9001")
    monkeypatch.setenv("ENFORCE_HOST_ROLE", "yes")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("NAME_MAX_LEN", "12")
    s = get_settings()
    assert s.PORT == 9001
    assert s.ENFORCE_HOST_ROLE is True
    assert s.LOG_LEVEL == "DEBUG"
    assert s.NAME_MAX_LEN == 12


def test_bad_name_limit_rejected():
    with pytest.raises(ValidationError):
        Settings(NAME_MAX_LEN=0)


def test_origin_policy():
    assert origin_allowed(None, "http://a.test", False) is True
    assert origin_allowed("http://evil.test", "*", False) is True
    assert origin_allowed("http://a.test", "http://a.test, http://b.test", False) is True
    assert origin_allowed("http://evil.test", "http://a.test", False) is False
    assert origin_allowed("http://192.168.1.20:3000", "http://a.test", True) is True
    assert origin_allowed("http://192.168.1.20:3000", "http://a.test", False) is False


def test_setup_logging_rejects_bad_values():
    with pytest.raises(ValueError):
        setup_logging("LOUD", "console")
    with pytest.raises(ValueError):
        setup_logging("INFO", "xml")
    setup_logging("INFO", "json")


def test_log_processor_flattens_enums():
    event = {"event": "ws.send_failed", "role": ConnRole.PLAYER, "cid": "a"}
    assert _serialize_enums(None, "warning", event) == {"event": "ws.send_failed", "role": "player", "cid": "a"}
