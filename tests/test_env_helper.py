import logging

from huddle.utils.env_helper import env_bool, env_int, env_list, env_none_or_str
from huddle.utils.logging_config import setup_logging


def test_env_bool(monkeypatch):
    monkeypatch.setenv("FLAG", "Yes")
    assert env_bool("FLAG") is True
    monkeypatch.setenv("FLAG", "0")
    assert env_bool("FLAG", default=True) is False
    monkeypatch.delenv("FLAG")
    assert env_bool("FLAG", default=True) is True


def test_env_none_or_str(monkeypatch):
    monkeypatch.setenv("COOKIE_DOMAIN", "None")
    assert env_none_or_str("COOKIE_DOMAIN") is None
    monkeypatch.setenv("COOKIE_DOMAIN", "example.com")
    assert env_none_or_str("COOKIE_DOMAIN") == "example.com"


def test_env_int_falls_back_on_garbage(monkeypatch):
    monkeypatch.setenv("AGGREGATION_WORKERS", "lots")
    assert env_int("AGGREGATION_WORKERS", 8) == 8
    monkeypatch.setenv("AGGREGATION_WORKERS", "3")
    assert env_int("AGGREGATION_WORKERS", 8) == 3


def test_env_list(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "http://a, ,http://b")
    assert env_list("CORS_ORIGINS", []) == ["http://a", "http://b"]


def test_setup_logging_sets_root_level():
    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING
    setup_logging("INFO")
