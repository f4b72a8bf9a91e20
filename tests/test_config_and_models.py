import os

import pytest

from dogreport.config import load_config_from_env
from wagapi.models import Walk, Walker, parse_list, parse_walk_id


def test_config_defaults(monkeypatch):
    for name in ("DOGREPORT_SETTINGS_PATH", "DOGREPORT_FIREBASE_URL", "DOGREPORT_LOGIN_URL",
                 "DOGREPORT_USER_AGENT", "DOGREPORT_TIMEOUT_S"):
        monkeypatch.delenv(name, raising=False)

    cfg = load_config_from_env()
    assert cfg.settings_path == os.path.expanduser("~/.dogreport.sqlite")
    assert cfg.firebase_url == "https://wag-app.firebaseio.com/"
    assert cfg.timeout_s == 20.0


def test_config_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("DOGREPORT_SETTINGS_PATH", str(tmp_path / "s.sqlite"))
    monkeypatch.setenv("DOGREPORT_TIMEOUT_S", "2.5")
    cfg = load_config_from_env()
    assert cfg.settings_path == str(tmp_path / "s.sqlite")
    assert cfg.timeout_s == 2.5


@pytest.mark.parametrize("value", ["0", "-1", "fast"])
def test_config_rejects_bad_timeout(monkeypatch, value):
    monkeypatch.setenv("DOGREPORT_TIMEOUT_S", value)
    with pytest.raises(RuntimeError):
        load_config_from_env()


@pytest.mark.parametrize("raw,expected", [("100", 100), (" 20 ", 20), ("007", 7)])
def test_parse_walk_id(raw, expected):
    assert parse_walk_id(raw) == expected


@pytest.mark.parametrize("raw", ["", "abc", "1.5", "12a"])
def test_parse_walk_id_rejects_non_integers(raw):
    with pytest.raises(ValueError):
        parse_walk_id(raw)


def test_missing_fields_default_to_zero_values():
    assert Walk.from_payload({}) == Walk()
    assert Walker.from_payload(None) == Walker.empty()


def test_numeric_strings_are_accepted():
    walk = Walk.from_payload({"walker_id": "7", "distance": "1.5", "is_pee": 1.0})
    assert (walk.walker_id, walk.distance, walk.is_pee) == (7, 1.5, 1)


def test_parse_list_accepts_index_keyed_objects():
    assert parse_list({"10": "c", "2": "b", "0": "a", "1": None}, "items") == ["a", "b", "c"]
    assert parse_list(None, "items") == []
    with pytest.raises(TypeError):
        parse_list("nope", "items")
