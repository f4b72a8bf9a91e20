from __future__ import annotations

import os
from dataclasses import dataclass

from wagapi.client import DEFAULT_FIREBASE_URL, DEFAULT_LOGIN_URL

DEFAULT_SETTINGS_PATH = "~/.dogreport.sqlite"


@dataclass
class DogReportConfig:
    settings_path: str
    firebase_url: str
    login_url: str
    user_agent: str
    timeout_s: float


def _env_float(name: str, default: str) -> float:
    raw = os.environ.get(name, default).strip()
    try:
        return float(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name}: {raw!r} is not a number") from e


def load_config_from_env() -> DogReportConfig:
    timeout_s = _env_float("DOGREPORT_TIMEOUT_S", "20")
    if timeout_s <= 0:
        raise RuntimeError("DOGREPORT_TIMEOUT_S must be > 0")

    return DogReportConfig(
        settings_path=os.path.expanduser(
            os.environ.get("DOGREPORT_SETTINGS_PATH", "").strip() or DEFAULT_SETTINGS_PATH
        ),
        firebase_url=os.environ.get("DOGREPORT_FIREBASE_URL", "").strip() or DEFAULT_FIREBASE_URL,
        login_url=os.environ.get("DOGREPORT_LOGIN_URL", "").strip() or DEFAULT_LOGIN_URL,
        user_agent=os.environ.get("DOGREPORT_USER_AGENT", "dogreport/0.1"),
        timeout_s=timeout_s,
    )
