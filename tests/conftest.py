"""Pytest configuration and shared fixtures."""
import base64
import json
import os
import sys

import pytest

# Ensure project root on sys.path for absolute imports
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from wagapi.errors import FetchError  # noqa: E402
from wagapi.models import Walker  # noqa: E402


def _segment(obj):
    return base64.urlsafe_b64encode(json.dumps(obj).encode("utf-8")).rstrip(b"=").decode("ascii")


@pytest.fixture()
def make_token():
    """Build an unsigned JWT carrying the given owner id."""
    def _make(owner_id=42):
        header = _segment({"alg": "HS256", "typ": "JWT"})
        payload = _segment({"v": 0, "d": {"token": "t", "owner_id": owner_id, "uid": "u-1"}, "iat": 1500000000})
        return f"{header}.{payload}.signature"
    return _make


@pytest.fixture()
def walk_payload():
    """Backend JSON for one walk; keyword arguments override fields."""
    def _make(**overrides):
        data = {
            "date": "Mon, May 6",
            "walker_id": 7,
            "is_door_locked": 1,
            "is_pee": 1,
            "is_poo": 0,
            "distance": 1.2,
            "payout": 15.0,
            "tip": 3.0,
            "total": 20.0,
            "note": "Rex was great",
            "photo_url": "https://img.test/photo.jpg",
            "walk_map": "https://img.test/map.png",
            "invoice": {"charges": [{"description": "30 min walk", "amount": 20.0}]},
            "walk_start": "2024-05-06 10:00:00",
            "walk_started": "2024-05-06 10:02:13",
            "walk_completed": "2024-05-06 10:33:01",
            "walk_end": "2024-05-06 10:30:00",
        }
        data.update(overrides)
        return data
    return _make


class FakeSource:
    """Stands in for WagClient in pipeline tests."""

    def __init__(self, walks, walkers=None, failing_walkers=()):
        self.walks = dict(walks)
        self.walkers = dict(walkers or {})
        self.failing_walkers = set(failing_walkers)
        self.walker_calls = []
        self.past_walk_calls = 0

    def fetch_past_walks(self):
        self.past_walk_calls += 1
        return dict(self.walks)

    def fetch_walker(self, walker_id):
        self.walker_calls.append(walker_id)
        if walker_id in self.failing_walkers:
            raise FetchError("walker_profile: http_status:500")
        return self.walkers.get(walker_id, Walker.empty(walker_id))


@pytest.fixture()
def fake_source():
    return FakeSource
