"""
Minimal client for the Wag! dog-walking backend.

Reads an owner's past walks and the walker profiles, reviews and walk types
behind them from the service's Firebase database. Authentication is by
owner token, obtained once from email/password and reused afterwards.
"""

from wagapi.client import WagClient, owner_id_from_token, request_token
from wagapi.errors import AuthError, FetchError, WagAPIError
from wagapi.models import Charge, Walk, WalkID, Walker, WalkerID

__all__ = [
    "AuthError",
    "Charge",
    "FetchError",
    "WagAPIError",
    "WagClient",
    "Walk",
    "WalkID",
    "Walker",
    "WalkerID",
    "owner_id_from_token",
    "request_token",
]
