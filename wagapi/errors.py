from __future__ import annotations


class WagAPIError(Exception):
    """Base class for failures talking to the walking service backend."""


class AuthError(WagAPIError):
    """Token acquisition or token decoding failed."""


class FetchError(WagAPIError):
    """
    A lookup failed: transport error, non-2xx status, undecodable body,
    or a payload that does not have the expected shape.
    """
