from __future__ import annotations

import base64
import binascii
import json
import logging
import time
from dataclasses import replace
from typing import Any, Callable, Dict, List, TypeVar

import httpx

from wagapi.errors import AuthError, FetchError
from wagapi.models import (
    NearbyWalkers,
    Review,
    Walk,
    WalkID,
    Walker,
    WalkerID,
    WalkType,
    parse_list,
    parse_past_walks,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_FIREBASE_URL = "https://wag-app.firebaseio.com/"
DEFAULT_LOGIN_URL = "https://wag-middleman.herokuapp.com/login"

# Firebase REST paths, relative to the database root.
PAST_WALKS_PATH = "walks-past-by-owner/{owner_id}.json"
WALKER_PROFILE_PATH = "walkers-profiles/{walker_id}.json"
WALKER_REVIEWS_PATH = "walkers-reviews-by-walker/{walker_id}.json"
NEARBY_WALKERS_PATH = "walkers-nearby-owner/{owner_id}.json"
WALK_TYPES_PATH = "walk-types.json"
DOG_PATH = "dogs/{dog_id}.json"
OWNER_PATH = "owners/{owner_id}.json"


def build_url(base_url: str, path_template: str, params: Dict[str, Any]) -> str:
    path = path_template.format(**params)
    if not base_url.endswith("/"):
        base_url += "/"
    if path.startswith("/"):
        path = path[1:]
    return base_url + path


def owner_id_from_token(token: str) -> int:
    """
    Read the owner id out of the payload segment of a JWT.

    The signature is not verified; the backend does that. Only the
    "d.owner_id" claim is used.

    Raises:
        AuthError: if the token is not a JWT or carries no owner id
    """
    parts = (token or "").split(".")
    if len(parts) < 2 or not parts[1]:
        raise AuthError("Can't parse JWT: expected header.payload.signature")

    segment = parts[1].replace("+", "-").replace("/", "_")
    segment += "=" * (-len(segment) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(segment))
        owner_id = claims["d"]["owner_id"]
    except (binascii.Error, ValueError, KeyError, TypeError) as e:
        raise AuthError(f"Can't parse JWT payload: {type(e).__name__}") from e

    if isinstance(owner_id, bool) or not isinstance(owner_id, int):
        raise AuthError("JWT payload has no integer owner_id")
    return owner_id


def request_token(
    http: httpx.Client,
    username: str,
    password: str,
    login_url: str = DEFAULT_LOGIN_URL,
) -> str:
    """
    Exchange owner credentials for an API token.

    Raises:
        AuthError: on transport failure, an undecodable reply, a "fail"
            status, or a reply without a token
    """
    form = {"type": "owner", "email": username, "password": password}
    headers = {"Accept": "application/json, text/plain, */*"}
    try:
        resp = http.post(login_url, data=form, headers=headers)
        resp.raise_for_status()
        body = resp.json()
    except httpx.HTTPStatusError as e:
        raise AuthError(f"login failed: http_status:{e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise AuthError(f"login failed: network:{type(e).__name__}") from e
    except ValueError as e:
        raise AuthError(f"login failed: json_parse:{type(e).__name__}") from e

    if not isinstance(body, dict) or body.get("status") == "fail":
        raise AuthError(f"failed to acquire token for username {username!r}")
    data = body.get("data")
    if not isinstance(data, dict):
        raise AuthError(f"login for username {username!r} returned a malformed reply")
    token = data.get("token")
    if not token:
        raise AuthError(f"login for username {username!r} returned no token")
    return str(token)


class WagClient:
    """
    Read-only client for the walking service's Firebase database.

    The HTTP client is owned by the caller, which opens and closes it:

        with httpx.Client(timeout=20) as http:
            client = WagClient.with_token(http, token)
            walks = client.fetch_past_walks()
    """

    def __init__(self, http: httpx.Client, token: str, firebase_url: str = DEFAULT_FIREBASE_URL) -> None:
        self._http = http
        self.token = token
        self.owner_id = owner_id_from_token(token)
        self.firebase_url = firebase_url

    @classmethod
    def with_token(cls, http: httpx.Client, token: str, firebase_url: str = DEFAULT_FIREBASE_URL) -> "WagClient":
        return cls(http, token, firebase_url=firebase_url)

    @classmethod
    def with_password(
        cls,
        http: httpx.Client,
        username: str,
        password: str,
        login_url: str = DEFAULT_LOGIN_URL,
        firebase_url: str = DEFAULT_FIREBASE_URL,
    ) -> "WagClient":
        token = request_token(http, username, password, login_url=login_url)
        return cls(http, token, firebase_url=firebase_url)

    def query(self, endpoint_name: str, path_template: str, **params: Any) -> Any:
        """
        GET one Firebase location and return the decoded JSON (None when the
        location is empty).

        Raises:
            FetchError: on transport failure, non-2xx status or a body that
                is not JSON
        """
        url = build_url(self.firebase_url, path_template, params)
        t0 = time.monotonic()
        try:
            resp = self._http.get(url, params={"auth": self.token})
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise FetchError(f"{endpoint_name}: http_status:{e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"{endpoint_name}: network:{type(e).__name__}") from e
        except ValueError as e:
            raise FetchError(f"{endpoint_name}: json_parse:{type(e).__name__}") from e

        elapsed_ms = int((time.monotonic() - t0) * 1000)
        logger.debug("GET %s -> %s in %d ms", url, resp.status_code, elapsed_ms)
        return data

    def _parse(self, endpoint_name: str, parser: Callable[[Any], T], payload: Any) -> T:
        try:
            return parser(payload)
        except (TypeError, ValueError) as e:
            raise FetchError(f"{endpoint_name}: malformed payload: {e}") from e

    def fetch_past_walks(self) -> Dict[WalkID, Walk]:
        payload = self.query("past_walks", PAST_WALKS_PATH, owner_id=self.owner_id)
        walks = self._parse("past_walks", parse_past_walks, payload)
        logger.info("Fetched %d past walks for owner %s", len(walks), self.owner_id)
        return walks

    def fetch_walker(self, walker_id: WalkerID) -> Walker:
        """Fetch one walker profile; an empty location yields Walker.empty()."""
        payload = self.query("walker_profile", WALKER_PROFILE_PATH, walker_id=walker_id)
        if payload is None:
            logger.warning("Walker %s has no profile; rendering a blank one", walker_id)
            return Walker.empty(walker_id)
        walker = self._parse("walker_profile", Walker.from_payload, payload)
        if walker.id == 0:
            walker = replace(walker, id=walker_id)
        return walker

    def fetch_reviews(self, walker_id: WalkerID) -> List[Review]:
        payload = self.query("walker_reviews", WALKER_REVIEWS_PATH, walker_id=walker_id)
        return self._parse(
            "walker_reviews",
            lambda p: [Review.from_payload(item) for item in parse_list(p, "reviews")],
            payload,
        )

    def fetch_walk_types(self) -> List[WalkType]:
        payload = self.query("walk_types", WALK_TYPES_PATH)
        return self._parse(
            "walk_types",
            lambda p: [WalkType.from_payload(item) for item in parse_list(p, "walk types")],
            payload,
        )

    def fetch_nearby_walkers(self) -> NearbyWalkers:
        payload = self.query("nearby_walkers", NEARBY_WALKERS_PATH, owner_id=self.owner_id)
        return self._parse("nearby_walkers", NearbyWalkers.from_payload, payload)

    def fetch_dog(self, dog_id: str) -> Dict[str, Any]:
        return self._document("dog", self.query("dog", DOG_PATH, dog_id=dog_id))

    def fetch_owner(self) -> Dict[str, Any]:
        return self._document("owner", self.query("owner", OWNER_PATH, owner_id=self.owner_id))

    def _document(self, endpoint_name: str, payload: Any) -> Dict[str, Any]:
        if payload is None:
            return {}
        if not isinstance(payload, dict):
            raise FetchError(f"{endpoint_name}: malformed payload: expected an object")
        return payload
