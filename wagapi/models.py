from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

WalkID = int
WalkerID = int


def _text(payload: Dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"field {key!r} must be a string, got {type(value).__name__}")
    return value


def _integer(payload: Dict[str, Any], key: str) -> int:
    value = payload.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise TypeError(f"field {key!r} must be an integer, got {type(value).__name__}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"field {key!r} must be an integer, got {value!r}")
        return int(value)
    return int(value)


def _number(payload: Dict[str, Any], key: str) -> float:
    value = payload.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise TypeError(f"field {key!r} must be a number, got {type(value).__name__}")
    return float(value)


def _mapping(value: Any, what: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TypeError(f"{what} must be an object, got {type(value).__name__}")
    return value


def parse_walk_id(raw: str) -> WalkID:
    """
    Parse a walk identifier as sent by the backend (the text key of the
    past-walks mapping).

    Raises:
        ValueError: if the key is not a base-10 integer
    """
    text = str(raw).strip()
    if not text or not text.lstrip("-").isdigit():
        raise ValueError(f"walk id {raw!r} is not an integer")
    return int(text)


@dataclass(frozen=True)
class Charge:
    description: str
    amount: float

    @classmethod
    def from_payload(cls, payload: Any) -> "Charge":
        data = _mapping(payload, "charge")
        return cls(description=_text(data, "description"), amount=_number(data, "amount"))


@dataclass(frozen=True)
class Walk:
    """
    One completed walk as reported by the backend.

    Flags are kept as 0/1 integers. The four timestamps are raw strings
    from the backend and are never parsed:
      walk_start      scheduled start
      walk_started    actual start
      walk_completed  actual end
      walk_end        scheduled end
    """
    date: str = ""
    walker_id: WalkerID = 0
    is_door_locked: int = 0
    is_pee: int = 0
    is_poo: int = 0
    distance: float = 0.0
    payout: float = 0.0
    tip: float = 0.0
    total: float = 0.0
    note: str = ""
    photo_url: str = ""
    walk_map: str = ""
    charges: Tuple[Charge, ...] = ()
    walk_start: str = ""
    walk_started: str = ""
    walk_completed: str = ""
    walk_end: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "Walk":
        data = _mapping(payload, "walk")
        invoice = _mapping(data.get("invoice"), "invoice")
        raw_charges = invoice.get("charges") or []
        if not isinstance(raw_charges, list):
            raise TypeError("invoice.charges must be a list")
        return cls(
            date=_text(data, "date"),
            walker_id=_integer(data, "walker_id"),
            is_door_locked=_integer(data, "is_door_locked"),
            is_pee=_integer(data, "is_pee"),
            is_poo=_integer(data, "is_poo"),
            distance=_number(data, "distance"),
            payout=_number(data, "payout"),
            tip=_number(data, "tip"),
            total=_number(data, "total"),
            note=_text(data, "note"),
            photo_url=_text(data, "photo_url"),
            walk_map=_text(data, "walk_map"),
            charges=tuple(Charge.from_payload(c) for c in raw_charges),
            walk_start=_text(data, "walk_start"),
            walk_started=_text(data, "walk_started"),
            walk_completed=_text(data, "walk_completed"),
            walk_end=_text(data, "walk_end"),
        )


@dataclass(frozen=True)
class Walker:
    """Public walker profile. An all-zero profile stands in for a missing one."""
    id: WalkerID = 0
    first_name: str = ""
    thumb: str = ""
    walk_completed_count: int = 0
    rating: float = 0.0
    bio: str = ""
    gender: str = ""
    picture: str = ""
    video: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    current_latitude: float = 0.0
    current_longitude: float = 0.0

    @classmethod
    def empty(cls, walker_id: WalkerID = 0) -> "Walker":
        return cls(id=walker_id)

    @classmethod
    def from_payload(cls, payload: Any) -> "Walker":
        data = _mapping(payload, "walker")
        return cls(
            id=_integer(data, "id"),
            first_name=_text(data, "first_name"),
            thumb=_text(data, "thumb"),
            walk_completed_count=_integer(data, "walk_completed_count"),
            rating=_number(data, "rating"),
            bio=_text(data, "bio"),
            gender=_text(data, "gender"),
            picture=_text(data, "picture"),
            video=_text(data, "video"),
            latitude=_number(data, "latitude"),
            longitude=_number(data, "longitude"),
            current_latitude=_number(data, "current_latitude"),
            current_longitude=_number(data, "current_longitude"),
        )


@dataclass(frozen=True)
class WalkType:
    id: int
    name: str
    description: str
    description_short: str
    length: int
    price: float
    additional_dog_price: int
    cancel_price: int

    @classmethod
    def from_payload(cls, payload: Any) -> "WalkType":
        data = _mapping(payload, "walk type")
        return cls(
            id=_integer(data, "id"),
            name=_text(data, "name"),
            description=_text(data, "description"),
            description_short=_text(data, "description_short"),
            length=_integer(data, "length"),
            price=_number(data, "price"),
            additional_dog_price=_integer(data, "additional_dog_price"),
            cancel_price=_integer(data, "cancel_price"),
        )


@dataclass(frozen=True)
class NearbyWalker:
    id: str
    lat: float
    lng: float


@dataclass(frozen=True)
class NearbyWalkers:
    expires: int = 0
    lat: float = 0.0
    lng: float = 0.0
    walkers: Tuple[NearbyWalker, ...] = ()

    @classmethod
    def from_payload(cls, payload: Any) -> "NearbyWalkers":
        data = _mapping(payload, "nearby walkers")
        walkers: List[NearbyWalker] = []
        for item in data.get("walkers") or []:
            w = _mapping(item, "nearby walker")
            walkers.append(NearbyWalker(id=_text(w, "id"), lat=_number(w, "lat"), lng=_number(w, "lng")))
        return cls(
            expires=_integer(data, "expires"),
            lat=_number(data, "lat"),
            lng=_number(data, "lng"),
            walkers=tuple(walkers),
        )


@dataclass(frozen=True)
class ReviewedDog:
    id: str = ""
    name: str = ""
    image_url: str = ""


@dataclass(frozen=True)
class Review:
    """
    Owner review of a walker. The backend sends every field as a string,
    including the numeric ones, so they are kept that way.
    """
    id: str
    walk_id: str
    walker_id: str
    dog_id: str
    rating: str
    comment: str
    created_at: str
    updated_at: str
    is_anonymous: str = ""
    preferred_walker: str = ""
    blocked_walker: str = ""
    reason_for_bad_review: str = ""
    dog: ReviewedDog = field(default_factory=ReviewedDog)

    @classmethod
    def from_payload(cls, payload: Any) -> "Review":
        data = _mapping(payload, "review")
        dog = _mapping(data.get("dog"), "review dog")
        return cls(
            id=_text(data, "id"),
            walk_id=_text(data, "walk_id"),
            walker_id=_text(data, "walker_id"),
            dog_id=_text(data, "dog_id"),
            rating=_text(data, "rating"),
            comment=_text(data, "comment"),
            created_at=_text(data, "created_at"),
            updated_at=_text(data, "updated_at"),
            is_anonymous=_text(data, "is_anonymous"),
            preferred_walker=_text(data, "preferred_walker"),
            blocked_walker=_text(data, "blocked_walker"),
            reason_for_bad_review=_text(data, "reason_for_bad_review"),
            dog=ReviewedDog(
                id=_text(dog, "id"),
                name=_text(dog, "name"),
                image_url=_text(dog, "image_url"),
            ),
        )


def parse_past_walks(payload: Any) -> Dict[WalkID, Walk]:
    """
    Parse the past-walks mapping, keyed by the backend's text walk ids.

    Raises:
        ValueError: if a key is not an integer, or two keys ("7", "007")
            name the same walk
    """
    data = _mapping(payload, "past walks")
    walks: Dict[WalkID, Walk] = {}
    for key, value in data.items():
        walk_id = parse_walk_id(key)
        if walk_id in walks:
            raise ValueError(f"walk id {key!r} duplicates walk {walk_id}")
        walks[walk_id] = Walk.from_payload(value)
    return walks


def parse_list(payload: Any, what: str) -> List[Any]:
    """
    Firebase returns arrays either as JSON lists or, when sparse, as objects
    keyed by index. Null entries are dropped.
    """
    if payload is None:
        return []
    if isinstance(payload, list):
        return [item for item in payload if item is not None]
    if isinstance(payload, dict):
        return [payload[k] for k in sorted(payload, key=_index_key) if payload[k] is not None]
    raise TypeError(f"{what} must be a list, got {type(payload).__name__}")


def _index_key(key: str) -> Tuple[int, Optional[int], str]:
    try:
        return (0, int(key), key)
    except ValueError:
        return (1, None, key)
