from __future__ import annotations

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from jinja2 import Environment, FileSystemLoader

from wagapi.models import Walk, WalkID, Walker, WalkerID


@dataclass(frozen=True)
class WalkEntry:
    walk_id: WalkID
    walk: Walk
    walker: Walker


def _get_template_env() -> Environment:
    """Create Jinja2 environment with templates directory."""
    templates_dir = Path(__file__).parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _fixed(value: float, places: int = 2) -> str:
    """
    Fixed-point formatting of the stored binary value, correctly rounded
    (half-to-even on exact ties): 1.005 -> "1.00", 0.125 -> "0.12".
    """
    return format(value, f".{places}f")


def _miles(value: float) -> str:
    return f"{_fixed(value, 2)} miles"


def _rating(value: float) -> str:
    """
    Walker ratings are single precision on the backend, so the 32-bit value
    is what gets rounded: 4.8575 -> "4.858".
    """
    single = struct.unpack("<f", struct.pack("<f", value))[0]
    return _fixed(single, 3)


def order_walks(
    pending: Mapping[WalkID, Walk],
    walkers: Mapping[WalkerID, Walker],
) -> List[WalkEntry]:
    """Most recent walk first; a walker without a profile gets a blank one."""
    entries: List[WalkEntry] = []
    for walk_id in sorted(pending, reverse=True):
        walk = pending[walk_id]
        walker = walkers.get(walk.walker_id) or Walker.empty(walk.walker_id)
        entries.append(WalkEntry(walk_id=walk_id, walk=walk, walker=walker))
    return entries


def _prepare_context(
    pending: Mapping[WalkID, Walk],
    walkers: Mapping[WalkerID, Walker],
) -> Dict[str, Any]:
    return {
        "entries": order_walks(pending, walkers),
        "fixed": _fixed,
        "miles": _miles,
        "rating": _rating,
    }


def render_report(
    pending: Mapping[WalkID, Walk],
    walkers: Mapping[WalkerID, Walker],
) -> Optional[str]:
    """
    Render the HTML digest of unreported walks.

    Args:
        pending: walks to report, keyed by walk id
        walkers: profiles of the walkers referenced by those walks

    Returns:
        Complete HTML document, or None when there is nothing to report.
        None is distinct from an empty document: callers must write nothing.

    Failure modes:
        - Raises jinja2.TemplateError if a template is malformed
        - Raises if templates/report.html.j2 is missing
    """
    if not pending:
        return None
    env = _get_template_env()
    template = env.get_template("report.html.j2")
    return template.render(**_prepare_context(pending, walkers))
