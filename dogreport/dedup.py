from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Mapping

from wagapi.client import WagClient
from wagapi.models import Walk, WalkID, Walker, WalkerID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DedupResult:
    """
    Outcome of comparing the backend's walks with the reported set.

    Invariants:
      - pending.keys() == all_walks.keys() - previously reported
      - reported == previously reported | all_walks.keys()
      - needed_walker_ids == {walk.walker_id for walk in pending.values()}
    """
    pending: Dict[WalkID, Walk]
    reported: FrozenSet[WalkID]
    needed_walker_ids: FrozenSet[WalkerID] = field(default_factory=frozenset)

    @property
    def has_pending(self) -> bool:
        return bool(self.pending)


def filter_pending(all_walks: Mapping[WalkID, Walk], reported: Iterable[WalkID]) -> DedupResult:
    """
    Split the backend's walks into those still to report and mark them reported.

    Args:
        all_walks: every past walk known to the backend
        reported: walk ids surfaced by earlier runs

    Returns:
        DedupResult; the input set is not modified
    """
    updated = set(reported)
    pending: Dict[WalkID, Walk] = {}
    needed: set = set()

    for walk_id, walk in all_walks.items():
        if walk_id in updated:
            continue
        updated.add(walk_id)
        pending[walk_id] = walk
        needed.add(walk.walker_id)

    logger.info(
        "%d of %d walks are new (%d distinct walkers)",
        len(pending),
        len(all_walks),
        len(needed),
    )
    return DedupResult(pending=pending, reported=frozenset(updated), needed_walker_ids=frozenset(needed))


def resolve_walkers(client: WagClient, walker_ids: Iterable[WalkerID]) -> Dict[WalkerID, Walker]:
    """
    Fetch each walker profile exactly once, in ascending id order.

    A FetchError from the client propagates and ends the run. An empty
    profile comes back from the client as Walker.empty() and is kept.
    """
    walkers: Dict[WalkerID, Walker] = {}
    for walker_id in sorted(set(walker_ids)):
        walkers[walker_id] = client.fetch_walker(walker_id)
    return walkers
