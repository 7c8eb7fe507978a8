"""
Processing order for an auto-assign batch.

Affiliated passengers are kept together, infants are placed right after
their parent, everyone else goes by ascending passenger id. The order only
decides who is seated first; it does not pick seats.
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingPassenger:
    passenger_id: int
    cabin_class: Optional[str]


@dataclass(frozen=True)
class ProcessingItem:
    passenger_id: int
    cabin_class: Optional[str]
    group_id: Optional[int] = None
    parent_id: Optional[int] = None


def build_affiliated_groups(links: Iterable[Tuple[int, int]]) -> Dict[int, FrozenSet[int]]:
    """
    Collapse pairwise affiliation links into groups.

    Each connected component becomes one group keyed by its lowest passenger id.
    """
    parent: Dict[int, int] = {}

    def find(x):
        parent.setdefault(x, x)
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    for a, b in links:
        ra, rb = find(a), find(b)
        if ra != rb:
            parent[max(ra, rb)] = min(ra, rb)

    members: Dict[int, set] = {}
    for pid in parent:
        members.setdefault(find(pid), set()).add(pid)
    return {min(m): frozenset(m) for m in members.values()}


def order_passengers(
    pending: Sequence[PendingPassenger],
    infant_parents: Mapping[int, int],
    groups: Mapping[int, Iterable[int]],
) -> List[ProcessingItem]:
    """
    Order unseated passengers for seating.

    Args:
        pending: unseated passengers on the flight
        infant_parents: infant passenger id -> parent passenger id
        groups: group id -> member passenger ids (may include seated members)

    Returns:
        One ProcessingItem per pending passenger. Group members come out
        consecutively in ascending id, a parent always precedes its infant,
        and blocks are interleaved by their lowest passenger id.
    """
    by_id = {p.passenger_id: p for p in pending}

    group_of: Dict[int, int] = {}
    for gid, members in groups.items():
        for pid in members:
            if pid in by_id:
                group_of[pid] = gid

    # infants whose parent is in this batch wait for the parent
    waiting: Dict[int, List[int]] = {}
    for infant, parent in infant_parents.items():
        if infant in by_id and parent in by_id and infant != parent:
            waiting.setdefault(parent, []).append(infant)
    deferred = {i for infants in waiting.values() for i in infants}

    blocks: Dict[int, List[int]] = {}
    for pid in sorted(by_id):
        key = group_of.get(pid, pid)
        blocks.setdefault(key, []).append(pid)
    ordered_blocks = sorted(blocks.values(), key=lambda b: b[0])

    result: List[ProcessingItem] = []
    emitted = set()

    def emit(pid):
        if pid in emitted:
            return
        emitted.add(pid)
        result.append(ProcessingItem(
            passenger_id=pid,
            cabin_class=by_id[pid].cabin_class,
            group_id=group_of.get(pid),
            parent_id=infant_parents.get(pid),
        ))
        for infant in sorted(waiting.get(pid, ())):
            emit(infant)

    for block in ordered_blocks:
        for pid in block:
            if pid in deferred:
                continue
            emit(pid)

    # infant links that loop back on themselves never release their members
    leftovers = sorted(set(by_id) - emitted)
    if leftovers:
        logger.warning(f"Circular infant links, ordering by id: {leftovers}")
        for pid in leftovers:
            emit(pid)

    return result
