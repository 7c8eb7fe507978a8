"""Auto-assign batch planning."""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .grouping import ProcessingItem
from .occupancy import OccupancyTracker
from .seatmap import SeatMap

logger = logging.getLogger(__name__)


class UnassignedReason(str, Enum):
    NO_SEATS_AVAILABLE = "NO_SEATS_AVAILABLE"
    UNKNOWN_CABIN_CLASS = "UNKNOWN_CABIN_CLASS"


@dataclass
class BatchPlan:
    seats: Dict[int, str] = field(default_factory=dict)
    unassigned: List[Tuple[int, str]] = field(default_factory=list)

    @property
    def assigned_count(self) -> int:
        return len(self.seats)


def plan_batch(
    seat_map: SeatMap,
    tracker: OccupancyTracker,
    order: Sequence[ProcessingItem],
    seated: Mapping[int, str],
) -> BatchPlan:
    """
    Pick a seat for every passenger in ``order``, in that order.

    Args:
        seat_map: resolved seat map of the flight
        tracker: committed occupancy of the flight
        order: processing order from ``order_passengers``
        seated: passenger id -> seat for passengers already seated on the flight

    Returns:
        BatchPlan with the picked seats and the passengers that could not be
        seated. Nothing is written; picks are kept apart through a per-cabin
        reservation set.
    """
    plan = BatchPlan()
    reserved: Dict[str, Set[str]] = defaultdict(set)
    positions = dict(seated)
    group_last: Dict[Tuple[int, str], str] = {}

    cabin_of = {item.passenger_id: item.cabin_class for item in order}
    infant_counts = Counter(
        item.parent_id for item in order
        if item.parent_id in cabin_of and cabin_of[item.parent_id] == item.cabin_class
    )
    group_sizes = Counter(
        (item.group_id, item.cabin_class) for item in order if item.group_id is not None
    )

    for item in order:
        pid, cabin, gid = item.passenger_id, item.cabin_class, item.group_id

        if not seat_map.has_cabin(cabin):
            plan.unassigned.append((pid, UnassignedReason.UNKNOWN_CABIN_CLASS.value))
            logger.debug(f"Passenger {pid}: cabin {cabin!r} not on this flight")
            continue

        taken = reserved[cabin]
        seat: Optional[str] = None

        # infant next to an already seated parent
        parent_seat = positions.get(item.parent_id) if item.parent_id is not None else None
        if parent_seat is not None and seat_map.cabin_of(parent_seat) == cabin:
            seat = tracker.closest_free_in_row(parent_seat, taken)

        # continue the group's run along the row, per cabin
        if seat is None and gid is not None and (gid, cabin) in group_last:
            following = seat_map.next_in_row(group_last[(gid, cabin)])
            if following is not None and tracker.is_free(following, taken):
                seat = following

        # leave room for infants or the rest of the group behind this passenger
        if seat is None:
            want = 1 + infant_counts.get(pid, 0)
            if gid is not None and (gid, cabin) not in group_last:
                want = max(want, group_sizes[(gid, cabin)])
            if want > 1:
                seat = tracker.free_run(cabin, want, taken)

        if seat is None:
            seat = tracker.next_free(cabin, taken)

        if seat is None:
            plan.unassigned.append((pid, UnassignedReason.NO_SEATS_AVAILABLE.value))
            logger.debug(f"Passenger {pid}: no free seat in {cabin}")
            continue

        taken.add(seat)
        plan.seats[pid] = seat
        positions[pid] = seat
        if gid is not None:
            group_last[(gid, cabin)] = seat
        logger.debug(f"Passenger {pid}: {seat} ({cabin})")

    return plan
