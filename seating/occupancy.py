from typing import AbstractSet, Dict, Mapping, Optional, Set

from .seatmap import SeatMap

NONE_RESERVED: AbstractSet[str] = frozenset()


class OccupancyTracker:
    """
    Seats already bound to passengers on one flight.

    Built fresh for every operation from the committed assignment rows.
    The ``excluding`` argument on lookups is a caller-owned reservation set,
    used by a batch to keep its own pending picks apart before they are
    written.
    """

    def __init__(self, seat_map: SeatMap, occupants: Mapping[str, int]):
        self.seat_map = seat_map
        self._occupants: Dict[str, int] = dict(occupants)

    def occupied(self, cabin_class: str) -> Set[str]:
        return {s for s in self._occupants if self.seat_map.cabin_of(s) == cabin_class}

    def is_occupied(self, seat_id: str) -> bool:
        return seat_id in self._occupants

    def occupant(self, seat_id: str) -> Optional[int]:
        return self._occupants.get(seat_id)

    def is_free(self, seat_id: str, excluding: AbstractSet[str] = NONE_RESERVED) -> bool:
        return seat_id not in self._occupants and seat_id not in excluding

    def next_free(self, cabin_class: str, excluding: AbstractSet[str] = NONE_RESERVED) -> Optional[str]:
        # None means the cabin is full
        if not self.seat_map.has_cabin(cabin_class):
            return None
        for seat in self.seat_map.seats(cabin_class):
            if self.is_free(seat, excluding):
                return seat
        return None

    def free_run(self, cabin_class: str, size: int, excluding: AbstractSet[str] = NONE_RESERVED) -> Optional[str]:
        """First seat starting ``size`` consecutive free seats in a single row."""
        if not self.seat_map.has_cabin(cabin_class):
            return None
        size = min(size, self.seat_map.layouts[cabin_class].seats_per_row)
        run_start, run_len = None, 0
        for seat in self.seat_map.seats(cabin_class):
            if self.seat_map.position(seat).column == 0:
                run_start, run_len = None, 0
            if not self.is_free(seat, excluding):
                run_start, run_len = None, 0
                continue
            if run_start is None:
                run_start = seat
            run_len += 1
            if run_len >= size:
                return run_start
        return None

    def closest_free_in_row(self, seat_id: str, excluding: AbstractSet[str] = NONE_RESERVED) -> Optional[str]:
        """Free seat in the same row as ``seat_id`` nearest to its column, lower column on ties."""
        column = self.seat_map.position(seat_id).column
        candidates = [
            s for s in self.seat_map.row_seats(seat_id)
            if s != seat_id and self.is_free(s, excluding)
        ]
        if not candidates:
            return None
        return min(
            candidates,
            key=lambda s: (abs(self.seat_map.position(s).column - column), self.seat_map.position(s).column),
        )
