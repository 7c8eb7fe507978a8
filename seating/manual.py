import logging
from typing import Optional, Tuple

from .errors import SeatConflictError, SeatValidationError
from .occupancy import OccupancyTracker
from .seatmap import SeatMap, normalize_seat_id, parse_seat_id

logger = logging.getLogger(__name__)


def check_manual_request(
    seat_map: SeatMap,
    tracker: OccupancyTracker,
    passenger_id: int,
    cabin_class: Optional[str],
    seat_number: str,
) -> Tuple[str, bool]:
    """
    Validate an explicit seat request for one passenger.

    Returns the normalized seat identifier and whether the passenger already
    holds it. Raises SeatValidationError for seats that are malformed, not on
    the flight or in another cabin, and SeatConflictError when the seat
    belongs to someone else.
    """
    seat = normalize_seat_id(seat_number)
    parse_seat_id(seat)

    if seat not in seat_map:
        raise SeatValidationError("seat does not exist on this flight", seat_number=seat)
    if cabin_class is None:
        raise SeatValidationError(
            "passenger seat type does not map to a cabin class", passenger_id=passenger_id
        )
    seat_cabin = seat_map.cabin_of(seat)
    if seat_cabin != cabin_class:
        raise SeatValidationError(
            "seat is outside the passenger's cabin class",
            seat_number=seat,
            seat_cabin=seat_cabin,
            cabin_class=cabin_class,
        )

    occupant = tracker.occupant(seat)
    if occupant is not None and occupant != passenger_id:
        logger.warning(f"Seat {seat} requested for passenger {passenger_id} is held by {occupant}")
        raise SeatConflictError(
            "seat already occupied", seat_number=seat, passenger_id=passenger_id
        )
    return seat, occupant == passenger_id
