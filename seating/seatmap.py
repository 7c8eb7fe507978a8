"""
Seat map resolution.

A flight's seating plan is loose JSON stored on its vehicle type. It is
validated here into typed ``CabinLayout`` objects and expanded into an
ordered, row-major sequence of seat identifiers per cabin class. Rows are
numbered continuously from the front cabin backwards, so "1A" is the first
seat of the frontmost cabin and every identifier is unique on the flight.
"""

import re
import string
from dataclasses import dataclass, field
from typing import Dict, Iterator, Mapping, Optional, Tuple

from pydantic import ValidationError

from .errors import InvalidConfigError, SeatValidationError
from .schemas import CabinLayout

# front-to-back
CABIN_ORDER = ("first", "business", "premium_economy", "economy")

CABIN_ALIASES = {
    "first_class": "first",
    "business_class": "business",
    "premium": "premium_economy",
    "economy_class": "economy",
}

SEAT_LETTERS = string.ascii_uppercase
SEAT_ID_RE = re.compile(r"^([1-9][0-9]*)([A-Z])$")


def normalize_cabin_name(name: str) -> str:
    key = "_".join(str(name).strip().lower().replace("-", " ").split())
    return CABIN_ALIASES.get(key, key)


def cabin_for_seat_type(type_name: Optional[str]) -> Optional[str]:
    """Map a seat type name such as "Economy" or "First Class" to a cabin class."""
    if not type_name:
        return None
    name = type_name.lower()
    if "premium" in name:
        return "premium_economy"
    for cabin in ("business", "first", "economy"):
        if cabin in name:
            return cabin
    return None


def normalize_seat_id(seat_id: str) -> str:
    return str(seat_id).strip().upper()


def parse_seat_id(seat_id: str) -> Tuple[int, str]:
    match = SEAT_ID_RE.match(normalize_seat_id(seat_id))
    if not match:
        raise SeatValidationError("malformed seat identifier", seat_number=seat_id)
    return int(match.group(1)), match.group(2)


@dataclass(frozen=True)
class SeatPosition:
    cabin_class: str
    row: int
    column: int
    index: int  # position within the cabin's sequence


@dataclass(frozen=True)
class SeatMap:
    layouts: Dict[str, CabinLayout]
    seats_by_cabin: Dict[str, Tuple[str, ...]]
    positions: Dict[str, SeatPosition] = field(repr=False)

    @property
    def cabins(self) -> Tuple[str, ...]:
        return tuple(self.seats_by_cabin)

    def has_cabin(self, cabin_class: Optional[str]) -> bool:
        return cabin_class in self.seats_by_cabin

    def seats(self, cabin_class: str) -> Tuple[str, ...]:
        try:
            return self.seats_by_cabin[cabin_class]
        except KeyError:
            raise SeatValidationError(
                "cabin class not configured on this flight", cabin_class=cabin_class
            ) from None

    def __contains__(self, seat_id: str) -> bool:
        return seat_id in self.positions

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        for cabin, seats in self.seats_by_cabin.items():
            for seat in seats:
                yield seat, cabin

    def __len__(self) -> int:
        return len(self.positions)

    def position(self, seat_id: str) -> SeatPosition:
        try:
            return self.positions[seat_id]
        except KeyError:
            raise SeatValidationError(
                "seat does not exist on this flight", seat_number=seat_id
            ) from None

    def cabin_of(self, seat_id: str) -> Optional[str]:
        pos = self.positions.get(seat_id)
        return pos.cabin_class if pos else None

    def row_of(self, seat_id: str) -> int:
        return self.position(seat_id).row

    def row_seats(self, seat_id: str) -> Tuple[str, ...]:
        """All seats sharing a row with ``seat_id``, in column order."""
        pos = self.position(seat_id)
        per_row = self.layouts[pos.cabin_class].seats_per_row
        start = pos.index - pos.column
        return self.seats_by_cabin[pos.cabin_class][start:start + per_row]

    def next_in_row(self, seat_id: str) -> Optional[str]:
        pos = self.position(seat_id)
        if pos.column + 1 >= self.layouts[pos.cabin_class].seats_per_row:
            return None
        return self.seats_by_cabin[pos.cabin_class][pos.index + 1]


def parse_seating_plan(plan) -> Dict[str, CabinLayout]:
    """Validate a raw seating plan into layouts keyed by cabin class, front cabin first."""
    if not isinstance(plan, Mapping) or not plan:
        raise InvalidConfigError("seating plan must be a non-empty mapping of cabin classes")

    layouts = {}
    for name, raw in plan.items():
        cabin = normalize_cabin_name(name)
        if cabin not in CABIN_ORDER:
            raise InvalidConfigError("unknown cabin class", cabin_class=name)
        if cabin in layouts:
            raise InvalidConfigError("cabin class listed twice", cabin_class=name)
        if isinstance(raw, CabinLayout):
            layouts[cabin] = raw
            continue
        try:
            layouts[cabin] = CabinLayout.model_validate(raw)
        except ValidationError as e:
            raise InvalidConfigError(
                "invalid cabin layout",
                cabin_class=name,
                errors=[err["msg"] for err in e.errors()],
            ) from e

    return {cabin: layouts[cabin] for cabin in CABIN_ORDER if cabin in layouts}


def resolve_seat_map(plan) -> SeatMap:
    layouts = parse_seating_plan(plan)

    seats_by_cabin = {}
    positions = {}
    row = 1
    for cabin, layout in layouts.items():
        seats = []
        for _ in range(layout.rows):
            for col in range(layout.seats_per_row):
                seat = f"{row}{SEAT_LETTERS[col]}"
                positions[seat] = SeatPosition(cabin, row, col, len(seats))
                seats.append(seat)
            row += 1
        seats_by_cabin[cabin] = tuple(seats)

    return SeatMap(layouts=layouts, seats_by_cabin=seats_by_cabin, positions=positions)
