"""Tests for seat map resolution."""

import pytest

from seating.errors import ErrorKind, InvalidConfigError, SeatValidationError
from seating.schemas import CabinLayout
from seating.seatmap import (
    cabin_for_seat_type,
    normalize_cabin_name,
    parse_seat_id,
    resolve_seat_map,
)


class TestResolveSeatMap:
    def test_row_major_order(self):
        seat_map = resolve_seat_map({"economy": {"rows": 2, "seatsPerRow": 3}})
        assert seat_map.seats("economy") == ("1A", "1B", "1C", "2A", "2B", "2C")

    def test_same_config_same_sequence(self):
        plan = {"Economy": {"rows": 4, "seats_per_row": 6}, "Business": {"rows": 2, "seats_per_row": 4}}
        assert resolve_seat_map(plan).seats_by_cabin == resolve_seat_map(dict(plan)).seats_by_cabin

    def test_rows_continue_across_cabins(self):
        seat_map = resolve_seat_map({
            "economy": {"rows": 2, "seats_per_row": 2},
            "business": {"rows": 1, "seats_per_row": 2},
        })
        assert seat_map.cabins == ("business", "economy")
        assert seat_map.seats("business") == ("1A", "1B")
        assert seat_map.seats("economy") == ("2A", "2B", "3A", "3B")
        assert len(seat_map) == 6

    def test_accepts_seed_style_plan(self):
        seat_map = resolve_seat_map({
            "economy": {"rows": 29, "seats_per_row": 6, "total": 174},
            "business": {"rows": 4, "seats_per_row": 6, "total": 15},
        })
        assert seat_map.seats("business")[-1] == "4F"
        assert seat_map.seats("economy")[0] == "5A"
        assert seat_map.seats("economy")[-1] == "33F"

    def test_accepts_parsed_layouts(self):
        seat_map = resolve_seat_map({"economy": CabinLayout(rows=1, seats_per_row=2)})
        assert seat_map.seats("economy") == ("1A", "1B")

    def test_seat_lookups(self):
        seat_map = resolve_seat_map({"business": {"rows": 1, "seats_per_row": 2},
                                     "economy": {"rows": 2, "seats_per_row": 3}})
        assert "2C" in seat_map
        assert "4A" not in seat_map
        assert seat_map.cabin_of("1B") == "business"
        assert seat_map.cabin_of("9Z") is None
        assert seat_map.row_of("3B") == 3
        assert seat_map.row_seats("3B") == ("3A", "3B", "3C")
        assert seat_map.next_in_row("2B") == "2C"
        assert seat_map.next_in_row("2C") is None

    def test_iteration_yields_cabins(self):
        seat_map = resolve_seat_map({"first": {"rows": 1, "seats_per_row": 1},
                                     "economy": {"rows": 1, "seats_per_row": 1}})
        assert list(seat_map) == [("1A", "first"), ("2A", "economy")]


class TestInvalidConfig:
    @pytest.mark.parametrize("layout", [
        {"rows": 0, "seats_per_row": 2},
        {"rows": 2, "seats_per_row": 0},
        {"rows": -1, "seats_per_row": 2},
        {"rows": 2, "seats_per_row": 27},
        {"rows": 2},
        "2x2",
    ])
    def test_bad_layout(self, layout):
        with pytest.raises(InvalidConfigError) as exc:
            resolve_seat_map({"economy": layout})
        assert exc.value.kind == ErrorKind.INVALID_CONFIG

    def test_unknown_cabin(self):
        with pytest.raises(InvalidConfigError) as exc:
            resolve_seat_map({"cargo": {"rows": 1, "seats_per_row": 1}})
        assert exc.value.context["cabin_class"] == "cargo"

    def test_duplicate_cabin(self):
        with pytest.raises(InvalidConfigError):
            resolve_seat_map({"Economy": {"rows": 1, "seats_per_row": 1},
                              "economy": {"rows": 1, "seats_per_row": 1}})

    @pytest.mark.parametrize("plan", [{}, None, [("economy", {"rows": 1, "seats_per_row": 1})]])
    def test_empty_or_not_a_mapping(self, plan):
        with pytest.raises(InvalidConfigError):
            resolve_seat_map(plan)

    def test_cabin_not_on_flight(self):
        seat_map = resolve_seat_map({"economy": {"rows": 1, "seats_per_row": 1}})
        assert not seat_map.has_cabin("business")
        with pytest.raises(SeatValidationError):
            seat_map.seats("business")


class TestNames:
    @pytest.mark.parametrize("name,expected", [
        ("Economy", "economy"),
        (" BUSINESS ", "business"),
        ("Premium Economy", "premium_economy"),
        ("premium-economy", "premium_economy"),
        ("First Class", "first"),
    ])
    def test_normalize_cabin_name(self, name, expected):
        assert normalize_cabin_name(name) == expected

    @pytest.mark.parametrize("type_name,expected", [
        ("Economy", "economy"),
        ("Business", "business"),
        ("First Class", "first"),
        ("Premium Economy", "premium_economy"),
        ("Standby", None),
        (None, None),
    ])
    def test_cabin_for_seat_type(self, type_name, expected):
        assert cabin_for_seat_type(type_name) == expected

    def test_parse_seat_id(self):
        assert parse_seat_id(" 12c ") == (12, "C")

    @pytest.mark.parametrize("seat", ["", "A1", "0A", "1", "1AA", "12-C"])
    def test_parse_seat_id_rejects(self, seat):
        with pytest.raises(SeatValidationError):
            parse_seat_id(seat)
