"""Pytest fixtures for seating tests."""

import asyncio
import os

# must be set before the seating package creates its engine and redis client
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["REDIS_URL"] = ""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from seating import models
from seating.seatmap import resolve_seat_map

FLIGHT = "TK1985"
BUSINESS = 1
ECONOMY = 2


class SeatingDB:
    """Throw-away sqlite database with a synchronous facade for tests."""

    def __init__(self, url):
        self.engine = create_async_engine(url, poolclass=NullPool)
        self.Session = sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

    def run(self, fn, *args, **kwargs):
        """Call ``fn(session, *args)`` in a fresh session and event loop."""
        async def go():
            async with self.Session() as session:
                return await fn(session, *args, **kwargs)
        return asyncio.run(go())

    def add(self, *objects):
        async def go(session):
            async with session.begin():
                session.add_all(objects)
        self.run(go)

    def seat_of(self, passenger_id, flight_number=FLIGHT):
        return self.seats(flight_number).get(passenger_id)

    def seats(self, flight_number=FLIGHT):
        from seating.crud import load_occupancy

        async def go(session):
            async with session.begin():
                return await load_occupancy(session, flight_number)
        return {pid: seat for seat, pid in self.run(go).items()}

    def create_flight(self, plan, flight_number=FLIGHT, vehicle_id=1):
        self.add(models.VehicleType(id=vehicle_id, type_name="A320", seating_plan=plan))
        self.add(models.Flight(flight_number=flight_number, vehicle_type_id=vehicle_id))

    def board(self, passenger_id, seat_type_id=ECONOMY, seat_number=None, age=30, flight_number=FLIGHT):
        self.add(models.Passenger(passenger_id=passenger_id, name=f"Passenger {passenger_id}", age=age))
        self.add(models.FlightPassengerAssignment(
            passenger_id=passenger_id,
            flight_number=flight_number,
            seat_type_id=seat_type_id,
            seat_number=seat_number,
            is_infant=age < 2,
        ))


@pytest.fixture
def db(tmp_path):
    database = SeatingDB(f"sqlite+aiosqlite:///{tmp_path / 'seating.db'}")

    async def setup():
        async with database.engine.begin() as conn:
            await conn.run_sync(models.Base.metadata.create_all)

    asyncio.run(setup())
    database.add(
        models.SeatType(seat_type_id=BUSINESS, type_name="Business"),
        models.SeatType(seat_type_id=ECONOMY, type_name="Economy"),
    )
    yield database
    asyncio.run(database.engine.dispose())


@pytest.fixture
def small_economy(db):
    """Flight with a single 2x2 economy cabin."""
    db.create_flight({"Economy": {"rows": 2, "seatsPerRow": 2}})
    return db


@pytest.fixture
def mixed_cabins(db):
    """Flight with 1 business row of 2 and 3 economy rows of 3."""
    db.create_flight({
        "economy": {"rows": 3, "seats_per_row": 3, "total": 9},
        "business": {"rows": 1, "seats_per_row": 2, "total": 2},
    })
    return db


@pytest.fixture
def economy_map():
    return resolve_seat_map({"economy": {"rows": 3, "seats_per_row": 3}})
