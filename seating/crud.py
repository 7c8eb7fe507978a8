import os, json, logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Tuple
from sqlalchemy import select, update, delete, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import redis.asyncio as redis
from redis.exceptions import RedisError
from . import models
from .errors import SeatingError, NotFoundError, SeatConflictError, SeatValidationError, StorageError
from .grouping import PendingPassenger, build_affiliated_groups, order_passengers
from .locking import flight_locks
from .manual import check_manual_request
from .occupancy import OccupancyTracker
from .planner import plan_batch
from .schemas import AutoAssignOut, ManualAssignOut, SeatOut, UnassignedOut
from .seatmap import SeatMap, cabin_for_seat_type, resolve_seat_map

logger = logging.getLogger(__name__)

REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
INFANT_MAX_AGE = int(os.environ.get("INFANT_MAX_AGE", "2"))

# empty REDIS_URL turns seat events off
redis_client = redis.from_url(REDIS_URL, encoding="utf-8", decode_responses=True) if REDIS_URL else None


# helper: publish to redis channel
async def publish_event(event: dict):
    if redis_client is None:
        return
    try:
        await redis_client.publish("seat_events", json.dumps(event))
    except RedisError as e:
        # the write is already committed, only the notification is lost
        logger.warning(f"Could not publish {event.get('type')} event: {e}")


async def _get_flight(session: AsyncSession, flight_number: str, for_update: bool = False):
    q = select(models.Flight).where(models.Flight.flight_number == flight_number)
    if for_update:
        q = q.with_for_update()
    res = await session.execute(q)
    flight = res.scalars().first()
    if not flight:
        raise NotFoundError("flight not found", flight_number=flight_number)
    return flight


async def _get_assignment(session: AsyncSession, flight_number: str, passenger_id: int):
    q = select(models.FlightPassengerAssignment).where(
        models.FlightPassengerAssignment.flight_number == flight_number,
        models.FlightPassengerAssignment.passenger_id == passenger_id,
    )
    res = await session.execute(q)
    assignment = res.scalars().first()
    if not assignment:
        raise NotFoundError("passenger is not on this flight", flight_number=flight_number, passenger_id=passenger_id)
    return assignment


async def seat_map_for(session: AsyncSession, flight) -> SeatMap:
    vehicle = await session.get(models.VehicleType, flight.vehicle_type_id)
    if not vehicle:
        raise NotFoundError("vehicle type not found", flight_number=flight.flight_number)
    return resolve_seat_map(vehicle.seating_plan)


async def seat_type_cabins(session: AsyncSession) -> Dict[int, Optional[str]]:
    res = await session.execute(select(models.SeatType.seat_type_id, models.SeatType.type_name))
    return {seat_type_id: cabin_for_seat_type(name) for seat_type_id, name in res.all()}


# seat -> passenger for every seated passenger on the flight
async def load_occupancy(session: AsyncSession, flight_number: str) -> Dict[str, int]:
    q = select(models.FlightPassengerAssignment.seat_number, models.FlightPassengerAssignment.passenger_id).where(
        models.FlightPassengerAssignment.flight_number == flight_number,
        models.FlightPassengerAssignment.seat_number.is_not(None),
    )
    res = await session.execute(q)
    return {seat: pid for seat, pid in res.all()}


async def load_infant_parents(session: AsyncSession, flight_number: str) -> Dict[int, int]:
    q = select(models.InfantParentRelationship.infant_passenger_id, models.InfantParentRelationship.parent_passenger_id).where(
        models.InfantParentRelationship.flight_number == flight_number
    )
    res = await session.execute(q)
    return {infant: parent for infant, parent in res.all()}


async def load_affiliation_links(session: AsyncSession, flight_number: str) -> List[Tuple[int, int]]:
    q = select(models.AffiliatedSeating.main_passenger_id, models.AffiliatedSeating.affiliated_passenger_id).where(
        models.AffiliatedSeating.flight_number == flight_number
    ).order_by(models.AffiliatedSeating.id)
    res = await session.execute(q)
    return [(a, b) for a, b in res.all()]


@asynccontextmanager
async def flight_transaction(session: AsyncSession, flight_number: str):
    """
    Serialize a read-modify-write on one flight.

    Holds the in-process flight lock and a FOR UPDATE lock on the flight row
    for the whole transaction. Any failure rolls the transaction back;
    storage errors are re-raised as StorageError.
    """
    async with flight_locks.hold(flight_number):
        try:
            async with session.begin():
                yield await _get_flight(session, flight_number, for_update=True)
        except SeatingError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Rolled back write on flight {flight_number}: {e}")
            raise StorageError("storage failure, changes rolled back", flight_number=flight_number) from e


# run an auto-assign batch over every unseated passenger of the flight
async def auto_assign_seats(session: AsyncSession, flight_number: str) -> AutoAssignOut:
    async with flight_transaction(session, flight_number) as flight:
        seat_map = await seat_map_for(session, flight)
        occupants = await load_occupancy(session, flight_number)

        q = select(models.FlightPassengerAssignment).where(
            models.FlightPassengerAssignment.flight_number == flight_number,
            models.FlightPassengerAssignment.seat_number.is_(None),
        )
        res = await session.execute(q)
        unseated = res.scalars().all()
        if not unseated:
            logger.info(f"Flight {flight_number}: all passengers already have seats")
            return AutoAssignOut(assigned_count=0, unassigned=[])

        cabins = await seat_type_cabins(session)
        pending = [PendingPassenger(a.passenger_id, cabins.get(a.seat_type_id)) for a in unseated]
        groups = build_affiliated_groups(await load_affiliation_links(session, flight_number))
        order = order_passengers(pending, await load_infant_parents(session, flight_number), groups)

        tracker = OccupancyTracker(seat_map, occupants)
        seated = {pid: seat for seat, pid in occupants.items()}
        plan = plan_batch(seat_map, tracker, order, seated)

        # whole batch commits together when the transaction closes
        for pid, seat in plan.seats.items():
            await session.execute(
                update(models.FlightPassengerAssignment)
                .where(
                    models.FlightPassengerAssignment.flight_number == flight_number,
                    models.FlightPassengerAssignment.passenger_id == pid,
                )
                .values(seat_number=seat)
            )

    logger.info(f"Flight {flight_number}: assigned {plan.assigned_count}, unassigned {len(plan.unassigned)}")
    if plan.seats:
        await publish_event({"type": "seats_auto_assigned", "flight_number": flight_number, "seats": plan.seats})
    return AutoAssignOut(
        assigned_count=plan.assigned_count,
        unassigned=[UnassignedOut(passenger_id=pid, reason=reason) for pid, reason in plan.unassigned],
    )


# put one passenger in an explicit seat, releasing any seat held before
async def manual_assign_seat(session: AsyncSession, flight_number: str, passenger_id: int, seat_number: str) -> ManualAssignOut:
    async with flight_transaction(session, flight_number) as flight:
        seat_map = await seat_map_for(session, flight)
        assignment = await _get_assignment(session, flight_number, passenger_id)
        seat_type = await session.get(models.SeatType, assignment.seat_type_id) if assignment.seat_type_id else None
        cabin = cabin_for_seat_type(seat_type.type_name) if seat_type else None

        tracker = OccupancyTracker(seat_map, await load_occupancy(session, flight_number))
        seat, already_held = check_manual_request(seat_map, tracker, passenger_id, cabin, seat_number)
        previous = assignment.seat_number
        if not already_held:
            assignment.seat_number = seat

    if already_held:
        return ManualAssignOut(seat_number=seat)
    logger.info(f"Flight {flight_number}: passenger {passenger_id} moved {previous} -> {seat}")
    await publish_event({"type": "seat_assigned", "flight_number": flight_number, "passenger_id": passenger_id,
                         "seat": seat, "released": previous})
    return ManualAssignOut(seat_number=seat)


async def clear_seat(session: AsyncSession, flight_number: str, passenger_id: int) -> Optional[str]:
    async with flight_transaction(session, flight_number):
        assignment = await _get_assignment(session, flight_number, passenger_id)
        previous = assignment.seat_number
        assignment.seat_number = None

    if previous:
        await publish_event({"type": "seat_released", "flight_number": flight_number, "seat": previous})
    return previous


async def add_passenger_to_flight(session: AsyncSession, flight_number: str, passenger_id: int,
                                  seat_type_id: int, is_infant: Optional[bool] = None):
    async with flight_transaction(session, flight_number):
        passenger = await session.get(models.Passenger, passenger_id)
        if not passenger:
            raise NotFoundError("passenger not found", passenger_id=passenger_id)
        if not await session.get(models.SeatType, seat_type_id):
            raise SeatValidationError("unknown seat type", seat_type_id=seat_type_id)
        q = select(models.FlightPassengerAssignment.id).where(
            models.FlightPassengerAssignment.flight_number == flight_number,
            models.FlightPassengerAssignment.passenger_id == passenger_id,
        )
        if (await session.execute(q)).first():
            raise SeatConflictError("passenger already on this flight", flight_number=flight_number, passenger_id=passenger_id)
        if is_infant is None:
            is_infant = passenger.age is not None and passenger.age < INFANT_MAX_AGE
        assignment = models.FlightPassengerAssignment(passenger_id=passenger_id, flight_number=flight_number,
                                                      seat_type_id=seat_type_id, is_infant=is_infant)
        session.add(assignment)
        await session.flush()
    return assignment


# remove the passenger from the flight along with their infant and affiliation links
async def remove_passenger_from_flight(session: AsyncSession, flight_number: str, passenger_id: int) -> None:
    async with flight_transaction(session, flight_number):
        assignment = await _get_assignment(session, flight_number, passenger_id)
        previous = assignment.seat_number
        rel = models.InfantParentRelationship
        await session.execute(delete(rel).where(
            rel.flight_number == flight_number,
            or_(rel.infant_passenger_id == passenger_id, rel.parent_passenger_id == passenger_id),
        ))
        aff = models.AffiliatedSeating
        await session.execute(delete(aff).where(
            aff.flight_number == flight_number,
            or_(aff.main_passenger_id == passenger_id, aff.affiliated_passenger_id == passenger_id),
        ))
        await session.delete(assignment)

    if previous:
        await publish_event({"type": "seat_released", "flight_number": flight_number, "seat": previous})


async def link_infant(session: AsyncSession, flight_number: str, infant_id: int, parent_id: int) -> int:
    if infant_id == parent_id:
        raise SeatValidationError("a passenger cannot be their own parent", passenger_id=infant_id)
    async with flight_transaction(session, flight_number):
        infant = await _get_assignment(session, flight_number, infant_id)
        await _get_assignment(session, flight_number, parent_id)
        q = select(models.InfantParentRelationship.id).where(
            models.InfantParentRelationship.flight_number == flight_number,
            models.InfantParentRelationship.infant_passenger_id == infant_id,
        )
        if (await session.execute(q)).first():
            raise SeatConflictError("infant already linked to a parent on this flight", passenger_id=infant_id)
        link = models.InfantParentRelationship(infant_passenger_id=infant_id, parent_passenger_id=parent_id,
                                               flight_number=flight_number)
        session.add(link)
        infant.is_infant = True
        await session.flush()
    return link.id


async def link_affiliation(session: AsyncSession, flight_number: str, main_id: int, affiliated_id: int) -> int:
    if main_id == affiliated_id:
        raise SeatValidationError("a passenger cannot be affiliated with themselves", passenger_id=main_id)
    async with flight_transaction(session, flight_number):
        await _get_assignment(session, flight_number, main_id)
        await _get_assignment(session, flight_number, affiliated_id)
        aff = models.AffiliatedSeating
        q = select(aff.id).where(
            aff.flight_number == flight_number,
            or_(
                (aff.main_passenger_id == main_id) & (aff.affiliated_passenger_id == affiliated_id),
                (aff.main_passenger_id == affiliated_id) & (aff.affiliated_passenger_id == main_id),
            ),
        )
        if (await session.execute(q)).first():
            raise SeatConflictError("passengers already affiliated", main_passenger_id=main_id,
                                    affiliated_passenger_id=affiliated_id)
        link = aff(main_passenger_id=main_id, affiliated_passenger_id=affiliated_id, flight_number=flight_number)
        session.add(link)
        await session.flush()
    return link.id


async def list_infant_links(session: AsyncSession, flight_number: str):
    async with session.begin():
        await _get_flight(session, flight_number)
        rel = models.InfantParentRelationship
        res = await session.execute(select(rel).where(rel.flight_number == flight_number).order_by(rel.id))
        return res.scalars().all()


async def list_affiliations(session: AsyncSession, flight_number: str):
    async with session.begin():
        await _get_flight(session, flight_number)
        aff = models.AffiliatedSeating
        res = await session.execute(select(aff).where(aff.flight_number == flight_number).order_by(aff.id))
        return res.scalars().all()


# delete one link row; seats already held are left alone
async def _unlink(session: AsyncSession, flight_number: str, model, link_id: int) -> None:
    async with flight_transaction(session, flight_number):
        link = await session.get(model, link_id)
        if not link or link.flight_number != flight_number:
            raise NotFoundError("link not found", flight_number=flight_number, link_id=link_id)
        await session.delete(link)
    logger.info(f"Flight {flight_number}: removed {model.__tablename__} link {link_id}")


async def unlink_infant(session: AsyncSession, flight_number: str, link_id: int) -> None:
    await _unlink(session, flight_number, models.InfantParentRelationship, link_id)


async def unlink_affiliation(session: AsyncSession, flight_number: str, link_id: int) -> None:
    await _unlink(session, flight_number, models.AffiliatedSeating, link_id)


# get seat map for a flight)
async def list_seats(session: AsyncSession, flight_number: str) -> List[SeatOut]:
    async with session.begin():
        flight = await _get_flight(session, flight_number)
        seat_map = await seat_map_for(session, flight)
        occupants = await load_occupancy(session, flight_number)
    return [SeatOut(seat_number=seat, cabin_class=cabin, passenger_id=occupants.get(seat)) for seat, cabin in seat_map]


async def list_flight_passengers(session: AsyncSession, flight_number: str):
    async with session.begin():
        await _get_flight(session, flight_number)
        q = select(models.FlightPassengerAssignment).where(
            models.FlightPassengerAssignment.flight_number == flight_number
        ).order_by(models.FlightPassengerAssignment.passenger_id)
        res = await session.execute(q)
        return res.scalars().all()
