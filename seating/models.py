from sqlalchemy import Boolean, Column, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class VehicleType(Base):
    __tablename__ = "vehicle_types"
    id = Column(Integer, primary_key=True)
    type_name = Column(String, nullable=False)
    # {"business": {"rows": 4, "seats_per_row": 6}, "economy": {...}}
    seating_plan = Column(JSON, nullable=False)


class Flight(Base):
    __tablename__ = "flights"
    id = Column(Integer, primary_key=True)
    flight_number = Column(String(6), nullable=False, unique=True)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id"), nullable=False)


class SeatType(Base):
    __tablename__ = "seat_type"
    seat_type_id = Column(Integer, primary_key=True)
    type_name = Column(String(50), nullable=False, unique=True)


class Passenger(Base):
    __tablename__ = "passengers"
    passenger_id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    age = Column(Integer, nullable=True)


class FlightPassengerAssignment(Base):
    __tablename__ = "flight_passenger_assignments"
    id = Column(Integer, primary_key=True)
    passenger_id = Column(Integer, ForeignKey("passengers.passenger_id", ondelete="CASCADE"), nullable=False)
    flight_number = Column(String(6), ForeignKey("flights.flight_number", ondelete="CASCADE"), nullable=False)
    seat_type_id = Column(Integer, ForeignKey("seat_type.seat_type_id"), nullable=True)
    seat_number = Column(String(5), nullable=True)  # null while unseated
    is_infant = Column(Boolean, nullable=False, default=False)
    __table_args__ = (
        UniqueConstraint("passenger_id", "flight_number", name="uix_passenger_flight"),
        UniqueConstraint("flight_number", "seat_number", name="uix_flight_seat"),
    )


class InfantParentRelationship(Base):
    __tablename__ = "infant_parent_relationship"
    id = Column(Integer, primary_key=True)
    infant_passenger_id = Column(Integer, ForeignKey("passengers.passenger_id", ondelete="CASCADE"), nullable=False)
    parent_passenger_id = Column(Integer, ForeignKey("passengers.passenger_id", ondelete="CASCADE"), nullable=False)
    flight_number = Column(String(6), ForeignKey("flights.flight_number", ondelete="CASCADE"), nullable=False)
    __table_args__ = (UniqueConstraint("infant_passenger_id", "flight_number", name="uix_infant_flight"),)


class AffiliatedSeating(Base):
    __tablename__ = "affiliated_seating"
    id = Column(Integer, primary_key=True)
    main_passenger_id = Column(Integer, ForeignKey("passengers.passenger_id", ondelete="CASCADE"), nullable=False)
    affiliated_passenger_id = Column(Integer, ForeignKey("passengers.passenger_id", ondelete="CASCADE"), nullable=False)
    flight_number = Column(String(6), ForeignKey("flights.flight_number", ondelete="CASCADE"), nullable=False)
