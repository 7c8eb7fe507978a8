from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import List, Optional


# one cabin of a seating plan, e.g. {"rows": 29, "seats_per_row": 6, "total": 174}
class CabinLayout(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    rows: int = Field(gt=0)
    seats_per_row: int = Field(
        gt=0,
        le=26,
        validation_alias=AliasChoices("seats_per_row", "seatsPerRow"),
    )


class SeatOut(BaseModel):
    seat_number: str
    cabin_class: str
    passenger_id: Optional[int] = None


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    passenger_id: int
    flight_number: str
    seat_type_id: Optional[int]
    seat_number: Optional[str]
    is_infant: bool


class PassengerAssignIn(BaseModel):
    passenger_id: int
    seat_type_id: int
    is_infant: Optional[bool] = None


class ManualAssignIn(BaseModel):
    passenger_id: int
    seat_number: str = Field(min_length=2, max_length=5)


class ManualAssignOut(BaseModel):
    seat_number: str


class UnassignedOut(BaseModel):
    passenger_id: int
    reason: str


class AutoAssignOut(BaseModel):
    assigned_count: int
    unassigned: List[UnassignedOut] = []


class InfantLinkIn(BaseModel):
    infant_passenger_id: int
    parent_passenger_id: int


class AffiliationIn(BaseModel):
    main_passenger_id: int
    affiliated_passenger_id: int


class LinkOut(BaseModel):
    id: int


class InfantLinkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    infant_passenger_id: int
    parent_passenger_id: int
    flight_number: str


class AffiliationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    main_passenger_id: int
    affiliated_passenger_id: int
    flight_number: str
