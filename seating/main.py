import asyncio, json, logging
from typing import List, Optional
from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import uvicorn
from . import crud
from .database import engine, get_session
from .errors import SeatingError
from .logger import configure_logging
from .models import Base
from .schemas import (AffiliationIn, AffiliationOut, AssignmentOut, AutoAssignOut, InfantLinkIn, InfantLinkOut, LinkOut,
                      ManualAssignIn, ManualAssignOut, PassengerAssignIn, SeatOut)

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Flight Seating")


# Simple websocket manager
class WSManager:
    def __init__(self):
        self.connections = set()

    async def connect(self, ws: WebSocket):
        await ws.accept()
        self.connections.add(ws)

    def disconnect(self, ws: WebSocket):
        self.connections.discard(ws)

    async def broadcast(self, message: dict):
        dead = []
        for ws in list(self.connections):
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.info(f"Dropping websocket client: {e!r}")
                dead.append(ws)
        for d in dead:
            self.disconnect(d)


ws_manager = WSManager()
listener_task: Optional[asyncio.Task] = None


def _http_error(e: SeatingError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_dict())


# Startup: create tables, start redis subscriber bridge
@app.on_event("startup")
async def startup():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    global listener_task
    if crud.redis_client is not None:
        listener_task = asyncio.create_task(_redis_listener())
        listener_task.add_done_callback(_listener_done)


def _listener_done(task: asyncio.Task):
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Seat event listener stopped: {exc!r}")


async def _redis_listener():
    pub = crud.redis_client.pubsub()
    await pub.subscribe("seat_events")
    async for msg in pub.listen():
        if msg is None or msg.get("type") != "message":
            continue
        try:
            data = json.loads(msg["data"])
        except json.JSONDecodeError:
            logger.warning(f"Dropping malformed seat event: {msg['data']!r}")
            continue
        # forward to connected websockets
        await ws_manager.broadcast(data)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/flights/{flight_number}/seats", response_model=List[SeatOut])
async def get_seats(flight_number: str, session: AsyncSession = Depends(get_session)):
    try:
        return await crud.list_seats(session, flight_number)
    except SeatingError as e:
        raise _http_error(e)


@app.get("/flights/{flight_number}/passengers", response_model=List[AssignmentOut])
async def get_passengers(flight_number: str, session: AsyncSession = Depends(get_session)):
    try:
        return await crud.list_flight_passengers(session, flight_number)
    except SeatingError as e:
        raise _http_error(e)


@app.post("/flights/{flight_number}/passengers", response_model=AssignmentOut, status_code=201)
async def add_passenger(flight_number: str, body: PassengerAssignIn, session: AsyncSession = Depends(get_session)):
    try:
        return await crud.add_passenger_to_flight(session, flight_number, body.passenger_id,
                                                  body.seat_type_id, body.is_infant)
    except SeatingError as e:
        raise _http_error(e)


@app.delete("/flights/{flight_number}/passengers/{passenger_id}")
async def remove_passenger(flight_number: str, passenger_id: int, session: AsyncSession = Depends(get_session)):
    try:
        await crud.remove_passenger_from_flight(session, flight_number, passenger_id)
    except SeatingError as e:
        raise _http_error(e)
    return {"result": "removed"}


@app.put("/flights/{flight_number}/seats/auto-assign", response_model=AutoAssignOut)
async def assign_seats(flight_number: str, session: AsyncSession = Depends(get_session)):
    try:
        return await crud.auto_assign_seats(session, flight_number)
    except SeatingError as e:
        raise _http_error(e)


@app.put("/flights/{flight_number}/seats/manual", response_model=ManualAssignOut)
async def manual_assign(flight_number: str, body: ManualAssignIn, session: AsyncSession = Depends(get_session)):
    try:
        return await crud.manual_assign_seat(session, flight_number, body.passenger_id, body.seat_number)
    except SeatingError as e:
        raise _http_error(e)


@app.delete("/flights/{flight_number}/passengers/{passenger_id}/seat")
async def clear_seat(flight_number: str, passenger_id: int, session: AsyncSession = Depends(get_session)):
    try:
        released = await crud.clear_seat(session, flight_number, passenger_id)
    except SeatingError as e:
        raise _http_error(e)
    return {"result": "cleared", "released": released}


@app.post("/flights/{flight_number}/infants", response_model=LinkOut, status_code=201)
async def add_infant(flight_number: str, body: InfantLinkIn, session: AsyncSession = Depends(get_session)):
    try:
        link_id = await crud.link_infant(session, flight_number, body.infant_passenger_id, body.parent_passenger_id)
    except SeatingError as e:
        raise _http_error(e)
    return LinkOut(id=link_id)


@app.post("/flights/{flight_number}/affiliations", response_model=LinkOut, status_code=201)
async def add_affiliation(flight_number: str, body: AffiliationIn, session: AsyncSession = Depends(get_session)):
    try:
        link_id = await crud.link_affiliation(session, flight_number, body.main_passenger_id,
                                              body.affiliated_passenger_id)
    except SeatingError as e:
        raise _http_error(e)
    return LinkOut(id=link_id)


@app.get("/flights/{flight_number}/infants", response_model=List[InfantLinkOut])
async def get_infants(flight_number: str, session: AsyncSession = Depends(get_session)):
    try:
        return await crud.list_infant_links(session, flight_number)
    except SeatingError as e:
        raise _http_error(e)


@app.delete("/flights/{flight_number}/infants/{link_id}")
async def remove_infant(flight_number: str, link_id: int, session: AsyncSession = Depends(get_session)):
    try:
        await crud.unlink_infant(session, flight_number, link_id)
    except SeatingError as e:
        raise _http_error(e)
    return {"result": "removed"}


@app.get("/flights/{flight_number}/affiliations", response_model=List[AffiliationOut])
async def get_affiliations(flight_number: str, session: AsyncSession = Depends(get_session)):
    try:
        return await crud.list_affiliations(session, flight_number)
    except SeatingError as e:
        raise _http_error(e)


@app.delete("/flights/{flight_number}/affiliations/{link_id}")
async def remove_affiliation(flight_number: str, link_id: int, session: AsyncSession = Depends(get_session)):
    try:
        await crud.unlink_affiliation(session, flight_number, link_id)
    except SeatingError as e:
        raise _http_error(e)
    return {"result": "removed"}


# WebSocket endpoint: seat events for live seat maps
@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws_manager.connect(ws)
    try:
        while True:
            data = await ws.receive_text()
            await ws.send_text(f"ACK:{data}")
    except WebSocketDisconnect:
        ws_manager.disconnect(ws)


if __name__ == '__main__':
    uvicorn.run("seating.main:app", host="0.0.0.0", port=8000, reload=True)
