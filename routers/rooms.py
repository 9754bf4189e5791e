from fastapi import APIRouter, HTTPException, Request
from schemas.rooms import RoomSummary, RoomDetailsResponse
from constants import ROOM_CAPACITY
from typing import List
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("/", response_model=List[RoomSummary])
async def list_rooms(request: Request):
    rooms = request.app.state.relay.registry.rooms()
    logger.debug(f"Listing {len(rooms)} rooms")
    return [RoomSummary(room_id=room_id, member_count=count) for room_id, count in sorted(rooms.items())]


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """
    Get room details.

    Returns:
    - room_id: Room identifier as supplied by clients on join
    - member_count: Number of connections currently joined
    - is_full: Whether the room already holds two participants (not enforced)
    """
    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"Room details request for {room_id} from {client_host}")

    member_count = len(request.app.state.relay.registry.members(room_id))
    if member_count == 0:
        logger.warning(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetailsResponse(
        room_id=room_id,
        member_count=member_count,
        is_full=member_count >= ROOM_CAPACITY,
    )
