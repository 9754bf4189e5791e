from pydantic import BaseModel


class RoomSummary(BaseModel):
    room_id: str
    member_count: int

class RoomDetailsResponse(BaseModel):
    room_id: str
    member_count: int
    is_full: bool
