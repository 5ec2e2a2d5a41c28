from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from liar_game.models.room import RoomStatus


class RoomCreate(BaseModel):
    # Uzunluk sanitize sonrasi servis katmaninda kontrol edilir
    name: str = Field(..., max_length=200)
    max_players: int | None = None


class RoomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    room_code: str
    name: str
    host_id: int
    max_players: int
    current_players: int
    status: RoomStatus
    created_at: datetime
    updated_at: datetime


class RoomPlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    room_id: int
    user_id: int
    username: str | None = None
    is_host: bool
    is_active: bool
    joined_at: datetime


class RoomDetailResponse(RoomResponse):
    players: list[RoomPlayerResponse] = []


class StatusTransition(BaseModel):
    status: RoomStatus
