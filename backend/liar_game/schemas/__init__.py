from liar_game.schemas.auth import Principal, ExternalClaims, AuthHookPayload, AuthHookResponse, UserResponse
from liar_game.schemas.room import RoomCreate, RoomResponse, RoomDetailResponse, RoomPlayerResponse, StatusTransition

__all__ = [
    "Principal", "ExternalClaims", "AuthHookPayload", "AuthHookResponse", "UserResponse",
    "RoomCreate", "RoomResponse", "RoomDetailResponse", "RoomPlayerResponse", "StatusTransition"
]
