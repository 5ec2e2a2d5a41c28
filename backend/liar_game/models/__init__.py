from liar_game.models.user import User, Tier, Role
from liar_game.models.room import GameRoom, RoomPlayer, RoomStatus

__all__ = ["User", "Tier", "Role", "GameRoom", "RoomPlayer", "RoomStatus"]
