from datetime import datetime
from enum import Enum
from sqlalchemy import (
    String, Integer, Boolean, DateTime, ForeignKey, CheckConstraint, UniqueConstraint, Enum as SAEnum
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from liar_game.database import Base


class RoomStatus(str, Enum):
    """Room lifecycle: WAITING -> PLAYING -> FINISHED"""
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"

    @property
    def next_status(self) -> "RoomStatus | None":
        """Bir sonraki durum; FINISHED terminal."""
        order = list(RoomStatus)
        index = order.index(self)
        return order[index + 1] if index + 1 < len(order) else None


ROOM_CODE_LENGTH = 6
ROOM_NAME_MAX_LENGTH = 50
MIN_PLAYERS = 2
MAX_PLAYERS = 10


class GameRoom(Base):
    __tablename__ = "game_rooms"
    __table_args__ = (
        CheckConstraint("current_players >= 0", name="ck_game_rooms_current_players_non_negative"),
        CheckConstraint("current_players <= max_players", name="ck_game_rooms_capacity"),
        CheckConstraint(
            f"max_players BETWEEN {MIN_PLAYERS} AND {MAX_PLAYERS}",
            name="ck_game_rooms_max_players_range",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    room_code: Mapped[str] = mapped_column(String(ROOM_CODE_LENGTH), unique=True, nullable=False, index=True)
    host_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(ROOM_NAME_MAX_LENGTH), nullable=False)
    max_players: Mapped[int] = mapped_column(Integer, default=6)
    current_players: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[RoomStatus] = mapped_column(
        SAEnum(
            RoomStatus,
            native_enum=False,
            length=20,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        default=RoomStatus.WAITING,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    host = relationship("User", back_populates="hosted_rooms")
    players = relationship(
        "RoomPlayer",
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="RoomPlayer.joined_at",
    )

    @property
    def is_full(self) -> bool:
        return self.current_players >= self.max_players


class RoomPlayer(Base):
    __tablename__ = "room_players"
    __table_args__ = (
        UniqueConstraint("room_id", "user_id", name="uq_room_players_room_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    room_id: Mapped[int] = mapped_column(ForeignKey("game_rooms.id"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    is_host: Mapped[bool] = mapped_column(Boolean, default=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Relationships
    room = relationship("GameRoom", back_populates="players")
    user = relationship("User", back_populates="memberships")
