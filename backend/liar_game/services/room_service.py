import asyncio
import secrets
import string
import weakref
from datetime import datetime
from typing import Callable
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from liar_game.config import settings
from liar_game.exceptions import (
    CapacityExceededException,
    DuplicateMembershipException,
    InvalidStateException,
    NotFoundException,
    PermissionDeniedException,
    RoomCodeExhaustedException,
    ValidationFailedException,
)
from liar_game.models.room import (
    GameRoom,
    RoomPlayer,
    RoomStatus,
    ROOM_CODE_LENGTH,
    ROOM_NAME_MAX_LENGTH,
    MIN_PLAYERS,
    MAX_PLAYERS,
)
from liar_game.models.user import Role
from liar_game.schemas.auth import Principal
from liar_game.utils.logging_config import room_logger
from liar_game.utils.sanitize import sanitize_room_title, sanitize_search_keyword

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    """6 karakterlik oda kodu, [A-Z0-9]"""
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(length))


# Oda basina kilit; join/leave/transition ayni oda icin sirayla calisir
_room_locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()


def room_lock(room_id: int) -> asyncio.Lock:
    lock = _room_locks.get(room_id)
    if lock is None:
        lock = asyncio.Lock()
        _room_locks[room_id] = lock
    return lock


class RoomService:
    def __init__(self, db: AsyncSession, code_generator: Callable[[], str] = generate_room_code):
        self.db = db
        self.code_generator = code_generator

    # ==================== Queries ====================

    async def get_room_by_id(self, room_id: int) -> GameRoom | None:
        result = await self.db.execute(select(GameRoom).where(GameRoom.id == room_id))
        return result.scalar_one_or_none()

    async def get_room_by_code(self, room_code: str) -> GameRoom | None:
        result = await self.db.execute(
            select(GameRoom).where(GameRoom.room_code == room_code.strip().upper())
        )
        return result.scalar_one_or_none()

    async def list_rooms(self, status: RoomStatus | None = None, keyword: str | None = None) -> list[GameRoom]:
        """Odalari listele, en yenisi once. keyword: isimde buyuk/kucuk harf duyarsiz arama."""
        query = select(GameRoom).order_by(GameRoom.created_at.desc(), GameRoom.id.desc())
        if status is not None:
            query = query.where(GameRoom.status == status)
        keyword = sanitize_search_keyword(keyword)
        if keyword:
            query = query.where(func.lower(GameRoom.name).contains(keyword.lower(), autoescape=True))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_active_players(self, room_id: int) -> list[RoomPlayer]:
        result = await self.db.execute(
            select(RoomPlayer)
            .options(selectinload(RoomPlayer.user))
            .where(RoomPlayer.room_id == room_id, RoomPlayer.is_active.is_(True))
            .order_by(RoomPlayer.joined_at, RoomPlayer.id)
        )
        return list(result.scalars().all())

    def ensure_can_control(self, room: GameRoom, principal: Principal) -> None:
        """Sadece host veya admin oda durumunu degistirebilir."""
        if principal.role == Role.ADMIN:
            return
        if principal.user_id is not None and principal.user_id == room.host_id:
            return
        room_logger.warning(
            "Room control denied",
            extra={"room_id": room.id, "principal_id": principal.id},
        )
        raise PermissionDeniedException(
            "Only the room host can change the room status",
            required_roles={Role.ADMIN},
            actual=principal.role,
        )

    # ==================== Lifecycle ====================

    async def _lock_room(self, room_id: int) -> GameRoom:
        """Oda satirini kilit altinda yeniden oku (FOR UPDATE, PostgreSQL)."""
        result = await self.db.execute(
            select(GameRoom)
            .where(GameRoom.id == room_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        room = result.scalar_one_or_none()
        if room is None:
            raise NotFoundException("Room")
        return room

    async def _room_code_taken(self, room_code: str) -> bool:
        result = await self.db.execute(
            select(func.count(GameRoom.id)).where(GameRoom.room_code == room_code)
        )
        return bool(result.scalar())

    async def _allocate_room_code(self) -> str:
        attempts = settings.ROOM_CODE_MAX_ATTEMPTS
        for attempt in range(1, attempts + 1):
            room_code = self.code_generator().upper()
            if not await self._room_code_taken(room_code):
                return room_code
            room_logger.debug(f"Room code collision ({attempt}/{attempts}): {room_code}")
        room_logger.error(f"Room code allocation failed after {attempts} attempts")
        raise RoomCodeExhaustedException(attempts)

    async def create_room(self, host_user_id: int, name: str | None, max_players: int | None = None) -> GameRoom:
        """
        Create a WAITING room with the creator as its only (host) player.

        Raises:
            ValidationFailedException: name bos/uzun veya max_players 2-10 disinda
            RoomCodeExhaustedException: benzersiz kod bulunamadi
        """
        if max_players is None:
            max_players = settings.DEFAULT_MAX_PLAYERS
        clean_name = sanitize_room_title(name)
        if not clean_name:
            raise ValidationFailedException("name", "must not be empty")
        if len(clean_name) > ROOM_NAME_MAX_LENGTH:
            raise ValidationFailedException("name", f"must be at most {ROOM_NAME_MAX_LENGTH} characters")
        if not MIN_PLAYERS <= max_players <= MAX_PLAYERS:
            raise ValidationFailedException("max_players", f"must be between {MIN_PLAYERS} and {MAX_PLAYERS}")

        attempts = settings.ROOM_CODE_MAX_ATTEMPTS
        for attempt in range(1, attempts + 1):
            room_code = await self._allocate_room_code()
            room = GameRoom(
                room_code=room_code,
                host_id=host_user_id,
                name=clean_name,
                max_players=max_players,
                current_players=1,
                status=RoomStatus.WAITING,
            )
            self.db.add(room)
            try:
                await self.db.flush()
                # Host'u oyuncu olarak ekle
                self.db.add(RoomPlayer(room_id=room.id, user_id=host_user_id, is_host=True, is_active=True))
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                if not await self._room_code_taken(room_code):
                    raise
                # Kontrol ile insert arasinda ayni kod baska istekte kullanildi
                room_logger.warning(f"Room code taken concurrently ({attempt}/{attempts}): {room_code}")
                continue

            room_logger.info(
                "Room created",
                extra={
                    "room_id": room.id,
                    "room_code": room.room_code,
                    "host_id": host_user_id,
                    "max_players": room.max_players,
                },
            )
            return room

        room_logger.error(f"Room creation failed after {attempts} concurrent code collisions")
        raise RoomCodeExhaustedException(attempts)

    async def join_room(self, room_code: str, user_id: int) -> RoomPlayer:
        """
        Raises:
            NotFoundException: oda yok
            InvalidStateException: oda WAITING degil
            DuplicateMembershipException: kullanici zaten aktif
            CapacityExceededException: oda dolu
        """
        found = await self.get_room_by_code(room_code)
        if found is None:
            raise NotFoundException("Room")

        async with room_lock(found.id):
            room = await self._lock_room(found.id)

            if room.status != RoomStatus.WAITING:
                raise InvalidStateException(room.status, "join")

            result = await self.db.execute(
                select(RoomPlayer).where(RoomPlayer.room_id == room.id, RoomPlayer.user_id == user_id)
            )
            player = result.scalar_one_or_none()
            if player is not None and player.is_active:
                room_logger.debug(f"User already in room: {user_id}")
                raise DuplicateMembershipException()

            if room.is_full:
                room_logger.warning(
                    "Room is full",
                    extra={"room_id": room.id, "user_id": user_id, "max_players": room.max_players},
                )
                raise CapacityExceededException(room.max_players)

            if player is None:
                player = RoomPlayer(room_id=room.id, user_id=user_id)
                self.db.add(player)
            # Tekrar katilim: satir yeniden aktif edilir
            player.is_active = True
            player.is_host = False
            player.joined_at = datetime.utcnow()
            room.current_players += 1
            await self.db.commit()

        room_logger.info(
            "User joined room",
            extra={"room_id": room.id, "user_id": user_id, "current_players": room.current_players},
        )
        return player

    async def leave_room(self, room_id: int, user_id: int) -> GameRoom:
        """
        Deactivate the membership; transfer host or finish the room as needed.

        Raises:
            NotFoundException: oda veya aktif uyelik yok
        """
        async with room_lock(room_id):
            room = await self._lock_room(room_id)

            result = await self.db.execute(
                select(RoomPlayer).where(
                    RoomPlayer.room_id == room.id,
                    RoomPlayer.user_id == user_id,
                    RoomPlayer.is_active.is_(True),
                )
            )
            player = result.scalar_one_or_none()
            if player is None:
                raise NotFoundException("RoomPlayer", "You are not in this room")

            was_host = player.is_host
            player.is_active = False
            player.is_host = False
            room.current_players = max(0, room.current_players - 1)

            if room.current_players == 0:
                # Bos oda kapanir
                room.status = RoomStatus.FINISHED
                room_logger.info("Room finished (empty)", extra={"room_id": room.id})
            elif was_host:
                await self.db.flush()
                remaining = await self.get_active_players(room.id)
                new_host = remaining[0]
                new_host.is_host = True
                room.host_id = new_host.user_id
                room_logger.info(
                    "Host transferred",
                    extra={"room_id": room.id, "from_user": user_id, "to_user": new_host.user_id},
                )

            await self.db.commit()

        room_logger.info(
            "User left room",
            extra={"room_id": room.id, "user_id": user_id, "current_players": room.current_players},
        )
        return room

    async def transition_status(self, room_id: int, next_status: RoomStatus) -> GameRoom:
        """
        WAITING -> PLAYING -> FINISHED; atlama veya geri donus yok.

        Raises:
            NotFoundException: oda yok
            InvalidStateException: istenen durum bir sonraki durum degil
        """
        next_status = RoomStatus(next_status)
        async with room_lock(room_id):
            room = await self._lock_room(room_id)
            current = room.status
            if current.next_status != next_status:
                room_logger.warning(
                    "Invalid status transition",
                    extra={"room_id": room.id, "current": current.value, "attempted": next_status.value},
                )
                raise InvalidStateException(current, next_status)

            room.status = next_status
            await self.db.commit()

        room_logger.info(
            "Room status changed",
            extra={"room_id": room.id, "from": current.value, "to": next_status.value},
        )
        return room
