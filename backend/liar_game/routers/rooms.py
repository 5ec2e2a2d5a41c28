"""
Rooms Router for the Liar Game API

Bu modul, oda listeleme, olusturma, katilma/ayrilma ve durum gecisi
endpoint'lerini icerir. Kurallar RoomService icindedir; router sadece I/O.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from liar_game.database import get_db
from liar_game.error_handlers import not_found_if_none
from liar_game.models.room import GameRoom, RoomPlayer, RoomStatus
from liar_game.routers.auth import RequireAccess, get_principal, require_local_user_id
from liar_game.schemas.auth import Principal
from liar_game.schemas.room import (
    RoomCreate, RoomResponse, RoomDetailResponse, RoomPlayerResponse, StatusTransition
)
from liar_game.services.room_service import RoomService
from liar_game.utils.access_control import AUTHENTICATED, MEMBER_ONLY, PUBLIC
from liar_game.utils.rate_limit import RateLimit, RateLimitConfig

# Principal once cozulur, boylece rate limit kullanici bazli calisir
router = APIRouter(prefix="/api/rooms", tags=["Rooms"], dependencies=[Depends(get_principal)])

READ_LIMIT = RateLimitConfig(window_seconds=60, max_requests=60)
CREATE_LIMIT = RateLimitConfig(window_seconds=60, max_requests=10)
MEMBERSHIP_LIMIT = RateLimitConfig(window_seconds=60, max_requests=30)
STATUS_LIMIT = RateLimitConfig(window_seconds=60, max_requests=20)


def _player_response(player: RoomPlayer) -> RoomPlayerResponse:
    return RoomPlayerResponse(
        id=player.id,
        room_id=player.room_id,
        user_id=player.user_id,
        username=player.user.username if player.user else None,
        is_host=player.is_host,
        is_active=player.is_active,
        joined_at=player.joined_at,
    )


async def _room_detail(service: RoomService, room: GameRoom) -> RoomDetailResponse:
    players = await service.get_active_players(room.id)
    # room.players lazy yuklenir; async session'da dogrudan okunmaz
    summary = RoomResponse.model_validate(room)
    return RoomDetailResponse(**summary.model_dump(), players=[_player_response(p) for p in players])


async def _require_room(service: RoomService, room_id: int) -> GameRoom:
    return not_found_if_none(await service.get_room_by_id(room_id), "Room")


@router.get("", response_model=list[RoomResponse], dependencies=[Depends(RateLimit("list_rooms", READ_LIMIT))])
async def list_rooms(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(RequireAccess(PUBLIC))],
    room_status: Annotated[RoomStatus | None, Query(alias="status")] = None,
    q: Annotated[str | None, Query(max_length=200)] = None
):
    """Odalari listele (guest dahil), q ile isimde arama - 60 istek / dakika"""
    service = RoomService(db)
    return await service.list_rooms(room_status, q)


@router.get(
    "/{room_code}",
    response_model=RoomDetailResponse,
    dependencies=[Depends(RateLimit("get_room", READ_LIMIT))],
)
async def get_room(
    room_code: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(RequireAccess(PUBLIC))]
):
    """
    Oda detayi (kod ile, buyuk/kucuk harf duyarsiz) - 60 istek / dakika.

    Raises:
        NotFoundException: oda yoksa
    """
    service = RoomService(db)
    room = not_found_if_none(await service.get_room_by_code(room_code), "Room")
    return await _room_detail(service, room)


@router.post(
    "",
    response_model=RoomResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit("create_room", CREATE_LIMIT))],
)
async def create_room(
    room_data: RoomCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(RequireAccess(MEMBER_ONLY))]
):
    """
    Oda olustur (MEMBER ve ustu) - 10 istek / dakika.

    Raises:
        PermissionDeniedException: tier MEMBER altinda
        ValidationFailedException: isim veya max_players gecersiz
    """
    service = RoomService(db)
    return await service.create_room(await require_local_user_id(principal, db), room_data.name, room_data.max_players)


@router.post(
    "/{room_code}/join",
    response_model=RoomPlayerResponse,
    dependencies=[Depends(RateLimit("join_room", MEMBERSHIP_LIMIT))],
)
async def join_room(
    room_code: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(RequireAccess(AUTHENTICATED))]
):
    """
    Odaya katil - 30 istek / dakika.

    Raises:
        NotFoundException, InvalidStateException, DuplicateMembershipException,
        CapacityExceededException
    """
    service = RoomService(db)
    player = await service.join_room(room_code, await require_local_user_id(principal, db))
    return RoomPlayerResponse(
        id=player.id,
        room_id=player.room_id,
        user_id=player.user_id,
        username=principal.username,
        is_host=player.is_host,
        is_active=player.is_active,
        joined_at=player.joined_at,
    )


@router.post(
    "/{room_id}/leave",
    response_model=RoomResponse,
    dependencies=[Depends(RateLimit("leave_room", MEMBERSHIP_LIMIT))],
)
async def leave_room(
    room_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(RequireAccess(AUTHENTICATED))]
):
    """
    Odadan ayril - 30 istek / dakika.

    Raises:
        NotFoundException: oda veya aktif uyelik yok
    """
    service = RoomService(db)
    return await service.leave_room(room_id, await require_local_user_id(principal, db))


async def _transition(
    service: RoomService, room_id: int, principal: Principal, next_status: RoomStatus
) -> GameRoom:
    room = await _require_room(service, room_id)
    service.ensure_can_control(room, principal)
    return await service.transition_status(room_id, next_status)


@router.post(
    "/{room_id}/start",
    response_model=RoomResponse,
    dependencies=[Depends(RateLimit("room_status", STATUS_LIMIT))],
)
async def start_game(
    room_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(RequireAccess(AUTHENTICATED))]
):
    """WAITING -> PLAYING (host veya admin) - 20 istek / dakika"""
    return await _transition(RoomService(db), room_id, principal, RoomStatus.PLAYING)


@router.post(
    "/{room_id}/finish",
    response_model=RoomResponse,
    dependencies=[Depends(RateLimit("room_status", STATUS_LIMIT))],
)
async def finish_game(
    room_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(RequireAccess(AUTHENTICATED))]
):
    """PLAYING -> FINISHED (host veya admin) - 20 istek / dakika"""
    return await _transition(RoomService(db), room_id, principal, RoomStatus.FINISHED)


@router.post(
    "/{room_id}/status",
    response_model=RoomResponse,
    dependencies=[Depends(RateLimit("room_status", STATUS_LIMIT))],
)
async def change_status(
    room_id: int,
    transition: StatusTransition,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(RequireAccess(AUTHENTICATED))]
):
    """
    Genel durum gecisi - sadece bir sonraki duruma.

    Raises:
        InvalidStateException: gecis izinli degil
        PermissionDeniedException: host veya admin degil
    """
    return await _transition(RoomService(db), room_id, principal, transition.status)
