from liar_game.routers.auth import router as auth_router, hooks_router
from liar_game.routers.rooms import router as rooms_router
from liar_game.routers.admin import router as admin_router

__all__ = ["auth_router", "hooks_router", "rooms_router", "admin_router"]
