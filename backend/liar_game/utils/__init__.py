from liar_game.utils.rate_limit import (
    RateLimit,
    RateLimitConfig,
    limiter,
    close_rate_limiter,
    get_client_identifier
)
from liar_game.utils.sanitize import sanitize, sanitize_room_title, sanitize_room_description, sanitize_search_keyword

__all__ = [
    "RateLimit", "RateLimitConfig", "limiter", "close_rate_limiter", "get_client_identifier",
    "sanitize", "sanitize_room_title", "sanitize_room_description", "sanitize_search_keyword"
]
