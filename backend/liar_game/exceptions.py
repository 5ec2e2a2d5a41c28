"""
Custom Exception Classes for the Liar Game API

Bu modul, tum uygulama uzerinde kullanilacak custom exception siniflarini icerir.
Her exception sinifi, cagirana ayirt edilebilir bir hata turu sunar; servis
katmani bunlari firlatir, error_handlers tutarli JSON response'a cevirir.
"""

from typing import Any, Iterable, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standart hata kodlari - tutarli error response'lar icin"""

    # Authentication & Authorization (AUTH_xxx)
    AUTHENTICATION_REQUIRED = "AUTH_001"
    PERMISSION_DENIED = "AUTH_002"
    ACCOUNT_WITHDRAWN = "AUTH_003"
    INVALID_WEBHOOK_SIGNATURE = "AUTH_004"

    # Room lifecycle (ROOM_xxx)
    NOT_FOUND = "ROOM_001"
    INVALID_STATE = "ROOM_002"
    CAPACITY_EXCEEDED = "ROOM_003"
    DUPLICATE_MEMBERSHIP = "ROOM_004"
    ROOM_CODE_EXHAUSTED = "ROOM_005"

    # Validation (VAL_xxx)
    VALIDATION_ERROR = "VAL_001"

    # General (GEN_xxx)
    INTERNAL_SERVER_ERROR = "GEN_001"
    RATE_LIMIT_EXCEEDED = "GEN_002"
    CONFLICT = "GEN_003"


class AppException(Exception):
    """
    Base exception class for all application errors.

    Tum custom exception'lar bu siniftan turetilmelidir.

    Attributes:
        message: Kullaniciya gosterilecek hata mesaji
        code: Hata kodu (ErrorCode enum)
        status_code: HTTP status code
        details: Ek hata detaylari (opsiyonel)
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Exception'i dict formatina donusturur (API response icin)"""
        result = {
            "error": self.code.value,
            "message": self.message,
            "status_code": self.status_code,
        }
        if self.details:
            result["details"] = self.details
        return result


def _value(item: Any) -> Any:
    return getattr(item, "value", item)


# ==================== Authentication & Authorization ====================

class AuthenticationRequiredException(AppException):
    """Kimlik dogrulama gerekli (principal yok, gecersiz token veya silinmis hesap)"""

    def __init__(
        self,
        message: str = "Authentication required",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            ErrorCode.AUTHENTICATION_REQUIRED,
            401,
            details,
            headers={"WWW-Authenticate": "Bearer"},
        )


class PermissionDeniedException(AppException):
    """
    Yetki hatasi.

    Role veya tier gereksinimi saglanmadiginda firlatilir; details icinde
    gereken ve mevcut deger yer alir.
    """

    def __init__(
        self,
        message: str = "Permission denied",
        *,
        required_roles: Optional[Iterable[Any]] = None,
        required_tier: Any = None,
        actual: Any = None,
    ):
        details: dict[str, Any] = {}
        if required_roles is not None:
            details["required_roles"] = sorted(_value(role) for role in required_roles)
        if required_tier is not None:
            details["required_tier"] = _value(required_tier)
        if actual is not None:
            details["actual"] = _value(actual)
        super().__init__(message, ErrorCode.PERMISSION_DENIED, 403, details)
        self.required_roles = details.get("required_roles")
        self.required_tier = required_tier
        self.actual = actual


class AccountWithdrawnException(AppException):
    """Silinmis (soft-delete) hesap ile token alma denemesi"""

    def __init__(self, message: str = "This account has been withdrawn. Contact support to restore it."):
        super().__init__(message, ErrorCode.ACCOUNT_WITHDRAWN, 422)


class InvalidWebhookSignatureException(AppException):
    """Auth hook imzasi dogrulanamadi"""

    def __init__(self, reason: str = "Invalid webhook signature"):
        super().__init__(
            "Webhook authentication failed",
            ErrorCode.INVALID_WEBHOOK_SIGNATURE,
            401,
            {"reason": reason},
        )


# ==================== Room Lifecycle ====================

class NotFoundException(AppException):
    """Kaynak bulunamadi"""

    def __init__(self, entity: str = "Resource", message: Optional[str] = None):
        super().__init__(
            message or f"{entity} not found",
            ErrorCode.NOT_FOUND,
            404,
            {"entity": entity},
        )
        self.entity = entity


class InvalidStateException(AppException):
    """Oda mevcut durumda bu islemi kabul etmiyor"""

    def __init__(self, current: Any, attempted: Any, message: Optional[str] = None):
        current_value = _value(current)
        attempted_value = _value(attempted)
        super().__init__(
            message or f"Cannot {attempted_value} while room is {current_value}",
            ErrorCode.INVALID_STATE,
            409,
            {"current": current_value, "attempted": attempted_value},
        )
        self.current = current
        self.attempted = attempted


class CapacityExceededException(AppException):
    """Oda kapasitesi doldu"""

    def __init__(self, max_players: Optional[int] = None):
        details = {"max_players": max_players} if max_players is not None else None
        super().__init__("Room is full", ErrorCode.CAPACITY_EXCEEDED, 409, details)


class DuplicateMembershipException(AppException):
    """Kullanici zaten odada aktif"""

    def __init__(self, message: str = "You are already in this room"):
        super().__init__(message, ErrorCode.DUPLICATE_MEMBERSHIP, 409)


class RoomCodeExhaustedException(AppException):
    """Benzersiz oda kodu uretilemedi"""

    def __init__(self, attempts: int):
        super().__init__(
            "Could not allocate a room code, please retry",
            ErrorCode.ROOM_CODE_EXHAUSTED,
            503,
            {"attempts": attempts},
        )


# ==================== Validation ====================

class ValidationFailedException(AppException):
    """Alan dogrulama hatasi"""

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"Invalid value for {field}: {reason}",
            ErrorCode.VALIDATION_ERROR,
            422,
            {"field": field, "reason": reason},
        )
        self.field = field
        self.reason = reason


# ==================== General ====================

class RateLimitExceededException(AppException):
    """Istek limiti asildi"""

    def __init__(self, limit: int, window_seconds: int, reset: int):
        super().__init__(
            "Rate limit exceeded. Please try again later.",
            ErrorCode.RATE_LIMIT_EXCEEDED,
            429,
            {"limit": limit, "window_seconds": window_seconds},
            headers={
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(reset),
                "Retry-After": str(window_seconds),
            },
        )
