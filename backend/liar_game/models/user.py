from datetime import datetime
from enum import Enum
from sqlalchemy import String, DateTime, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from liar_game.database import Base


class Tier(str, Enum):
    """Ordered account privilege level"""
    GUEST = "guest"
    MEMBER = "member"
    PREMIUM = "premium"


class Role(str, Enum):
    """Account category, independent of tier"""
    USER = "user"
    ADMIN = "admin"


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    username: Mapped[str | None] = mapped_column(String(50), nullable=True)
    tier: Mapped[Tier] = mapped_column(
        SAEnum(Tier, native_enum=False, length=20, values_callable=_enum_values),
        default=Tier.MEMBER,
        index=True,
    )
    role: Mapped[Role] = mapped_column(
        SAEnum(Role, native_enum=False, length=20, values_callable=_enum_values),
        default=Role.USER,
    )
    oauth_provider: Mapped[str | None] = mapped_column(String(50), nullable=True)
    oauth_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Relationships
    hosted_rooms = relationship("GameRoom", back_populates="host")
    memberships = relationship("RoomPlayer", back_populates="user")

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_withdrawn(self) -> bool:
        return self.deleted_at is not None
