from datetime import datetime
from typing import Any
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import select
from liar_game.config import settings
from liar_game.utils.logging_config import database_logger


def engine_options(database_url: str) -> dict[str, Any]:
    """Pool ayarlari - SQLite (testler) pool boyutu kabul etmez."""
    options: dict[str, Any] = {"echo": settings.DEBUG and settings.LOG_LEVEL == "DEBUG"}
    if database_url.startswith("sqlite"):
        return options
    options.update(
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=settings.DB_POOL_PRE_PING,
    )
    return options


engine = create_async_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db():
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    from liar_game.models.user import User, Role, Tier
    # Tablolarin metadata'ya kayitli olmasi icin
    from liar_game.models.room import GameRoom, RoomPlayer  # noqa: F401

    database_logger.info("Initializing database...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    database_logger.success("Database schema created/updated")

    if not settings.ADMIN_EMAIL:
        return

    # Admin kullanici - ADMIN_EMAIL ile giren hesap admin olur
    admin_email = settings.ADMIN_EMAIL.lower().strip()
    async with async_session() as session:
        result = await session.execute(select(User).where(User.email == admin_email))
        admin_user = result.scalar_one_or_none()

        if admin_user is None:
            session.add(User(
                email=admin_email,
                username=admin_email.split("@")[0],
                tier=Tier.PREMIUM,
                role=Role.ADMIN,
            ))
            database_logger.warning(f"Admin user created: {admin_email}")
        elif not admin_user.is_admin:
            admin_user.role = Role.ADMIN
            admin_user.updated_at = datetime.utcnow()
            database_logger.warning(f"Existing user promoted to admin: {admin_email}")
        else:
            database_logger.info(f"Admin user already exists: {admin_email}")
        await session.commit()
