"""
SQLAlchemy 2.0 models for the relay bot.
Only participant profiles are persisted; queue and pairing state live in the
state store.
"""
from datetime import datetime
from typing import Optional
from sqlalchemy import BigInteger, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class Participant(Base):
    """Registered bot user and their registration attributes."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False, index=True)
    user_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    user_nickname: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    user_sex: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    user_age: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # "lat,lon" with five decimals
    user_geo: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    ava: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    ava_file_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_complete(self) -> bool:
        """All registration attributes are present."""
        return bool(
            self.ava_file_id
            and self.user_nickname
            and self.user_sex
            and self.user_age
            and self.user_geo
        )

    def __repr__(self) -> str:
        return f"<Participant user_id={self.user_id} nickname={self.user_nickname!r}>"
