from sqlalchemy import String, Boolean, Identity
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pcm.db.base import Base
from pcm.db.models._mixins import TimestampMixin

class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Identity(), primary_key=True)
    login: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    full_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(256))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    roles = relationship("UserRole", back_populates="user", cascade="all, delete-orphan")
