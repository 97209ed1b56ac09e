from sqlalchemy import String, Text, Identity
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pcm.db.base import Base
from pcm.db.models._mixins import TimestampMixin

class Project(Base, TimestampMixin):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Identity(), primary_key=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(256))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    wbs_items = relationship("WBSItem", back_populates="project")
