from sqlalchemy import String, Text, ForeignKey, Integer, Index, Identity
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pcm.db.base import Base
from pcm.db.models._mixins import TimestampMixin

class WBSItem(Base, TimestampMixin):
    __tablename__ = "wbs_items"
    __table_args__ = (Index("ix_wbs_items_sibling_group", "project_id", "parent_id", "sort_order"),)

    id: Mapped[int] = mapped_column(Identity(), primary_key=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), index=True)
    parent_id: Mapped[int | None] = mapped_column(ForeignKey("wbs_items.id"), nullable=True, index=True)

    code: Mapped[str] = mapped_column(String(64))  # e.g. "1.1"
    name: Mapped[str] = mapped_column(String(256))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    level_number: Mapped[int] = mapped_column(Integer, default=1)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    project = relationship("Project", back_populates="wbs_items")
