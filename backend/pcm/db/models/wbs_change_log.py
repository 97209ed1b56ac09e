import datetime as dt
from sqlalchemy import String, Text, ForeignKey, DateTime, Integer, Identity, func
from sqlalchemy.orm import Mapped, mapped_column

from pcm.db.base import Base
from pcm.db.models._mixins import utcnow

class WBSChangeLog(Base):
    """Append-only audit row; never updated or deleted by the application."""

    __tablename__ = "wbs_change_logs"

    id: Mapped[int] = mapped_column(Identity(), primary_key=True)
    # no FK: entries outlive the items they describe
    wbs_item_id: Mapped[int] = mapped_column(Integer, index=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), index=True)
    changed_by: Mapped[int] = mapped_column(ForeignKey("users.id"))
    change_type: Mapped[str] = mapped_column(String(16))  # CREATE|UPDATE|DELETE|REORDER
    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    change_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    changed_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True
    )
