import json
from typing import Any
from sqlalchemy.orm import Session

from pcm.db.models.wbs_change_log import WBSChangeLog


def _dump(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, default=str)


def log_change(
    db: Session,
    *,
    item_id: int,
    project_id: int,
    user_id: int,
    change_type: str,
    before: dict | None = None,
    after: dict | None = None,
    reason: str | None = None,
) -> WBSChangeLog:
    entry = WBSChangeLog(
        wbs_item_id=item_id,
        project_id=project_id,
        changed_by=user_id,
        change_type=change_type,
        old_value=_dump(before),
        new_value=_dump(after),
        change_reason=reason or None,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def list_by_item(db: Session, item_id: int, limit: int | None = None) -> list[WBSChangeLog]:
    q = (
        db.query(WBSChangeLog)
        .filter(WBSChangeLog.wbs_item_id == item_id)
        .order_by(WBSChangeLog.changed_at.desc(), WBSChangeLog.id.desc())
    )
    if limit:
        q = q.limit(limit)
    return q.all()


def list_by_project(db: Session, project_id: int, limit: int | None = None) -> list[WBSChangeLog]:
    q = (
        db.query(WBSChangeLog)
        .filter(WBSChangeLog.project_id == project_id)
        .order_by(WBSChangeLog.changed_at.desc(), WBSChangeLog.id.desc())
    )
    if limit:
        q = q.limit(limit)
    return q.all()


def project_of_item(db: Session, item_id: int) -> int | None:
    """Project recorded for an item in its change log; outlives the item itself."""
    row = (
        db.query(WBSChangeLog.project_id)
        .filter(WBSChangeLog.wbs_item_id == item_id)
        .order_by(WBSChangeLog.id.desc())
        .first()
    )
    return row[0] if row else None
